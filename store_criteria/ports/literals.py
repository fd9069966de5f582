"""Parsing of store-formatted predicate values back into Python values.

Converted predicates carry text: `(a,b)` for membership lists, `{a,b}` for
set literals and the plain string form for scalars. Bindings that evaluate
predicates themselves use these helpers to recover the items.
"""

from __future__ import annotations

import csv
from typing import Optional

from ..core.errors import StoreError
from ..core.operators import Operator
from ..core.query_spec import Predicate

_LIST_OPERATORS = {Operator.IN}


def split_literal(text: str, opening: str, closing: str) -> list[str]:
    """Split `(a,b)` / `{a,b}` into items; double quotes protect commas."""

    stripped = text.strip()
    if not (stripped.startswith(opening) and stripped.endswith(closing)):
        raise StoreError(f"Malformed list literal {text!r}, expected {opening}...{closing}")
    inner = stripped[1:-1]
    if not inner.strip():
        return []
    return [item.strip() for item in next(csv.reader([inner], skipinitialspace=True))]


def predicate_items(predicate: Predicate) -> Optional[list[str]]:
    """Return list items for list-valued operators, `None` for scalar ones."""

    if predicate.operator is Operator.ARRAY_INTERSECTS:
        return split_literal(predicate.value or "{}", "{", "}")
    if predicate.operator in _LIST_OPERATORS:
        if predicate.value is None:
            raise StoreError(f"Operator 'in' on {predicate.field!r} needs a list value")
        return split_literal(predicate.value, "(", ")")
    return None


def is_operand(value: Optional[str]) -> Optional[bool]:
    """Resolve the operand of `IS`: `None` for null, else a boolean."""

    if value is None:
        return None
    key = value.strip().lower()
    if key == "null":
        return None
    if key in ("true", "false"):
        return key == "true"
    raise StoreError(f"Operator 'is' expects null, true or false, got {value!r}")
