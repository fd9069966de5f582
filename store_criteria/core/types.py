"""Shared core type aliases used across criteria, contracts, and ports."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

Scalar = Union[str, int, float, date]
FilterValue = Union[Scalar, Sequence[str], Sequence[int], Sequence[float], None]
FormattedValue = Optional[str]

ProcedureParams = Mapping[str, Any]
RowMapping = Mapping[str, Any]
Rows = List[RowMapping]
MaybeRow = Optional[RowMapping]

NamedParams = Dict[str, Any]
PositionalParams = List[Any]
QueryParams = Union[NamedParams, PositionalParams, None]
