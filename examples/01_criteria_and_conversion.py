"""Criteria examples: building from raw request inputs and converting."""

from __future__ import annotations

import json
import sys
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "store_criteria").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from store_criteria import Criteria, QueryConfig, QueryConverter, ValidationError, add_filter


def main() -> None:
    raw_filters = json.dumps(
        [
            {"field": "status", "operator": "in", "value": ["open", "pending"]},
            {"field": "tags", "operator": "ARRAY_INTERSECTS", "value": ["vip"]},
        ]
    )
    # Scope the request to one campaign, as a nested route would.
    raw_filters = add_filter(raw_filters, {"field": "campaign_id", "operator": "eq", "value": 12})

    criteria = Criteria.build(
        "calls",
        "id,status,created_at",
        raw_filters=raw_filters,
        raw_order_field="created_at",
        raw_order_direction="DESCENDENT",
        raw_limit="10",
        raw_offset="20",
    )
    print("Criteria:", criteria)

    converter = QueryConverter(QueryConfig(soft_delete_tables={"calls"}))
    query = converter.convert(criteria)
    for predicate in query.predicates:
        print("Predicate:", predicate.field, predicate.operator.value, predicate.value)
    print("Order:", query.orders)

    # Validation failures name the offending input.
    for kwargs in (
        {"raw_limit": "10"},
        {"raw_filters": '[{"field": "a", "operator": "between", "value": 1}]'},
        {"raw_order_field": "id", "raw_order_direction": "sideways"},
    ):
        try:
            Criteria.build("calls", **kwargs)
        except ValidationError as exc:
            print(f"Rejected ({exc.field}):", exc)


if __name__ == "__main__":
    main()
