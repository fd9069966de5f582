"""Aggregate views: rows and totals from two procedures issued concurrently."""

from __future__ import annotations

import asyncio
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

from store_criteria import AsyncInMemoryStore, AsyncQueryService, Criteria, QueryConfig

CONFIG = QueryConfig.from_mapping(
    {
        "aggregate_views": {
            "view_calls_with_contacts": {
                "rows_procedure": "get_calls_with_contacts_lateral",
                "count_procedure": "count_calls_with_filters",
            }
        }
    }
)

CALLS = [{"id": i, "contact": f"contact-{i % 3}", "duration": i * 7} for i in range(1, 24)]


async def rows_procedure(params):
    await asyncio.sleep(0.01)
    start = params["p_offset"]
    return CALLS[start : start + params["p_limit"]]


async def count_procedure(params):
    await asyncio.sleep(0.01)
    return [{"total_rows": len(CALLS)}]


async def main() -> None:
    store = AsyncInMemoryStore(
        procedures={
            "get_calls_with_contacts_lateral": rows_procedure,
            "count_calls_with_filters": count_procedure,
        }
    )
    service = AsyncQueryService(store, CONFIG)
    criteria = Criteria.build(
        "view_calls_with_contacts",
        raw_filters=json.dumps([{"field": "duration", "operator": "gt", "value": 10}]),
        raw_limit="5",
        raw_offset="10",
    )
    result = await service.execute(criteria)
    print("Rows:", result.data)
    print("Pagination:", result.pagination.to_dict())


if __name__ == "__main__":
    asyncio.run(main())
