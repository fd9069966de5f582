"""Serve criteria from SQLite through the DB-API store binding."""

from __future__ import annotations

import json
import logging
import sqlite3
import sys
from pathlib import Path

# Allow running this script directly from repository root.
PROJECT_ROOT = next(
    (parent for parent in Path(__file__).resolve().parents if (parent / "store_criteria").exists()),
    None,
)
if PROJECT_ROOT and str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from store_criteria import (
    Criteria,
    Database,
    ExecutionError,
    QueryConfig,
    QueryService,
    SQLiteDialect,
    SqlStore,
)


def seed(db: Database) -> None:
    db.execute(
        'CREATE TABLE "contacts" ("id" INTEGER PRIMARY KEY, "name" TEXT, '
        '"score" INTEGER, "tags" TEXT, "deleted_at" TEXT);'
    )
    rows = [
        (1, "Alice", 12, '["vip"]', None),
        (2, "Bob", 4, '["new"]', None),
        (3, "Carol", 9, '["vip", "new"]', "2026-01-01T00:00:00"),
        (4, "Dan", 15, "[]", None),
    ]
    for row in rows:
        db.execute('INSERT INTO "contacts" VALUES (?, ?, ?, ?, ?);', row)


def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    conn = sqlite3.connect(":memory:")
    with Database(conn, SQLiteDialect()) as db:
        seed(db)
        service = QueryService(SqlStore(db), QueryConfig(soft_delete_tables={"contacts"}))

        criteria = Criteria.build(
            "contacts",
            raw_filters=json.dumps([{"field": "score", "operator": "gte", "value": 5}]),
            raw_order_field="score",
            raw_order_direction="desc",
            raw_limit="1",
            raw_offset="1",
        )
        print("Page:", service.execute(criteria).to_dict())
        print("Count:", service.count(criteria))
        print("Deleted row is hidden:", service.get_by_id("contacts", 3))
        print("Unless asked:", service.get_by_id("contacts", 3, check_soft_delete=False))

        try:
            service.execute(Criteria.build("missing_table"))
        except ExecutionError as exc:
            print("Store failure:", exc.detail)


if __name__ == "__main__":
    main()
