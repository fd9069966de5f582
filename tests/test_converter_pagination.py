from __future__ import annotations

import json
import unittest
from datetime import date

from store_criteria import (
    AggregateStrategy,
    Criteria,
    DirectStrategy,
    Filter,
    Operator,
    OrderClause,
    PaginatedResult,
    PaginationMeta,
    Predicate,
    QueryConfig,
    QueryConverter,
    RowRange,
    StoreQuery,
    ValidationError,
    build_paginated_result,
    format_set_literal,
    format_value,
    paginate,
)


class FormattingTests(unittest.TestCase):
    def test_format_value(self) -> None:
        samples = [
            (None, None),
            ("A", "A"),
            (5, "5"),
            (2.5, "2.5"),
            (date(2026, 2, 3), "2026-02-03"),
            (("a", "b"), "(a,b)"),
            ([1, 2], "(1,2)"),
            ((), "()"),
        ]
        for value, expected in samples:
            with self.subTest(value=value):
                self.assertEqual(format_value(value), expected)

    def test_format_set_literal(self) -> None:
        self.assertEqual(format_set_literal(("a", "b")), "{a,b}")
        self.assertEqual(format_set_literal("a"), "{a}")
        self.assertEqual(format_set_literal(None), "{}")

    def test_operator_specific_formatting(self) -> None:
        overlap = Filter.of("tags", "ov", ["a", "b"])
        membership = Filter.of("tags", "in", ["a", "b"])
        self.assertEqual(QueryConverter.format_filter(overlap), "{a,b}")
        self.assertEqual(QueryConverter.format_filter(membership), "(a,b)")


class StoreQueryTests(unittest.TestCase):
    def test_builder_returns_new_values(self) -> None:
        base = StoreQuery.select("calls")
        extended = base.filter("status", "eq", "A").order("created_at", ascending=False)

        self.assertEqual(base.operations, ())
        self.assertEqual(
            extended.operations,
            (Predicate("status", Operator.EQUAL, "A"), OrderClause("created_at", False)),
        )

    def test_last_range_wins(self) -> None:
        query = StoreQuery.select("calls").range(0, 9).range(10, 19)
        self.assertEqual(query.row_range, RowRange(10, 19))
        self.assertEqual(query.row_range.limit, 10)

    def test_invalid_range_raises(self) -> None:
        with self.assertRaises(ValueError):
            RowRange(5, 4)
        with self.assertRaises(ValueError):
            RowRange(-1, 4)

    def test_head_implies_count(self) -> None:
        query = StoreQuery.select("calls", head=True)
        self.assertTrue(query.count)
        self.assertTrue(query.head)


class ConverterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = QueryConfig(soft_delete_tables={"calls"})
        self.converter = QueryConverter(self.config)

    def test_full_criteria_conversion(self) -> None:
        criteria = Criteria.build(
            "contacts",
            raw_filters=json.dumps([{"field": "status", "operator": "in", "value": ["A", "B"]}]),
            raw_order_field="created_at",
            raw_order_direction="desc",
            raw_limit="5",
            raw_offset="0",
        )
        query = self.converter.convert(criteria).range(0, 4)

        self.assertEqual(query.table, "contacts")
        self.assertTrue(query.count)
        self.assertEqual(query.predicates, (Predicate("status", Operator.IN, "(A,B)"),))
        self.assertEqual(query.orders, (OrderClause("created_at", ascending=False),))
        self.assertEqual(query.row_range, RowRange(0, 4))

    def test_soft_delete_predicate_added_once(self) -> None:
        criteria = Criteria.build(
            "calls",
            raw_filters=json.dumps([{"field": "status", "operator": "eq", "value": "A"}]),
        )
        query = self.converter.convert(criteria)
        soft_delete = [p for p in query.predicates if p.field == "deleted_at"]

        self.assertEqual(soft_delete, [Predicate("deleted_at", Operator.IS, None)])
        self.assertEqual(query.predicates[0].field, "deleted_at")
        self.assertEqual(len(query.predicates), 2)

    def test_no_soft_delete_for_other_tables(self) -> None:
        query = self.converter.convert(Criteria.build("contacts"))
        self.assertEqual(query.predicates, ())

    def test_custom_soft_delete_column(self) -> None:
        converter = QueryConverter(QueryConfig(soft_delete_tables={"calls"}, soft_delete_column="removed_at"))
        query = converter.convert(Criteria.build("calls"))
        self.assertEqual(query.predicates, (Predicate("removed_at", Operator.IS, None),))

    def test_empty_filter_list_adds_no_predicates(self) -> None:
        query = self.converter.convert(Criteria.build("contacts", raw_filters="[]"))
        self.assertEqual(query.operations, ())

    def test_one_predicate_per_filter_in_order(self) -> None:
        filters = (
            Filter.of("status", "neq", "X"),
            Filter.of("score", "gte", 3),
            Filter.of("deleted_at", "is", None),
        )
        query = self.converter.convert(Criteria(table="contacts", filters=filters))
        self.assertEqual(
            query.predicates,
            (
                Predicate("status", Operator.NOT_EQUAL, "X"),
                Predicate("score", Operator.GREATER_EQUAL, "3"),
                Predicate("deleted_at", Operator.IS, None),
            ),
        )

    def test_mapping_filters_are_validated(self) -> None:
        criteria = Criteria(
            table="contacts",
            filters=({"field": "status", "operator": "contains", "value": "x"},),  # type: ignore[arg-type]
        )
        with self.assertRaises(ValidationError):
            self.converter.convert(criteria)

    def test_non_filter_entries_raise(self) -> None:
        criteria = Criteria(table="contacts", filters=("status = 1",))  # type: ignore[arg-type]
        with self.assertRaises(ValidationError):
            self.converter.convert(criteria)

    def test_count_follows_strategy(self) -> None:
        converter = QueryConverter(
            QueryConfig(
                strategies={
                    "events": DirectStrategy(exact_count=False),
                    "view_calls": AggregateStrategy("rows_proc", "count_proc"),
                }
            )
        )
        self.assertFalse(converter.convert(Criteria.build("events")).count)
        self.assertFalse(converter.convert(Criteria.build("view_calls")).count)
        self.assertTrue(converter.convert(Criteria.build("contacts")).count)

    def test_convert_lookup(self) -> None:
        query = self.converter.convert_lookup("calls", "id", 7, columns="id,status")
        self.assertEqual(query.columns, "id,status")
        self.assertEqual(
            query.predicates,
            (Predicate("deleted_at", Operator.IS, None), Predicate("id", Operator.EQUAL, "7")),
        )
        self.assertEqual(query.row_range, RowRange(0, 0))

        unchecked = self.converter.convert_lookup("calls", "id", 7, check_soft_delete=False)
        self.assertEqual(unchecked.predicates, (Predicate("id", Operator.EQUAL, "7"),))


class PaginationTests(unittest.TestCase):
    def test_paginate_examples(self) -> None:
        samples = [
            ((0, 10, 0), PaginationMeta(page=1, total_rows=0, total_pages=0)),
            ((95, 10, 20), PaginationMeta(page=3, total_rows=95, total_pages=10)),
            ((10, 10, 0), PaginationMeta(page=1, total_rows=10, total_pages=1)),
            ((None, 10, 0), PaginationMeta(page=1, total_rows=0, total_pages=0)),
            ((11, 10, 10), PaginationMeta(page=2, total_rows=11, total_pages=2)),
        ]
        for args, expected in samples:
            with self.subTest(args=args):
                self.assertEqual(paginate(*args), expected)

    def test_build_paginated_result(self) -> None:
        result = build_paginated_result([{"id": 1}], 21, 10, 10)
        self.assertIsInstance(result, PaginatedResult)
        self.assertEqual(
            result.to_dict(),
            {
                "data": [{"id": 1}],
                "pagination": {"page": 2, "total_rows": 21, "total_pages": 3},
            },
        )

    def test_missing_rows_become_empty_list(self) -> None:
        result = build_paginated_result(None, None, 50, 0)
        self.assertEqual(result.data, [])
        self.assertEqual(result.pagination, PaginationMeta(1, 0, 0))


if __name__ == "__main__":
    unittest.main()
