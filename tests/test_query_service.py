from __future__ import annotations

import json
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from store_criteria import (
    AggregateStrategy,
    Criteria,
    DirectStrategy,
    ExecutionError,
    QueryConfig,
    QueryResult,
    QueryService,
    StoreError,
    ValidationError,
)
from store_criteria.core.service import (
    parse_count_result,
    parse_rows_result,
    resolve_window,
    rows_procedure_params,
)

_AGGREGATE = QueryConfig(
    soft_delete_tables={"view_calls"},
    strategies={"view_calls": AggregateStrategy("get_calls", "count_calls")},
)


class _FakeStore:
    def __init__(self, result=None, procedures=None):  # noqa: ANN001
        self.result = result or QueryResult()
        self.procedures = procedures or {}
        self.queries = []
        self.calls = []
        self._lock = threading.Lock()

    def execute(self, query):  # noqa: ANN001,ANN201
        self.queries.append(query)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def call(self, procedure, params):  # noqa: ANN001,ANN201
        with self._lock:
            self.calls.append((procedure, params))
        return self.procedures[procedure](params)


def _raise(exc):  # noqa: ANN001,ANN202
    def handler(_params):  # noqa: ANN001,ANN202
        raise exc

    return handler


class ResolveWindowTests(unittest.TestCase):
    def test_defaults_and_passthrough(self) -> None:
        samples = [
            (Criteria(table="t"), (50, 0)),
            (Criteria(table="t", limit=0, offset=0), (50, 0)),
            (Criteria(table="t", limit=5, offset=10), (5, 10)),
        ]
        for criteria, expected in samples:
            with self.subTest(criteria=criteria):
                self.assertEqual(resolve_window(criteria, 50), expected)

    def test_empty_strings_fall_back_to_defaults(self) -> None:
        criteria = Criteria.build("t", raw_limit="", raw_offset="")
        self.assertEqual(resolve_window(criteria, 25), (25, 0))


class ResultParsingTests(unittest.TestCase):
    def test_parse_count_result(self) -> None:
        samples = [
            (None, 0),
            (7, 7),
            ("12", 12),
            ({"total_rows": 3}, 3),
            ({"count": 4}, 4),
            ([{"total_rows": 5}], 5),
            ([], 0),
            ([9], 9),
        ]
        for raw, expected in samples:
            with self.subTest(raw=raw):
                self.assertEqual(parse_count_result(raw, "count_calls"), expected)

    def test_parse_count_result_rejects_garbage(self) -> None:
        for raw in (-1, True, "many", {"other": 1}, [1, 2], float("nan")):
            with self.subTest(raw=raw):
                with self.assertRaises(ExecutionError):
                    parse_count_result(raw, "count_calls")

    def test_parse_rows_result(self) -> None:
        self.assertEqual(parse_rows_result(None, "get_calls"), [])
        self.assertEqual(parse_rows_result([{"id": 1}], "get_calls"), [{"id": 1}])
        self.assertEqual(parse_rows_result({"data": [{"id": 2}]}, "get_calls"), [{"id": 2}])
        with self.assertRaises(ExecutionError):
            parse_rows_result("rows", "get_calls")

    def test_rows_procedure_params(self) -> None:
        criteria = Criteria.build(
            "view_calls",
            raw_filters=json.dumps([{"field": "tags", "operator": "ARRAY_INTERSECTS", "value": ["a"]}]),
            raw_order_field="created_at",
            raw_order_direction="DESCENDENT",
        )
        self.assertEqual(
            rows_procedure_params(criteria, 10, 20),
            {
                "p_filters": [{"field": "tags", "operator": "ov", "value": ["a"]}],
                "p_order_by": "created_at",
                "p_order_direction": "DESC",
                "p_limit": 10,
                "p_offset": 20,
            },
        )


class DirectExecutionTests(unittest.TestCase):
    def test_direct_query_uses_window_and_count(self) -> None:
        store = _FakeStore(QueryResult(rows=[{"id": 1}], count=95))
        service = QueryService(store)

        result = service.execute(Criteria.build("calls", raw_limit="10", raw_offset="20"))

        self.assertEqual(result.to_dict()["pagination"], {"page": 3, "total_rows": 95, "total_pages": 10})
        (query,) = store.queries
        self.assertTrue(query.count)
        self.assertEqual((query.row_range.start, query.row_range.end), (20, 29))
        self.assertEqual(store.calls, [])

    def test_default_window(self) -> None:
        store = _FakeStore()
        QueryService(store).execute(Criteria.build("calls"))
        (query,) = store.queries
        self.assertEqual((query.row_range.start, query.row_range.end), (0, 49))

    def test_configured_default_limit(self) -> None:
        store = _FakeStore()
        QueryService(store, QueryConfig(default_limit=20)).execute(Criteria.build("calls"))
        self.assertEqual(store.queries[0].row_range.end, 19)

    def test_uncounted_table_reports_zero_total(self) -> None:
        store = _FakeStore(QueryResult(rows=[{"id": 1}]))
        config = QueryConfig(strategies={"events": DirectStrategy(exact_count=False)})
        result = QueryService(store, config).execute(Criteria.build("events"))

        self.assertFalse(store.queries[0].count)
        self.assertEqual(result.pagination.to_dict(), {"page": 1, "total_rows": 0, "total_pages": 0})
        self.assertEqual(result.data, [{"id": 1}])

    def test_validation_error_propagates_without_store_call(self) -> None:
        store = _FakeStore()
        criteria = Criteria(
            table="calls",
            filters=({"field": "a", "operator": "??", "value": 1},),  # type: ignore[arg-type]
        )
        with self.assertRaises(ValidationError):
            QueryService(store).execute(criteria)
        self.assertEqual(store.queries, [])

    def test_store_error_is_wrapped(self) -> None:
        store = _FakeStore(StoreError("relation does not exist"))
        with self.assertLogs("store_criteria.core.service", level="ERROR") as logs:
            with self.assertRaises(ExecutionError) as ctx:
                QueryService(store).execute(Criteria.build("calls"))
        self.assertEqual(ctx.exception.detail, "relation does not exist")
        self.assertIsInstance(ctx.exception.__cause__, StoreError)
        self.assertIn("relation does not exist", logs.output[0])

    def test_count_uses_head_query(self) -> None:
        store = _FakeStore(QueryResult(count=17))
        self.assertEqual(QueryService(store).count(Criteria.build("calls")), 17)
        (query,) = store.queries
        self.assertTrue(query.head)
        self.assertIsNone(query.row_range)

    def test_get_by_id(self) -> None:
        store = _FakeStore(QueryResult(rows=[{"id": 5}]))
        service = QueryService(store, QueryConfig(soft_delete_tables={"calls"}))

        self.assertEqual(service.get_by_id("calls", 5), {"id": 5})
        store.result = QueryResult(rows=[])
        self.assertIsNone(service.get_by_id("calls", 6, id_field="uuid"))
        self.assertEqual(
            [p.field for p in store.queries[1].predicates],
            ["deleted_at", "uuid"],
        )


class AggregateExecutionTests(unittest.TestCase):
    def _criteria(self) -> Criteria:
        return Criteria.build(
            "view_calls",
            raw_filters=json.dumps([{"field": "status", "operator": "eq", "value": "A"}]),
            raw_limit="10",
            raw_offset="0",
        )

    def test_exactly_two_procedure_calls(self) -> None:
        store = _FakeStore(
            procedures={
                "get_calls": lambda params: [{"id": 1}, {"id": 2}],
                "count_calls": lambda params: 42,
            }
        )
        result = QueryService(store, _AGGREGATE).execute(self._criteria())

        self.assertEqual(result.data, [{"id": 1}, {"id": 2}])
        self.assertEqual(result.pagination.to_dict(), {"page": 1, "total_rows": 42, "total_pages": 5})
        self.assertEqual(sorted(name for name, _ in store.calls), ["count_calls", "get_calls"])
        self.assertEqual(store.queries, [])
        params = dict(store.calls)
        self.assertNotIn("p_limit", params["count_calls"])
        self.assertEqual(params["get_calls"]["p_filters"], params["count_calls"]["p_filters"])

    def test_procedures_run_concurrently(self) -> None:
        both_started = threading.Barrier(2, timeout=5)

        def rows_proc(_params):  # noqa: ANN001,ANN202
            both_started.wait()
            return []

        def count_proc(_params):  # noqa: ANN001,ANN202
            both_started.wait()
            return 0

        store = _FakeStore(procedures={"get_calls": rows_proc, "count_calls": count_proc})
        result = QueryService(store, _AGGREGATE).execute(self._criteria())
        self.assertEqual(result.pagination.to_dict(), {"page": 1, "total_rows": 0, "total_pages": 0})

    def test_failure_of_either_call_fails_the_request(self) -> None:
        samples = [
            {"get_calls": _raise(StoreError("rows failed")), "count_calls": lambda params: 3},
            {"get_calls": lambda params: [{"id": 1}], "count_calls": _raise(StoreError("count failed"))},
        ]
        for procedures in samples:
            with self.subTest(procedures=sorted(procedures)):
                store = _FakeStore(procedures=procedures)
                with self.assertLogs("store_criteria.core.service", level="ERROR"):
                    with self.assertRaises(ExecutionError) as ctx:
                        QueryService(store, _AGGREGATE).execute(self._criteria())
                self.assertIsInstance(ctx.exception.__cause__, StoreError)
                self.assertIn("failed", ctx.exception.detail)

    def test_malformed_count_fails_the_request(self) -> None:
        store = _FakeStore(
            procedures={"get_calls": lambda params: [], "count_calls": lambda params: "lots"}
        )
        with self.assertRaises(ExecutionError):
            QueryService(store, _AGGREGATE).execute(self._criteria())

    def test_injected_executor_is_left_running(self) -> None:
        store = _FakeStore(
            procedures={"get_calls": lambda params: [], "count_calls": lambda params: 1}
        )
        with ThreadPoolExecutor(max_workers=2) as executor:
            service = QueryService(store, _AGGREGATE, executor=executor)
            service.execute(self._criteria())
            service.execute(self._criteria())
        self.assertEqual(len(store.calls), 4)

    def test_aggregate_count(self) -> None:
        store = _FakeStore(procedures={"count_calls": lambda params: [{"count": 8}]})
        self.assertEqual(QueryService(store, _AGGREGATE).count(self._criteria()), 8)
        self.assertEqual([name for name, _ in store.calls], ["count_calls"])

    def test_get_by_id_on_aggregate_view_reads_view_directly(self) -> None:
        store = _FakeStore(QueryResult(rows=[{"id": 1}]))
        row = QueryService(store, _AGGREGATE).get_by_id("view_calls", 1)
        self.assertEqual(row, {"id": 1})
        self.assertEqual(store.calls, [])
        self.assertEqual(store.queries[0].predicates[0].field, "deleted_at")


if __name__ == "__main__":
    unittest.main()
