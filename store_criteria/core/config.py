"""Injected configuration: soft-delete tables, page size, execution strategies."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

import yaml

DEFAULT_LIMIT = 50
DEFAULT_SOFT_DELETE_COLUMN = "deleted_at"


@dataclass(frozen=True)
class DirectStrategy:
    """Serve the table with one filtered query.

    Attributes:
        exact_count: Request the store's exact row count alongside the rows.
            When disabled the reported total is whatever the store returns
            without counting (usually nothing, so zero).
    """

    exact_count: bool = True


@dataclass(frozen=True)
class AggregateStrategy:
    """Serve the table through two stored procedures.

    Attributes:
        rows_procedure: Returns one page of rows for
            `(p_filters, p_order_by, p_order_direction, p_limit, p_offset)`.
        count_procedure: Returns the total match count for `(p_filters)`.
    """

    rows_procedure: str
    count_procedure: str

    @property
    def exact_count(self) -> bool:
        return False


ExecutionStrategy = Union[DirectStrategy, AggregateStrategy]

DEFAULT_STRATEGY = DirectStrategy()


@dataclass(frozen=True)
class QueryConfig:
    """Read-only settings shared by the converter and execution services.

    Attributes:
        soft_delete_tables: Tables/views whose deleted rows are always hidden.
        soft_delete_column: Sentinel column that marks a row as deleted.
        default_limit: Page size used when the caller gives none.
        strategies: Table/view name to execution strategy; unknown tables
            use `DEFAULT_STRATEGY`.
    """

    soft_delete_tables: frozenset[str] = frozenset()
    soft_delete_column: str = DEFAULT_SOFT_DELETE_COLUMN
    default_limit: int = DEFAULT_LIMIT
    strategies: Mapping[str, ExecutionStrategy] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.soft_delete_tables, frozenset):
            object.__setattr__(self, "soft_delete_tables", frozenset(self.soft_delete_tables))
        if isinstance(self.default_limit, bool) or not isinstance(self.default_limit, int):
            raise ValueError("default_limit must be an integer")
        if self.default_limit <= 0:
            raise ValueError("default_limit must be > 0")
        if not self.soft_delete_column:
            raise ValueError("soft_delete_column must be non-empty")
        object.__setattr__(self, "strategies", MappingProxyType(dict(self.strategies)))

    def is_soft_delete(self, table: str) -> bool:
        return table in self.soft_delete_tables

    def strategy_for(self, table: str) -> ExecutionStrategy:
        return self.strategies.get(table, DEFAULT_STRATEGY)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> QueryConfig:
        """Build config from a plain mapping (for example parsed YAML).

        Recognized keys: `soft_delete_tables` (list), `soft_delete_column`,
        `default_limit`, `aggregate_views` (name to
        `{rows_procedure, count_procedure}`) and `uncounted_tables` (list of
        direct tables served without an exact count).
        """

        data = data or {}
        if not isinstance(data, MappingABC):
            raise ValueError("config must be a mapping")

        strategies: dict[str, ExecutionStrategy] = {}
        for name in _as_names(data.get("uncounted_tables"), "uncounted_tables"):
            strategies[name] = DirectStrategy(exact_count=False)

        views = data.get("aggregate_views") or {}
        if not isinstance(views, MappingABC):
            raise ValueError("aggregate_views must be a mapping")
        for name, spec in views.items():
            if not isinstance(spec, MappingABC):
                raise ValueError(f"aggregate view {name!r} must be a mapping")
            try:
                strategies[str(name)] = AggregateStrategy(
                    rows_procedure=str(spec["rows_procedure"]),
                    count_procedure=str(spec["count_procedure"]),
                )
            except KeyError as exc:
                raise ValueError(f"aggregate view {name!r} is missing {exc.args[0]}") from exc

        return cls(
            soft_delete_tables=frozenset(
                _as_names(data.get("soft_delete_tables"), "soft_delete_tables")
            ),
            soft_delete_column=str(data.get("soft_delete_column") or DEFAULT_SOFT_DELETE_COLUMN),
            default_limit=data.get("default_limit", DEFAULT_LIMIT),
            strategies=strategies,
        )


def load_config(path: Path | str) -> QueryConfig:
    """Load a `QueryConfig` from a YAML file."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return QueryConfig.from_mapping(data)


def _as_names(value: Any, key: str) -> Iterable[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError(f"{key} must be a list of names")
    return [str(item) for item in value]
