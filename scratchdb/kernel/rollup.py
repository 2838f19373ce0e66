"""
scratchdb Kernel: Rollup Engine

Computes rollup columns: follow a relation column to the rows of a target
database, pull one column from each referenced row, and aggregate.

    count            number of ids in the relation field
    sum              numeric sum, non-numeric values count as 0
    average          mean of numeric values (placeholder when there are none)
    min / max        over numeric values (placeholder when there are none)
    percent_checked  truthy values over all referenced ids, as "NN%"

Target databases are read through a DatabaseCache keyed by database id.
Broken references produce a placeholder, storage failures the error
placeholder. Nothing here raises to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from scratchdb.adapters.base import AdapterError, RowStore
from scratchdb.kernel.columns import Bool, Items, format_number, read_value, try_parse_number
from scratchdb.kernel.types import (
    ROLLUP_FUNCTIONS,
    ColumnDef,
    DatabaseRow,
    DatabaseSchema,
    DatabaseSnapshot,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"
ERROR_PLACEHOLDER = "error"


@dataclass
class RollupResult:
    value: float | None
    display: str
    error: bool = False


# ---------------------------------------------------------------------------
# Aggregation (pure)
# ---------------------------------------------------------------------------


def aggregate(
    values: list[Any],
    function: str,
    id_count: int,
    placeholder: str = PLACEHOLDER,
) -> RollupResult:
    """
    Aggregate raw target-column values.

    `values` holds one entry per referenced row that still exists;
    `id_count` is the number of ids in the relation field.
    """
    if function == "count":
        return RollupResult(float(id_count), str(id_count))

    if function == "sum":
        total = 0.0
        for v in values:
            parsed = try_parse_number(v)
            total += parsed if parsed is not None else 0.0
        return _numeric(total)

    if function in ("average", "min", "max"):
        numbers = [n for n in (_number_or_none(v) for v in values) if n is not None]
        if not numbers:
            return RollupResult(None, placeholder)
        if function == "average":
            return _numeric(round(sum(numbers) / len(numbers), 2))
        if function == "min":
            return _numeric(min(numbers))
        return _numeric(max(numbers))

    if function == "percent_checked":
        if id_count == 0:
            return RollupResult(None, placeholder)
        checked = sum(1 for v in values if _checked(v))
        pct = checked * 100.0 / id_count
        return RollupResult(pct, f"{round(pct)}%")

    return RollupResult(None, placeholder)


def relation_ids(raw: Any) -> list[str]:
    """Target row ids stored in a relation field. A bare string is one id."""
    value = read_value(raw, "relation")
    if not isinstance(value, Items):
        return []
    return [v for v in value.values if v.strip()]


# ---------------------------------------------------------------------------
# Read-through cache
# ---------------------------------------------------------------------------


class DatabaseCache:
    """
    Snapshots of databases keyed by id, loaded on first use.
    Invalidate a database after its rows change so the next read refetches.
    """

    def __init__(self, store: RowStore):
        self._store = store
        self._entries: dict[str, DatabaseSnapshot] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_lock(self, db_id: str) -> asyncio.Lock:
        """Per-database lock so concurrent misses fetch once."""
        if db_id not in self._locks:
            self._locks[db_id] = asyncio.Lock()
        return self._locks[db_id]

    async def get(self, db_id: str) -> DatabaseSnapshot:
        async with self._get_lock(db_id):
            cached = self._entries.get(db_id)
            if cached is not None:
                return cached
            snapshot = await self._store.get_database(db_id)
            self._entries[db_id] = snapshot
            return snapshot

    def put(self, db_id: str, snapshot: DatabaseSnapshot) -> None:
        self._entries[db_id] = snapshot

    def invalidate(self, db_id: str) -> None:
        self._entries.pop(db_id, None)

    def __contains__(self, db_id: str) -> bool:
        return db_id in self._entries


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class RollupEngine:
    def __init__(self, cache: DatabaseCache, placeholder: str = PLACEHOLDER):
        self.cache = cache
        self.placeholder = placeholder

    async def compute(self, row: DatabaseRow, column: ColumnDef, schema: DatabaseSchema) -> RollupResult:
        """Value of one rollup cell."""
        relation = schema.column(column.relation_column_id)
        if relation is None or relation.type != "relation":
            logger.debug("Rollup %s: relation column %s is missing", column.id, column.relation_column_id)
            return RollupResult(None, self.placeholder)
        if column.aggregate_function not in ROLLUP_FUNCTIONS:
            logger.debug("Rollup %s: unknown function %s", column.id, column.aggregate_function)
            return RollupResult(None, self.placeholder)

        ids = relation_ids(row.fields.get(relation.id))
        if column.aggregate_function == "count" or not ids:
            return aggregate([], column.aggregate_function, len(ids), self.placeholder)

        if not relation.target:
            return RollupResult(None, self.placeholder)

        try:
            target = await self.cache.get(relation.target)
        except AdapterError as e:
            logger.warning("Rollup %s: failed to load database %s: %s", column.id, relation.target, e)
            return RollupResult(None, ERROR_PLACEHOLDER, error=True)

        target_column = target.schema.column(column.target_column_id)
        if target_column is None or target_column.type == "rollup":
            logger.debug("Rollup %s: target column %s is unusable", column.id, column.target_column_id)
            return RollupResult(None, self.placeholder)

        by_id = {r.id: r for r in target.rows}
        values = [by_id[i].fields.get(target_column.id) for i in ids if i in by_id]
        return aggregate(values, column.aggregate_function, len(ids), self.placeholder)

    async def compute_all(
        self, rows: list[DatabaseRow], schema: DatabaseSchema
    ) -> dict[str, dict[str, RollupResult]]:
        """Every rollup cell of every row: row id -> column id -> result."""
        rollups = schema.columns_of_type("rollup")
        results: dict[str, dict[str, RollupResult]] = {}
        for row in rows:
            results[row.id] = {}
            for col in rollups:
                results[row.id][col.id] = await self.compute(row, col, schema)
        return results


def displays(results: dict[str, dict[str, RollupResult]]) -> dict[str, dict[str, str]]:
    """Flatten rollup results to display strings for sorting and rendering."""
    return {row_id: {col_id: r.display for col_id, r in cols.items()} for row_id, cols in results.items()}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _numeric(value: float) -> RollupResult:
    return RollupResult(value, format_number(value))


def _number_or_none(v: Any) -> float | None:
    # Booleans are not numbers for average/min/max
    if isinstance(v, bool):
        return None
    return try_parse_number(v)


def _checked(v: Any) -> bool:
    value = read_value(v, "checkbox")
    return isinstance(value, Bool) and value.value
