"""
scratchdb Kernel: Sort Engine

Multi-level, stable ordering of rows.

Rules are evaluated in order; the first non-zero comparison wins and ties
keep input order. Rules naming unknown columns are skipped. Rollup columns
sort on their computed display value, supplied by the caller.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any

from scratchdb.kernel.columns import Bool, coerce_for_display, parse_number, read_value
from scratchdb.kernel.types import (
    LIST_TYPES,
    ColumnDef,
    DatabaseRow,
    DatabaseSchema,
    SortRule,
    ViewDef,
)

logger = logging.getLogger(__name__)

# row id -> column id -> display value
Computed = dict[str, dict[str, str]]


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


def compare_values(a: Any, b: Any, column_type: str) -> int:
    """
    Three-way comparison of two raw cell values. Absent values sort first.

    number: numeric (non-numeric reads as 0). checkbox: unchecked before checked.
    list types and rollups: display form. Everything else: lexicographic.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1

    if column_type == "number":
        return _sign(parse_number(a) - parse_number(b))
    if column_type == "checkbox":
        return _as_flag(a) - _as_flag(b)
    if column_type in LIST_TYPES or column_type == "rollup":
        return _cmp(coerce_for_display(a, "text"), coerce_for_display(b, "text"))
    return _cmp(coerce_for_display(a, column_type), coerce_for_display(b, column_type))


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def sort_rows(
    rows: list[DatabaseRow],
    rules: list[SortRule],
    schema: DatabaseSchema,
    computed: Computed | None = None,
) -> list[DatabaseRow]:
    """Return a new list ordered by the rules. The input list is not touched."""
    resolved: list[tuple[SortRule, ColumnDef]] = []
    for rule in rules:
        col = schema.column(rule.column)
        if col is None:
            logger.debug("Skipping sort on missing column %s", rule.column)
            continue
        resolved.append((rule, col))

    if not resolved:
        return list(rows)

    computed = computed or {}

    def cell(row: DatabaseRow, col: ColumnDef) -> Any:
        if col.type == "rollup":
            return computed.get(row.id, {}).get(col.id)
        return row.fields.get(col.id)

    def compare(a: DatabaseRow, b: DatabaseRow) -> int:
        for rule, col in resolved:
            result = compare_values(cell(a, col), cell(b, col), col.type)
            if result != 0:
                return -result if rule.descending else result
        return 0

    return sorted(rows, key=functools.cmp_to_key(compare))


def effective_sort_rules(view: ViewDef | None) -> list[SortRule]:
    """The view's sort rules, falling back to the legacy single-column sort."""
    if view is None:
        return []
    if view.sorts:
        return list(view.sorts)
    if view.sort_by:
        return [SortRule(column=view.sort_by, direction="desc" if view.sort_desc else "asc")]
    return []


@dataclass
class LegacySort:
    """Header-click sort of the table view: one column, toggled direction."""

    column: str | None = None
    descending: bool = False

    def toggle(self, column: str) -> None:
        if self.column == column:
            self.descending = not self.descending
        else:
            self.column = column
            self.descending = False

    def rules(self) -> list[SortRule]:
        if not self.column:
            return []
        return [SortRule(column=self.column, direction="desc" if self.descending else "asc")]

    def apply_to(self, view: ViewDef) -> None:
        """Persist into the view's legacy fields."""
        view.sort_by = self.column
        view.sort_desc = self.descending if self.column else None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_flag(value: Any) -> int:
    v = read_value(value, "checkbox")
    return 1 if isinstance(v, Bool) and v.value else 0


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def _cmp(a: str, b: str) -> int:
    return (a > b) - (a < b)
