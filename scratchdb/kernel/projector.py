"""
scratchdb Kernel: View Projector

Shared pipeline for every view kind:

    rows -> structured filters (AND quick filters) -> sort -> projector

Projection never mutates the row set, so switching between table, board
and calendar over the same rows is free.
"""

from __future__ import annotations

from typing import Any, Callable

from scratchdb.kernel.board import project_board
from scratchdb.kernel.calendar_view import project_calendar
from scratchdb.kernel.filters import apply_filters, apply_quick_filters
from scratchdb.kernel.sorting import effective_sort_rules, sort_rows
from scratchdb.kernel.table import project_table
from scratchdb.kernel.types import DatabaseRow, DatabaseSchema, SortRule, ViewDef


def prepare_rows(
    rows: list[DatabaseRow],
    schema: DatabaseSchema,
    view: ViewDef | None = None,
    computed: dict[str, dict[str, str]] | None = None,
    quick_filters: dict[str, str] | None = None,
    sort_rules: list[SortRule] | None = None,
) -> list[DatabaseRow]:
    """
    Filter then sort. `sort_rules` overrides the view's saved ordering
    (the table's header-click sort).
    """
    result = rows
    if view is not None:
        result = apply_filters(result, view.filters, schema, view.filter_logic)
    if quick_filters:
        result = apply_quick_filters(result, quick_filters, schema)
    rules = sort_rules if sort_rules is not None else effective_sort_rules(view)
    return sort_rows(result, rules, schema, computed)


def _project_table(rows, schema, view, computed, **options):
    return project_table(rows, schema, view, computed=computed)


def _project_board(rows, schema, view, computed, **options):
    return project_board(rows, schema, view, group_by=options.get("group_by"), computed=computed)


def _project_calendar(rows, schema, view, computed, **options):
    return project_calendar(
        rows,
        schema,
        view,
        year=options.get("year"),
        month=options.get("month"),
        date_column=options.get("date_column"),
        today=options.get("today"),
    )


_PROJECTORS: dict[str, Callable[..., Any]] = {
    "table": _project_table,
    "board": _project_board,
    "calendar": _project_calendar,
}


def project(
    kind: str,
    rows: list[DatabaseRow],
    schema: DatabaseSchema,
    view: ViewDef | None = None,
    computed: dict[str, dict[str, str]] | None = None,
    quick_filters: dict[str, str] | None = None,
    sort_rules: list[SortRule] | None = None,
    **options: Any,
) -> Any:
    """
    Run the pipeline and hand the rows to the projector for `kind`.

    Options: `group_by` (board), `year`, `month`, `date_column`, `today` (calendar).
    """
    projector = _PROJECTORS.get(kind)
    if projector is None:
        raise ValueError(f"Unknown view type: {kind}")
    prepared = prepare_rows(rows, schema, view, computed, quick_filters, sort_rules)
    return projector(prepared, schema, view, computed, **options)
