"""
scratchdb Kernel: Filter Engine

Evaluates a view's structured filter set against rows.

    matches_condition(row, condition, column) -> bool
    matches_all(row, conditions, schema, logic) -> bool
    apply_filters(rows, conditions, schema, logic) -> list[DatabaseRow]

All string comparisons are case-insensitive. Conditions that reference a
deleted column, or use an operator the column type does not support, are
dropped from the set rather than failing the whole view.

The legacy per-column quick filter of the table view lives at the bottom of
this module. It is applied underneath (AND) the structured set.
"""

from __future__ import annotations

import logging
from typing import Any

from scratchdb.kernel.columns import (
    Bool,
    Items,
    coerce_for_display,
    display,
    is_empty,
    is_valid_operator,
    parse_number,
    read_value,
)
from scratchdb.kernel.types import (
    ColumnDef,
    DatabaseRow,
    DatabaseSchema,
    FilterCondition,
)

logger = logging.getLogger(__name__)

DATE_KEY_LENGTH = 10  # "YYYY-MM-DD"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def matches_condition(row: DatabaseRow, condition: FilterCondition, column: ColumnDef) -> bool:
    """Evaluate one condition. The column must be the one the condition names."""
    value = read_value(row.fields.get(column.id), column.type)
    op = condition.operator

    if op == "is_empty":
        return is_empty(value)
    if op == "is_not_empty":
        return not is_empty(value)

    evaluator = _EVALUATORS.get(column.type, _match_text)
    return evaluator(value, op, condition.value or "")


def effective_conditions(
    conditions: list[FilterCondition], schema: DatabaseSchema
) -> list[tuple[FilterCondition, ColumnDef]]:
    """Pair each condition with its column, dropping the ones that cannot apply."""
    resolved: list[tuple[FilterCondition, ColumnDef]] = []
    for cond in conditions:
        col = schema.column(cond.column)
        if col is None:
            logger.debug("Dropping filter on missing column %s", cond.column)
            continue
        if not is_valid_operator(col.type, cond.operator):
            logger.debug("Dropping filter %s on %s column %s", cond.operator, col.type, col.id)
            continue
        resolved.append((cond, col))
    return resolved


def matches_all(
    row: DatabaseRow,
    conditions: list[FilterCondition],
    schema: DatabaseSchema,
    logic: str = "and",
) -> bool:
    """
    Combine conditions with one uniform logic. An empty (or fully dropped)
    condition set passes every row.
    """
    return _matches_resolved(row, effective_conditions(conditions, schema), logic)


def apply_filters(
    rows: list[DatabaseRow],
    conditions: list[FilterCondition],
    schema: DatabaseSchema,
    logic: str = "and",
) -> list[DatabaseRow]:
    """Keep the rows passing the filter set, preserving input order."""
    resolved = effective_conditions(conditions, schema)
    if not resolved:
        return list(rows)
    return [r for r in rows if _matches_resolved(r, resolved, logic)]


def _matches_resolved(
    row: DatabaseRow,
    resolved: list[tuple[FilterCondition, ColumnDef]],
    logic: str,
) -> bool:
    if not resolved:
        return True
    results = (matches_condition(row, cond, col) for cond, col in resolved)
    if logic == "or":
        return any(results)
    return all(results)


# ---------------------------------------------------------------------------
# Per-type evaluators
# ---------------------------------------------------------------------------


def _match_text(value, op: str, target: str) -> bool:
    cell = display(value).lower()
    needle = target.lower()
    if op == "contains":
        return needle in cell
    if op == "not_contains":
        return needle not in cell
    if op == "equals":
        return cell == needle
    if op == "not_equals":
        return cell != needle
    return False


def _match_number(value, op: str, target: str) -> bool:
    cell = parse_number(display(value))
    wanted = parse_number(target)
    if op == "equals":
        return cell == wanted
    if op == "not_equals":
        return cell != wanted
    if op == "gt":
        return cell > wanted
    if op == "lt":
        return cell < wanted
    if op == "gte":
        return cell >= wanted
    if op == "lte":
        return cell <= wanted
    return False


def _match_date(value, op: str, target: str) -> bool:
    cell = display(value).strip()[:DATE_KEY_LENGTH]
    wanted = target.strip()[:DATE_KEY_LENGTH]
    if op == "equals":
        return cell == wanted
    # An empty cell is neither before nor after anything
    if not cell or not wanted:
        return False
    if op == "before":
        return cell < wanted
    if op == "after":
        return cell > wanted
    return False


def _match_scalar(value, op: str, target: str) -> bool:
    cell = display(value).lower()
    if op == "is":
        return cell == target.lower()
    if op == "is_not":
        return cell != target.lower()
    return False


def _match_multi(value, op: str, target: str) -> bool:
    items = value.values if isinstance(value, Items) else ()
    needle = target.lower()
    hit = any(item.lower() == needle for item in items)
    if op == "contains":
        return hit
    if op == "not_contains":
        return not hit
    return False


def _match_checkbox(value, op: str, target: str) -> bool:
    checked = isinstance(value, Bool) and value.value
    wanted = target.strip().lower() in ("true", "yes", "1")
    if op == "is":
        return checked == wanted
    if op == "is_not":
        return checked != wanted
    return False


_EVALUATORS = {
    "text": _match_text,
    "url": _match_text,
    "number": _match_number,
    "date": _match_date,
    "select": _match_scalar,
    "relation": _match_scalar,
    "multi-select": _match_multi,
    "checkbox": _match_checkbox,
}


# ---------------------------------------------------------------------------
# Legacy quick filter
# ---------------------------------------------------------------------------


def matches_quick_filter(value: Any, text: str, column_type: str) -> bool:
    """
    Per-column substring filter typed into a table header.

    checkbox: "true"/"yes" and "false"/"no" match the flag, anything else passes.
    multi-select: substring of any item. number: substring of the display form.
    Everything else: case-insensitive substring.
    """
    if not text:
        return True
    needle = text.lower()

    if column_type == "checkbox":
        if needle in ("true", "yes"):
            return value is True
        if needle in ("false", "no"):
            return value is False
        return True
    if column_type == "multi-select":
        if isinstance(value, list):
            return any(needle in v.lower() for v in read_value(value, column_type).values)
        return False
    if column_type == "number":
        return text in coerce_for_display(value, column_type)
    return needle in coerce_for_display(value, column_type).lower()


def apply_quick_filters(
    rows: list[DatabaseRow],
    quick_filters: dict[str, str],
    schema: DatabaseSchema,
) -> list[DatabaseRow]:
    """AND every non-empty quick filter. Filters on unknown columns are ignored."""
    result = list(rows)
    for column_id, text in quick_filters.items():
        if not text:
            continue
        col = schema.column(column_id)
        if col is None:
            continue
        result = [r for r in result if matches_quick_filter(r.fields.get(col.id), text, col.type)]
    return result
