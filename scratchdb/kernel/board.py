"""
scratchdb Kernel: Board Projection

Groups rows into lanes by a `select` column.

One lane per option in declared order, then a trailing "Uncategorized"
lane for rows whose value is empty or not an option. The uncategorized
lane is omitted when nothing falls into it. Every row lands in exactly
one lane.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from scratchdb.kernel.columns import coerce_for_display
from scratchdb.kernel.types import ColumnDef, DatabaseRow, DatabaseSchema, ViewDef

UNCATEGORIZED = "__uncategorized__"
UNCATEGORIZED_LABEL = "Uncategorized"
NEW_CARD_TITLE = "New item"
PREVIEW_FIELDS = 2


@dataclass
class Card:
    row_id: str
    title: str
    preview: list[tuple[str, str]] = field(default_factory=list)  # (column name, display)


@dataclass
class Lane:
    value: str
    label: str
    rows: list[DatabaseRow] = field(default_factory=list)
    cards: list[Card] = field(default_factory=list)


@dataclass
class BoardProjection:
    group_by: str | None
    lanes: list[Lane] = field(default_factory=list)
    # Select columns the user can regroup by
    group_options: list[ColumnDef] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Group column
# ---------------------------------------------------------------------------


def default_group_by(schema: DatabaseSchema) -> ColumnDef | None:
    """First select column."""
    for col in schema.columns:
        if col.type == "select":
            return col
    return None


def resolve_group_by(schema: DatabaseSchema, view: ViewDef | None, group_by: str | None = None) -> ColumnDef | None:
    """Explicit choice, then the view's saved choice, then the default."""
    for candidate in (group_by, view.group_by if view else None):
        if candidate:
            return schema.column(candidate)
    return default_group_by(schema)


# ---------------------------------------------------------------------------
# Lanes
# ---------------------------------------------------------------------------


def build_lanes(rows: list[DatabaseRow], group_column: ColumnDef | None) -> list[Lane]:
    """
    Distribute rows into lanes, keeping row order inside each lane.
    Returns [] unless the group column is a select. A select with an empty
    option list puts every row in the uncategorized lane.
    """
    if group_column is None or group_column.type != "select" or group_column.options is None:
        return []

    buckets: dict[str, list[DatabaseRow]] = {opt: [] for opt in group_column.options}
    uncategorized: list[DatabaseRow] = []

    for row in rows:
        value = row.fields.get(group_column.id)
        key = value if isinstance(value, str) else ""
        if key and key in buckets:
            buckets[key].append(row)
        else:
            uncategorized.append(row)

    lanes = [Lane(value=opt, label=opt, rows=buckets[opt]) for opt in group_column.options]
    if uncategorized:
        lanes.append(Lane(value=UNCATEGORIZED, label=UNCATEGORIZED_LABEL, rows=uncategorized))
    return lanes


def lane_target_value(lane_value: str) -> str:
    """Field value written when a card is dropped on a lane."""
    return "" if lane_value == UNCATEGORIZED else lane_value


def current_lane_value(row: DatabaseRow, group_column_id: str) -> str:
    value = row.fields.get(group_column_id)
    return value if isinstance(value, str) else ""


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


def card_title(row: DatabaseRow, title_column: ColumnDef | None) -> str:
    """The title column's value, or the row id when that is blank."""
    if title_column is None:
        return row.id
    value = row.fields.get(title_column.id)
    if isinstance(value, str) and value.strip():
        return value
    return row.id


def preview_columns(schema: DatabaseSchema, group_by: str | None) -> list[ColumnDef]:
    """Up to two columns shown under a card's title."""
    title = schema.title_column()
    cols = [
        c
        for c in schema.columns
        if c.id != (title.id if title else None) and c.id != group_by and c.type != "relation"
    ]
    return cols[:PREVIEW_FIELDS]


def build_card(
    row: DatabaseRow,
    title_column: ColumnDef | None,
    previews: list[ColumnDef],
    computed: dict[str, str] | None = None,
) -> Card:
    preview: list[tuple[str, str]] = []
    for col in previews:
        if col.type == "rollup":
            text = (computed or {}).get(col.id, "")
        else:
            text = coerce_for_display(row.fields.get(col.id), col.type)
        if text:
            preview.append((col.name, text))
    return Card(row_id=row.id, title=card_title(row, title_column), preview=preview)


def new_card_fields(schema: DatabaseSchema, group_by: str | None, lane_value: str) -> dict[str, Any]:
    """Fields for a card added from a lane's "+" button."""
    fields: dict[str, Any] = {}
    if group_by and lane_value != UNCATEGORIZED:
        fields[group_by] = lane_value
    title = schema.title_column()
    if title is not None:
        fields[title.id] = NEW_CARD_TITLE
    return fields


def project_board(
    rows: list[DatabaseRow],
    schema: DatabaseSchema,
    view: ViewDef | None = None,
    group_by: str | None = None,
    computed: dict[str, dict[str, str]] | None = None,
) -> BoardProjection:
    """Lanes with cards for already filtered and sorted rows."""
    group_column = resolve_group_by(schema, view, group_by)
    lanes = build_lanes(rows, group_column)

    group_id = group_column.id if group_column else None
    title = schema.title_column()
    previews = preview_columns(schema, group_id)
    computed = computed or {}
    for lane in lanes:
        lane.cards = [build_card(r, title, previews, computed.get(r.id)) for r in lane.rows]

    return BoardProjection(
        group_by=group_id,
        lanes=lanes,
        group_options=schema.columns_of_type("select"),
    )
