"""
scratchdb Kernel: Table Projection

Rows x visible columns with display strings in every cell.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from scratchdb.kernel.columns import coerce_for_display
from scratchdb.kernel.types import ColumnDef, DatabaseRow, DatabaseSchema, ViewDef


@dataclass
class TableRow:
    row_id: str
    cells: dict[str, str] = field(default_factory=dict)  # column id -> display


@dataclass
class TableProjection:
    columns: list[ColumnDef] = field(default_factory=list)
    rows: list[TableRow] = field(default_factory=list)


def visible_columns(schema: DatabaseSchema, view: ViewDef | None) -> list[ColumnDef]:
    """Columns listed by the view, in schema order. All columns when the view lists none."""
    if view is None or not view.columns:
        return list(schema.columns)
    wanted = set(view.columns)
    return [c for c in schema.columns if c.id in wanted]


def cell_display(row: DatabaseRow, column: ColumnDef, computed: dict[str, str] | None = None) -> str:
    if column.type == "rollup":
        return (computed or {}).get(column.id, "")
    return coerce_for_display(row.fields.get(column.id), column.type)


def project_table(
    rows: list[DatabaseRow],
    schema: DatabaseSchema,
    view: ViewDef | None = None,
    computed: dict[str, dict[str, str]] | None = None,
) -> TableProjection:
    """Table for already filtered and sorted rows."""
    columns = visible_columns(schema, view)
    computed = computed or {}
    table_rows = [
        TableRow(
            row_id=row.id,
            cells={col.id: cell_display(row, col, computed.get(row.id)) for col in columns},
        )
        for row in rows
    ]
    return TableProjection(columns=columns, rows=table_rows)
