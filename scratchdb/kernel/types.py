"""
scratchdb Kernel: Shared Types

Data classes used across columns, filters, sorting, rollups, projectors and
the session. These are the contracts that bind the kernel together.

Wire names follow the notes app's storage format:
- column types use "multi-select" (hyphenated)
- rollup columns store `relation`, `target_column`, `function`
- views store `group_by`, `date_column`, `sort_by`, `sort_desc`, `filter_logic`
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Type registries
# ---------------------------------------------------------------------------

COLUMN_TYPES: tuple[str, ...] = (
    "text",
    "number",
    "date",
    "select",
    "multi-select",
    "checkbox",
    "relation",
    "url",
    "rollup",
)

# Types whose stored value is a list of strings
LIST_TYPES: set[str] = {"multi-select", "relation"}

VIEW_TYPES: set[str] = {"table", "board", "calendar"}

ROLLUP_FUNCTIONS: set[str] = {"count", "sum", "average", "min", "max", "percent_checked"}

FILTER_LOGIC: set[str] = {"and", "or"}

SORT_DIRECTIONS: set[str] = {"asc", "desc"}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SchemaInconsistency(Exception):
    """A column reference does not resolve (deleted column, wrong type)."""

    pass


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


@dataclass
class ColumnDef:
    """
    One typed column. `id` is stable for the column's lifetime, `name` is the
    mutable display label.
    """

    id: str
    name: str
    type: str = "text"
    options: list[str] | None = None  # select / multi-select
    target: str | None = None  # relation: target database id
    relation_column_id: str | None = None  # rollup
    target_column_id: str | None = None  # rollup
    aggregate_function: str | None = None  # rollup

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.options is not None:
            d["options"] = list(self.options)
        if self.target is not None:
            d["target"] = self.target
        if self.relation_column_id is not None:
            d["relation"] = self.relation_column_id
        if self.target_column_id is not None:
            d["target_column"] = self.target_column_id
        if self.aggregate_function is not None:
            d["function"] = self.aggregate_function
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ColumnDef:
        options = d.get("options")
        return cls(
            id=d["id"],
            name=d.get("name", d["id"]),
            type=d.get("type", "text"),
            options=list(options) if isinstance(options, list) else None,
            target=d.get("target"),
            relation_column_id=d.get("relation"),
            target_column_id=d.get("target_column"),
            aggregate_function=d.get("function"),
        )


@dataclass
class FilterCondition:
    column: str
    operator: str
    value: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.column, "operator": self.operator, "value": self.value}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FilterCondition:
        value = d.get("value", "")
        return cls(
            column=d.get("column", ""),
            operator=d.get("operator", ""),
            value="" if value is None else str(value),
        )


@dataclass
class SortRule:
    column: str
    direction: str = "asc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.column, "direction": self.direction}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SortRule:
        direction = d.get("direction", "asc")
        return cls(column=d.get("column", ""), direction=direction if direction in SORT_DIRECTIONS else "asc")


@dataclass
class ViewDef:
    """
    A saved view. Board/calendar column choices live here, never in row data.

    `sort_by` / `sort_desc` are the legacy single-column sort kept for views
    saved before multi-level `sorts` existed.
    """

    id: str
    name: str
    type: str = "table"
    group_by: str | None = None
    columns: list[str] | None = None
    sort_by: str | None = None
    sort_desc: bool | None = None
    date_column: str | None = None
    filters: list[FilterCondition] = field(default_factory=list)
    sorts: list[SortRule] = field(default_factory=list)
    filter_logic: str = "and"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.group_by is not None:
            d["group_by"] = self.group_by
        if self.columns is not None:
            d["columns"] = list(self.columns)
        if self.sort_by is not None:
            d["sort_by"] = self.sort_by
        if self.sort_desc is not None:
            d["sort_desc"] = self.sort_desc
        if self.date_column is not None:
            d["date_column"] = self.date_column
        if self.filters:
            d["filters"] = [f.to_dict() for f in self.filters]
        if self.sorts:
            d["sorts"] = [s.to_dict() for s in self.sorts]
        if self.filter_logic != "and":
            d["filter_logic"] = self.filter_logic
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ViewDef:
        logic = d.get("filter_logic") or "and"
        columns = d.get("columns")
        return cls(
            id=d.get("id", ""),
            name=d.get("name", ""),
            type=d.get("type", "table"),
            group_by=d.get("group_by"),
            columns=list(columns) if isinstance(columns, list) else None,
            sort_by=d.get("sort_by"),
            sort_desc=d.get("sort_desc"),
            date_column=d.get("date_column"),
            filters=[FilterCondition.from_dict(f) for f in d.get("filters") or [] if isinstance(f, dict)],
            sorts=[SortRule.from_dict(s) for s in d.get("sorts") or [] if isinstance(s, dict)],
            filter_logic=logic if logic in FILTER_LOGIC else "and",
        )


@dataclass
class RowTemplate:
    """A named row template. `title` may embed the `{{title}}` placeholder."""

    name: str
    title: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)
    body: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "fields": dict(self.fields)}
        if self.title is not None:
            d["title"] = self.title
        if self.body is not None:
            d["body"] = self.body
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RowTemplate:
        return cls(
            name=d.get("name", ""),
            title=d.get("title"),
            fields=dict(d.get("fields") or {}),
            body=d.get("body"),
        )


@dataclass
class RowTemplateInfo(RowTemplate):
    """A template as listed by the store, keyed by its template id."""

    id: str = ""

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["id"] = self.id
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RowTemplateInfo:
        return cls(
            id=d.get("id", ""),
            name=d.get("name", ""),
            title=d.get("title"),
            fields=dict(d.get("fields") or {}),
            body=d.get("body"),
        )


@dataclass
class DatabaseSchema:
    name: str
    columns: list[ColumnDef] = field(default_factory=list)
    views: list[ViewDef] = field(default_factory=list)
    templates: dict[str, RowTemplate] = field(default_factory=dict)
    next_row_id: int = 1

    def column(self, column_id: str | None) -> ColumnDef | None:
        """Lookup a column by id. None when it does not exist."""
        if not column_id:
            return None
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def view(self, view_id: str | None) -> ViewDef | None:
        for v in self.views:
            if v.id == view_id:
                return v
        return None

    def columns_of_type(self, column_type: str) -> list[ColumnDef]:
        return [c for c in self.columns if c.type == column_type]

    def title_column(self) -> ColumnDef | None:
        """The column shown as a card/row title: first text column, else the first column."""
        for col in self.columns:
            if col.type == "text":
                return col
        return self.columns[0] if self.columns else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "views": [v.to_dict() for v in self.views],
            "templates": {k: t.to_dict() for k, t in self.templates.items()},
            "next_row_id": self.next_row_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DatabaseSchema:
        return cls(
            name=d.get("name", ""),
            columns=[ColumnDef.from_dict(c) for c in d.get("columns") or []],
            views=[ViewDef.from_dict(v) for v in d.get("views") or []],
            templates={k: RowTemplate.from_dict(t) for k, t in (d.get("templates") or {}).items()},
            next_row_id=int(d.get("next_row_id", 1) or 1),
        )


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


@dataclass
class DatabaseRow:
    """
    One record. `fields` holds raw stored values keyed by column id; their
    runtime shape is decided by the column type when read.
    """

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    path: str = ""
    modified: int = 0  # unix seconds

    def with_field(self, column_id: str, value: Any) -> DatabaseRow:
        """Copy of this row with one field replaced."""
        fields = dict(self.fields)
        fields[column_id] = value
        return DatabaseRow(id=self.id, fields=fields, body=self.body, path=self.path, modified=self.modified)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fields": dict(self.fields),
            "body": self.body,
            "path": self.path,
            "modified": self.modified,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DatabaseRow:
        return cls(
            id=d["id"],
            fields=dict(d.get("fields") or {}),
            body=d.get("body") or "",
            path=d.get("path") or "",
            modified=int(d.get("modified") or 0),
        )


@dataclass
class DatabaseInfo:
    """Summary of a database for listings."""

    id: str
    name: str
    row_count: int = 0
    column_count: int = 0
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "row_count": self.row_count,
            "column_count": self.column_count,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DatabaseInfo:
        return cls(
            id=d["id"],
            name=d.get("name", ""),
            row_count=int(d.get("row_count") or 0),
            column_count=int(d.get("column_count") or 0),
            path=d.get("path") or "",
        )


@dataclass
class DatabaseSnapshot:
    """What the store returns for one database: schema plus every row."""

    schema: DatabaseSchema
    rows: list[DatabaseRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"schema": self.schema.to_dict(), "rows": [r.to_dict() for r in self.rows]}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DatabaseSnapshot:
        return cls(
            schema=DatabaseSchema.from_dict(d.get("schema") or {}),
            rows=[DatabaseRow.from_dict(r) for r in d.get("rows") or []],
        )


# ---------------------------------------------------------------------------
# Session feedback
# ---------------------------------------------------------------------------


@dataclass
class Notice:
    """A non-fatal, user-visible message raised by a failed operation."""

    level: str  # "error" | "warning" | "info"
    message: str
    operation: str = ""
