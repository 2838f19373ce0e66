"""
scratchdb Adapters: In-Memory Row Store

A RowStore kept in process memory with the storage semantics of the notes
app's database folders:

- database ids are slugs of their names
- row ids are `row-NNN`, numbered from the schema's next_row_id
- rows only hold fields for stored schema columns; missing ones read as defaults
- update_row merges fields and keeps the body when none is given
- add_column / update_schema fill defaults into existing rows
- remove_column drops the column from rows and from every view

Everything returned is a copy; callers cannot mutate stored state.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any

from scratchdb.adapters.base import AdapterError, NotFound, RowStore
from scratchdb.kernel.columns import default_value
from scratchdb.kernel.templates import TitleRequired, expand_template
from scratchdb.kernel.types import (
    ColumnDef,
    DatabaseInfo,
    DatabaseRow,
    DatabaseSchema,
    DatabaseSnapshot,
    RowTemplateInfo,
    ViewDef,
)
from scratchdb.kernel.validation import validate_column, validate_schema

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    """Lowercase alphanumerics joined by single dashes."""
    slug: list[str] = []
    last_was_dash = False
    for c in name:
        if c.isalnum():
            slug.append(c.lower())
            last_was_dash = False
        elif not last_was_dash and slug:
            slug.append("-")
            last_was_dash = True
    return "".join(slug).rstrip("-")


def default_views() -> list[ViewDef]:
    return [ViewDef(id="default-table", name="Table", type="table")]


class _Database:
    def __init__(self, schema: DatabaseSchema):
        self.schema = schema
        self.rows: dict[str, DatabaseRow] = {}


class MemoryRowStore(RowStore):
    """In-memory row store for embedding and tests."""

    def __init__(self, root: str = "") -> None:
        self.root = root.rstrip("/")
        self._databases: dict[str, _Database] = {}

    # -- helpers --

    def _get(self, db_id: str) -> _Database:
        db = self._databases.get(db_id)
        if db is None:
            raise NotFound(f"'{db_id}' is not a database")
        return db

    def _path(self, db_id: str, row_id: str | None = None) -> str:
        parts = [p for p in (self.root, db_id) if p]
        if row_id is not None:
            parts.append(f"{row_id}.md")
        return "/".join(parts)

    def _next_row_id(self, schema: DatabaseSchema) -> str:
        n = schema.next_row_id
        schema.next_row_id = n + 1
        return f"row-{n:03d}"

    @staticmethod
    def _stored_fields(fields: dict[str, Any], schema: DatabaseSchema) -> dict[str, Any]:
        """Keep schema columns only, in schema order, defaulting the missing ones."""
        return {
            col.id: copy.deepcopy(fields[col.id]) if col.id in fields else default_value(col.type)
            for col in schema.columns
            if col.type != "rollup"
        }

    def _info(self, db_id: str, db: _Database) -> DatabaseInfo:
        return DatabaseInfo(
            id=db_id,
            name=db.schema.name,
            row_count=len(db.rows),
            column_count=len(db.schema.columns),
            path=self._path(db_id),
        )

    # -- databases --

    async def list_databases(self) -> list[DatabaseInfo]:
        infos = [self._info(db_id, db) for db_id, db in self._databases.items()]
        return sorted(infos, key=lambda i: i.name)

    async def create_database(
        self,
        name: str,
        columns: list[ColumnDef],
        views: list[ViewDef] | None = None,
    ) -> DatabaseInfo:
        slug = slugify(name)
        if not slug:
            raise AdapterError(f"Invalid database name: '{name}'")
        if slug in self._databases:
            raise AdapterError(f"Database '{slug}' already exists")

        schema = DatabaseSchema(
            name=name,
            columns=copy.deepcopy(columns),
            views=copy.deepcopy(views) if views is not None else default_views(),
        )
        errors = validate_schema(schema)
        if errors:
            raise AdapterError("; ".join(errors))

        self._databases[slug] = _Database(schema)
        logger.debug("Created database %s", slug)
        return self._info(slug, self._databases[slug])

    async def get_database(self, db_id: str) -> DatabaseSnapshot:
        db = self._get(db_id)
        return DatabaseSnapshot(
            schema=copy.deepcopy(db.schema),
            rows=[copy.deepcopy(r) for r in db.rows.values()],
        )

    async def get_schema(self, db_id: str) -> DatabaseSchema:
        return copy.deepcopy(self._get(db_id).schema)

    async def delete_database(self, db_id: str) -> None:
        self._get(db_id)
        del self._databases[db_id]

    # -- rows --

    async def create_row(
        self,
        db_id: str,
        fields: dict[str, Any],
        body: str | None = None,
    ) -> DatabaseRow:
        db = self._get(db_id)
        row_id = self._next_row_id(db.schema)
        row = DatabaseRow(
            id=row_id,
            fields=self._stored_fields(fields, db.schema),
            body=body or "",
            path=self._path(db_id, row_id),
            modified=int(time.time()),
        )
        db.rows[row_id] = row
        return copy.deepcopy(row)

    async def update_row(
        self,
        db_id: str,
        row_id: str,
        fields: dict[str, Any],
        body: str | None = None,
    ) -> DatabaseRow:
        db = self._get(db_id)
        existing = db.rows.get(row_id)
        if existing is None:
            raise NotFound(f"Row '{row_id}' not found in database '{db_id}'")

        merged = dict(existing.fields)
        merged.update(fields)
        row = DatabaseRow(
            id=row_id,
            fields=self._stored_fields(merged, db.schema),
            body=existing.body if body is None else body,
            path=existing.path,
            modified=int(time.time()),
        )
        db.rows[row_id] = row
        return copy.deepcopy(row)

    async def delete_row(self, db_id: str, row_id: str) -> None:
        db = self._get(db_id)
        if row_id not in db.rows:
            raise NotFound(f"Row '{row_id}' not found in database '{db_id}'")
        del db.rows[row_id]

    # -- schema migration --

    async def add_column(self, db_id: str, column: ColumnDef) -> DatabaseSchema:
        db = self._get(db_id)
        if db.schema.column(column.id) is not None:
            raise AdapterError(f"Column '{column.id}' already exists")
        errors = validate_column(column)
        if errors:
            raise AdapterError("; ".join(errors))

        db.schema.columns.append(copy.deepcopy(column))
        if column.type != "rollup":
            for row in db.rows.values():
                row.fields.setdefault(column.id, default_value(column.type))
        return copy.deepcopy(db.schema)

    async def remove_column(self, db_id: str, column_id: str) -> DatabaseSchema:
        db = self._get(db_id)
        if db.schema.column(column_id) is None:
            raise NotFound(f"Column '{column_id}' not found")

        db.schema.columns = [c for c in db.schema.columns if c.id != column_id]
        for view in db.schema.views:
            _forget_column(view, column_id)
        for row in db.rows.values():
            row.fields.pop(column_id, None)
        return copy.deepcopy(db.schema)

    async def update_schema(self, db_id: str, schema: DatabaseSchema) -> DatabaseSchema:
        db = self._get(db_id)
        errors = validate_schema(schema)
        if errors:
            raise AdapterError("; ".join(errors))

        new_schema = copy.deepcopy(schema)
        # A schema built from scratch still continues the row numbering
        if new_schema.next_row_id == 1 and db.schema.next_row_id > 1:
            new_schema.next_row_id = db.schema.next_row_id

        db.schema = new_schema
        for row in db.rows.values():
            row.fields = self._stored_fields(row.fields, new_schema)
        return copy.deepcopy(new_schema)

    # -- templates --

    async def list_row_templates(self, db_id: str) -> list[RowTemplateInfo]:
        db = self._get(db_id)
        return [
            RowTemplateInfo(
                id=key,
                name=t.name,
                title=t.title,
                fields=copy.deepcopy(t.fields),
                body=t.body,
            )
            for key, t in sorted(db.schema.templates.items())
        ]

    async def create_row_from_template(
        self,
        db_id: str,
        template_id: str,
        variables: dict[str, str],
    ) -> DatabaseRow:
        db = self._get(db_id)
        template = db.schema.templates.get(template_id)
        if template is None:
            raise NotFound(f"Template '{template_id}' not found in database '{db_id}'")

        try:
            expanded = expand_template(template, db.schema, variables.get("title"))
        except TitleRequired as e:
            raise AdapterError(str(e)) from e

        return await self.create_row(db_id, expanded.fields, expanded.body)


def _forget_column(view: ViewDef, column_id: str) -> None:
    """Remove every reference a view holds to a column."""
    if view.columns is not None:
        view.columns = [c for c in view.columns if c != column_id]
    if view.group_by == column_id:
        view.group_by = None
    if view.sort_by == column_id:
        view.sort_by = None
        view.sort_desc = None
    if view.date_column == column_id:
        view.date_column = None
    view.filters = [f for f in view.filters if f.column != column_id]
    view.sorts = [s for s in view.sorts if s.column != column_id]
