"""
scratchdb Kernel: Database Session

Holds one database's schema and rows for the life of a view and reconciles
them with the row store after every mutation.

Three mutation patterns:
- edit-then-merge: cell edits, title saves, adds, deletes and template rows
  touch local state only with the row the store returns.
- optimistic-then-reconcile: board and calendar moves change local state
  first and are tracked as PendingMutations; a failed write rolls back and
  reloads the whole database.
- schema changes: never optimistic, always followed by a reload.

Store failures never escape. They become Notices on the session and a
warning in the log.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from scratchdb.adapters.base import AdapterError, RowStore
from scratchdb.config import settings
from scratchdb.kernel import projector
from scratchdb.kernel.board import (
    current_lane_value,
    lane_target_value,
    new_card_fields,
    resolve_group_by,
)
from scratchdb.kernel.calendar_view import date_key, resolve_date_column
from scratchdb.kernel.columns import default_value
from scratchdb.kernel.mutations import PendingMutation
from scratchdb.kernel.refs import DatabaseViewRef
from scratchdb.kernel.rollup import DatabaseCache, RollupEngine, RollupResult, displays
from scratchdb.kernel.templates import TitleRequired, expand_template, template_variables
from scratchdb.kernel.types import (
    ColumnDef,
    DatabaseInfo,
    DatabaseRow,
    DatabaseSchema,
    DatabaseSnapshot,
    Notice,
    RowTemplateInfo,
    SchemaInconsistency,
    SortRule,
    ViewDef,
)
from scratchdb.kernel.validation import validate_column, validate_schema

logger = logging.getLogger(__name__)


class DatabaseSession:
    """
    Local state for one database.
    Every public coroutine is safe to call before load(); it simply does nothing.
    """

    def __init__(
        self,
        store: RowStore,
        db_id: str,
        cache: DatabaseCache | None = None,
        placeholder: str | None = None,
    ):
        self.store = store
        self.db_id = db_id
        self.schema: DatabaseSchema | None = None
        self.rows: list[DatabaseRow] = []
        self.notices: list[Notice] = []
        self.pending: list[PendingMutation] = []
        self.editing_row_id: str | None = None
        self.cache = cache or DatabaseCache(store)
        self.rollups = RollupEngine(
            self.cache,
            placeholder if placeholder is not None else settings.ROLLUP_PLACEHOLDER,
        )
        self.computed: dict[str, dict[str, RollupResult]] = {}

    # -- notices --

    def _notify(self, operation: str, error: Exception, level: str = "error") -> Notice:
        message = str(error) or error.__class__.__name__
        logger.warning("%s failed for database %s: %s", operation, self.db_id, message)
        notice = Notice(level=level, message=message, operation=operation)
        self.notices.append(notice)
        return notice

    def take_notices(self) -> list[Notice]:
        """Return and clear the pending notices."""
        notices, self.notices = self.notices, []
        return notices

    # -- load --

    async def load(self) -> bool:
        """Fetch schema and rows. False (plus a notice) when the store fails."""
        try:
            snapshot = await self.store.get_database(self.db_id)
        except AdapterError as e:
            self._notify("load", e)
            return False

        self.schema = snapshot.schema
        self.rows = list(snapshot.rows)
        self.cache.put(self.db_id, DatabaseSnapshot(schema=self.schema, rows=list(self.rows)))
        await self._recompute()
        logger.debug("Loaded database %s: %d rows", self.db_id, len(self.rows))
        return True

    async def reload(self) -> bool:
        self.cache.invalidate(self.db_id)
        return await self.load()

    async def _recompute(self) -> None:
        if self.schema is None or not self.schema.columns_of_type("rollup"):
            self.computed = {}
            return
        self.computed = await self.rollups.compute_all(self.rows, self.schema)

    async def _rows_changed(self) -> None:
        self.cache.invalidate(self.db_id)
        await self._recompute()

    # -- lookup --

    def row(self, row_id: str) -> DatabaseRow | None:
        for r in self.rows:
            if r.id == row_id:
                return r
        return None

    def view(self, view_id: str | None = None, kind: str | None = None) -> ViewDef | None:
        """A saved view by id, else the first view of `kind`, else the first view."""
        if self.schema is None:
            return None
        if view_id:
            found = self.schema.view(view_id)
            if found is not None and (kind is None or found.type == kind):
                return found
        for v in self.schema.views:
            if kind is None or v.type == kind:
                return v
        return None

    def _replace_row(self, row: DatabaseRow) -> None:
        for i, r in enumerate(self.rows):
            if r.id == row.id:
                self.rows[i] = row
                return
        self.rows.append(row)

    # -- projection --

    def project(
        self,
        kind: str | None = None,
        view_id: str | None = None,
        quick_filters: dict[str, str] | None = None,
        sort_rules: list[SortRule] | None = None,
        **options: Any,
    ) -> Any:
        """Project the local rows through a view. None before load."""
        if self.schema is None:
            return None
        view = self.view(view_id, kind)
        kind = kind or (view.type if view else "table")
        return projector.project(
            kind,
            self.rows,
            self.schema,
            view,
            computed=displays(self.computed),
            quick_filters=quick_filters,
            sort_rules=sort_rules,
            **options,
        )

    # -- rows: edit-then-merge --

    async def add_row(self, fields: dict[str, Any] | None = None, body: str | None = None) -> DatabaseRow | None:
        """Create a row with every stored column defaulted, overlaid with `fields`."""
        if self.schema is None:
            return None
        values = {c.id: default_value(c.type) for c in self.schema.columns if c.type != "rollup"}
        values.update(fields or {})
        try:
            row = await self.store.create_row(self.db_id, values, body)
        except AdapterError as e:
            self._notify("add_row", e)
            return None
        self.rows.append(row)
        await self._rows_changed()
        return row

    async def update_cell(self, row_id: str, column_id: str, value: Any) -> DatabaseRow | None:
        if self.schema is None:
            return None
        col = self.schema.column(column_id)
        if col is None or col.type == "rollup":
            self._notify("update_cell", SchemaInconsistency(f"Column '{column_id}' cannot be edited"), "warning")
            return None
        try:
            row = await self.store.update_row(self.db_id, row_id, {column_id: value})
        except AdapterError as e:
            self._notify("update_cell", e)
            return None
        self._replace_row(row)
        await self._rows_changed()
        return row

    async def update_body(self, row_id: str, body: str) -> DatabaseRow | None:
        if self.schema is None:
            return None
        try:
            row = await self.store.update_row(self.db_id, row_id, {}, body)
        except AdapterError as e:
            self._notify("update_body", e)
            return None
        self._replace_row(row)
        return row

    async def delete_row(self, row_id: str) -> bool:
        if self.schema is None:
            return False
        try:
            await self.store.delete_row(self.db_id, row_id)
        except AdapterError as e:
            self._notify("delete_row", e)
            return False
        self.rows = [r for r in self.rows if r.id != row_id]
        if self.editing_row_id == row_id:
            self.editing_row_id = None
        await self._rows_changed()
        return True

    async def save_title(self, row_id: str, title: str) -> DatabaseRow | None:
        """Write the title column and leave title-edit mode."""
        self.editing_row_id = None
        if self.schema is None:
            return None
        title_column = self.schema.title_column()
        if title_column is None:
            return None
        return await self.update_cell(row_id, title_column.id, title)

    # -- rows: optimistic --

    async def _optimistic_set(self, row_id: str, column_id: str, value: Any, operation: str) -> PendingMutation | None:
        row = self.row(row_id)
        if row is None:
            return None

        mutation = PendingMutation(row_id=row_id, column_id=column_id, previous=row.fields.get(column_id), value=value)
        self._replace_row(row.with_field(column_id, value))
        self.pending.append(mutation)

        try:
            updated = await self.store.update_row(self.db_id, row_id, {column_id: value})
        except AdapterError as e:
            mutation.roll_back()
            self.pending.remove(mutation)
            self._restore(mutation)
            self._notify(operation, e)
            await self.reload()
            return mutation

        mutation.confirm()
        self.pending.remove(mutation)
        self._replace_row(updated)
        await self._rows_changed()
        return mutation

    def _restore(self, mutation: PendingMutation) -> None:
        row = self.row(mutation.row_id)
        if row is None:
            return
        fields = dict(row.fields)
        if mutation.previous is None:
            fields.pop(mutation.column_id, None)
        else:
            fields[mutation.column_id] = mutation.previous
        self._replace_row(DatabaseRow(id=row.id, fields=fields, body=row.body, path=row.path, modified=row.modified))

    async def move_card(
        self,
        row_id: str,
        lane_value: str,
        group_by: str | None = None,
        view_id: str | None = None,
    ) -> PendingMutation | None:
        """Drop a board card on a lane. None when nothing needed writing."""
        if self.schema is None:
            return None
        column = resolve_group_by(self.schema, self.view(view_id, "board"), group_by)
        if column is None or column.type != "select":
            return None
        row = self.row(row_id)
        target = lane_target_value(lane_value)
        if row is None or current_lane_value(row, column.id) == target:
            return None
        return await self._optimistic_set(row_id, column.id, target, "move_card")

    async def move_to_date(
        self,
        row_id: str,
        iso_date: str,
        date_column: str | None = None,
        view_id: str | None = None,
    ) -> PendingMutation | None:
        """Drop a calendar entry on a day."""
        if self.schema is None:
            return None
        column = resolve_date_column(self.schema, self.view(view_id, "calendar"), date_column)
        row = self.row(row_id)
        if column is None or row is None or date_key(row.fields.get(column.id)) == iso_date:
            return None
        return await self._optimistic_set(row_id, column.id, iso_date, "move_to_date")

    async def create_on_day(
        self,
        iso_date: str,
        date_column: str | None = None,
        view_id: str | None = None,
    ) -> DatabaseRow | None:
        """Click on an empty day: new row dated that day, then edit its title."""
        if self.schema is None:
            return None
        column = resolve_date_column(self.schema, self.view(view_id, "calendar"), date_column)
        if column is None:
            return None
        row = await self.add_row({column.id: iso_date})
        if row is not None:
            self.editing_row_id = row.id
        return row

    async def add_card(
        self,
        lane_value: str,
        group_by: str | None = None,
        view_id: str | None = None,
    ) -> DatabaseRow | None:
        """The "+" button of a board lane."""
        if self.schema is None:
            return None
        column = resolve_group_by(self.schema, self.view(view_id, "board"), group_by)
        fields = new_card_fields(self.schema, column.id if column else None, lane_value)
        return await self.add_row(fields)

    # -- templates --

    async def list_templates(self) -> list[RowTemplateInfo]:
        try:
            return await self.store.list_row_templates(self.db_id)
        except AdapterError as e:
            self._notify("list_templates", e)
            return []

    async def create_from_template(
        self, template_id: str, title: str | None = None
    ) -> tuple[DatabaseRow | None, int | None]:
        """
        Create a row from a template. Returns (row, cursor_line).
        A template with a {{title}} placeholder needs a non-blank title.
        """
        if self.schema is None:
            return None, None

        cursor_line = None
        template = self.schema.templates.get(template_id)
        if template is not None:
            try:
                cursor_line = expand_template(template, self.schema, title).cursor_line
            except TitleRequired as e:
                self._notify("create_from_template", e, "warning")
                return None, None

        try:
            row = await self.store.create_row_from_template(self.db_id, template_id, template_variables(title))
        except AdapterError as e:
            self._notify("create_from_template", e)
            return None, None

        self.rows.append(row)
        await self._rows_changed()
        return row, cursor_line

    # -- schema: acknowledged then reload --

    async def add_column(self, column: ColumnDef) -> bool:
        if self.schema is None:
            return False
        errors = validate_column(column)
        if self.schema.column(column.id) is not None:
            errors.append(f"Column '{column.id}' already exists")
        if errors:
            self._notify("add_column", SchemaInconsistency("; ".join(errors)), "warning")
            return False
        try:
            await self.store.add_column(self.db_id, column)
        except AdapterError as e:
            self._notify("add_column", e)
            return False
        return await self.reload()

    async def remove_column(self, column_id: str) -> bool:
        if self.schema is None:
            return False
        try:
            await self.store.remove_column(self.db_id, column_id)
        except AdapterError as e:
            self._notify("remove_column", e)
            return False
        return await self.reload()

    async def rename_column(self, column_id: str, name: str) -> bool:
        """Change a column's display name. Its id never changes."""
        if self.schema is None:
            return False
        schema = copy.deepcopy(self.schema)
        col = schema.column(column_id)
        if col is None:
            self._notify("rename_column", SchemaInconsistency(f"Column '{column_id}' not found"), "warning")
            return False
        col.name = name
        return await self._update_schema(schema, "rename_column")

    async def move_column(self, column_id: str, direction: str) -> bool:
        """Swap a column with its left or right neighbour."""
        if self.schema is None:
            return False
        schema = copy.deepcopy(self.schema)
        ids = [c.id for c in schema.columns]
        if column_id not in ids:
            return False
        idx = ids.index(column_id)
        new_idx = idx - 1 if direction == "left" else idx + 1
        if new_idx < 0 or new_idx >= len(ids):
            return False
        schema.columns[idx], schema.columns[new_idx] = schema.columns[new_idx], schema.columns[idx]
        return await self._update_schema(schema, "move_column")

    async def save_view(self, view: ViewDef) -> bool:
        """Add or replace a saved view (filters, sorts, group-by, date column)."""
        if self.schema is None:
            return False
        schema = copy.deepcopy(self.schema)
        for i, v in enumerate(schema.views):
            if v.id == view.id:
                schema.views[i] = view
                break
        else:
            schema.views.append(view)
        return await self._update_schema(schema, "save_view")

    async def _update_schema(self, schema: DatabaseSchema, operation: str) -> bool:
        errors = validate_schema(schema)
        if errors:
            self._notify(operation, SchemaInconsistency("; ".join(errors)), "warning")
            return False
        try:
            await self.store.update_schema(self.db_id, schema)
        except AdapterError as e:
            self._notify(operation, e)
            return False
        return await self.reload()


# ---------------------------------------------------------------------------
# Database catalog
# ---------------------------------------------------------------------------

DEFAULT_STATUS_OPTIONS = ["Todo", "In Progress", "Done"]


def default_columns() -> list[ColumnDef]:
    """Columns a database created from the picker starts with."""
    return [
        ColumnDef(id="title", name="Title", type="text"),
        ColumnDef(id="status", name="Status", type="select", options=list(DEFAULT_STATUS_OPTIONS)),
    ]


class DatabaseCatalog:
    """
    Lists and creates databases for a picker.
    Store failures become Notices, like DatabaseSession.
    """

    def __init__(self, store: RowStore):
        self.store = store
        self.notices: list[Notice] = []

    def _notify(self, operation: str, error: Exception) -> Notice:
        message = str(error) or error.__class__.__name__
        logger.warning("%s failed: %s", operation, message)
        notice = Notice(level="error", message=message, operation=operation)
        self.notices.append(notice)
        return notice

    def take_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    async def list_databases(self) -> list[DatabaseInfo]:
        try:
            return await self.store.list_databases()
        except AdapterError as e:
            self._notify("list_databases", e)
            return []

    async def create_database(
        self,
        name: str,
        columns: list[ColumnDef] | None = None,
        views: list[ViewDef] | None = None,
    ) -> DatabaseInfo | None:
        """Create a database. None for a blank name or a store failure."""
        name = name.strip()
        if not name:
            return None
        try:
            info = await self.store.create_database(
                name, columns if columns is not None else default_columns(), views
            )
        except AdapterError as e:
            self._notify("create_database", e)
            return None
        logger.debug("Created database %s from catalog", info.id)
        return info


# ---------------------------------------------------------------------------
# Database view blocks
# ---------------------------------------------------------------------------


@dataclass
class RenderedBlock:
    ref: DatabaseViewRef
    projection: Any = None
    notices: list[Notice] = field(default_factory=list)


async def render_database_block(
    store: RowStore,
    ref: DatabaseViewRef,
    cache: DatabaseCache | None = None,
    **options: Any,
) -> RenderedBlock:
    """Load the referenced database and project the block's view."""
    session = DatabaseSession(store, ref.database_id, cache=cache)
    if not await session.load():
        return RenderedBlock(ref=ref, notices=session.take_notices())

    if ref.view == "board" and ref.group_by:
        options.setdefault("group_by", ref.group_by)
    if ref.view == "calendar" and ref.date_column:
        options.setdefault("date_column", ref.date_column)

    try:
        projection = session.project(ref.view, **options)
    except ValueError as e:
        session._notify("render", e, "warning")
        return RenderedBlock(ref=ref, notices=session.take_notices())
    return RenderedBlock(ref=ref, projection=projection, notices=session.take_notices())
