"""
scratchdb Adapters -- MemoryRowStore Tests

Storage semantics: ids and slugs, field merging, schema migration and
templates.
"""

import pytest
import pytest_asyncio

from scratchdb.adapters.base import AdapterError, NotFound
from scratchdb.adapters.memory import MemoryRowStore, slugify
from scratchdb.kernel.types import ColumnDef, FilterCondition, RowTemplate, SortRule, ViewDef

COLUMNS = [
    ColumnDef(id="title", name="Title"),
    ColumnDef(id="status", name="Status", type="select", options=["Todo", "Done"]),
    ColumnDef(id="points", name="Points", type="number"),
    ColumnDef(id="due", name="Due", type="date"),
]


@pytest_asyncio.fixture
async def store():
    s = MemoryRowStore()
    await s.create_database("My Tasks", COLUMNS)
    return s


# ============================================================================
# Databases
# ============================================================================


class TestSlugify:
    @pytest.mark.parametrize(
        "name,slug",
        [
            ("My Tasks", "my-tasks"),
            ("  Reading -- List!  ", "reading-list"),
            ("2026 Goals", "2026-goals"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, name, slug):
        assert slugify(name) == slug


class TestDatabases:
    @pytest.mark.asyncio
    async def test_create_uses_slug_and_default_view(self, store):
        schema = await store.get_schema("my-tasks")
        assert schema.name == "My Tasks"
        assert [v.id for v in schema.views] == ["default-table"]

    @pytest.mark.asyncio
    async def test_duplicate_name(self, store):
        with pytest.raises(AdapterError, match="already exists"):
            await store.create_database("my tasks", COLUMNS)

    @pytest.mark.asyncio
    async def test_empty_name(self):
        with pytest.raises(AdapterError):
            await MemoryRowStore().create_database("???", COLUMNS)

    @pytest.mark.asyncio
    async def test_invalid_schema(self):
        with pytest.raises(AdapterError, match="options"):
            await MemoryRowStore().create_database("X", [ColumnDef(id="s", name="S", type="select")])

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, store):
        await store.create_database("Books", [ColumnDef(id="title", name="Title")])
        await store.create_row("books", {"title": "Dune"})
        infos = await store.list_databases()
        assert [i.id for i in infos] == ["books", "my-tasks"]
        assert infos[0].row_count == 1
        assert infos[1].column_count == 4

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.delete_database("my-tasks")
        with pytest.raises(NotFound):
            await store.get_database("my-tasks")

    @pytest.mark.asyncio
    async def test_missing(self, store):
        with pytest.raises(NotFound, match="is not a database"):
            await store.get_schema("nope")

    @pytest.mark.asyncio
    async def test_root_prefixes_paths(self):
        s = MemoryRowStore(root="/notes/")
        info = await s.create_database("Tasks", COLUMNS)
        row = await s.create_row("tasks", {})
        assert info.path == "/notes/tasks"
        assert row.path == "/notes/tasks/row-001.md"


# ============================================================================
# Rows
# ============================================================================


class TestRows:
    @pytest.mark.asyncio
    async def test_ids_are_sequential(self, store):
        first = await store.create_row("my-tasks", {"title": "a"})
        second = await store.create_row("my-tasks", {"title": "b"})
        assert (first.id, second.id) == ("row-001", "row-002")

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_delete(self, store):
        await store.create_row("my-tasks", {})
        await store.delete_row("my-tasks", "row-001")
        row = await store.create_row("my-tasks", {})
        assert row.id == "row-002"

    @pytest.mark.asyncio
    async def test_fields_in_schema_order_with_defaults(self, store):
        row = await store.create_row("my-tasks", {"points": 2, "bogus": 1, "title": "a"})
        assert list(row.fields) == ["title", "status", "points", "due"]
        assert row.fields == {"title": "a", "status": "", "points": 2, "due": ""}

    @pytest.mark.asyncio
    async def test_update_merges_and_keeps_body(self, store):
        await store.create_row("my-tasks", {"title": "a", "points": 1}, body="notes")
        row = await store.update_row("my-tasks", "row-001", {"points": 5})
        assert row.fields["title"] == "a"
        assert row.fields["points"] == 5
        assert row.body == "notes"

    @pytest.mark.asyncio
    async def test_update_replaces_body(self, store):
        await store.create_row("my-tasks", {}, body="old")
        row = await store.update_row("my-tasks", "row-001", {}, body="")
        assert row.body == ""

    @pytest.mark.asyncio
    async def test_update_missing_row(self, store):
        with pytest.raises(NotFound):
            await store.update_row("my-tasks", "row-404", {"title": "x"})

    @pytest.mark.asyncio
    async def test_delete_missing_row(self, store):
        with pytest.raises(NotFound):
            await store.delete_row("my-tasks", "row-404")

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self, store):
        row = await store.create_row("my-tasks", {"title": "a"})
        row.fields["title"] = "mutated"
        snapshot = await store.get_database("my-tasks")
        assert snapshot.rows[0].fields["title"] == "a"


# ============================================================================
# Schema migration
# ============================================================================


class TestSchemaMigration:
    @pytest.mark.asyncio
    async def test_add_column_fills_defaults(self, store):
        await store.create_row("my-tasks", {"title": "a"})
        schema = await store.add_column("my-tasks", ColumnDef(id="done", name="Done", type="checkbox"))
        assert schema.column("done") is not None
        snapshot = await store.get_database("my-tasks")
        assert snapshot.rows[0].fields["done"] is False

    @pytest.mark.asyncio
    async def test_add_duplicate_column(self, store):
        with pytest.raises(AdapterError, match="already exists"):
            await store.add_column("my-tasks", ColumnDef(id="title", name="Again"))

    @pytest.mark.asyncio
    async def test_add_invalid_column(self, store):
        with pytest.raises(AdapterError):
            await store.add_column("my-tasks", ColumnDef(id="link", name="Link", type="relation"))

    @pytest.mark.asyncio
    async def test_remove_column_forgets_every_reference(self, store):
        schema = await store.get_schema("my-tasks")
        schema.views.append(
            ViewDef(
                id="board",
                name="Board",
                type="board",
                group_by="status",
                columns=["title", "status"],
                sort_by="status",
                sort_desc=True,
                filters=[FilterCondition("status", "is", "Todo"), FilterCondition("title", "contains", "a")],
                sorts=[SortRule("status")],
            )
        )
        await store.update_schema("my-tasks", schema)
        await store.create_row("my-tasks", {"status": "Todo"})

        schema = await store.remove_column("my-tasks", "status")
        view = schema.view("board")
        assert schema.column("status") is None
        assert view.group_by is None
        assert view.columns == ["title"]
        assert (view.sort_by, view.sort_desc) == (None, None)
        assert [f.column for f in view.filters] == ["title"]
        assert view.sorts == []
        snapshot = await store.get_database("my-tasks")
        assert "status" not in snapshot.rows[0].fields

    @pytest.mark.asyncio
    async def test_remove_date_column_clears_calendar(self, store):
        schema = await store.get_schema("my-tasks")
        schema.views.append(ViewDef(id="cal", name="Calendar", type="calendar", date_column="due"))
        await store.update_schema("my-tasks", schema)
        schema = await store.remove_column("my-tasks", "due")
        assert schema.view("cal").date_column is None

    @pytest.mark.asyncio
    async def test_remove_missing_column(self, store):
        with pytest.raises(NotFound):
            await store.remove_column("my-tasks", "gone")

    @pytest.mark.asyncio
    async def test_update_schema_keeps_row_numbering(self, store):
        await store.create_row("my-tasks", {})
        schema = await store.get_schema("my-tasks")
        schema.next_row_id = 1
        await store.update_schema("my-tasks", schema)
        row = await store.create_row("my-tasks", {})
        assert row.id == "row-002"

    @pytest.mark.asyncio
    async def test_update_schema_normalizes_rows(self, store):
        await store.create_row("my-tasks", {"title": "a", "points": 3})
        schema = await store.get_schema("my-tasks")
        schema.columns = [c for c in schema.columns if c.id != "points"]
        schema.columns.append(ColumnDef(id="tags", name="Tags", type="multi-select", options=["x"]))
        await store.update_schema("my-tasks", schema)
        snapshot = await store.get_database("my-tasks")
        assert snapshot.rows[0].fields == {"title": "a", "status": "", "due": "", "tags": []}

    @pytest.mark.asyncio
    async def test_update_schema_rejects_invalid(self, store):
        schema = await store.get_schema("my-tasks")
        schema.columns.append(ColumnDef(id="title", name="Dup"))
        with pytest.raises(AdapterError, match="Duplicate"):
            await store.update_schema("my-tasks", schema)


# ============================================================================
# Templates
# ============================================================================


@pytest_asyncio.fixture
async def templated(store):
    schema = await store.get_schema("my-tasks")
    schema.templates = {
        "meeting": RowTemplate(name="Meeting", title="Meeting: {{title}}", fields={"status": "Todo"}),
        "chore": RowTemplate(name="Chore", title="Chore", body="- [ ] {{cursor}}"),
    }
    await store.update_schema("my-tasks", schema)
    return store


class TestTemplates:
    @pytest.mark.asyncio
    async def test_list_sorted_by_id(self, templated):
        templates = await templated.list_row_templates("my-tasks")
        assert [(t.id, t.name) for t in templates] == [("chore", "Chore"), ("meeting", "Meeting")]

    @pytest.mark.asyncio
    async def test_create_from_template(self, templated):
        row = await templated.create_row_from_template("my-tasks", "meeting", {"title": "Standup"})
        assert row.fields["title"] == "Meeting: Standup"
        assert row.fields["status"] == "Todo"
        assert row.fields["points"] == 0

    @pytest.mark.asyncio
    async def test_cursor_marker_not_stored(self, templated):
        row = await templated.create_row_from_template("my-tasks", "chore", {})
        assert row.body == "- [ ] "

    @pytest.mark.asyncio
    async def test_title_required(self, templated):
        with pytest.raises(AdapterError, match="requires a title"):
            await templated.create_row_from_template("my-tasks", "meeting", {})

    @pytest.mark.asyncio
    async def test_missing_template(self, templated):
        with pytest.raises(NotFound):
            await templated.create_row_from_template("my-tasks", "nope", {})
