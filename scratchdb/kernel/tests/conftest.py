"""
Kernel test configuration.

Shared schema and row builders, plus a row store that fails on demand.
"""

import pytest

from scratchdb.adapters.base import AdapterError
from scratchdb.adapters.memory import MemoryRowStore
from scratchdb.kernel.types import ColumnDef, DatabaseRow, DatabaseSchema, ViewDef


def make_task_schema() -> DatabaseSchema:
    return DatabaseSchema(
        name="Tasks",
        columns=[
            ColumnDef(id="title", name="Title", type="text"),
            ColumnDef(id="status", name="Status", type="select", options=["Todo", "Doing", "Done"]),
            ColumnDef(id="points", name="Points", type="number"),
            ColumnDef(id="due", name="Due", type="date"),
            ColumnDef(id="tags", name="Tags", type="multi-select", options=["bug", "feature", "ui"]),
            ColumnDef(id="done", name="Done", type="checkbox"),
            ColumnDef(id="link", name="Link", type="url"),
        ],
        views=[
            ViewDef(id="default-table", name="Table", type="table"),
            ViewDef(id="board", name="Board", type="board", group_by="status"),
            ViewDef(id="calendar", name="Calendar", type="calendar", date_column="due"),
        ],
    )


def make_row(row_id: str, **fields) -> DatabaseRow:
    return DatabaseRow(id=row_id, fields=fields)


@pytest.fixture
def schema():
    return make_task_schema()


@pytest.fixture
def rows():
    return [
        make_row("row-001", title="Write docs", status="Todo", points=3, due="2026-02-14", tags=["feature"], done=False),
        make_row("row-002", title="Fix login", status="Doing", points=5, due="2026-02-10", tags=["bug", "ui"], done=True),
        make_row("row-003", title="Ship it", status="Done", points=1, due="", tags=[], done=True),
        make_row("row-004", title="Triage", status="", points=3, due="2026-03-01T09:30:00Z", tags=["bug"], done=False),
    ]


class FlakyStore(MemoryRowStore):
    """MemoryRowStore whose named operations raise AdapterError while listed in `failing`."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failing:
            raise AdapterError(f"{operation} unavailable")

    async def list_databases(self):
        self._check("list_databases")
        return await super().list_databases()

    async def create_database(self, name, columns, views=None):
        self._check("create_database")
        return await super().create_database(name, columns, views)

    async def get_database(self, db_id):
        self._check("get_database")
        return await super().get_database(db_id)

    async def create_row(self, db_id, fields, body=None):
        self._check("create_row")
        return await super().create_row(db_id, fields, body)

    async def update_row(self, db_id, row_id, fields, body=None):
        self._check("update_row")
        return await super().update_row(db_id, row_id, fields, body)

    async def delete_row(self, db_id, row_id):
        self._check("delete_row")
        return await super().delete_row(db_id, row_id)

    async def update_schema(self, db_id, schema):
        self._check("update_schema")
        return await super().update_schema(db_id, schema)

    async def list_row_templates(self, db_id):
        self._check("list_row_templates")
        return await super().list_row_templates(db_id)


@pytest.fixture
def store():
    return FlakyStore()
