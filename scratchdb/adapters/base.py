"""
scratchdb Adapters: Row Store Protocol

The engine reaches storage only through this interface. Implement it over
note files, a REST service (HttpRowStore) or memory (MemoryRowStore).

Every failure is raised as AdapterError (NotFound for missing databases,
rows, columns and templates). The session catches these and turns them
into notices.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scratchdb.kernel.types import (
        ColumnDef,
        DatabaseInfo,
        DatabaseRow,
        DatabaseSchema,
        DatabaseSnapshot,
        RowTemplateInfo,
        ViewDef,
    )

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class AdapterError(Exception):
    """Storage or transport failure."""

    pass


class NotFound(AdapterError):
    """Database, row, column or template does not exist."""

    pass


# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------


class RowStore:
    """
    Abstract row store.
    Every call is one awaited round trip; there are no transactions.
    """

    async def list_databases(self) -> list[DatabaseInfo]:
        raise NotImplementedError

    async def create_database(
        self,
        name: str,
        columns: list[ColumnDef],
        views: list[ViewDef] | None = None,
    ) -> DatabaseInfo:
        raise NotImplementedError

    async def get_database(self, db_id: str) -> DatabaseSnapshot:
        """Schema plus every row of one database."""
        raise NotImplementedError

    async def get_schema(self, db_id: str) -> DatabaseSchema:
        raise NotImplementedError

    async def delete_database(self, db_id: str) -> None:
        raise NotImplementedError

    async def create_row(
        self,
        db_id: str,
        fields: dict[str, Any],
        body: str | None = None,
    ) -> DatabaseRow:
        raise NotImplementedError

    async def update_row(
        self,
        db_id: str,
        row_id: str,
        fields: dict[str, Any],
        body: str | None = None,
    ) -> DatabaseRow:
        """Merge `fields` into the stored row. The body is kept when None."""
        raise NotImplementedError

    async def delete_row(self, db_id: str, row_id: str) -> None:
        raise NotImplementedError

    async def add_column(self, db_id: str, column: ColumnDef) -> DatabaseSchema:
        raise NotImplementedError

    async def remove_column(self, db_id: str, column_id: str) -> DatabaseSchema:
        raise NotImplementedError

    async def update_schema(self, db_id: str, schema: DatabaseSchema) -> DatabaseSchema:
        """Full replacement. Rows gain defaults for new columns and lose removed ones."""
        raise NotImplementedError

    async def list_row_templates(self, db_id: str) -> list[RowTemplateInfo]:
        raise NotImplementedError

    async def create_row_from_template(
        self,
        db_id: str,
        template_id: str,
        variables: dict[str, str],
    ) -> DatabaseRow:
        raise NotImplementedError
