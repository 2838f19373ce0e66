"""
scratchdb Adapters: HTTP Row Store

RowStore over a JSON REST service:

    GET    /databases                                 list databases
    POST   /databases                                 create database
    GET    /databases/{db}                            schema + rows
    DELETE /databases/{db}                            delete database
    GET    /databases/{db}/schema                     schema only
    PUT    /databases/{db}/schema                     replace schema
    POST   /databases/{db}/rows                       create row
    PATCH  /databases/{db}/rows/{row}                 merge fields into row
    DELETE /databases/{db}/rows/{row}                 delete row
    POST   /databases/{db}/columns                    add column
    DELETE /databases/{db}/columns/{col}              remove column
    GET    /databases/{db}/templates                  list row templates
    POST   /databases/{db}/templates/{tpl}/rows       create row from template

HTTP errors and transport failures are raised as AdapterError; 404 as NotFound.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from scratchdb.adapters.base import AdapterError, NotFound, RowStore
from scratchdb.adapters.models import (
    ColumnModel,
    CreateDatabaseRequest,
    CreateRowRequest,
    SchemaModel,
    TemplateRowRequest,
    UpdateRowRequest,
    ViewModel,
)
from scratchdb.config import Settings, settings
from scratchdb.kernel.types import (
    ColumnDef,
    DatabaseInfo,
    DatabaseRow,
    DatabaseSchema,
    DatabaseSnapshot,
    RowTemplateInfo,
    ViewDef,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HttpRowStore(RowStore):
    """Row store backed by a remote notes service."""

    def __init__(
        self,
        api_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, config: Settings = settings, **kwargs: Any) -> HttpRowStore:
        return cls(config.API_URL, token=config.API_TOKEN or None, timeout=config.HTTP_TIMEOUT, **kwargs)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> HttpRowStore:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    # -- transport --

    def _headers(self) -> dict:
        """Build request headers."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, body: BaseModel | None = None) -> Any:
        url = f"{self.api_url}{path}"
        payload = body.model_dump(mode="json", exclude_none=True) if body is not None else None
        try:
            res = await self.client.request(method, url, json=payload, headers=self._headers())
            res.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.warning("%s %s returned %s: %s", method, path, e.response.status_code, detail)
            if e.response.status_code == 404:
                raise NotFound(detail) from e
            raise AdapterError(f"{method} {path} failed ({e.response.status_code}): {detail}") from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise AdapterError(f"{method} {path} failed: {e}") from e

        if not res.content:
            return None
        try:
            return res.json()
        except ValueError as e:
            raise AdapterError(f"{method} {path} returned invalid JSON") from e

    # -- databases --

    async def list_databases(self) -> list[DatabaseInfo]:
        data = await self._request("GET", "/databases")
        return _parse_list(DatabaseInfo.from_dict, data)

    async def create_database(
        self,
        name: str,
        columns: list[ColumnDef],
        views: list[ViewDef] | None = None,
    ) -> DatabaseInfo:
        body = _build(
            lambda: CreateDatabaseRequest(
                name=name,
                columns=[ColumnModel.from_column(c) for c in columns],
                views=[ViewModel.from_view(v) for v in views] if views is not None else None,
            )
        )
        return _parse(DatabaseInfo.from_dict, await self._request("POST", "/databases", body))

    async def get_database(self, db_id: str) -> DatabaseSnapshot:
        data = await self._request("GET", f"/databases/{_seg(db_id)}")
        return _parse(DatabaseSnapshot.from_dict, data)

    async def get_schema(self, db_id: str) -> DatabaseSchema:
        data = await self._request("GET", f"/databases/{_seg(db_id)}/schema")
        return _parse(DatabaseSchema.from_dict, data)

    async def delete_database(self, db_id: str) -> None:
        await self._request("DELETE", f"/databases/{_seg(db_id)}")

    # -- rows --

    async def create_row(
        self,
        db_id: str,
        fields: dict[str, Any],
        body: str | None = None,
    ) -> DatabaseRow:
        req = _build(lambda: CreateRowRequest(fields=fields, body=body))
        data = await self._request("POST", f"/databases/{_seg(db_id)}/rows", req)
        return _parse(DatabaseRow.from_dict, data)

    async def update_row(
        self,
        db_id: str,
        row_id: str,
        fields: dict[str, Any],
        body: str | None = None,
    ) -> DatabaseRow:
        req = _build(lambda: UpdateRowRequest(fields=fields, body=body))
        data = await self._request("PATCH", f"/databases/{_seg(db_id)}/rows/{_seg(row_id)}", req)
        return _parse(DatabaseRow.from_dict, data)

    async def delete_row(self, db_id: str, row_id: str) -> None:
        await self._request("DELETE", f"/databases/{_seg(db_id)}/rows/{_seg(row_id)}")

    # -- schema --

    async def add_column(self, db_id: str, column: ColumnDef) -> DatabaseSchema:
        req = _build(lambda: ColumnModel.from_column(column))
        data = await self._request("POST", f"/databases/{_seg(db_id)}/columns", req)
        return _parse(DatabaseSchema.from_dict, data)

    async def remove_column(self, db_id: str, column_id: str) -> DatabaseSchema:
        data = await self._request("DELETE", f"/databases/{_seg(db_id)}/columns/{_seg(column_id)}")
        return _parse(DatabaseSchema.from_dict, data)

    async def update_schema(self, db_id: str, schema: DatabaseSchema) -> DatabaseSchema:
        req = _build(lambda: SchemaModel.from_schema(schema))
        data = await self._request("PUT", f"/databases/{_seg(db_id)}/schema", req)
        return _parse(DatabaseSchema.from_dict, data)

    # -- templates --

    async def list_row_templates(self, db_id: str) -> list[RowTemplateInfo]:
        data = await self._request("GET", f"/databases/{_seg(db_id)}/templates")
        return _parse_list(RowTemplateInfo.from_dict, data)

    async def create_row_from_template(
        self,
        db_id: str,
        template_id: str,
        variables: dict[str, str],
    ) -> DatabaseRow:
        req = _build(lambda: TemplateRowRequest(variables=variables))
        data = await self._request(
            "POST",
            f"/databases/{_seg(db_id)}/templates/{_seg(template_id)}/rows",
            req,
        )
        return _parse(DatabaseRow.from_dict, data)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _seg(value: str) -> str:
    """Quote one path segment."""
    return quote(value, safe="")


def _build(factory: Callable[[], T]) -> T:
    """Build a request body, turning validation failures into AdapterError."""
    try:
        return factory()
    except ValidationError as e:
        raise AdapterError(f"Invalid request: {e.error_count()} validation error(s)") from e


def _parse(from_dict: Callable[[dict], T], data: Any) -> T:
    if not isinstance(data, dict):
        raise AdapterError("Malformed response: expected an object")
    try:
        return from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise AdapterError(f"Malformed response: {e}") from e


def _parse_list(from_dict: Callable[[dict], T], data: Any) -> list[T]:
    if not isinstance(data, list):
        raise AdapterError("Malformed response: expected a list")
    return [_parse(from_dict, item) for item in data]


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return str(data)
