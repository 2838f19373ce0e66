"""Request bodies sent by HttpRowStore."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from scratchdb.kernel.types import ColumnDef, DatabaseSchema, RowTemplate, ViewDef

ColumnType = Literal[
    "text",
    "number",
    "date",
    "select",
    "multi-select",
    "checkbox",
    "relation",
    "url",
    "rollup",
]


class ColumnModel(BaseModel):
    """One column definition, in storage key names."""

    model_config = {"extra": "forbid"}

    id: str = Field(min_length=1)
    name: str
    type: ColumnType = "text"
    options: list[str] | None = None
    target: str | None = None
    relation: str | None = None
    target_column: str | None = None
    function: Literal["count", "sum", "average", "min", "max", "percent_checked"] | None = None

    @classmethod
    def from_column(cls, col: ColumnDef) -> ColumnModel:
        return cls(**col.to_dict())


class FilterModel(BaseModel):
    model_config = {"extra": "forbid"}

    column: str
    operator: str
    value: str = ""


class SortModel(BaseModel):
    model_config = {"extra": "forbid"}

    column: str
    direction: Literal["asc", "desc"] = "asc"


class ViewModel(BaseModel):
    model_config = {"extra": "forbid"}

    id: str = Field(min_length=1)
    name: str
    type: Literal["table", "board", "calendar"] = "table"
    group_by: str | None = None
    columns: list[str] | None = None
    sort_by: str | None = None
    sort_desc: bool | None = None
    date_column: str | None = None
    filters: list[FilterModel] = Field(default_factory=list)
    sorts: list[SortModel] = Field(default_factory=list)
    filter_logic: Literal["and", "or"] = "and"

    @classmethod
    def from_view(cls, view: ViewDef) -> ViewModel:
        return cls(**view.to_dict())


class TemplateModel(BaseModel):
    model_config = {"extra": "forbid"}

    name: str
    title: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    body: str | None = None

    @classmethod
    def from_template(cls, template: RowTemplate) -> TemplateModel:
        return cls(**template.to_dict())


class SchemaModel(BaseModel):
    """Full schema sent to PUT /databases/{id}/schema."""

    model_config = {"extra": "forbid"}

    name: str
    columns: list[ColumnModel] = Field(default_factory=list)
    views: list[ViewModel] = Field(default_factory=list)
    templates: dict[str, TemplateModel] = Field(default_factory=dict)
    next_row_id: int = Field(default=1, ge=1)

    @classmethod
    def from_schema(cls, schema: DatabaseSchema) -> SchemaModel:
        return cls(
            name=schema.name,
            columns=[ColumnModel.from_column(c) for c in schema.columns],
            views=[ViewModel.from_view(v) for v in schema.views],
            templates={k: TemplateModel.from_template(t) for k, t in schema.templates.items()},
            next_row_id=schema.next_row_id,
        )


class CreateDatabaseRequest(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=200)
    columns: list[ColumnModel] = Field(default_factory=list)
    views: list[ViewModel] | None = None


class CreateRowRequest(BaseModel):
    model_config = {"extra": "forbid"}

    fields: dict[str, Any] = Field(default_factory=dict)
    body: str | None = None


class UpdateRowRequest(BaseModel):
    """Fields are merged into the stored row; a missing body keeps the stored one."""

    model_config = {"extra": "forbid"}

    fields: dict[str, Any] = Field(default_factory=dict)
    body: str | None = None


class TemplateRowRequest(BaseModel):
    model_config = {"extra": "forbid"}

    variables: dict[str, str] = Field(default_factory=dict)
