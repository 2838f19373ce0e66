"""
scratchdb Validation -- Schema Validation Tests
"""

from scratchdb.kernel.types import ColumnDef, DatabaseSchema, ViewDef
from scratchdb.kernel.validation import validate_column, validate_schema, validate_view


class TestValidateColumn:
    def test_text_is_valid(self):
        assert validate_column(ColumnDef(id="title", name="Title")) == []

    def test_empty_id(self):
        errors = validate_column(ColumnDef(id="", name="X"))
        assert any("non-empty" in e for e in errors)

    def test_unknown_type(self):
        errors = validate_column(ColumnDef(id="x", name="X", type="formula"))
        assert errors == ["Unknown column type: formula"]

    def test_select_requires_options(self):
        assert validate_column(ColumnDef(id="s", name="S", type="select"))
        assert validate_column(ColumnDef(id="s", name="S", type="multi-select"))
        assert validate_column(ColumnDef(id="s", name="S", type="select", options=["a"])) == []

    def test_relation_requires_target(self):
        assert validate_column(ColumnDef(id="r", name="R", type="relation"))
        assert validate_column(ColumnDef(id="r", name="R", type="relation", target="tasks")) == []

    def test_rollup_requires_all_parts(self):
        errors = validate_column(ColumnDef(id="t", name="T", type="rollup"))
        assert len(errors) == 3

    def test_rollup_unknown_function(self):
        col = ColumnDef(
            id="t",
            name="T",
            type="rollup",
            relation_column_id="tasks",
            target_column_id="points",
            aggregate_function="median",
        )
        assert validate_column(col) == ["Rollup column 't' has unknown function: median"]


class TestValidateSchema:
    def test_valid_schema(self, schema):
        assert validate_schema(schema) == []

    def test_duplicate_ids(self):
        schema = DatabaseSchema(name="x", columns=[ColumnDef(id="a", name="A"), ColumnDef(id="a", name="B")])
        assert validate_schema(schema) == ["Duplicate column ID: 'a'"]

    def test_dangling_rollup_is_allowed(self, schema):
        """A rollup may outlive its relation column; it renders as a placeholder."""
        schema.columns.append(
            ColumnDef(
                id="total",
                name="Total",
                type="rollup",
                relation_column_id="deleted",
                target_column_id="points",
                aggregate_function="sum",
            )
        )
        assert validate_schema(schema) == []

    def test_unknown_view_type(self):
        assert validate_view(ViewDef(id="v", name="V", type="gallery")) == ["Unknown view type: gallery"]
