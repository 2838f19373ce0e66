"""
scratchdb Kernel: Schema Validation

Validates column and view definitions before they reach storage.
Returns lists of error strings; an empty list means valid.

Validation is structural (is the definition well-formed?) not referential.
Whether a relation's target database exists is the adapter's concern.
"""

from __future__ import annotations

from scratchdb.kernel.types import (
    COLUMN_TYPES,
    ROLLUP_FUNCTIONS,
    VIEW_TYPES,
    ColumnDef,
    DatabaseSchema,
    ViewDef,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_schema(schema: DatabaseSchema) -> list[str]:
    """
    Validate a full schema. Checks:
    - column ids are unique and non-empty
    - every column is well-formed for its type
    - views have a known type

    A rollup whose relation column no longer exists is not an error here;
    it renders as a placeholder.
    """
    errors: list[str] = []

    seen: set[str] = set()
    for col in schema.columns:
        if col.id in seen:
            errors.append(f"Duplicate column ID: '{col.id}'")
        seen.add(col.id)
        errors.extend(validate_column(col))

    for view in schema.views:
        errors.extend(validate_view(view))

    return errors


def validate_column(col: ColumnDef) -> list[str]:
    """Validate one column definition in isolation."""
    errors: list[str] = []

    if not col.id:
        errors.append("Column requires a non-empty 'id'")
    if col.type not in COLUMN_TYPES:
        errors.append(f"Unknown column type: {col.type}")
        return errors

    validator = _VALIDATORS.get(col.type)
    if validator:
        errors.extend(validator(col))
    return errors


def validate_view(view: ViewDef) -> list[str]:
    errors: list[str] = []
    if not view.id:
        errors.append("View requires a non-empty 'id'")
    if view.type not in VIEW_TYPES:
        errors.append(f"Unknown view type: {view.type}")
    return errors


# ---------------------------------------------------------------------------
# Per-type validators
# ---------------------------------------------------------------------------


def _validate_options(col: ColumnDef) -> list[str]:
    if not col.options:
        return [f"Column '{col.id}' of type {col.type} must have options defined"]
    return []


def _validate_relation(col: ColumnDef) -> list[str]:
    if not col.target:
        return [f"Column '{col.id}' of type relation must have a target defined"]
    return []


def _validate_rollup(col: ColumnDef) -> list[str]:
    errors: list[str] = []
    if not col.relation_column_id:
        errors.append(f"Rollup column '{col.id}' requires 'relation'")
    if not col.target_column_id:
        errors.append(f"Rollup column '{col.id}' requires 'target_column'")
    if not col.aggregate_function:
        errors.append(f"Rollup column '{col.id}' requires 'function'")
    elif col.aggregate_function not in ROLLUP_FUNCTIONS:
        errors.append(f"Rollup column '{col.id}' has unknown function: {col.aggregate_function}")
    return errors


_VALIDATORS = {
    "select": _validate_options,
    "multi-select": _validate_options,
    "relation": _validate_relation,
    "rollup": _validate_rollup,
}
