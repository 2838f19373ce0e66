"""
scratchdb Kernel: Column Type System

Defaults, display coercion and the tagged runtime shape of field values.

Stored fields are loosely typed (whatever the note frontmatter held). Every
read goes through the column type:

    text / date / select / url  -> Text
    number                      -> Number
    checkbox                    -> Bool
    multi-select / relation     -> Items
    rollup                      -> never stored (computed by the rollup engine)

Conversions never raise. Malformed values degrade to empty or zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

from scratchdb.kernel.types import LIST_TYPES

# ---------------------------------------------------------------------------
# Tagged field values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Items:
    values: tuple[str, ...]


@dataclass(frozen=True)
class Absent:
    """A cell with no stored value."""

    pass


ABSENT = Absent()

FieldValue = Union[Text, Number, Bool, Items, Absent]


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

OPERATOR_LABELS: dict[str, str] = {
    "contains": "contains",
    "not_contains": "does not contain",
    "equals": "equals",
    "not_equals": "does not equal",
    "is_empty": "is empty",
    "is_not_empty": "is not empty",
    "gt": ">",
    "lt": "<",
    "gte": "≥",
    "lte": "≤",
    "before": "is before",
    "after": "is after",
    "is": "is",
    "is_not": "is not",
}

_TEXT_OPERATORS = ("contains", "not_contains", "equals", "not_equals", "is_empty", "is_not_empty")

_OPERATORS_BY_TYPE: dict[str, tuple[str, ...]] = {
    "text": _TEXT_OPERATORS,
    "url": _TEXT_OPERATORS,
    "number": ("equals", "not_equals", "gt", "lt", "gte", "lte", "is_empty", "is_not_empty"),
    "date": ("equals", "before", "after", "is_empty", "is_not_empty"),
    "select": ("is", "is_not", "is_empty", "is_not_empty"),
    "relation": ("is", "is_not", "is_empty", "is_not_empty"),
    "multi-select": ("contains", "not_contains", "is_empty", "is_not_empty"),
    "checkbox": ("is", "is_not"),
}


def operators_for_type(column_type: str) -> list[tuple[str, str]]:
    """(operator, label) pairs valid for a column type. Unknown types get the text set."""
    ops = _OPERATORS_BY_TYPE.get(column_type, _TEXT_OPERATORS)
    return [(op, OPERATOR_LABELS[op]) for op in ops]


def is_valid_operator(column_type: str, operator: str) -> bool:
    if column_type == "rollup":
        return False
    return operator in _OPERATORS_BY_TYPE.get(column_type, _TEXT_OPERATORS)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def default_value(column_type: str) -> Any:
    """Raw value a new row gets for a column of this type. None means not stored."""
    if column_type == "number":
        return 0
    if column_type == "checkbox":
        return False
    if column_type in LIST_TYPES:
        return []
    if column_type == "rollup":
        return None
    return ""


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def try_parse_number(value: Any) -> float | None:
    """Parse a stored value as a number. None when it is not numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            f = float(value)
        except OverflowError:
            return None
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            f = float(s)
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    return None


def parse_number(value: Any) -> float:
    """Best-effort numeric parse. Non-numeric input reads as 0."""
    parsed = try_parse_number(value)
    return 0.0 if parsed is None else parsed


def format_number(value: float) -> str:
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(value) if math.isfinite(value) else ""


# ---------------------------------------------------------------------------
# Read / write
# ---------------------------------------------------------------------------


def read_value(raw: Any, column_type: str) -> FieldValue:
    """Decide the runtime shape of a stored value from its column type."""
    if raw is None or column_type == "rollup":
        return ABSENT

    if column_type == "number":
        if isinstance(raw, str) and not raw.strip():
            return ABSENT
        return Number(parse_number(raw))

    if column_type == "checkbox":
        return Bool(_truthy(raw))

    if column_type in LIST_TYPES:
        if isinstance(raw, (list, tuple)):
            return Items(tuple(_scalar_text(v) for v in raw if v is not None))
        if isinstance(raw, str):
            return Items((raw,)) if raw else Items(())
        return Items((_scalar_text(raw),))

    if isinstance(raw, (list, tuple)):
        return Text(", ".join(_scalar_text(v) for v in raw if v is not None))
    return Text(_scalar_text(raw))


def to_raw(value: FieldValue) -> Any:
    """Storage shape of a tagged value."""
    if isinstance(value, Text):
        return value.value
    if isinstance(value, Number):
        v = value.value
        return int(v) if v == int(v) else v
    if isinstance(value, Bool):
        return value.value
    if isinstance(value, Items):
        return list(value.values)
    return None


def is_empty(value: FieldValue) -> bool:
    if isinstance(value, Absent):
        return True
    if isinstance(value, Text):
        return value.value == ""
    if isinstance(value, Items):
        return len(value.values) == 0
    # Numbers and booleans always hold something
    return False


def display(value: FieldValue) -> str:
    """Display form of a tagged value."""
    if isinstance(value, Text):
        return value.value
    if isinstance(value, Number):
        return format_number(value.value)
    if isinstance(value, Bool):
        return "true" if value.value else "false"
    if isinstance(value, Items):
        return ", ".join(value.values)
    return ""


def coerce_for_display(value: Any, column_type: str) -> str:
    """
    Display string for a raw stored value. Never raises.

    checkbox -> "true"/"false", list types -> comma-joined,
    numbers without a trailing ".0", None -> "".
    """
    if value is None:
        return ""
    if column_type == "number" and isinstance(value, str):
        # Keep whatever the user typed when it is not a number
        parsed = try_parse_number(value)
        return value if parsed is None else format_number(parsed)
    return display(read_value(value, column_type))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _truthy(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "yes", "1")
    if isinstance(raw, (int, float)):
        return raw != 0
    return bool(raw)


def _scalar_text(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float):
        return format_number(v)
    if isinstance(v, (dict, list, tuple)):
        return ""
    try:
        return str(v)
    except ValueError:
        # int too long to render as a string
        return ""
