"""
scratchdb Columns -- Type System Tests

Defaults, display coercion, tagged field values and the operator table.
"""

import pytest

from scratchdb.kernel.columns import (
    ABSENT,
    Bool,
    Items,
    Number,
    Text,
    coerce_for_display,
    default_value,
    is_empty,
    is_valid_operator,
    operators_for_type,
    parse_number,
    read_value,
    to_raw,
    try_parse_number,
)
from scratchdb.kernel.filters import apply_filters
from scratchdb.kernel.rollup import aggregate
from scratchdb.kernel.sorting import compare_values
from scratchdb.kernel.tests.conftest import make_row
from scratchdb.kernel.types import COLUMN_TYPES, FilterCondition

# ============================================================================
# Defaults
# ============================================================================


class TestDefaultValue:
    def test_defaults_per_type(self):
        """Each stored type has a neutral default."""
        assert default_value("text") == ""
        assert default_value("date") == ""
        assert default_value("select") == ""
        assert default_value("url") == ""
        assert default_value("number") == 0
        assert default_value("checkbox") is False
        assert default_value("multi-select") == []
        assert default_value("relation") == []

    def test_rollup_is_not_stored(self):
        assert default_value("rollup") is None

    def test_unknown_type_defaults_to_empty_string(self):
        assert default_value("mystery") == ""

    def test_default_list_is_fresh(self):
        """Callers may mutate the returned list."""
        first = default_value("multi-select")
        first.append("x")
        assert default_value("multi-select") == []

    @pytest.mark.parametrize("column_type", COLUMN_TYPES)
    def test_default_round_trips_through_display(self, column_type):
        """The display of a default reads back as the same tagged value."""
        raw = default_value(column_type)
        shown = coerce_for_display(raw, column_type)
        assert isinstance(shown, str)
        assert read_value(shown, column_type) == read_value(raw, column_type)


# ============================================================================
# Display coercion
# ============================================================================


class TestCoerceForDisplay:
    def test_checkbox(self):
        assert coerce_for_display(True, "checkbox") == "true"
        assert coerce_for_display(False, "checkbox") == "false"

    def test_multi_select_joins(self):
        assert coerce_for_display(["a", "b"], "multi-select") == "a, b"

    def test_relation_joins(self):
        assert coerce_for_display(["row-001", "row-002"], "relation") == "row-001, row-002"

    def test_integral_numbers_drop_fraction(self):
        assert coerce_for_display(3.0, "number") == "3"
        assert coerce_for_display(3, "number") == "3"

    def test_fractional_numbers(self):
        assert coerce_for_display(2.5, "number") == "2.5"

    def test_non_numeric_number_cell_is_shown_as_typed(self):
        assert coerce_for_display("abc", "number") == "abc"

    def test_none_is_empty(self):
        for column_type in COLUMN_TYPES:
            assert coerce_for_display(None, column_type) == ""

    def test_malformed_values_never_raise(self):
        """Objects where scalars belong render as empty."""
        assert coerce_for_display({"nested": 1}, "text") == ""
        assert coerce_for_display([{"a": 1}], "multi-select") == ""


# ============================================================================
# Tagged values
# ============================================================================


class TestReadValue:
    def test_shapes_by_type(self):
        assert read_value("hi", "text") == Text("hi")
        assert read_value("4", "number") == Number(4.0)
        assert read_value(True, "checkbox") == Bool(True)
        assert read_value(["a"], "multi-select") == Items(("a",))

    def test_none_is_absent(self):
        assert read_value(None, "text") is ABSENT

    def test_rollup_is_always_absent(self):
        assert read_value("7", "rollup") is ABSENT

    def test_blank_number_is_absent(self):
        assert read_value("  ", "number") is ABSENT

    def test_bare_string_relation_is_one_item(self):
        assert read_value("row-001", "relation") == Items(("row-001",))
        assert read_value("", "relation") == Items(())

    def test_checkbox_strings(self):
        assert read_value("yes", "checkbox") == Bool(True)
        assert read_value("false", "checkbox") == Bool(False)

    def test_to_raw(self):
        assert to_raw(Text("x")) == "x"
        assert to_raw(Number(3.0)) == 3
        assert to_raw(Number(2.5)) == 2.5
        assert to_raw(Items(("a", "b"))) == ["a", "b"]
        assert to_raw(ABSENT) is None


class TestIsEmpty:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (ABSENT, True),
            (Text(""), True),
            (Text("x"), False),
            (Items(()), True),
            (Items(("a",)), False),
            (Number(0.0), False),
            (Bool(False), False),
        ],
    )
    def test_is_empty(self, value, expected):
        assert is_empty(value) is expected


# ============================================================================
# Numbers and operators
# ============================================================================


class TestNumbers:
    def test_parse_number_best_effort(self):
        assert parse_number("12.5") == 12.5
        assert parse_number("abc") == 0.0
        assert parse_number(None) == 0.0

    def test_try_parse_number(self):
        assert try_parse_number(" 7 ") == 7.0
        assert try_parse_number("") is None
        assert try_parse_number("nan") is None
        assert try_parse_number(True) == 1.0


class TestOperators:
    def test_number_operators(self):
        ops = [op for op, _ in operators_for_type("number")]
        assert ops == ["equals", "not_equals", "gt", "lt", "gte", "lte", "is_empty", "is_not_empty"]

    def test_labels(self):
        labels = dict(operators_for_type("text"))
        assert labels["not_contains"] == "does not contain"

    def test_checkbox_has_no_empty_operators(self):
        assert not is_valid_operator("checkbox", "is_empty")

    def test_rollup_accepts_nothing(self):
        assert not is_valid_operator("rollup", "equals")

    def test_gt_invalid_on_text(self):
        assert not is_valid_operator("text", "gt")


# ============================================================================
# Oversized integers
# ============================================================================

HUGE = 10**400


class TestOversizedIntegers:
    """JSON decodes arbitrarily long integers; none of them may raise."""

    def test_try_parse_number(self):
        assert try_parse_number(HUGE) is None
        assert parse_number(HUGE) == 0.0

    def test_number_display(self):
        assert coerce_for_display(HUGE, "number") == "0"

    def test_text_display_never_raises(self):
        assert isinstance(coerce_for_display(10**5000, "text"), str)

    def test_list_items_never_raise(self):
        assert coerce_for_display([HUGE, "a"], "multi-select").endswith("a")

    def test_sort_and_filter(self, schema):
        assert compare_values(HUGE, 1, "number") < 0
        rows = [make_row("r", points=HUGE)]
        assert apply_filters(rows, [FilterCondition("points", "gt", "1")], schema) == []

    def test_rollup_sum(self):
        assert aggregate([HUGE, 2], "sum", 2).value == 2
