"""Tests for the built-in math, string, comparison, JSON and collection functions."""

import math

import pytest

from flowgraph.core.exceptions import CoercionError
from flowgraph.nodes import collection_nodes, comparison, json_nodes, math_nodes, string_nodes
from flowgraph.nodes.comparison import TaggedValue, ValueTag, compare_values, values_equal


# ---------------------------------------------------------------------------
# Math
# ---------------------------------------------------------------------------


class TestIntegerMath:
    def test_division_truncates_toward_zero(self):
        assert math_nodes.divide(7, 2) == 3
        assert math_nodes.divide(-7, 2) == -3
        assert math_nodes.modulo(-7, 2) == -1
        assert math_nodes.modulo(7, -2) == 1

    def test_division_by_zero_raises(self):
        with pytest.raises(ZeroDivisionError):
            math_nodes.divide(1, 0)
        with pytest.raises(ZeroDivisionError):
            math_nodes.modulo(1, 0)
        with pytest.raises(ZeroDivisionError):
            math_nodes.divide_d(1.0, 0.0)

    def test_clamp_swaps_reversed_bounds(self):
        assert math_nodes.clamp(15, 10, 0) == 10
        assert math_nodes.clamp(-3, 0, 10) == 0
        assert math_nodes.clamp_d(0.5, 1.0, 0.0) == 0.5

    def test_min_max_abs(self):
        assert math_nodes.min_(3, -1) == -1
        assert math_nodes.max_(3, -1) == 3
        assert math_nodes.abs_(-4) == 4


class TestFloatMath:
    def test_pow_conventions(self):
        assert math_nodes.pow_(0.0, 0.0) == 1.0
        assert math_nodes.pow_(2.0, 10.0) == 1024.0
        assert math.isnan(math_nodes.pow_(-8.0, 0.5))
        assert math_nodes.pow_(10.0, 400.0) == math.inf

    def test_sqrt_of_negative_is_nan(self):
        assert math.isnan(math_nodes.sqrt(-1.0))
        assert math_nodes.sqrt(9.0) == 3.0

    def test_rounding(self):
        assert math_nodes.round_d(2.5) == 2.0
        assert math_nodes.round_d(3.14159, 2) == 3.14
        assert math_nodes.floor_d(-1.5) == -2.0
        assert math_nodes.ceiling_d(1.1) == 2.0

    def test_lerp_clamps_t(self):
        assert math_nodes.lerp(0.0, 10.0, 0.25) == 2.5
        assert math_nodes.lerp(0.0, 10.0, 3.0) == 10.0

    def test_map_range(self):
        assert math_nodes.map_range(5.0, 0.0, 10.0, 0.0, 100.0) == 50.0
        assert math_nodes.map_range(5.0, 1.0, 1.0, 7.0, 9.0) == 7.0


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


class TestStrings:
    def test_none_is_treated_as_empty(self):
        assert string_nodes.string_concat(None, "b") == "b"
        assert string_nodes.to_upper(None) == ""
        assert string_nodes.length(None) == 0
        assert string_nodes.index_of(None, "a") == -1

    def test_join(self):
        assert string_nodes.join_with("a", "b", "-") == "a-b"
        assert string_nodes.join_array(["a", 1, True, None], ",") == "a,1,true,null"
        assert string_nodes.join_array([], ",") == ""

    def test_case_insensitive_matching(self):
        assert string_nodes.contains("Hello", "ELL", ignore_case=True)
        assert not string_nodes.contains("Hello", "ELL")
        assert string_nodes.starts_with("Hello", "he", ignore_case=True)
        assert string_nodes.ends_with("Hello", "LO", ignore_case=True)

    def test_substring_clamps(self):
        assert string_nodes.substring("hello", 1, 3) == "ell"
        assert string_nodes.substring("hello", 3, 10) == "lo"
        assert string_nodes.substring("hello", 10, 2) == ""
        assert string_nodes.substring("hello", 2) == "llo"

    def test_replace_and_split(self):
        assert string_nodes.replace("a-b-c", "-", "+") == "a+b+c"
        assert string_nodes.replace("abc", "", "x") == "abc"
        assert string_nodes.split("a,b,c") == ["a", "b", "c"]
        assert string_nodes.split("") == []

    def test_parsing_with_defaults(self):
        assert string_nodes.parse_int(" 42 ") == 42
        assert string_nodes.parse_int("4.2", default=-1) == -1
        assert string_nodes.parse_double("2.5") == 2.5
        assert string_nodes.parse_double("x", default=1.5) == 1.5
        assert string_nodes.parse_bool("TRUE") is True
        assert string_nodes.parse_bool("1") is True
        assert string_nodes.parse_bool("maybe", default=True) is True


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


class TestTaggedValues:
    @pytest.mark.parametrize(
        "value, tag",
        [
            (None, ValueTag.NULL),
            (True, ValueTag.BOOL),
            (3, ValueTag.NUMBER),
            (2.5, ValueTag.NUMBER),
            ("x", ValueTag.STRING),
            ([1], ValueTag.ARRAY),
            ({"a": 1}, ValueTag.MAP),
        ],
    )
    def test_tags(self, value, tag):
        assert TaggedValue.of(value).tag is tag

    def test_unsupported_value(self):
        with pytest.raises(CoercionError):
            TaggedValue.of(object())


class TestCompareValues:
    def test_numbers(self):
        assert compare_values(2, 10) < 0
        assert compare_values(2.0, 2) == 0

    def test_numeric_strings_compare_as_numbers(self):
        assert compare_values("10", "9") > 0
        assert compare_values("10", 9) > 0

    def test_dates(self):
        assert compare_values("2024-01-02", "2024-01-01T23:00:00") > 0

    def test_lexical_fallback(self):
        assert compare_values("apple", "banana") < 0
        assert compare_values("B", "a") < 0

    def test_booleans(self):
        assert compare_values(False, True) < 0

    def test_incomparable_raises(self):
        with pytest.raises(CoercionError):
            compare_values([1], 1)
        with pytest.raises(CoercionError):
            compare_values(None, 1)
        with pytest.raises(CoercionError):
            compare_values(True, 1)

    def test_equality(self):
        assert values_equal(None, None)
        assert not values_equal(None, 0)
        assert values_equal(1, "1")
        assert values_equal([1, {"a": 2}], [1, {"a": 2}])
        assert not values_equal([1], {"a": 1})
        assert not values_equal("abc", 5)


class TestComparisonFunctions:
    def test_ordering_returns_false_when_incomparable(self):
        assert comparison.greater_than(5, 3)
        assert comparison.less_or_equal("3", 3)
        assert not comparison.greater_than({"a": 1}, 0)
        assert not comparison.less_than({"a": 1}, 0)

    def test_equal_and_not_equal(self):
        assert comparison.equal("2024-01-01", "2024-01-01T00:00:00")
        assert comparison.not_equal(1, 2)
        assert not comparison.not_equal(None, None)

    def test_tolerance_and_case(self):
        assert comparison.equal_d(1.0, 1.05, tolerance=0.1)
        assert not comparison.equal_d(1.0, 1.05)
        assert comparison.string_equals("Ada", "ada", ignore_case=True)
        assert not comparison.string_equals("Ada", "ada")

    async def test_equal_through_a_graph(self, builder):
        result = await builder.add_node("eq", "Equal").map_input("a", "10").map_input("b", '"10"').build().execute("eq")
        assert result.get_output("eq", "result") is True


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class TestJson:
    def test_merge_is_deep_and_new(self):
        left = {"a": {"x": 1}}
        merged = json_nodes.json_merge(left, {"a": {"y": 2}, "b": 3})
        assert merged == {"a": {"x": 1, "y": 2}, "b": 3}
        assert left == {"a": {"x": 1}}

    def test_get(self):
        assert json_nodes.json_get({"a": {"b": [5, 6]}}, "a.b.1") == 6
        assert json_nodes.json_get({"a": 1}, "missing") is None
        assert json_nodes.json_get(None, "a") is None
        assert json_nodes.json_get({"a": 1}, "") is None

    def test_set_works_on_a_copy(self):
        source = {"a": 1}
        updated = json_nodes.json_set(source, "b.c", 2)
        assert updated == {"a": 1, "b": {"c": 2}}
        assert source == {"a": 1}

    def test_aggregates(self):
        assert json_nodes.sum_([1.0, 2.0, 3.5]) == 6.5
        assert json_nodes.average([2.0, 4.0]) == 3.0
        assert json_nodes.min_of([3.0, -1.0]) == -1.0
        assert json_nodes.max_of([3.0, -1.0]) == 3.0
        for aggregate in (json_nodes.sum_, json_nodes.average, json_nodes.min_of, json_nodes.max_of):
            assert aggregate([]) == 0.0

    async def test_json_get_through_a_graph(self, builder):
        result = await (
            builder.add_node("get", "JsonGet")
            .map_input("obj", '{"a": {"b": 2}}')
            .map_input("path", "a.b")
            .build()
            .execute("get")
        )
        assert result.get_output("get", "result") == 2


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class TestCollections:
    def test_missing_collection_is_empty(self):
        assert collection_nodes.count_strings(None) == 0
        assert collection_nodes.reverse_numbers(None) == []
        assert collection_nodes.index_of_string(None, "a") == -1
        assert collection_nodes.is_empty(None)
        assert not collection_nodes.contains_number(None, 1)

    def test_inputs_are_not_changed(self):
        items = ["b", "a"]
        assert collection_nodes.add_string(items, "c") == ["b", "a", "c"]
        assert collection_nodes.sort_strings(items) == ["a", "b"]
        assert items == ["b", "a"]

    def test_index_access(self):
        assert collection_nodes.get_number_at_index([4, 5, 6], 2) == 6
        with pytest.raises(IndexError):
            collection_nodes.get_string_at_index(["a"], 1)
        with pytest.raises(IndexError):
            collection_nodes.get_number_at_index([4], -1)

    def test_first_and_last_need_items(self):
        assert collection_nodes.first_string(["x", "y"]) == "x"
        assert collection_nodes.last_number([1, 2, 3]) == 3
        with pytest.raises(ValueError):
            collection_nodes.first_number([])
        with pytest.raises(ValueError):
            collection_nodes.last_string(None)

    def test_filters(self):
        assert collection_nodes.filter_greater_than([1, 5, 10], 4) == [5, 10]
        assert collection_nodes.filter_less_than([1, 5, 10], 5) == [1]
        assert collection_nodes.filter_contains(["Apple", "banana", None], "AP") == ["Apple"]
        assert collection_nodes.filter_not_empty(["a", "", "  ", None, "b"]) == ["a", "b"]

    def test_take_skip_and_distinct(self):
        assert collection_nodes.take_strings(["a", "b", "c"], 2) == ["a", "b"]
        assert collection_nodes.take_numbers([1, 2], -1) == []
        assert collection_nodes.skip_numbers([1, 2, 3], 1) == [2, 3]
        assert collection_nodes.skip_strings(["a"], -3) == ["a"]
        assert collection_nodes.distinct_numbers([3, 1, 3, 2, 1]) == [3, 1, 2]

    def test_sorting(self):
        assert collection_nodes.sort_numbers([3, -1, 2]) == [-1, 2, 3]
        assert collection_nodes.sort_numbers_descending([3, -1, 2]) == [3, 2, -1]
        assert collection_nodes.sort_strings_descending(["a", "c", "b"]) == ["c", "b", "a"]

    def test_ranges(self):
        assert collection_nodes.range_(5, 3) == [5, 6, 7]
        assert collection_nodes.range_(5, 0) == []
        assert collection_nodes.range_between(2, 4) == [2, 3, 4]
        with pytest.raises(ValueError):
            collection_nodes.range_(0, -1)
        with pytest.raises(ValueError):
            collection_nodes.range_between(4, 2)

    def test_element_wise(self):
        assert collection_nodes.multiply_all([1, 2], 3) == [3, 6]
        assert collection_nodes.prefix_all(["a", None], "#") == ["#a", "#"]
        assert collection_nodes.map_to_length(["ab", None]) == [2, 0]

    async def test_sort_through_a_graph(self, builder):
        result = await (
            builder.add_node("sort", "SortNumbers").map_input("collection", "[3, 1, 2]").build().execute("sort")
        )
        assert result.get_output("sort", "result") == [1, 2, 3]
