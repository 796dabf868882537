"""Tests for keyword-based context selection."""
import copy

from cognition.context_selector import (
    STOP_WORDS,
    display_value,
    extract_keywords,
    format_row,
    select_context,
)


PARIS = {"Sheet1": [{"city": "Paris", "note": "nice weather"}]}


def test_keywords_drop_stop_words_and_short_tokens():
    assert extract_keywords("weather in Paris") == ["weather", "paris"]
    assert extract_keywords("Is it on the map?") == ["map"]


def test_keywords_strip_punctuation():
    assert extract_keywords("revenue, profit & loss!") == ["revenue", "profit", "loss"]


def test_keywords_empty_query():
    assert extract_keywords("") == []
    assert extract_keywords("   ") == []


def test_stop_words_are_immutable():
    assert isinstance(STOP_WORDS, frozenset)


def test_single_match():
    assert select_context("weather in Paris", PARIS) == [
        '[From sheet "Sheet1", row 1]: city: Paris, note: nice weather'
    ]


def test_no_match_falls_back_to_sample():
    assert select_context("xyz", PARIS) == [
        '[Sample from sheet "Sheet1"]: city: Paris, note: nice weather'
    ]


def test_empty_dataset_gives_nothing():
    assert select_context("anything at all", {}) == []
    assert select_context("", {}) == []


def test_empty_keyword_set_uses_sample_of_each_non_empty_sheet(sample_dataset):
    result = select_context("is it on the", sample_dataset)
    assert result == [
        '[Sample from sheet "Sales"]: region: North, product: Widget, units: 120, note: great quarter',
        '[Sample from sheet "Feedback"]: customer: Acme, comment: Excellent support and good pricing',
    ]


def test_truncates_to_first_twenty_in_sheet_then_row_order():
    dataset = {
        "A": [{"item": f"apple {i}"} for i in range(15)],
        "B": [{"item": f"apple {i}"} for i in range(10)],
    }
    result = select_context("apple", dataset)
    assert len(result) == 20
    assert result[0] == '[From sheet "A", row 1]: item: apple 0'
    assert result[14] == '[From sheet "A", row 15]: item: apple 14'
    assert result[15] == '[From sheet "B", row 1]: item: apple 0'
    assert result[19] == '[From sheet "B", row 5]: item: apple 4'


def test_limit_is_configurable():
    dataset = {"A": [{"item": "apple"} for _ in range(8)]}
    assert len(select_context("apple", dataset, limit=3)) == 3


def test_sample_fallback_is_not_capped():
    dataset = {f"S{i}": [{"v": "x"}] for i in range(25)}
    result = select_context("nothing", dataset)
    assert len(result) == 25


def test_substring_match_inside_larger_word():
    dataset = {"Weather": [{"kind": "Rainfall", "mm": 12}, {"kind": "Sun", "mm": 0}]}
    assert select_context("rain", dataset) == ['[From sheet "Weather", row 1]: kind: Rainfall, mm: 12']


def test_column_names_are_part_of_the_matched_text():
    dataset = {"S": [{"city": "Oslo"}, {"town": "Bergen"}]}
    assert select_context("city", dataset) == ['[From sheet "S", row 1]: city: Oslo']


def test_original_case_is_preserved(sample_dataset):
    result = select_context("GLOBEX", sample_dataset)
    assert result == ['[From sheet "Feedback", row 2]: customer: Globex, comment: Delivery was terrible']


def test_sparse_rows_render_only_their_own_columns(sample_dataset):
    result = select_context("east", sample_dataset)
    assert result == ['[From sheet "Sales", row 3]: region: East, product: Widget, units: 95']


def test_deterministic_and_does_not_mutate(sample_dataset):
    before = copy.deepcopy(sample_dataset)
    first = select_context("widget sales", sample_dataset)
    second = select_context("widget sales", sample_dataset)
    assert first == second
    assert sample_dataset == before


def test_result_length_bound(sample_dataset):
    for query in ["", "widget", "zzz", "north south east comment"]:
        non_empty = sum(1 for rows in sample_dataset.values() if rows)
        assert len(select_context(query, sample_dataset)) <= max(20, non_empty)


def test_display_value_matches_browser_rendering():
    assert display_value(None) == "null"
    assert display_value(True) == "true"
    assert display_value(False) == "false"
    assert display_value(3.0) == "3"
    assert display_value(2.5) == "2.5"
    assert display_value(7) == "7"
    assert format_row({"a": None, "b": 1.0}) == "a: null, b: 1"


def test_non_finite_numbers_render_like_the_browser():
    assert display_value(float("nan")) == "NaN"
    assert display_value(float("inf")) == "Infinity"
    assert display_value(float("-inf")) == "-Infinity"


def test_non_finite_numbers_are_matched_as_null():
    dataset = {"S": [{"v": float("nan"), "w": float("inf")}, {"v": 1}]}
    assert select_context("null", dataset) == ['[From sheet "S", row 1]: v: NaN, w: Infinity']
    assert select_context("infinity", dataset) == ['[Sample from sheet "S"]: v: NaN, w: Infinity']
