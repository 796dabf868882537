"""Tests for search-query keyword extraction."""
from cognition.search_keywords import extract_search_keywords, fallback_terms


def test_ngrams_in_order():
    assert extract_search_keywords("Quarterly revenue growth") == [
        "quarterly",
        "revenue",
        "growth",
        "quarterly revenue",
        "revenue growth",
        "quarterly revenue growth",
    ]


def test_search_stop_words_and_single_chars_removed():
    assert extract_search_keywords("Tell me about the sales in Q3 for x") == ["sales", "q3", "sales q3"]


def test_duplicates_removed_keeping_first_position():
    assert extract_search_keywords("red red red") == ["red", "red red", "red red red"]


def test_empty_query():
    assert extract_search_keywords("") == []
    assert extract_search_keywords("what is the") == []


def test_fallback_terms_keep_long_words_without_punctuation():
    assert fallback_terms("show me North-region sales!") == ["show", "Northregion", "sales"]


def test_fallback_terms_drop_words_that_strip_to_nothing():
    assert fallback_terms("??? ok") == []
