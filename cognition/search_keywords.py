from __future__ import annotations

import re
from typing import List

SEARCH_STOP_WORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "against", "all", "am", "an", "and",
        "any", "are", "as", "at", "be", "because", "been", "before", "being", "below",
        "between", "both", "but", "by", "can", "did", "do", "does", "doing", "don",
        "down", "during", "each", "few", "for", "from", "further", "had", "has", "have",
        "having", "he", "her", "here", "hers", "herself", "him", "himself", "his",
        "how", "i", "if", "in", "into", "is", "it", "its", "itself", "just", "me",
        "more", "most", "my", "myself", "no", "nor", "not", "now", "of", "off", "on",
        "once", "only", "or", "other", "our", "ours", "ourselves", "out", "over", "own",
        "same", "she", "should", "so", "some", "such", "than", "that", "the", "their",
        "theirs", "them", "themselves", "then", "there", "these", "they", "this", "those",
        "through", "to", "too", "under", "until", "up", "very", "was", "we", "were",
        "what", "when", "where", "which", "while", "who", "whom", "why", "will", "with",
        "would", "you", "your", "yours", "yourself", "yourselves", "tell", "give",
        "information", "explain", "show", "find", "search", "look",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")
_NON_WORD_CHARS = re.compile(r"[^\w]")


def _tokens(query: str) -> List[str]:
    words = _NON_WORD.sub(" ", (query or "").lower()).split()
    return [w for w in words if len(w) > 1 and w not in SEARCH_STOP_WORDS]


def extract_search_keywords(query: str) -> List[str]:
    """Single words, then 2-word and 3-word adjacent phrases, deduplicated."""
    tokens = _tokens(query)
    phrases = list(tokens)
    phrases.extend(" ".join(tokens[i:i + 2]) for i in range(len(tokens) - 1))
    phrases.extend(" ".join(tokens[i:i + 3]) for i in range(len(tokens) - 2))
    return list(dict.fromkeys(phrases))


def fallback_terms(query: str) -> List[str]:
    words = [w for w in (query or "").split() if len(w) > 2]
    terms = (_NON_WORD_CHARS.sub("", w) for w in words)
    return [t for t in terms if t]
