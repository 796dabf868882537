from __future__ import annotations

"""
Keyword-based context selection for chat grounding.

A query is reduced to keywords, every row of every sheet is checked for plain
substring containment, and the matching rows are rendered as snippets. When
nothing matches, the first row of each sheet is sent instead so the model still
sees the shape of the data.
"""

import json
import math
import re
from logging import getLogger
from typing import Any, Dict, List, Mapping, Sequence

from config import CONTEXT_MATCH_LIMIT

logger = getLogger(__name__)

Row = Mapping[str, Any]
Dataset = Mapping[str, Sequence[Row]]

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "is", "are", "was", "were",
        "of", "in", "to", "for", "with", "about", "by", "at", "on",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")


def extract_keywords(query: str) -> List[str]:
    tokens = _NON_WORD.sub(" ", (query or "").lower()).split()
    keywords = [t for t in tokens if len(t) > 2 and t not in STOP_WORDS]
    return list(dict.fromkeys(keywords))


def display_value(value: Any) -> str:
    """Render a cell the way the browser client printed it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def format_row(row: Row) -> str:
    return ", ".join(f"{key}: {display_value(value)}" for key, value in row.items())


def _json_value(value: Any) -> Any:
    # Non-finite numbers serialise as null, never as NaN/Infinity tokens.
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _row_haystack(row: Row) -> str:
    cleaned = {key: _json_value(value) for key, value in row.items()}
    return json.dumps(cleaned, ensure_ascii=False, separators=(",", ":"), default=str).lower()


def sample_context(dataset: Dataset) -> List[str]:
    samples: List[str] = []
    for sheet_name, rows in dataset.items():
        if rows:
            samples.append(f'[Sample from sheet "{sheet_name}"]: {format_row(rows[0])}')
    return samples


def select_context(query: str, dataset: Dataset, limit: int = CONTEXT_MATCH_LIMIT) -> List[str]:
    keywords = extract_keywords(query)
    logger.debug("Searching for keywords: %s", keywords)

    relevant: List[str] = []
    if keywords:
        for sheet_name, rows in dataset.items():
            for index, row in enumerate(rows, start=1):
                haystack = _row_haystack(row)
                if any(keyword in haystack for keyword in keywords):
                    relevant.append(f'[From sheet "{sheet_name}", row {index}]: {format_row(row)}')

    if len(relevant) > limit:
        logger.info("Found %d matching rows, truncating to %d", len(relevant), limit)
        return relevant[:limit]

    if not relevant:
        logger.info("No keyword matches, including sample rows")
        return sample_context(dataset)

    return relevant


def dataset_summary(dataset: Dataset) -> Dict[str, int]:
    return {sheet_name: len(rows) for sheet_name, rows in dataset.items()}
