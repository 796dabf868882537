# Sheet Insight
# Copyright (C) 2025  Aleksandr Ladygin
# Licensed under the GNU General Public License v3 or later.
#
# See the LICENSE file in the project root for full license information.

from __future__ import annotations

import base64
import json
from logging import getLogger
from typing import Any, Dict, List, Mapping, Sequence

from cognition.context_selector import Dataset, display_value
from config import KEY_PHRASE_BATCH_SIZE
from models.engines.base import LanguageEngine, TextDocument

from .models import SheetKeyPhrases, SheetSentiment

logger = getLogger(__name__)

TEXT_COLUMN_HINTS = ("description", "comment", "text", "note", "detail")
EMPTY_SHEET = "No data in sheet"



def _cell_text(value: Any) -> str:
    return "" if value is None else display_value(value)


def pick_text_columns(first_row: Mapping[str, Any]) -> List[str]:
    """Columns whose header suggests free text; every column when none does."""
    columns = list(first_row.keys())
    text_columns = [c for c in columns if any(h in c.lower() for h in TEXT_COLUMN_HINTS)]
    return text_columns or columns


def _batch_documents(rows: Sequence[Mapping[str, Any]], columns: List[str], offset: int, language: str) -> List[TextDocument]:
    documents = []
    for index, row in enumerate(rows):
        parts = [_cell_text(row.get(col)) for col in columns]
        text = ". ".join(p for p in parts if p.strip()).strip()
        if text:
            documents.append(TextDocument(id=str(offset + index), text=text, language=language))
    return documents


async def _sheet_key_phrases(
    rows: Sequence[Mapping[str, Any]],
    engine: LanguageEngine,
    batch_size: int,
    language: str,
) -> List[str]:
    columns = pick_text_columns(rows[0])
    collected: List[str] = []

    for offset in range(0, len(rows), batch_size):
        documents = _batch_documents(rows[offset:offset + batch_size], columns, offset, language)
        if not documents:
            continue
        try:
            collected.extend(await engine.extract_key_phrases(documents))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Key phrase batch at row %d failed: %s", offset + 1, exc)

    unique = list(dict.fromkeys(collected))
    return sorted(unique, key=len)


async def extract_sheet_key_phrases(
    dataset: Dataset,
    engine: LanguageEngine,
    batch_size: int = KEY_PHRASE_BATCH_SIZE,
    language: str = "en",
) -> List[SheetKeyPhrases]:
    results: List[SheetKeyPhrases] = []
    for sheet_name, rows in dataset.items():
        if not rows:
            results.append(SheetKeyPhrases(sheet_name=sheet_name, error=EMPTY_SHEET))
            continue
        try:
            phrases = await _sheet_key_phrases(rows, engine, batch_size, language)
            results.append(SheetKeyPhrases(sheet_name=sheet_name, key_phrases=phrases))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error processing sheet %s", sheet_name)
            results.append(SheetKeyPhrases(sheet_name=sheet_name, error=str(exc) or "An error occurred"))
    return results


def sheet_text(rows: Sequence[Mapping[str, Any]]) -> str:
    return "\n".join(" ".join(_cell_text(v) for v in row.values()) for row in rows)


async def analyze_sheet_sentiment(dataset: Dataset, engine: LanguageEngine) -> List[SheetSentiment]:
    results: List[SheetSentiment] = []
    for sheet_name, rows in dataset.items():
        if not rows:
            results.append(SheetSentiment(sheet_name=sheet_name, error=EMPTY_SHEET))
            continue
        try:
            analysis = await engine.analyze_sentiment(sheet_text(rows))
            payload = analysis.to_dict()
            results.append(
                SheetSentiment(
                    sheet_name=sheet_name,
                    sentiment=payload["sentiment"],
                    confidence_scores=payload["confidence_scores"],
                    sentences=payload["sentences"],
                )
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error processing sheet %s", sheet_name)
            results.append(SheetSentiment(sheet_name=sheet_name, error=str(exc) or "An error occurred"))
    return results


def _index_key(sheet_name: str, index: int) -> str:
    """``<urlsafe base64 of the sheet name>-<row>``; the row suffix never contains '-'."""
    encoded = base64.urlsafe_b64encode(sheet_name.encode("utf-8")).decode("ascii").rstrip("=")
    return f"{encoded}-{index}"


def build_index_documents(dataset: Dataset) -> List[Dict[str, Any]]:
    documents: List[Dict[str, Any]] = []
    for sheet_name, rows in dataset.items():
        for index, row in enumerate(rows, start=1):
            documents.append(
                {
                    "id": _index_key(sheet_name, index),
                    "content": ". ".join(f"{k}: {_cell_text(v)}" for k, v in row.items()),
                    "metadata": {
                        "sheetName": sheet_name,
                        "additionalInfo": json.dumps(row, ensure_ascii=False, default=str),
                    },
                }
            )
    return documents
