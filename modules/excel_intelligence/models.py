# Sheet Insight
# Copyright (C) 2025  Aleksandr Ladygin
# Licensed under the GNU General Public License v3 or later.
#
# See the LICENSE file in the project root for full license information.

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SheetKeyPhrases(BaseModel):
    sheet_name: str
    key_phrases: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class SheetSentiment(BaseModel):
    sheet_name: str
    sentiment: Optional[Literal["positive", "negative", "neutral", "mixed"]] = None
    confidence_scores: Optional[Dict[str, float]] = None
    sentences: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
