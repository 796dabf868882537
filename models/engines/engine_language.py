from __future__ import annotations

import re
from logging import getLogger
from typing import Any, Dict, List, Optional, Sequence

import httpx

from config import SENTIMENT_DOMINANCE_RATIO, LanguageSettings

from .base import (
    ConfidenceScores,
    ConfigurationError,
    LanguageEngine,
    SentenceSentiment,
    SentimentResult,
    TextDocument,
)

logger = getLogger(__name__)

SAMPLE_SENTIMENT_TEXT = "Sample text for sentiment analysis"

IMPORTANT_MARKERS = {"important", "significant", "key", "critical", "major"}
POSITIVE_MARKERS = ("good", "great", "excellent", "amazing", "wonderful", "best", "happy", "positive", "success")
NEGATIVE_MARKERS = ("bad", "terrible", "awful", "horrible", "worst", "sad", "negative", "failure", "poor")

_PUNCT = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
_WHITESPACE = re.compile(r"\s+")


def mock_key_phrases(text: str, limit: int = 10) -> List[str]:
    """Offline stand-in: capitalised words, words after an 'important' marker, else long words."""
    # A leading blank yields an empty first token, which is then skipped as position 0.
    words = _WHITESPACE.split(text or "")
    phrases: Dict[str, None] = {}

    for i, word in enumerate(words):
        clean = _PUNCT.sub("", word)
        if not clean or i == 0:
            continue
        if len(clean) > 3 and clean[0].isupper():
            phrases[clean] = None
        if words[i - 1].lower() in IMPORTANT_MARKERS:
            phrases[clean] = None

    if not phrases:
        for word in words:
            clean = _PUNCT.sub("", word)
            if len(clean) > 6:
                phrases[clean] = None

    return list(phrases)[:limit]


def classify_counts(positive: int, negative: int, ratio: float = SENTIMENT_DOMINANCE_RATIO) -> str:
    if positive > negative * ratio:
        return "positive"
    if negative > positive * ratio:
        return "negative"
    if positive > 0 and negative > 0:
        return "mixed"
    return "neutral"


def mock_sentiment(text: str, ratio: float = SENTIMENT_DOMINANCE_RATIO) -> SentimentResult:
    words = _WHITESPACE.split((text or "").lower())
    total = len(words) or 1
    positive = sum(1 for w in words if any(m in w for m in POSITIVE_MARKERS))
    negative = sum(1 for w in words if any(m in w for m in NEGATIVE_MARKERS))

    label = classify_counts(positive, negative, ratio)
    pos_score = min(0.99, positive / total * 5)
    neg_score = min(0.99, negative / total * 5)
    neutral_score = max(0.01, 1 - pos_score - neg_score)

    def _scores() -> ConfidenceScores:
        return ConfidenceScores(positive=pos_score, neutral=neutral_score, negative=neg_score)

    return SentimentResult(
        sentiment=label,
        confidence_scores=_scores(),
        sentences=[SentenceSentiment(text=text, sentiment=label, confidence_scores=_scores())],
    )


class MockLanguageEngine(LanguageEngine):
    name = "mock"

    def __init__(self, ratio: float = SENTIMENT_DOMINANCE_RATIO):
        self.ratio = ratio

    async def extract_key_phrases(self, documents: Sequence[TextDocument]) -> List[str]:
        text = " ".join(doc.text for doc in documents)
        return mock_key_phrases(text)

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        return mock_sentiment(text, self.ratio)


class LiveLanguageEngine(LanguageEngine):
    """Azure AI Language over its REST ``analyze-text`` endpoint."""

    name = "azure-language"

    def __init__(
        self,
        settings: LanguageSettings,
        client: Optional[httpx.AsyncClient] = None,
        ratio: float = SENTIMENT_DOMINANCE_RATIO,
    ):
        if not settings.configured:
            raise ConfigurationError("Azure Language credentials not configured")
        self.settings = settings
        self.ratio = ratio
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _analyze(self, kind: str, documents: Sequence[TextDocument], parameters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "kind": kind,
            "analysisInput": {"documents": [doc.to_payload() for doc in documents]},
        }
        if parameters:
            body["parameters"] = parameters
        resp = await self._client.post(
            f"{self.settings.endpoint}/language/:analyze-text",
            params={"api-version": self.settings.api_version},
            headers={
                "Ocp-Apim-Subscription-Key": self.settings.api_key,
                "Content-Type": "application/json",
            },
            json=body,
        )
        resp.raise_for_status()
        return resp.json().get("results") or {}

    async def extract_key_phrases(self, documents: Sequence[TextDocument]) -> List[str]:
        valid = [doc for doc in documents if doc.text and doc.text.strip()]
        if not valid:
            logger.warning("No valid documents to process for key phrase extraction")
            return []

        try:
            results = await self._analyze("KeyPhraseExtraction", valid)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error extracting key phrases: %s", exc)
            return mock_key_phrases(" ".join(doc.text for doc in valid))

        phrases: List[str] = []
        for doc in results.get("documents", []):
            phrases.extend(doc.get("keyPhrases") or [])
        for err in results.get("errors", []):
            message = (err.get("error") or {}).get("message", "unknown error")
            logger.warning("Error in key phrase extraction for document %s: %s", err.get("id"), message)
        return phrases

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        if not text or not text.strip():
            return mock_sentiment(SAMPLE_SENTIMENT_TEXT, self.ratio)

        doc = TextDocument(id="1", text=text, language=self.settings.language)
        try:
            results = await self._analyze("SentimentAnalysis", [doc], {"opinionMining": True})
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error analyzing sentiment: %s", exc)
            return mock_sentiment(text, self.ratio)

        documents = results.get("documents") or []
        if not documents:
            return mock_sentiment(text, self.ratio)

        first = documents[0]
        return SentimentResult(
            sentiment=first.get("sentiment", "neutral"),
            confidence_scores=ConfidenceScores.from_payload(first.get("confidenceScores")),
            sentences=[
                SentenceSentiment(
                    text=s.get("text", ""),
                    sentiment=s.get("sentiment", "neutral"),
                    confidence_scores=ConfidenceScores.from_payload(s.get("confidenceScores")),
                )
                for s in first.get("sentences") or []
            ],
        )
