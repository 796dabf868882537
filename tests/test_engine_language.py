"""Tests for the text-analytics engines."""
import json

import httpx
import pytest

from config import LanguageSettings
from models.engines.base import ConfigurationError, TextDocument
from models.engines.engine_language import (
    LiveLanguageEngine,
    MockLanguageEngine,
    classify_counts,
    mock_key_phrases,
    mock_sentiment,
)

SETTINGS = LanguageSettings(endpoint="https://lang.example.com", api_key="secret")


def _engine(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LiveLanguageEngine(SETTINGS, client=client)


class TestMockKeyPhrases:
    def test_capitalised_and_marked_words(self):
        text = "The Quarterly report shows important growth in Europe."
        assert mock_key_phrases(text) == ["Quarterly", "growth", "Europe"]

    def test_falls_back_to_long_words(self):
        text = "all lowercase words including everything"
        assert mock_key_phrases(text) == ["lowercase", "including", "everything"]

    def test_capped_at_ten(self):
        text = "x " + " ".join(f"Name{i}" for i in range(15))
        assert len(mock_key_phrases(text)) == 10

    def test_empty_text(self):
        assert mock_key_phrases("") == []


class TestMockSentiment:
    def test_positive(self):
        result = mock_sentiment("good great product")
        assert result.sentiment == "positive"
        assert result.confidence_scores.positive == pytest.approx(0.99)
        assert result.confidence_scores.negative == 0
        assert result.confidence_scores.neutral == pytest.approx(0.01)

    def test_negative(self):
        assert mock_sentiment("terrible awful horrible good").sentiment == "negative"

    def test_mixed_when_neither_side_dominates(self):
        assert mock_sentiment("good bad").sentiment == "mixed"
        assert mock_sentiment("terrible awful good").sentiment == "mixed"

    def test_neutral(self):
        result = mock_sentiment("the table")
        assert result.sentiment == "neutral"
        assert result.confidence_scores.neutral == pytest.approx(1.0)

    def test_single_sentence_with_full_text(self):
        result = mock_sentiment("good stuff")
        assert len(result.sentences) == 1
        assert result.sentences[0].text == "good stuff"
        assert result.sentences[0].sentiment == result.sentiment

    def test_empty_text_does_not_divide_by_zero(self):
        assert mock_sentiment("").sentiment == "neutral"

    def test_ratio_is_configurable(self):
        assert classify_counts(3, 2) == "mixed"
        assert classify_counts(3, 2, ratio=1.0) == "positive"
        assert mock_sentiment("good good good bad bad", ratio=1.0).sentiment == "positive"


@pytest.mark.asyncio
async def test_mock_engine_joins_documents():
    engine = MockLanguageEngine()
    docs = [TextDocument(id="0", text="first Alpha"), TextDocument(id="1", text="then Bravo")]
    assert await engine.extract_key_phrases(docs) == ["Alpha", "Bravo"]


@pytest.mark.asyncio
async def test_live_key_phrases_collects_successes_and_skips_errors():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["version"] = request.url.params.get("api-version")
        seen["key"] = request.headers.get("Ocp-Apim-Subscription-Key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "kind": "KeyPhraseExtractionResults",
                "results": {
                    "documents": [{"id": "0", "keyPhrases": ["revenue", "growth"], "warnings": []}],
                    "errors": [{"id": "1", "error": {"code": "InvalidArgument", "message": "bad"}}],
                },
            },
        )

    engine = _engine(handler)
    docs = [TextDocument(id="0", text="Revenue growth"), TextDocument(id="1", text="???"), TextDocument(id="2", text="  ")]
    phrases = await engine.extract_key_phrases(docs)
    await engine.aclose()

    assert phrases == ["revenue", "growth"]
    assert seen["path"].endswith("/language/:analyze-text")
    assert seen["version"] == "2023-04-01"
    assert seen["key"] == "secret"
    assert seen["body"]["kind"] == "KeyPhraseExtraction"
    assert [d["id"] for d in seen["body"]["analysisInput"]["documents"]] == ["0", "1"]


@pytest.mark.asyncio
async def test_live_key_phrases_skips_call_for_blank_documents():
    def handler(request):
        raise AssertionError("service must not be called")

    engine = _engine(handler)
    assert await engine.extract_key_phrases([TextDocument(id="0", text=" ")]) == []


@pytest.mark.asyncio
async def test_live_key_phrases_degrade_to_mock_on_http_error():
    engine = _engine(lambda request: httpx.Response(500, json={"error": "boom"}))
    phrases = await engine.extract_key_phrases([TextDocument(id="0", text="Report for Europe")])
    assert phrases == ["Europe"]


@pytest.mark.asyncio
async def test_live_sentiment_parses_first_document():
    def handler(request):
        body = json.loads(request.content)
        assert body["kind"] == "SentimentAnalysis"
        assert body["parameters"] == {"opinionMining": True}
        return httpx.Response(
            200,
            json={
                "results": {
                    "documents": [
                        {
                            "id": "1",
                            "sentiment": "positive",
                            "confidenceScores": {"positive": 0.9, "neutral": 0.08, "negative": 0.02},
                            "sentences": [
                                {
                                    "text": "Great",
                                    "sentiment": "positive",
                                    "confidenceScores": {"positive": 0.9, "neutral": 0.08, "negative": 0.02},
                                    "offset": 0,
                                    "length": 5,
                                }
                            ],
                        }
                    ],
                    "errors": [],
                }
            },
        )

    result = await _engine(handler).analyze_sentiment("Great")
    assert result.sentiment == "positive"
    assert result.confidence_scores.positive == pytest.approx(0.9)
    assert result.sentences[0].text == "Great"


@pytest.mark.asyncio
async def test_live_sentiment_blank_text_uses_sample():
    def handler(request):
        raise AssertionError("service must not be called")

    result = await _engine(handler).analyze_sentiment("   ")
    assert result.sentiment == "neutral"
    assert result.sentences[0].text == "Sample text for sentiment analysis"


@pytest.mark.asyncio
async def test_live_sentiment_degrades_to_mock():
    result = await _engine(lambda request: httpx.Response(503)).analyze_sentiment("bad terrible day")
    assert result.sentiment == "negative"

    no_docs = _engine(lambda request: httpx.Response(200, json={"results": {"documents": [], "errors": [{"id": "1"}]}}))
    assert (await no_docs.analyze_sentiment("good good")).sentiment == "positive"


def test_live_engine_requires_credentials():
    with pytest.raises(ConfigurationError):
        LiveLanguageEngine(LanguageSettings())


def test_leading_whitespace_keeps_first_word():
    assert mock_key_phrases("  Alpha Bravo") == ["Alpha", "Bravo"]
    assert mock_key_phrases("Alpha Bravo") == ["Bravo"]


def test_leading_whitespace_counts_as_a_token_in_sentiment():
    padded = mock_sentiment(" good")
    assert padded.sentiment == "positive"
    assert padded.confidence_scores.positive == pytest.approx(0.99)
    assert mock_sentiment(" good" + " day" * 8).confidence_scores.positive == pytest.approx(0.5)
