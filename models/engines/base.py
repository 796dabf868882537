from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence


class ConfigurationError(RuntimeError):
    """A required endpoint or credential is missing."""


class CompletionError(RuntimeError):
    """The completions service failed to answer."""


@dataclass
class GenerateRequest:
    prompt: str
    context: List[str] = field(default_factory=list)
    options: Optional[Dict[str, Any]] = None


@dataclass
class GenerateResponse:
    text: str
    raw: Optional[Dict[str, Any]] = None


@dataclass
class TextDocument:
    id: str
    text: str
    language: str = "en"

    def to_payload(self) -> Dict[str, str]:
        return {"id": self.id, "language": self.language, "text": self.text}


@dataclass
class ConfidenceScores:
    positive: float = 0.0
    neutral: float = 0.0
    negative: float = 0.0

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> "ConfidenceScores":
        data = data or {}
        return cls(
            positive=float(data.get("positive", 0.0)),
            neutral=float(data.get("neutral", 0.0)),
            negative=float(data.get("negative", 0.0)),
        )


@dataclass
class SentenceSentiment:
    text: str
    sentiment: str
    confidence_scores: ConfidenceScores


@dataclass
class SentimentResult:
    sentiment: str
    confidence_scores: ConfidenceScores
    sentences: List[SentenceSentiment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CompletionEngine:
    """Chat completion over a prompt plus grounding snippets."""

    name: str

    def health(self) -> bool:
        raise NotImplementedError

    def generate(self, req: GenerateRequest) -> GenerateResponse:
        """Synchronous text generation."""
        raise NotImplementedError

    def close(self) -> None:
        return None


class LanguageEngine:
    """Key-phrase extraction and sentiment analysis."""

    name: str

    async def extract_key_phrases(self, documents: Sequence[TextDocument]) -> List[str]:
        raise NotImplementedError

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class SearchEngine:
    """Temporary document index plus free-text search over it."""

    name: str
    current_index_name: str = ""

    async def create_index(self, items: Sequence[Dict[str, Any]]) -> bool:
        raise NotImplementedError

    async def search(self, query: str, top: int = 10) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
