from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import Dict, Optional

from config import AppConfig
from services.search_gateway import SearchGateway

from .base import CompletionEngine, LanguageEngine, SearchEngine
from .engine_language import LiveLanguageEngine, MockLanguageEngine
from .engine_openai import LiveCompletionEngine, UnconfiguredCompletionEngine
from .engine_search import LiveSearchEngine, MockSearchEngine

logger = getLogger(__name__)


@dataclass
class ServiceClients:
    completion: CompletionEngine
    language: LanguageEngine
    search: SearchEngine
    gateway: Optional[SearchGateway] = None

    def describe(self) -> Dict[str, str]:
        return {
            "completion": self.completion.name,
            "language": self.language.name,
            "search": self.search.name,
        }

    async def aclose(self) -> None:
        self.completion.close()
        await self.language.aclose()
        # The live search engine owns the gateway and closes it.
        await self.search.aclose()


def build_clients(config: AppConfig) -> ServiceClients:
    """Pick the live or degraded variant of every service once, from config."""
    ratio = config.analysis.sentiment_ratio

    completion: CompletionEngine
    if config.openai.configured:
        completion = LiveCompletionEngine(config.openai)
    else:
        logger.warning("Azure OpenAI credentials not found; chat is disabled")
        completion = UnconfiguredCompletionEngine()

    language: LanguageEngine
    if config.language.configured:
        language = LiveLanguageEngine(config.language, ratio=ratio)
    else:
        logger.warning("Azure Language credentials not found; using offline analyzer")
        language = MockLanguageEngine(ratio=ratio)

    gateway: Optional[SearchGateway] = None
    search: SearchEngine
    if config.search.configured:
        gateway = SearchGateway(config.search)
        search = LiveSearchEngine(gateway)
    else:
        logger.warning("Azure Search credentials not found; using mock search results")
        search = MockSearchEngine()

    return ServiceClients(completion=completion, language=language, search=search, gateway=gateway)
