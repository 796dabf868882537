from __future__ import annotations

import json
from logging import getLogger
from typing import Any, Dict, List, Mapping, Sequence

import httpx

from cognition.search_keywords import extract_search_keywords, fallback_terms
from services.search_gateway import GatewayError, SearchGateway

from .base import SearchEngine

logger = getLogger(__name__)

SEARCH_FIELDS = ["content", "metadata/sheetName", "metadata/additionalInfo"]
SELECT_FIELDS = "id,content,metadata"


def mock_search_results(query: str) -> List[Dict[str, Any]]:
    return [
        {
            "id": "mock-1",
            "content": f'This is mock content related to "{query}"',
            "metadata": {"sheetName": "MockSheet"},
        },
        {
            "id": "mock-2",
            "content": f'Additional information about "{query}" and related topics',
            "metadata": {"sheetName": "MockSheet"},
        },
    ]


def _pairs(data: Mapping[str, Any]) -> str:
    return ". ".join(f"{key}: {value}" for key, value in data.items())


def _document_content(item: Mapping[str, Any]) -> str:
    content = item.get("content")
    if isinstance(content, str):
        return content

    metadata = item.get("metadata") or {}
    additional = metadata.get("additionalInfo")
    if additional:
        try:
            parsed = json.loads(additional)
        except (TypeError, ValueError):
            return str(additional)
        if isinstance(parsed, dict):
            return _pairs(parsed)
        return str(additional)

    return _pairs({k: v for k, v in item.items() if k not in ("id", "metadata")})


def prepare_index_documents(items: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Normalise arbitrary row-like items into ``{id, content, metadata}`` documents."""
    documents = []
    for index, item in enumerate(items):
        metadata = item.get("metadata") or {}
        content = _document_content(item)
        documents.append(
            {
                "id": str(item.get("id") or f"doc-{index}"),
                "content": content or json.dumps(item, default=str),
                "metadata": {
                    "sheetName": metadata.get("sheetName") or "unknown",
                    "additionalInfo": metadata.get("additionalInfo") or "",
                },
            }
        )
    return documents


class MockSearchEngine(SearchEngine):
    name = "mock"

    def __init__(self) -> None:
        self.current_index_name = ""

    async def create_index(self, items: Sequence[Dict[str, Any]]) -> bool:
        self.current_index_name = "mock-index"
        logger.info("Mock index prepared with %d documents", len(items))
        return True

    async def search(self, query: str, top: int = 10) -> List[Dict[str, Any]]:
        return mock_search_results(query)


class LiveSearchEngine(SearchEngine):
    """Search through the gateway, with a widening fallback when nothing matches."""

    name = "azure-search"

    def __init__(self, gateway: SearchGateway):
        self.gateway = gateway
        self.current_index_name = ""

    async def aclose(self) -> None:
        await self.gateway.aclose()

    def _search_path(self) -> str:
        return f"indexes/{self.current_index_name}/docs/search"

    async def create_index(self, items: Sequence[Dict[str, Any]]) -> bool:
        documents = prepare_index_documents(items)
        if not documents:
            logger.error("Failed to create index: no documents")
            return False
        logger.info("Creating search index with %d documents", len(documents))
        try:
            data = await self.gateway.create_index(documents)
        except (GatewayError, httpx.HTTPError) as exc:
            logger.error("Error creating index: %s", exc)
            return False

        name = (data or {}).get("indexName")
        if not name:
            logger.error("Failed to create index: %s", data)
            return False
        self.current_index_name = name
        logger.info("Search index created successfully: %s", name)
        logger.info("Document count: %s", data.get("documentCount", "unknown"))
        return True

    async def search(self, query: str, top: int = 10) -> List[Dict[str, Any]]:
        if not self.current_index_name:
            logger.info("No index available for search")
            return mock_search_results(query)

        keywords = extract_search_keywords(query)
        logger.info('Searching index %s for: "%s"', self.current_index_name, query)
        logger.info("Keywords: %s", ", ".join(keywords))

        body = {
            "search": query,
            "queryType": "full",
            "searchMode": "any",
            "searchFields": SEARCH_FIELDS,
            "queryLanguage": "en-US",
            "top": top,
            "select": SELECT_FIELDS,
            "highlight": "content",
            "semanticSearch": True,
        }
        try:
            data = await self.gateway.post_json(self._search_path(), body)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error searching documents: %s", exc)
            logger.info("Trying fallback keyword-only search due to error")
            return await self._fallback_search(query, top)

        if not isinstance(data, dict) or "value" not in data:
            return mock_search_results(query)

        results = data.get("value") or []
        logger.info("Search returned %d results", len(results))
        if not results:
            logger.info("No results found for query, trying fallback search...")
            return await self._fallback_search(query, top)
        return results

    async def _simple_search(self, search: str, top: int) -> List[Dict[str, Any]]:
        data = await self.gateway.post_json(
            self._search_path(),
            {
                "search": search,
                "queryType": "simple",
                "searchMode": "any",
                "top": top,
                "select": SELECT_FIELDS,
            },
        )
        if isinstance(data, dict):
            return data.get("value") or []
        return []

    async def _fallback_search(self, query: str, top: int) -> List[Dict[str, Any]]:
        logger.info('Trying basic keyword search for: "%s"', query)
        terms = fallback_terms(query)
        if not terms:
            return mock_search_results(query)

        try:
            results = await self._simple_search(" OR ".join(terms), top * 2)
            if results:
                logger.info("Basic keyword search returned %d results", len(results))
                return results

            longest = max(terms, key=len)
            logger.info("Trying last-resort search with keyword: %s", longest)
            results = await self._simple_search(longest, top)
            if results:
                return results
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error in fallback search: %s", exc)

        return mock_search_results(query)
