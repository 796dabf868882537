# Sheet Insight
# Copyright (C) 2025  Aleksandr Ladygin
# Licensed under the GNU General Public License v3 or later.
#
# See the LICENSE file in the project root for full license information.

"""Server-side gateway to Azure AI Search.

Holds the API key and pins the API version so neither ever reaches the
browser. Also owns the temporary-index workflow: drop, create, batch upload,
settle, count.
"""

from __future__ import annotations

import asyncio
import json
import time
from logging import getLogger
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

import httpx

from config import SearchSettings
from models.engines.base import ConfigurationError

logger = getLogger(__name__)

INDEX_FIELDS: List[Dict[str, Any]] = [
    {"name": "id", "type": "Edm.String", "key": True, "searchable": False, "filterable": True},
    {
        "name": "content",
        "type": "Edm.String",
        "searchable": True,
        "filterable": False,
        "analyzer": "en.microsoft",
    },
    {
        "name": "metadata",
        "type": "Edm.ComplexType",
        "fields": [
            {"name": "sheetName", "type": "Edm.String", "searchable": True, "filterable": True},
            {"name": "additionalInfo", "type": "Edm.String", "searchable": True, "filterable": False},
        ],
    },
]

SEMANTIC_CONFIG = {
    "configurations": [
        {
            "name": "my-semantic-config",
            "prioritizedFields": {
                "contentFields": [{"fieldName": "content"}],
                "keywordsFields": [{"fieldName": "metadata/sheetName"}],
            },
        }
    ]
}


class GatewayError(RuntimeError):
    def __init__(self, status_code: int, message: str, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": str(self)}
        if self.details is not None:
            payload.update(self.details)
        return payload


def generate_index_name() -> str:
    return f"temp-index-{int(time.time() * 1000)}"


def index_definition(name: str) -> Dict[str, Any]:
    return {"name": name, "fields": INDEX_FIELDS, "semantic": SEMANTIC_CONFIG}


def prepare_upload_batch(batch: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    prepared = []
    for doc in batch:
        metadata = doc.get("metadata") or {}
        prepared.append(
            {
                "id": doc.get("id"),
                "content": doc.get("content") or "",
                "metadata": {
                    "sheetName": metadata.get("sheetName") or "unknown",
                    "additionalInfo": metadata.get("additionalInfo") or "",
                },
            }
        )
    return prepared


def _error_body(resp: Optional[httpx.Response]) -> Any:
    if resp is None:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class SearchGateway:
    def __init__(
        self,
        settings: SearchSettings,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not settings.configured:
            raise ConfigurationError("Search credentials not configured")
        self.settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)
        self._sleep = sleep

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "api-key": self.settings.api_key}

    async def forward(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, str]] = None,
        body: Any = None,
    ) -> httpx.Response:
        """Pass a request through with the key and API version injected."""
        query = dict(params or {})
        query["api-version"] = self.settings.api_version
        url = f"{self.settings.endpoint}/{path.lstrip('/')}"
        logger.info("Proxying %s request to: %s", method.upper(), url)
        return await self._client.request(
            method.upper(),
            url,
            params=query,
            headers=self._headers(),
            json=body if method.upper() != "GET" else None,
        )

    async def post_json(self, path: str, body: Any) -> Any:
        resp = await self.forward("POST", path, body=body)
        resp.raise_for_status()
        return resp.json()

    async def create_index(
        self,
        documents: Sequence[Mapping[str, Any]],
        index_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not documents:
            raise GatewayError(400, "Invalid documents data")

        name = index_name or generate_index_name()
        logger.info("Creating search index %s with %d documents", name, len(documents))

        try:
            resp = await self.forward("DELETE", f"indexes/{name}")
            if resp.status_code < 400:
                logger.info("Existing index %s deleted", name)
            elif resp.status_code != 404:
                logger.error("Error checking/deleting index %s: HTTP %s", name, resp.status_code)
        except httpx.HTTPError as exc:
            logger.error("Error checking/deleting index %s: %s", name, exc)

        try:
            resp = await self.forward("POST", "indexes", body=index_definition(name))
            resp.raise_for_status()
            logger.info("Index created successfully: %s", resp.status_code)
        except httpx.HTTPError as exc:
            response = getattr(exc, "response", None)
            logger.error("Error creating index: %s", exc)
            raise GatewayError(
                500,
                "Failed to create index",
                {"details": str(exc), "responseData": _error_body(response)},
            ) from exc

        batch_size = self.settings.upload_batch_size
        total = (len(documents) + batch_size - 1) // batch_size
        for number, start in enumerate(range(0, len(documents), batch_size), start=1):
            batch = prepare_upload_batch(documents[start:start + batch_size])
            try:
                logger.info("Uploading batch %d of %d", number, total)
                resp = await self.forward("POST", f"indexes/{name}/docs/index", body={"value": batch})
                resp.raise_for_status()
                logger.info("Batch %d uploaded with status: %s", number, resp.status_code)
                await self._sleep(self.settings.batch_pause_seconds)
            except httpx.HTTPError as exc:
                logger.error("Error processing batch %d: %s", number, exc)
                response = getattr(exc, "response", None)
                if response is not None:
                    logger.error("Batch error details: %s", json.dumps(_error_body(response), default=str))

        await self._sleep(self.settings.settle_seconds)

        try:
            resp = await self.forward("GET", f"indexes/{name}/docs/$count")
            resp.raise_for_status()
            count: Any = int(resp.text.strip().lstrip("\ufeff"))
            logger.info("Index %s contains %s documents", name, count)
            message = "Search index created successfully"
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error getting document count: %s", exc)
            count = "unknown"
            message = "Index created, but document count unavailable"

        return {"success": True, "message": message, "indexName": name, "documentCount": count}
