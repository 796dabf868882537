# Sheet Insight
# Copyright (C) 2025  Aleksandr Ladygin
# Licensed under the GNU General Public License v3 or later.
#
# See the LICENSE file in the project root for full license information.

from __future__ import annotations

"""
main.py
Spreadsheet assistant service.

Includes:
- dataset loading: /api/upload (xlsx, xlsm, csv), /api/dataset (pre-parsed JSON)
- chat grounded on keyword-selected rows: /api/chat
- per-sheet key phrases and sentiment: /api/key-phrases, /api/sentiment
- temporary search index over the loaded rows: /api/index, /api/query
- same-origin search proxy: /api/search/{path}, /api/create-index
"""

import argparse
import asyncio
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import httpx
from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from cognition.context_selector import dataset_summary, select_context
from config import AppConfig, load_config
from models.engines.base import CompletionError, ConfigurationError, GenerateRequest
from models.engines.registry import ServiceClients, build_clients
from modules.excel_intelligence.actions import (
    analyze_sheet_sentiment,
    build_index_documents,
    extract_sheet_key_phrases,
)
from modules.excel_intelligence.logic import load_dataset
from modules.excel_intelligence.models import SheetKeyPhrases, SheetSentiment
from services.search_gateway import GatewayError

LOG_FILE_NAME = "sheet_insight.log"
CHAT_APOLOGY = "I'm sorry, I encountered an error processing your request."


def _setup_logging(log_dir: Path) -> logging.Logger:
    logger = logging.getLogger()
    if getattr(_setup_logging, "_configured", False):
        return logger

    log_dir.mkdir(parents=True, exist_ok=True)
    logger.setLevel(logging.INFO)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(file_handler)
    logger.addHandler(console)
    _setup_logging._configured = True
    return logger


LOGGER = logging.getLogger("sheet_insight")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        resp = await call_next(request)
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        return resp


# ---------- DTOs ----------
class DatasetIn(BaseModel):
    sheets: Dict[str, List[Dict[str, Any]]]


class DatasetOut(BaseModel):
    sheets: Dict[str, int]
    total_rows: int


class ChatIn(BaseModel):
    message: str


class ChatOut(BaseModel):
    status: Literal["success", "error"]
    reply: str | None = None
    context_count: int | None = None
    error: str | None = None


class QueryIn(BaseModel):
    query: str
    top: int = 10


class QueryOut(BaseModel):
    count: int
    results: List[Dict[str, Any]]


class IndexOut(BaseModel):
    success: bool
    index_name: str | None = None
    document_count: int


class CreateIndexIn(BaseModel):
    documents: List[Dict[str, Any]] = []
    indexName: str | None = None


def _clients(request: Request) -> ServiceClients:
    return request.app.state.clients


def _config(request: Request) -> AppConfig:
    return request.app.state.config


def _loaded_dataset(request: Request) -> Dict[str, List[Dict[str, Any]]]:
    dataset = request.app.state.dataset
    if not dataset:
        raise HTTPException(status_code=400, detail="No data loaded. Upload a spreadsheet first.")
    return dataset


def _dataset_out(dataset: Dict[str, List[Dict[str, Any]]]) -> DatasetOut:
    sheets = dataset_summary(dataset)
    return DatasetOut(sheets=sheets, total_rows=sum(sheets.values()))


def create_app(config: Optional[AppConfig] = None, clients: Optional[ServiceClients] = None) -> FastAPI:
    config = config or load_config()
    config.validate()
    _setup_logging(config.log_dir)

    app = FastAPI(title="Sheet Insight")
    app.state.config = config
    app.state.clients = clients or build_clients(config)
    app.state.dataset = {}

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["content-type", "authorization"],
    )

    LOGGER.info("Engines: %s", app.state.clients.describe())

    @app.get("/api/health")
    def health(clients: ServiceClients = Depends(_clients)):
        return {"status": "OK", "message": "Server is running", "engines": clients.describe()}

    @app.get("/favicon.ico")
    def favicon():
        return Response(status_code=204)

    # ---------- dataset ----------
    @app.get("/api/dataset", response_model=DatasetOut)
    def get_dataset(request: Request):
        return _dataset_out(request.app.state.dataset)

    @app.post("/api/dataset", response_model=DatasetOut)
    def put_dataset(payload: DatasetIn, request: Request):
        request.app.state.dataset = payload.sheets
        LOGGER.info("Dataset loaded with %d sheets", len(payload.sheets))
        return _dataset_out(payload.sheets)

    @app.post("/api/upload", response_model=DatasetOut)
    async def upload(request: Request, file: UploadFile = File(...)):
        data = await file.read()
        try:
            dataset = await asyncio.to_thread(load_dataset, file.filename or "", data)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error processing file %s", file.filename)
            raise HTTPException(status_code=400, detail=f"Error processing file: {exc}") from exc
        request.app.state.dataset = dataset
        LOGGER.info("Loaded %s with %d sheets", file.filename, len(dataset))
        return _dataset_out(dataset)

    # ---------- chat ----------
    @app.post("/api/chat", response_model=ChatOut, response_model_exclude_none=True)
    async def api_chat(
        payload: ChatIn,
        request: Request,
        clients: ServiceClients = Depends(_clients),
        config: AppConfig = Depends(_config),
    ):
        message = payload.message.strip()
        if not message:
            raise HTTPException(status_code=400, detail="message is required")

        context = select_context(message, request.app.state.dataset, limit=config.analysis.context_limit)
        LOGGER.info("Found %d relevant items in the data", len(context))

        req = GenerateRequest(prompt=message, context=context)
        try:
            resp = await asyncio.to_thread(clients.completion.generate, req)
        except ConfigurationError as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "error", "error": str(exc), "context_count": len(context)},
            )
        except CompletionError as exc:
            LOGGER.error("Error in chat: %s", exc)
            return JSONResponse(
                status_code=502,
                content={
                    "status": "error",
                    "reply": CHAT_APOLOGY,
                    "error": str(exc),
                    "context_count": len(context),
                },
            )
        return {"status": "success", "reply": resp.text, "context_count": len(context)}

    # ---------- text analytics ----------
    @app.post("/api/key-phrases", response_model=List[SheetKeyPhrases])
    async def key_phrases(
        dataset=Depends(_loaded_dataset),
        clients: ServiceClients = Depends(_clients),
        config: AppConfig = Depends(_config),
    ):
        return await extract_sheet_key_phrases(
            dataset,
            clients.language,
            batch_size=config.analysis.key_phrase_batch_size,
            language=config.language.language,
        )

    @app.post("/api/sentiment", response_model=List[SheetSentiment])
    async def sentiment(dataset=Depends(_loaded_dataset), clients: ServiceClients = Depends(_clients)):
        return await analyze_sheet_sentiment(dataset, clients.language)

    # ---------- search over the loaded rows ----------
    @app.post("/api/index", response_model=IndexOut)
    async def index_dataset(dataset=Depends(_loaded_dataset), clients: ServiceClients = Depends(_clients)):
        documents = build_index_documents(dataset)
        ok = await clients.search.create_index(documents)
        return IndexOut(
            success=ok,
            index_name=clients.search.current_index_name or None,
            document_count=len(documents),
        )

    @app.post("/api/query", response_model=QueryOut)
    async def query(payload: QueryIn, clients: ServiceClients = Depends(_clients)):
        results = await clients.search.search(payload.query, top=max(1, payload.top))
        return QueryOut(count=len(results), results=results)

    # ---------- search proxy ----------
    @app.post("/api/create-index")
    async def create_index(payload: CreateIndexIn, clients: ServiceClients = Depends(_clients)):
        if clients.gateway is None:
            return JSONResponse(status_code=500, content={"error": "Search credentials not configured"})
        try:
            return await clients.gateway.create_index(payload.documents, payload.indexName)
        except GatewayError as exc:
            return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.api_route("/api/search/{target:path}", methods=["GET", "POST", "PUT", "DELETE"])
    async def search_proxy(target: str, request: Request, clients: ServiceClients = Depends(_clients)):
        if clients.gateway is None:
            return JSONResponse(status_code=500, content={"error": "Search credentials not configured"})

        body = None
        if request.method != "GET":
            raw = await request.body()
            if raw:
                try:
                    body = json.loads(raw)
                except ValueError:
                    return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})

        try:
            upstream = await clients.gateway.forward(
                request.method, target, params=dict(request.query_params), body=body
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Proxy error: %s", exc)
            return JSONResponse(status_code=500, content={"error": str(exc)})

        if upstream.status_code >= 400:
            LOGGER.error("Proxy upstream status %s: %s", upstream.status_code, upstream.text[:500])
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            media_type=upstream.headers.get("content-type", "application/json"),
        )

    @app.on_event("shutdown")
    async def _on_shutdown():
        await app.state.clients.aclose()
        LOGGER.info("Service clients closed.")

    return app


def _cli():
    parser = argparse.ArgumentParser(description="Sheet Insight service")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP service")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3001)
    parser.add_argument(
        "--health",
        action="store_true",
        help="Print which engine variant each service resolves to and exit",
    )
    args = parser.parse_args()

    if args.health:
        print(json.dumps(build_clients(load_config()).describe(), ensure_ascii=False))
    elif args.serve:
        import uvicorn

        uvicorn.run("main:create_app", factory=True, host=args.host, port=args.port)
    else:
        parser.print_help()


if __name__ == "__main__":
    _cli()
