# Sheet Insight
# Copyright (C) 2025  Aleksandr Ladygin
# Licensed under the GNU General Public License v3 or later.
#
# See the LICENSE file in the project root for full license information.

"""Runtime configuration.

Credentials come from the environment (optionally seeded from ``.env``),
tunables may additionally be overridden from ``config.json``. Nothing here
reads the environment at import time: callers build an ``AppConfig`` once and
hand it to the application factory.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

logger = getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parent

CONTEXT_MATCH_LIMIT = 20
SENTIMENT_DOMINANCE_RATIO = 2.0
KEY_PHRASE_BATCH_SIZE = 10
INDEX_UPLOAD_BATCH_SIZE = 1000
SEARCH_API_VERSION = "2023-10-01-Preview"


def _env(env: Mapping[str, str], name: str, default: str = "") -> str:
    # Older .env files carry the VITE_ prefix of the browser build.
    val = env.get(name) or env.get(f"VITE_{name}") or default
    return str(val).strip()


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _env(env, name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name} environment variable: {raw!r}") from exc


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _env(env, name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name} environment variable: {raw!r}") from exc


@dataclass(frozen=True)
class OpenAISettings:
    endpoint: str = ""
    api_key: str = ""
    deployment: str = ""
    api_version: str = "2024-02-01"
    max_tokens: int = 800
    temperature: float = 0.7

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.api_key and self.deployment)


@dataclass(frozen=True)
class LanguageSettings:
    endpoint: str = ""
    api_key: str = ""
    api_version: str = "2023-04-01"
    language: str = "en"
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.api_key)


@dataclass(frozen=True)
class SearchSettings:
    endpoint: str = ""
    api_key: str = ""
    api_version: str = SEARCH_API_VERSION
    upload_batch_size: int = INDEX_UPLOAD_BATCH_SIZE
    batch_pause_seconds: float = 0.5
    settle_seconds: float = 3.0
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.endpoint and self.api_key)


@dataclass(frozen=True)
class AnalysisSettings:
    context_limit: int = CONTEXT_MATCH_LIMIT
    sentiment_ratio: float = SENTIMENT_DOMINANCE_RATIO
    key_phrase_batch_size: int = KEY_PHRASE_BATCH_SIZE


@dataclass(frozen=True)
class AppConfig:
    openai: OpenAISettings = field(default_factory=OpenAISettings)
    language: LanguageSettings = field(default_factory=LanguageSettings)
    search: SearchSettings = field(default_factory=SearchSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    log_dir: Path = ROOT_DIR / "data" / "logs"
    allowed_origins: Tuple[str, ...] = ("http://127.0.0.1", "http://localhost")

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "AppConfig":
        """Build a config from an environment mapping (``os.environ`` by default).

        ``overrides`` is the parsed ``config.json``; its ``analysis`` and
        ``search`` sections may set tunables. Environment variables win.
        """
        env = os.environ if env is None else env
        overrides = overrides or {}
        analysis_cfg = overrides.get("analysis", {}) or {}
        search_cfg = overrides.get("search", {}) or {}

        analysis = AnalysisSettings(
            context_limit=_env_int(
                env, "CONTEXT_LIMIT", int(analysis_cfg.get("context_limit", CONTEXT_MATCH_LIMIT))
            ),
            sentiment_ratio=_env_float(
                env,
                "SENTIMENT_RATIO",
                float(analysis_cfg.get("sentiment_ratio", SENTIMENT_DOMINANCE_RATIO)),
            ),
            key_phrase_batch_size=int(
                analysis_cfg.get("key_phrase_batch_size", KEY_PHRASE_BATCH_SIZE)
            ),
        )
        openai = OpenAISettings(
            endpoint=_env(env, "AZURE_OPENAI_ENDPOINT"),
            api_key=_env(env, "AZURE_OPENAI_API_KEY"),
            deployment=_env(env, "AZURE_OPENAI_DEPLOYMENT_NAME"),
            api_version=_env(env, "AZURE_OPENAI_API_VERSION", "2024-02-01"),
        )
        language = LanguageSettings(
            endpoint=_env(env, "AZURE_LANGUAGE_ENDPOINT").rstrip("/"),
            api_key=_env(env, "AZURE_LANGUAGE_API_KEY"),
        )
        search = SearchSettings(
            endpoint=_env(env, "AZURE_SEARCH_ENDPOINT").rstrip("/"),
            api_key=_env(env, "AZURE_SEARCH_API_KEY"),
            upload_batch_size=int(search_cfg.get("upload_batch_size", INDEX_UPLOAD_BATCH_SIZE)),
            batch_pause_seconds=float(search_cfg.get("batch_pause_seconds", 0.5)),
            settle_seconds=float(search_cfg.get("settle_seconds", 3.0)),
        )

        config = cls(openai=openai, language=language, search=search, analysis=analysis)
        log_dir = _env(env, "LOG_DIR")
        if log_dir:
            config = replace(config, log_dir=Path(log_dir))
        origins = _env(env, "ALLOWED_ORIGINS")
        if origins:
            config = replace(
                config,
                allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            )
        return config

    def validate(self) -> bool:
        """Raise ``ValueError`` listing every tunable that is out of range."""
        errors = []
        if self.analysis.context_limit <= 0:
            errors.append(f"context_limit must be > 0, got {self.analysis.context_limit}")
        if self.analysis.sentiment_ratio <= 0:
            errors.append(f"sentiment_ratio must be > 0, got {self.analysis.sentiment_ratio}")
        if self.analysis.key_phrase_batch_size <= 0:
            errors.append(
                f"key_phrase_batch_size must be > 0, got {self.analysis.key_phrase_batch_size}"
            )
        if self.search.upload_batch_size <= 0:
            errors.append(f"upload_batch_size must be > 0, got {self.search.upload_batch_size}")
        if self.search.settle_seconds < 0:
            errors.append(f"settle_seconds must be >= 0, got {self.search.settle_seconds}")
        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(errors))
        return True


def load_config(root: Path = ROOT_DIR) -> AppConfig:
    load_dotenv(root / ".env")

    config_path = root / "config.json"
    overrides: Dict[str, Any] = {}
    if config_path.exists():
        try:
            overrides = json.loads(config_path.read_text(encoding="utf-8"))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to load config.json: %s", exc)

    config = AppConfig.from_env(os.environ, overrides)
    config.validate()
    return config
