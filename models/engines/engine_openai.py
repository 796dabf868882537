from __future__ import annotations

from typing import Any, Optional

from openai import APIError, APITimeoutError, AuthenticationError, AzureOpenAI, RateLimitError

from cognition.prompt_renderer import render_chat_messages
from config import OpenAISettings

from .base import CompletionEngine, CompletionError, ConfigurationError, GenerateRequest, GenerateResponse

NO_RESPONSE = "No response generated"


class LiveCompletionEngine(CompletionEngine):
    name = "azure-openai"

    def __init__(self, settings: OpenAISettings, client: Optional[Any] = None):
        if not settings.configured:
            raise ConfigurationError("Azure OpenAI credentials not configured")
        self.settings = settings
        self._client = client or AzureOpenAI(
            azure_endpoint=settings.endpoint,
            api_key=settings.api_key,
            api_version=settings.api_version,
        )

    def health(self) -> bool:
        return True

    def close(self) -> None:
        self._client.close()

    def generate(self, req: GenerateRequest) -> GenerateResponse:
        opts = req.options or {}
        messages = render_chat_messages(req.prompt, req.context)
        try:
            response = self._client.chat.completions.create(
                model=self.settings.deployment,
                messages=messages,
                max_tokens=opts.get("max_tokens", self.settings.max_tokens),
                temperature=opts.get("temperature", self.settings.temperature),
            )
        except AuthenticationError as exc:
            raise CompletionError("openai_auth_error: invalid or missing AZURE_OPENAI_API_KEY") from exc
        except RateLimitError as exc:
            raise CompletionError("openai_ratelimit: usage exceeded or throttled") from exc
        except APITimeoutError as exc:
            raise CompletionError("openai_timeout") from exc
        except APIError as exc:
            raise CompletionError(f"openai_api_error: {exc}") from exc

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        return GenerateResponse(text=text or NO_RESPONSE, raw=response.model_dump())


class UnconfiguredCompletionEngine(CompletionEngine):
    name = "unconfigured"

    def health(self) -> bool:
        return False

    def generate(self, req: GenerateRequest) -> GenerateResponse:
        raise ConfigurationError("Azure OpenAI credentials not found in configuration")
