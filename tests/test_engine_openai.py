"""Tests for the completion engines and chat message rendering."""
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from cognition.prompt_renderer import SYSTEM_PROMPT, UNGROUNDED_NOTE, render_chat_messages
from config import OpenAISettings
from models.engines.base import CompletionError, ConfigurationError, GenerateRequest
from models.engines.engine_openai import NO_RESPONSE, LiveCompletionEngine, UnconfiguredCompletionEngine

SETTINGS = OpenAISettings(endpoint="https://example.openai.azure.com", api_key="k", deployment="gpt")


class FakeResponse:
    def __init__(self, content):
        message = SimpleNamespace(content=content)
        self.choices = [SimpleNamespace(message=message)] if content is not None else []

    def model_dump(self):
        return {"choices": len(self.choices)}


class FakeCompletions:
    def __init__(self, content="Here you go", error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return FakeResponse(self.content)


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_messages_with_context():
    messages = render_chat_messages("How many units?", ["row one", "row two"])
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1]["content"].endswith("row one\n\nrow two")
    assert messages[2]["role"] == "system"
    assert messages[-1] == {"role": "user", "content": "How many units?"}
    assert len(messages) == 4


def test_messages_without_context_are_ungrounded():
    messages = render_chat_messages("Hello", [])
    assert [m["content"] for m in messages] == [SYSTEM_PROMPT, UNGROUNDED_NOTE, "Hello"]


def test_live_engine_sends_deployment_and_defaults():
    completions = FakeCompletions()
    engine = LiveCompletionEngine(SETTINGS, client=_client(completions))
    resp = engine.generate(GenerateRequest(prompt="Hi", context=["ctx"]))
    assert resp.text == "Here you go"
    call = completions.calls[0]
    assert call["model"] == "gpt"
    assert call["max_tokens"] == 800
    assert call["temperature"] == 0.7
    assert call["messages"][-1]["content"] == "Hi"


def test_live_engine_empty_answer():
    engine = LiveCompletionEngine(SETTINGS, client=_client(FakeCompletions(content=None)))
    assert engine.generate(GenerateRequest(prompt="Hi")).text == NO_RESPONSE


def test_live_engine_wraps_sdk_errors():
    request = httpx.Request("POST", "https://example.openai.azure.com")
    error = APIConnectionError(request=request)
    engine = LiveCompletionEngine(SETTINGS, client=_client(FakeCompletions(error=error)))
    with pytest.raises(CompletionError):
        engine.generate(GenerateRequest(prompt="Hi"))


def test_live_engine_requires_credentials():
    with pytest.raises(ConfigurationError):
        LiveCompletionEngine(OpenAISettings(endpoint="https://x", api_key=""))


def test_unconfigured_engine_raises_configuration_error():
    engine = UnconfiguredCompletionEngine()
    assert engine.health() is False
    with pytest.raises(ConfigurationError):
        engine.generate(GenerateRequest(prompt="Hi"))


def test_live_engine_close_releases_client():
    closed = []
    client = _client(FakeCompletions())
    client.close = lambda: closed.append(True)
    LiveCompletionEngine(SETTINGS, client=client).close()
    assert closed == [True]
