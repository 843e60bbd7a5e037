"""
Shared fixtures: fake HTTP backends, fake providers, hosts and stores.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest
from openai import AsyncOpenAI

from uilingo.core.events import Event, EventBus
from uilingo.i18n import (
    BulkLLMTranslator,
    InMemoryCacheStore,
    InMemoryHost,
    LanguageDescriptor,
    TranslationOrchestrator,
    TranslationProvider,
    TranslationSession,
    WebTranslator,
)


# =============================================================================
# HTTP fakes
# =============================================================================


def chat_completion(content: str) -> dict[str, Any]:
    """A minimal OpenAI chat.completion payload."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "qwen3-8b",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def make_bulk_translator(handler: Callable, **kwargs: Any) -> BulkLLMTranslator:
    """BulkLLMTranslator whose HTTP traffic goes to `handler`."""
    client = AsyncOpenAI(
        base_url="http://llm.test/v1",
        api_key="test",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return BulkLLMTranslator(client=client, **kwargs)


def make_web_translator(handler: Callable, **kwargs: Any) -> WebTranslator:
    """WebTranslator whose HTTP traffic goes to `handler`, with no delay."""
    kwargs.setdefault("request_delay", 0)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebTranslator(client=client, url="http://web.test/translate_a/single", **kwargs)


def web_payload(*segments: str) -> list[Any]:
    """Nested-array payload of the web endpoint."""
    return [[[segment, "original", None, None, 10] for segment in segments], None, "en"]


def llm_reply(values: list[str]) -> httpx.Response:
    return httpx.Response(200, json=chat_completion(json.dumps(values, ensure_ascii=False)))


# =============================================================================
# Fake provider
# =============================================================================


class FakeProvider(TranslationProvider):
    """Provider with scripted behaviour and call counting."""

    def __init__(
        self,
        name: str,
        translate_value: Callable[[str, str], str] | None = None,
        error: Exception | None = None,
        abortable: bool = False,
        block_first: bool = False,
    ):
        self.name = name
        self.display_name = name.title()
        self.abortable = abortable
        self.translate_value = translate_value or (lambda value, code: f"[{code}] {value}")
        self.error = error
        self.block_first = block_first
        self.calls: list[str] = []
        self.started = asyncio.Event()
        self.gate = asyncio.Event()

    async def translate(
        self,
        source: dict[str, str],
        language: LanguageDescriptor,
        session: TranslationSession | None = None,
    ) -> dict[str, str]:
        self.calls.append(language.code)
        self.started.set()
        if self.block_first and len(self.calls) == 1:
            await self.gate.wait()
        if self.error:
            raise self.error
        return {key: self.translate_value(value, language.code) for key, value in source.items()}


class SpyCacheStore(InMemoryCacheStore):
    """In-memory store that counts every access."""

    def __init__(self, raw: str | None = None):
        super().__init__(raw)
        self.loads = 0
        self.clears = 0

    async def load(self):
        self.loads += 1
        return await super().load()

    async def clear(self) -> None:
        self.clears += 1
        await super().clear()


# =============================================================================
# Fixtures
# =============================================================================


SOURCE = {"a": "Hello", "b": "Bye"}


@pytest.fixture
def host():
    """Host with a two-string English dictionary."""
    return InMemoryHost({"en": dict(SOURCE), "sk": {"a": "Ahoj", "b": "Zbohom"}})


@pytest.fixture
def store():
    return SpyCacheStore()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    """Every event published on the bus, in order."""
    received: list[Event] = []

    async def record(event: Event) -> None:
        received.append(event)

    bus.subscribe("*", record)
    return received


@pytest.fixture
def toasts():
    return []


@pytest.fixture
def make_orchestrator(host, store, bus, toasts):
    """Factory for an orchestrator wired to the shared fixtures."""

    def factory(providers: list[TranslationProvider]) -> TranslationOrchestrator:
        return TranslationOrchestrator(
            host,
            store,
            providers=providers,
            bus=bus,
            toast=toasts.append,
            settle_delay=0,
        )

    return factory


async def wait_for(predicate: Callable[[], bool], attempts: int = 200) -> None:
    """Yield to the loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")
