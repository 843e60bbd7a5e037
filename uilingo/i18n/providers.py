"""
Translation providers.

Two ways of turning a source dictionary into a translated one:

1. BulkLLMTranslator - the whole dictionary in one request to a local
   OpenAI-compatible model. All-or-nothing.
2. WebTranslator - one request per string to the public web endpoint,
   rate limited. Degrades per key, never fails as a whole.

The orchestrator tries them in that order.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from uilingo.config import Settings, get_settings
from uilingo.i18n.errors import (
    PerKeyTransportError,
    ProviderError,
    ProviderLengthMismatchError,
    ProviderMalformedResponseError,
    ProviderStatusError,
    ProviderTimeoutError,
)
from uilingo.i18n.languages import LanguageDescriptor
from uilingo.i18n.session import CancellationToken, TranslationSession

logger = logging.getLogger(__name__)


class TranslationProvider(ABC):
    """
    Base class for translation providers.

    A provider receives the flat source dictionary and returns a dictionary
    with exactly the same keys.
    """

    # Source tag reported in notifications
    name: str = ""
    # Shown in progress labels
    display_name: str = ""
    # Whether an outstanding call may be hard-aborted on cancel
    abortable: bool = False

    @abstractmethod
    async def translate(
        self,
        source: dict[str, str],
        language: LanguageDescriptor,
        session: TranslationSession | None = None,
    ) -> dict[str, str]:
        """
        Translate every value of `source` into `language`.

        Raises:
            ProviderError: the provider could not produce a result
            TranslationCancelled: the session was cancelled
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


# =============================================================================
# Bulk LLM Translator
# =============================================================================


PROMPT_TEMPLATE = "\n".join([
    "You are a professional translator.",
    "Translate the following {count} UI strings from {source} to {target}.",
    "Rules: preserve formatting, quotes, arrows (→, ←), ellipsis (…), special chars.",
    "Return ONLY a valid JSON array of translated strings in the same order.",
    "No markdown, no explanation, no extra text.",
    "",
    "{values}",
])

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_FENCE_OPEN = re.compile(r"^```[^\n]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")


def build_prompt(values: list[str], target_label: str, source_label: str = "English") -> str:
    return PROMPT_TEMPLATE.format(
        count=len(values),
        source=source_label,
        target=target_label,
        values=json.dumps(values, ensure_ascii=False),
    )


def clean_llm_output(raw: str) -> str:
    """Strip reasoning blocks and a wrapping markdown fence."""
    cleaned = _THINK_BLOCK.sub("", raw or "").strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


class BulkLLMTranslator(TranslationProvider):
    """
    Translate a whole dictionary with one chat-completions call.

    Usage:
        translator = BulkLLMTranslator.from_settings()
        german = await translator.translate({"a": "Hello"}, get_language("de"))
    """

    name = "qwen"
    display_name = "Local LLM"
    abortable = True

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        base_url: str = "http://localhost:1234/v1",
        api_key: str = "local",
        model: str = "qwen3-8b",
        temperature: float = 0.1,
        max_tokens: int = 4096,
        timeout: float = 25.0,
        prompt_prefix: str = "/no_think ",
        source_label: str = "English",
    ):
        self._client = client
        self.base_url = base_url
        self._api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.prompt_prefix = prompt_prefix
        self.source_label = source_label

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> BulkLLMTranslator:
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "base_url": settings.llm_base_url,
            "api_key": settings.llm_api_key,
            "model": settings.llm_model,
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
            "timeout": settings.llm_timeout,
            "prompt_prefix": settings.llm_prompt_prefix,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-load OpenAI-compatible client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=self.base_url,
                api_key=self._api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def translate(
        self,
        source: dict[str, str],
        language: LanguageDescriptor,
        session: TranslationSession | None = None,
    ) -> dict[str, str]:
        keys = list(source.keys())
        if not keys:
            return {}

        values = [source[k] for k in keys]
        prompt = build_prompt(values, language.label, self.source_label)

        if session:
            session.report(10, f"{self.display_name}: translating…")

        raw = await self._complete(self.prompt_prefix + prompt)
        translated = self._parse(raw, len(keys))

        result = {
            key: item if isinstance(item, str) else source[key]
            for key, item in zip(keys, translated)
        }

        if session:
            session.report(100, f"{self.display_name} complete ✓")
        return result

    async def _complete(self, content: str) -> str:
        """Send the single request and return the message content."""
        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": content}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    stream=False,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, APITimeoutError) as e:
            raise ProviderTimeoutError(
                f"{self.display_name} timed out after {self.timeout:g}s", self.name
            ) from e
        except APIStatusError as e:
            raise ProviderStatusError(e.status_code, self.name) from e
        except APIConnectionError as e:
            raise ProviderError(f"{self.display_name} unreachable: {e}", self.name) from e

        try:
            return (completion.choices[0].message.content or "").strip()
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderMalformedResponseError(
                f"{self.display_name} returned no choices", self.name
            ) from e

    def _parse(self, raw: str, expected: int) -> list[Any]:
        cleaned = clean_llm_output(raw)
        try:
            translated = json.loads(cleaned)
        except ValueError as e:
            raise ProviderMalformedResponseError(
                f"{self.display_name} returned invalid JSON", self.name
            ) from e

        if not isinstance(translated, list):
            raise ProviderMalformedResponseError(
                f"{self.display_name} did not return a JSON array", self.name
            )
        if len(translated) != expected:
            raise ProviderLengthMismatchError(expected, len(translated), self.name)
        return translated


# =============================================================================
# Per-String Web Translator
# =============================================================================


def parse_web_response(data: Any) -> str:
    """
    Join translated segments from the nested-array payload.

    Shape: [[["translated", "original", ...], ...], ...]. Returns "" when
    nothing usable is found.
    """
    if not isinstance(data, list) or not data or not isinstance(data[0], list):
        return ""
    segments = []
    for entry in data[0]:
        if isinstance(entry, list) and entry and isinstance(entry[0], str) and entry[0]:
            segments.append(entry[0])
    return "".join(segments)


class WebTranslator(TranslationProvider):
    """
    Translate one string per request against the public web endpoint.

    Individual failures keep the source value; the run as a whole only
    stops for cancellation.
    """

    name = "google"
    display_name = "Google Translate"
    abortable = False

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        url: str = "https://translate.googleapis.com/translate_a/single",
        source_code: str = "en",
        request_delay: float = 0.08,
        timeout: float = 10.0,
    ):
        self._client = client
        self.url = url
        self.source_code = source_code
        self.request_delay = request_delay
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> WebTranslator:
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "url": settings.web_translate_url,
            "source_code": settings.source_language,
            "request_delay": settings.web_request_delay,
            "timeout": settings.web_timeout,
        }
        options.update(overrides)
        return cls(**options)

    async def translate(
        self,
        source: dict[str, str],
        language: LanguageDescriptor,
        session: TranslationSession | None = None,
    ) -> dict[str, str]:
        if self._client is not None:
            return await self._translate_all(self._client, source, language, session)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._translate_all(client, source, language, session)

    async def _translate_all(
        self,
        client: httpx.AsyncClient,
        source: dict[str, str],
        language: LanguageDescriptor,
        session: TranslationSession | None,
    ) -> dict[str, str]:
        token = session.token if session else CancellationToken()
        keys = list(source.keys())
        total = len(keys)
        result: dict[str, str] = {}
        failed = 0

        for i, key in enumerate(keys):
            token.raise_if_cancelled()
            if session:
                session.report((i / total) * 100, f"Translating… ({i + 1}/{total})")

            text = source[key]
            try:
                result[key] = await self._translate_one(client, key, text, language.code)
            except PerKeyTransportError as e:
                failed += 1
                logger.debug(f"Keeping source text for {key!r}: {e}")
                result[key] = text

            if i < total - 1:
                await asyncio.sleep(self.request_delay)

        if failed:
            logger.info(f"{self.display_name}: {failed}/{total} strings kept in source language")
        return result

    async def _translate_one(
        self,
        client: httpx.AsyncClient,
        key: str,
        text: str,
        target_code: str,
    ) -> str:
        params = {
            "client": "gtx",
            "sl": self.source_code,
            "tl": target_code,
            "dt": "t",
            "q": text,
        }
        try:
            response = await client.get(self.url, params=params)
        except (httpx.HTTPError, UnicodeError) as e:
            # UnicodeError: text that cannot be URL-encoded, e.g. a lone surrogate
            raise PerKeyTransportError(key, f"request failed: {e}", self.name) from e

        if response.status_code != 200:
            raise PerKeyTransportError(key, f"HTTP {response.status_code}", self.name)

        try:
            data = response.json()
        except ValueError as e:
            raise PerKeyTransportError(key, "invalid JSON", self.name) from e

        return parse_web_response(data) or text
