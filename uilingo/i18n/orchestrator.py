"""
Translation orchestrator.

Resolves a language request to one of three paths:

    builtin   -> host renders it natively, nothing to do but switch
    cached    -> inject the stored dictionary and switch, no network
    otherwise -> fetch through the provider chain, commit, switch

Only one fetch runs at a time. A newer request cancels the one in flight
and waits for it to wind down before going ahead, so the most recent
request always wins and no two commits interleave.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from uilingo import __version__
from uilingo.config import Settings, get_settings
from uilingo.core.events import PLUGIN_ID, Event, EventBus, EventTypes, Subscription
from uilingo.core.utils import elapsed_ms
from uilingo.i18n.cache import CacheStore, JsonFileCacheStore
from uilingo.i18n.errors import (
    AllProvidersFailedError,
    TranslationCancelled,
    TranslationError,
    UnknownLanguageError,
)
from uilingo.i18n.host import Host
from uilingo.i18n.languages import LANGUAGES, LanguageDescriptor, get_language
from uilingo.i18n.providers import BulkLLMTranslator, TranslationProvider, WebTranslator
from uilingo.i18n.session import ProgressListener, SessionState, TranslationSession
from uilingo.integrations.sentry import capture_exception

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    DELEGATED = "delegated"   # Builtin language, host handled it
    APPLIED = "applied"       # Translation injected and active
    CANCELLED = "cancelled"   # Cancelled or superseded by a newer request


@dataclass
class TranslationOutcome:
    """What a translate() call ended up doing."""

    code: str
    status: OutcomeStatus
    source: str | None = None  # builtin, cache, or the provider's name
    dictionary: dict[str, str] | None = None

    @property
    def applied(self) -> bool:
        return self.status in (OutcomeStatus.APPLIED, OutcomeStatus.DELEGATED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "status": self.status.value,
            "source": self.source,
        }


def _log_toast(message: str) -> None:
    logger.info(f"[toast] {message}")


class TranslationOrchestrator:
    """
    The translation engine.

    Usage:
        orchestrator = TranslationOrchestrator.from_settings(host, bus=bus)
        await orchestrator.start()

        await orchestrator.translate("de")   # fetch, cache, apply
        await orchestrator.translate("de")   # cache hit
        orchestrator.cancel()                # abort whatever is in flight
    """

    def __init__(
        self,
        host: Host,
        cache_store: CacheStore,
        providers: list[TranslationProvider] | None = None,
        bus: EventBus | None = None,
        roster: tuple[LanguageDescriptor, ...] | list[LanguageDescriptor] = LANGUAGES,
        toast: Callable[[str], None] | None = None,
        settle_delay: float = 0.5,
    ):
        self.host = host
        self.cache_store = cache_store
        self.providers = providers if providers is not None else [
            BulkLLMTranslator.from_settings(),
            WebTranslator.from_settings(),
        ]
        self.bus = bus
        self.roster = tuple(roster)
        self.settle_delay = settle_delay
        self._toast = toast or _log_toast

        self._state = SessionState.IDLE
        self._session: TranslationSession | None = None
        self._ticket = 0
        self._active = host.active_language
        self._progress_listeners: list[ProgressListener] = []
        self._remove_host_listener: Callable[[], None] | None = None
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        host: Host,
        settings: Settings | None = None,
        bus: EventBus | None = None,
        **kwargs: Any,
    ) -> TranslationOrchestrator:
        settings = settings or get_settings()
        kwargs.setdefault("cache_store", JsonFileCacheStore(settings.cache_path))
        kwargs.setdefault("providers", [
            BulkLLMTranslator.from_settings(settings),
            WebTranslator.from_settings(settings),
        ])
        kwargs.setdefault("settle_delay", settings.fallback_settle_delay)
        return cls(host, bus=bus, **kwargs)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Begin tracking host language changes and announce readiness."""
        if self._remove_host_listener is None:
            self._remove_host_listener = self.host.add_listener(self._on_language_changed)
        self._active = self.host.active_language
        await self._emit(EventTypes.READY, version=__version__)

    async def close(self) -> None:
        """Cancel work in flight and detach from host and bus."""
        self.cancel(quiet=True)
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._remove_host_listener:
            self._remove_host_listener()
            self._remove_host_listener = None
        self.detach()

    def _on_language_changed(self, code: str) -> None:
        self._active = code

    @property
    def active(self) -> str:
        """Language the host is currently rendering."""
        return self._active

    @property
    def session(self) -> TranslationSession | None:
        """The fetch in flight, if any."""
        return self._session

    @property
    def state(self) -> SessionState:
        return self._state

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._progress_listeners.append(listener)

    # =========================================================================
    # Translate
    # =========================================================================

    async def translate(self, code: str) -> TranslationOutcome:
        """
        Switch the host to `code`, translating first if needed.

        Raises:
            UnknownLanguageError: code is not in the roster
            AllProvidersFailedError: no provider produced a translation
        """
        language = get_language(code, self.roster)
        if language is None:
            self._toast(f"Unknown language: {code}")
            raise UnknownLanguageError(code)

        self._ticket += 1
        ticket = self._ticket

        await self._preempt()
        if ticket != self._ticket:
            return TranslationOutcome(language.code, OutcomeStatus.CANCELLED)

        self._state = SessionState.RESOLVING

        if language.builtin:
            return self._delegate(language)

        cache = await self.cache_store.load()
        if ticket != self._ticket:
            self._settle_state()
            return TranslationOutcome(language.code, OutcomeStatus.CANCELLED)

        cached = cache.get(language.code)
        if cached is not None:
            return await self._apply_cached(language, cached)

        return await self._fetch_and_commit(language)

    async def _preempt(self) -> None:
        """Cancel the fetch in flight and wait until it has wound down."""
        session = self._session
        if session is None or not session.active:
            return
        if session.state != SessionState.APPLYING:
            logger.info(f"Superseding in-flight translation to {session.code}")
            session.token.cancel()
            session.hide()
        await session.finished.wait()

    def _delegate(self, language: LanguageDescriptor) -> TranslationOutcome:
        self._state = SessionState.BUILTIN_DELEGATE
        self.host.set_language(language.code)
        self._settle_state()
        return TranslationOutcome(language.code, OutcomeStatus.DELEGATED, source="builtin")

    async def _apply_cached(
        self,
        language: LanguageDescriptor,
        cached: dict[str, str],
    ) -> TranslationOutcome:
        self._state = SessionState.CACHE_HIT
        self._apply(language, cached)
        self._settle_state()
        self._toast(f"{language.flag} {language.label} (cached)".strip())
        await self._emit(EventTypes.LANG_APPLIED, code=language.code, source="cache")
        return TranslationOutcome(
            language.code, OutcomeStatus.APPLIED, source="cache", dictionary=dict(cached)
        )

    async def _fetch_and_commit(self, language: LanguageDescriptor) -> TranslationOutcome:
        session = TranslationSession(
            language=language,
            listeners=list(self._progress_listeners),
        )
        self._session = session
        self._state = session.state = SessionState.FETCHING

        source = dict(self.host.source_dictionary())
        first = self.providers[0].display_name if self.providers else "translator"
        session.show(f"Connecting to {first}…")

        try:
            try:
                translated, provider_name = await self._fetch(session, source)
                session.token.raise_if_cancelled()
            except TranslationCancelled:
                session.state = SessionState.CANCELLED
                logger.info(f"Translation to {language.code} cancelled")
                return TranslationOutcome(language.code, OutcomeStatus.CANCELLED)
            except AllProvidersFailedError as e:
                session.state = SessionState.FAILED
                await self._report_failure(language, e)
                raise

            await self._commit(session, translated, provider_name)
            return TranslationOutcome(
                language.code,
                OutcomeStatus.APPLIED,
                source=provider_name,
                dictionary=translated,
            )
        finally:
            session.hide()
            if self._session is session:
                self._session = None
            self._settle_state()
            session.finished.set()

    async def _fetch(
        self,
        session: TranslationSession,
        source: dict[str, str],
    ) -> tuple[dict[str, str], str]:
        """Walk the provider chain until one succeeds."""
        errors: list[Exception] = []

        for index, provider in enumerate(self.providers):
            session.token.raise_if_cancelled()
            if index > 0:
                previous = self.providers[index - 1]
                session.report(
                    5, f"{previous.display_name} unavailable, trying {provider.display_name}…"
                )
                await asyncio.sleep(self.settle_delay)
                session.token.raise_if_cancelled()

            session.provider = provider.name
            try:
                translated = await self._call_provider(provider, source, session)
            except TranslationCancelled:
                raise
            except Exception as e:
                logger.warning(
                    f"{provider.display_name} failed for {session.code}: {e}",
                    exc_info=not isinstance(e, TranslationError),
                )
                errors.append(e)
                continue

            return _conform(source, translated), provider.name

        raise AllProvidersFailedError(session.code, errors)

    async def _call_provider(
        self,
        provider: TranslationProvider,
        source: dict[str, str],
        session: TranslationSession,
    ) -> dict[str, str]:
        if not provider.abortable:
            return await provider.translate(source, session.language, session)

        # Run as its own task so cancel() can abort the outstanding request
        task = asyncio.ensure_future(provider.translate(source, session.language, session))
        remove = session.token.on_cancel(task.cancel)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if session.cancelled and not (current and current.cancelling()):
                raise TranslationCancelled() from None
            raise
        finally:
            remove()

    async def _commit(
        self,
        session: TranslationSession,
        translated: dict[str, str],
        provider_name: str,
    ) -> None:
        """Persist to cache, inject into the host, switch, notify."""
        language = session.language
        self._state = session.state = SessionState.APPLYING

        cache = await self.cache_store.load()
        cache[language.code] = dict(translated)
        await self.cache_store.save(cache)

        self._apply(language, translated)
        logger.info(
            f"Applied {language.code} translated by {provider_name} "
            f"in {elapsed_ms(session.started_at)} ms"
        )

        session.hide()
        self._toast(f"{language.flag} {language.label} applied".strip())
        await self._emit(EventTypes.TRANSLATED, code=language.code, source=provider_name)

    def _apply(self, language: LanguageDescriptor, dictionary: dict[str, str]) -> None:
        self.host.dictionaries[language.code] = dict(dictionary)
        self.host.set_language(language.code)

    async def _report_failure(self, language: LanguageDescriptor, error: AllProvidersFailedError) -> None:
        self._toast(f"Translation failed: {error}")
        capture_exception(
            error,
            code=language.code,
            providers=[p.name for p in self.providers],
        )
        await self._emit(EventTypes.ERROR, code=language.code, error=str(error))

    def _settle_state(self) -> None:
        if self._session is None:
            self._state = SessionState.IDLE

    # =========================================================================
    # Cancel / cache / status
    # =========================================================================

    def cancel(self, quiet: bool = False) -> bool:
        """
        Cancel the fetch in flight.

        Progress is torn down at once. Returns False if nothing was running
        or the result is already being committed.
        """
        session = self._session
        if session is None or not session.active:
            return False
        if session.state == SessionState.APPLYING:
            return False
        cancelled = session.token.cancel()
        session.hide()
        if cancelled and not quiet:
            self._toast("Translation cancelled.")
        return cancelled

    async def clear_cache(self) -> None:
        """Drop every stored translation."""
        await self.cache_store.clear()
        self._toast("Translation cache cleared.")
        await self._emit(EventTypes.CACHE_CLEARED)

    async def cached_codes(self) -> list[str]:
        return list(await self.cache_store.load())

    async def status(self) -> dict[str, Any]:
        return {
            "plugin": PLUGIN_ID,
            "version": __version__,
            "active": self._active,
            "langs": [lang.code for lang in self.roster],
            "cached": await self.cached_codes(),
        }

    async def languages(self) -> list[dict[str, Any]]:
        """Roster rows with cached/active flags."""
        cached = set(await self.cached_codes())
        return [
            {
                "code": lang.code,
                "label": lang.label,
                "flag": lang.flag,
                "builtin": lang.builtin,
                "cached": not lang.builtin and lang.code in cached,
                "active": lang.code == self._active,
            }
            for lang in self.roster
        ]

    # =========================================================================
    # Control channel
    # =========================================================================

    def attach(self, bus: EventBus | None = None) -> None:
        """
        Accept control messages from the bus.

        translate {code} runs in the background; clear_cache and get_status
        are answered inline.
        """
        bus = bus or self.bus
        if bus is None:
            raise ValueError("No event bus to attach to")
        self.bus = bus
        self.detach()
        self._subscriptions = [
            bus.subscribe(EventTypes.TRANSLATE, self._handle_translate),
            bus.subscribe(EventTypes.CLEAR_CACHE, self._handle_clear_cache),
            bus.subscribe(EventTypes.GET_STATUS, self._handle_get_status),
        ]

    def detach(self) -> None:
        if self.bus:
            for subscription in self._subscriptions:
                self.bus.unsubscribe(subscription)
        self._subscriptions = []

    async def join(self) -> None:
        """Wait for background translations started from the bus."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _handle_translate(self, event: Event) -> None:
        code = event.payload.get("code")
        if not code:
            return
        task = asyncio.create_task(self.translate(str(code)))
        self._tasks.add(task)
        task.add_done_callback(self._command_done)

    async def _handle_clear_cache(self, event: Event) -> None:
        await self.clear_cache()

    async def _handle_get_status(self, event: Event) -> None:
        status = await self.status()
        status.pop("plugin", None)
        await self._emit(EventTypes.STATUS, **status)

    def _command_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, TranslationError):
            logger.info(f"Bus translate command failed: {error}")
        elif error is not None:
            logger.error("Bus translate command crashed", exc_info=error)

    async def _emit(self, event_type: str, **payload: Any) -> None:
        if self.bus is None:
            return
        try:
            await self.bus.emit(event_type, **payload)
        except Exception:
            logger.exception(f"Could not deliver {event_type} notification")


def _conform(source: dict[str, str], translated: dict[str, str]) -> dict[str, str]:
    """Force the source key set and order; missing or non-string values keep the source."""
    result: dict[str, str] = {}
    for key, value in source.items():
        candidate = translated.get(key)
        result[key] = candidate if isinstance(candidate, str) else value
    return result
