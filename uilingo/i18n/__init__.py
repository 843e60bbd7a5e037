"""
Internationalization - on-demand translation of the host's UI strings.

Design:
1. Builtin languages go straight to the host
2. Translations are cached per language, whole dictionaries at a time
3. Local LLM first, per-string web translator as fallback
4. One translation in flight; a newer request supersedes it

Usage:
    from uilingo.i18n import InMemoryHost, TranslationOrchestrator

    host = InMemoryHost({"en": {"save": "Save", "quit": "Quit"}})
    orchestrator = TranslationOrchestrator.from_settings(host)
    await orchestrator.start()

    outcome = await orchestrator.translate("de")
    host.dictionaries["de"]  # {"save": "Speichern", "quit": "Beenden"}
"""

from uilingo.i18n.cache import (
    Cache,
    CacheStore,
    InMemoryCacheStore,
    JsonFileCacheStore,
    create_cache_store,
)
from uilingo.i18n.errors import (
    AllProvidersFailedError,
    PerKeyTransportError,
    ProviderError,
    ProviderLengthMismatchError,
    ProviderMalformedResponseError,
    ProviderStatusError,
    ProviderTimeoutError,
    TranslationCancelled,
    TranslationError,
    UnknownLanguageError,
)
from uilingo.i18n.host import Host, InMemoryHost, load_source_dictionary
from uilingo.i18n.languages import (
    LANGUAGES,
    LanguageDescriptor,
    get_language,
)
from uilingo.i18n.orchestrator import (
    OutcomeStatus,
    TranslationOrchestrator,
    TranslationOutcome,
)
from uilingo.i18n.providers import BulkLLMTranslator, TranslationProvider, WebTranslator
from uilingo.i18n.session import CancellationToken, SessionState, TranslationSession

__all__ = [
    # Orchestration
    "TranslationOrchestrator",
    "TranslationOutcome",
    "OutcomeStatus",
    "TranslationSession",
    "SessionState",
    "CancellationToken",
    # Providers
    "TranslationProvider",
    "BulkLLMTranslator",
    "WebTranslator",
    # Cache
    "Cache",
    "CacheStore",
    "JsonFileCacheStore",
    "InMemoryCacheStore",
    "create_cache_store",
    # Host
    "Host",
    "InMemoryHost",
    "load_source_dictionary",
    # Errors
    "TranslationError",
    "UnknownLanguageError",
    "TranslationCancelled",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderStatusError",
    "ProviderMalformedResponseError",
    "ProviderLengthMismatchError",
    "PerKeyTransportError",
    "AllProvidersFailedError",
    # Language utilities
    "LanguageDescriptor",
    "LANGUAGES",
    "get_language",
]
