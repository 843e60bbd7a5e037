"""
Translation error taxonomy.

Provider errors are fallback triggers and stay inside the orchestrator.
Only UnknownLanguageError and AllProvidersFailedError reach callers.
"""

from __future__ import annotations


class TranslationError(Exception):
    """Base exception for translation errors."""
    pass


class UnknownLanguageError(TranslationError):
    """Requested code is not in the language roster."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unknown language: {code}")


class TranslationCancelled(TranslationError):
    """The session was cancelled. Not a failure."""

    def __init__(self, message: str = "cancelled"):
        super().__init__(message)


# =============================================================================
# Provider errors
# =============================================================================


class ProviderError(TranslationError):
    """A provider could not produce a translation."""

    def __init__(self, message: str, provider: str = ""):
        self.provider = provider
        super().__init__(message)


class ProviderTimeoutError(ProviderError):
    """Provider request exceeded its time budget."""
    pass


class ProviderStatusError(ProviderError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, provider: str = ""):
        self.status_code = status_code
        super().__init__(f"{provider or 'provider'} HTTP {status_code}", provider)


class ProviderMalformedResponseError(ProviderError):
    """Provider payload could not be parsed into a translation."""
    pass


class ProviderLengthMismatchError(ProviderError):
    """Provider returned a different number of strings than it was sent."""

    def __init__(self, expected: int, received: int, provider: str = ""):
        self.expected = expected
        self.received = received
        super().__init__(
            f"{provider or 'provider'} length mismatch: expected {expected}, got {received}",
            provider,
        )


class PerKeyTransportError(ProviderError):
    """A single string failed. Recovered locally by keeping the source value."""

    def __init__(self, key: str, message: str, provider: str = ""):
        self.key = key
        super().__init__(message, provider)


class AllProvidersFailedError(TranslationError):
    """Every provider in the chain failed."""

    def __init__(self, code: str, errors: list[Exception]):
        self.code = code
        self.errors = errors
        message = str(errors[-1]) if errors else "no translation provider available"
        super().__init__(message)
