"""
Translation sessions.

A session is the lifetime of one non-cached translation attempt. It carries
the cancellation token shared by the orchestrator and the providers, and the
progress that gets reported to whoever is watching.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from uilingo.core.utils import utc_now
from uilingo.i18n.errors import TranslationCancelled
from uilingo.i18n.languages import LanguageDescriptor

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Orchestrator states."""

    IDLE = "idle"
    RESOLVING = "resolving"
    BUILTIN_DELEGATE = "builtin_delegate"
    CACHE_HIT = "cache_hit"
    FETCHING = "fetching"
    APPLYING = "applying"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationToken:
    """
    Cooperative cancellation shared between logical callers.

    Checkpoints call raise_if_cancelled(). Callbacks registered with
    on_cancel() run once, at the moment cancel() is first called; this is
    how an outstanding request gets hard-aborted.
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Request cancellation. Returns False if already cancelled."""
        if self._cancelled:
            return False
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")
        return True

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback for cancellation.

        Runs immediately if already cancelled. Returns a function that
        unregisters it.
        """
        if self._cancelled:
            callback()
            return lambda: None

        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise TranslationCancelled()


# Called with the session after every progress change
ProgressListener = Callable[["TranslationSession"], None]


@dataclass
class TranslationSession:
    """Ephemeral state for one translation attempt."""

    language: LanguageDescriptor
    token: CancellationToken = field(default_factory=CancellationToken)

    state: SessionState = SessionState.RESOLVING
    provider: str | None = None  # Provider currently in use

    # Progress
    progress: float = 0.0  # 0-100
    label: str = ""
    visible: bool = False  # Whether a progress indicator is showing

    listeners: list[ProgressListener] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def code(self) -> str:
        return self.language.code

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def active(self) -> bool:
        return not self.finished.is_set()

    def show(self, label: str) -> None:
        """Start showing progress."""
        self.progress = 0.0
        self.label = label
        self.visible = True
        self._notify()

    def report(self, percent: float, label: str | None = None) -> None:
        """Update progress. Ignored once the indicator has been torn down."""
        if not self.visible:
            return
        self.progress = max(0.0, min(100.0, percent))
        if label:
            self.label = label
        self._notify()

    def hide(self) -> None:
        """Tear down the progress indicator."""
        if not self.visible:
            return
        self.visible = False
        self._notify()

    def _notify(self) -> None:
        for listener in list(self.listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Progress listener failed")
