"""
Host localization boundary.

The host owns a dictionary-of-dictionaries keyed by language code (its source
entry is the source of truth) and a setter that switches the rendered
language. The translator writes into the former, calls the latter, and
watches language changes through a listener rather than by replacing the
setter.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

import yaml

logger = logging.getLogger(__name__)

LanguageListener = Callable[[str], None]


class Host(ABC):
    """The application being localized."""

    source_code: str = "en"

    @property
    @abstractmethod
    def dictionaries(self) -> dict[str, dict[str, str]]:
        """Mutable localization table, keyed by language code."""
        pass

    @property
    @abstractmethod
    def active_language(self) -> str:
        pass

    @abstractmethod
    def set_language(self, code: str) -> None:
        """Switch the active rendering language. Notifies listeners."""
        pass

    @abstractmethod
    def add_listener(self, listener: LanguageListener) -> Callable[[], None]:
        """Subscribe to language changes. Returns an unsubscribe function."""
        pass

    def source_dictionary(self) -> dict[str, str]:
        return self.dictionaries.get(self.source_code, {})


class InMemoryHost(Host):
    """Reference host keeping its table in memory."""

    def __init__(
        self,
        dictionaries: dict[str, dict[str, str]] | None = None,
        source_code: str = "en",
        active: str | None = None,
    ):
        self._dictionaries = dictionaries if dictionaries is not None else {}
        self._dictionaries.setdefault(source_code, {})
        self.source_code = source_code
        self._active = active or source_code
        self._listeners: list[LanguageListener] = []
        self.set_calls: list[str] = []

    @property
    def dictionaries(self) -> dict[str, dict[str, str]]:
        return self._dictionaries

    @property
    def active_language(self) -> str:
        return self._active

    def set_language(self, code: str) -> None:
        self._active = code
        self.set_calls.append(code)
        for listener in list(self._listeners):
            try:
                listener(code)
            except Exception:
                logger.exception("Language listener failed")

    def add_listener(self, listener: LanguageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove


# =============================================================================
# Source loading
# =============================================================================


def load_source_dictionary(path: str | Path) -> dict[str, str]:
    """
    Load a flat source dictionary from YAML or JSON.

    Nested values are rejected: the source must map string keys to strings.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Source dictionary must be a mapping: {path}")

    source: dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(value, str):
            raise ValueError(f"Source value for {key!r} is not a string: {path}")
        source[str(key)] = value
    return source
