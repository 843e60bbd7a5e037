"""
Language roster and utilities.

Builtin languages are rendered by the host's own localization and bypass
translation entirely. Every other entry is produced on demand.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LanguageDescriptor:
    """A language the translator knows about."""

    code: str
    label: str      # Native, human-readable name (sent to the LLM)
    builtin: bool = False
    flag: str = ""


LANGUAGES: tuple[LanguageDescriptor, ...] = (
    # === Builtin: delegated to the host ===
    LanguageDescriptor("en", "English", builtin=True, flag="🇬🇧"),
    LanguageDescriptor("sk", "Slovenčina", builtin=True, flag="🇸🇰"),

    # === Translated on demand ===
    LanguageDescriptor("de", "Deutsch", flag="🇩🇪"),
    LanguageDescriptor("fr", "Français", flag="🇫🇷"),
    LanguageDescriptor("cs", "Čeština", flag="🇨🇿"),
    LanguageDescriptor("hu", "Magyar", flag="🇭🇺"),
    LanguageDescriptor("pl", "Polski", flag="🇵🇱"),
    LanguageDescriptor("es", "Español", flag="🇪🇸"),
    LanguageDescriptor("it", "Italiano", flag="🇮🇹"),
    LanguageDescriptor("uk", "Українська", flag="🇺🇦"),
    LanguageDescriptor("ro", "Română", flag="🇷🇴"),
    LanguageDescriptor("hr", "Hrvatski", flag="🇭🇷"),
)




# =============================================================================
# Utilities
# =============================================================================


def normalize_language_code(code: str) -> str:
    """Normalize language code to standard form."""
    return code.lower().strip()


def get_language(
    code: str,
    roster: tuple[LanguageDescriptor, ...] | list[LanguageDescriptor] = LANGUAGES,
) -> LanguageDescriptor | None:
    """Look up a roster entry by code."""
    code = normalize_language_code(code)
    for lang in roster:
        if lang.code == code:
            return lang
    return None
