"""
uilingo - on-demand UI-string translation for a host application.

Builtin languages are left to the host. Everything else is translated by a
local LLM (falling back to a per-string web translator), cached, and
injected into the host's localization table.
"""

__version__ = "1.0.0"
