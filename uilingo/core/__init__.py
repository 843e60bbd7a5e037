"""
Core module - shared infrastructure.

This module contains:
- events: Status/control bus for external tooling
- utils: Shared utility functions
"""

from uilingo.core.events import (
    PLUGIN_ID,
    Event,
    EventBus,
    EventTypes,
    Subscription,
    get_event_bus,
    reset_event_bus,
)
from uilingo.core.utils import elapsed_ms, generate_id, utc_now

__all__ = [
    "PLUGIN_ID",
    "Event",
    "EventBus",
    "EventTypes",
    "Subscription",
    "get_event_bus",
    "reset_event_bus",
    "elapsed_ms",
    "generate_id",
    "utc_now",
]
