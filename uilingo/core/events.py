"""
Status and control channel.

External tooling watches the translator through this bus and can drive it
with a handful of control messages. Delivery is fire-and-forget: a failing
handler is logged and skipped, never retried, and never reaches the
publisher.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from uilingo.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

PLUGIN_ID = "uilingo"

# Type for event handlers
EventHandler = Callable[["Event"], Awaitable[None]]


class EventTypes:
    """Fixed message vocabulary."""

    # Outgoing status
    READY = "ready"
    TRANSLATED = "translated"
    LANG_APPLIED = "lang_applied"
    CACHE_CLEARED = "cache_cleared"
    ERROR = "error"
    STATUS = "status"

    # Incoming control
    TRANSLATE = "translate"
    CLEAR_CACHE = "clear_cache"
    GET_STATUS = "get_status"


@dataclass
class Event:
    """
    A message on the bus.

    Events are immutable records of something that happened (or, for control
    messages, something that was asked for).
    """

    event_type: str  # e.g., "translated", "clear_cache"
    payload: dict[str, Any] = field(default_factory=dict)
    plugin: str = PLUGIN_ID

    # Tracing
    id: str = field(default_factory=lambda: generate_id("evt"))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the flat wire shape: {"type": ..., "plugin": ..., **payload}."""
        return {
            **self.payload,
            "type": self.event_type,
            "plugin": self.plugin,
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Deserialize from the flat wire shape."""
        reserved = {"type", "plugin", "id", "timestamp"}
        kwargs: dict[str, Any] = {
            "event_type": data["type"],
            "payload": {k: v for k, v in data.items() if k not in reserved},
            "plugin": data.get("plugin", PLUGIN_ID),
        }
        if "id" in data:
            kwargs["id"] = data["id"]
        if "timestamp" in data:
            kwargs["timestamp"] = datetime.fromisoformat(data["timestamp"])
        return cls(**kwargs)


@dataclass
class Subscription:
    """A subscription to events matching a pattern."""

    pattern: str  # e.g., "translated" or "*"
    handler: EventHandler

    def matches(self, event: Event) -> bool:
        return fnmatch.fnmatch(event.event_type, self.pattern)


class EventBus:
    """
    In-memory publish/subscribe bus.

    Suitable for a single process. A cross-process channel can be put behind
    the same publish/subscribe surface.
    """

    def __init__(self, max_history: int = 1000):
        self._subscriptions: list[Subscription] = []
        self._event_history: list[Event] = []
        self._max_history = max_history

    def subscribe(self, pattern: str, handler: EventHandler) -> Subscription:
        """
        Subscribe to events matching a pattern.

        Args:
            pattern: Event type pattern (supports wildcards like "*")
            handler: Async function to handle matching events

        Returns:
            The subscription object (can be used to unsubscribe)
        """
        subscription = Subscription(pattern=pattern, handler=handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription."""
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def publish(self, event: Event) -> None:
        """Deliver an event to every matching handler. Never raises."""
        self._event_history.append(event)
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        matching = [s for s in self._subscriptions if s.matches(event)]
        for subscription in matching:
            try:
                await subscription.handler(event)
            except Exception:
                # Log error but don't stop other handlers
                logger.exception(f"Error in event handler for {event.event_type}")

    async def emit(self, event_type: str, **payload: Any) -> Event:
        """Build and publish an event in one step."""
        event = Event(event_type=event_type, payload=payload)
        await self.publish(event)
        return event

    def get_history(self, event_type: str | None = None, limit: int = 100) -> list[Event]:
        """Query event history with optional type filter."""
        results = self._event_history
        if event_type:
            results = [e for e in results if fnmatch.fnmatch(e.event_type, event_type)]
        return results[-limit:]


# Singleton bus for the application
_default_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the default event bus instance."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def reset_event_bus() -> None:
    """Reset the default event bus (useful for testing)."""
    global _default_bus
    _default_bus = None
