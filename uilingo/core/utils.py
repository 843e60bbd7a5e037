"""
Small helpers shared by the bus and the translation sessions.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """Short unique id, e.g. "evt_a1b2c3d4e5f6" for generate_id("evt")."""
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(since: datetime) -> int:
    """Milliseconds from `since` until now."""
    return int((utc_now() - since).total_seconds() * 1000)
