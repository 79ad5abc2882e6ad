"""Shared utility functions used across Blueprint modules."""
from __future__ import annotations

import math
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

# Injectable ports: every component that stamps times or ids takes these.
Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


def days_from(now: datetime, days: int) -> str:
    """Return the ISO date (``YYYY-MM-DD``) *days* after *now*."""
    return (now + timedelta(days=days)).date().isoformat()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (``50 * 0.65`` -> 33, not ``round``'s 32)."""
    return int(math.floor(value + 0.5 + 1e-9))
