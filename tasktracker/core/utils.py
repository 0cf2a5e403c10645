"""
Shared utility functions for the task tracker.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import math
import re
import uuid
from datetime import datetime, timezone


_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def generate_id() -> str:
    """
    Generate a unique document ID.
    
    Returns:
        A 24-character lowercase hex string like "65f1c2a9e4b0a1b2c3d4e5f6"
    """
    return uuid.uuid4().hex[:24]


def is_valid_id(value: str) -> bool:
    """Check that a value has the shape of a document ID."""
    return bool(_ID_PATTERN.match(value or ""))


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def page_count(total: int, limit: int) -> int:
    """Number of pages needed to show `total` items, `limit` per page."""
    return math.ceil(total / limit) if limit else 0
