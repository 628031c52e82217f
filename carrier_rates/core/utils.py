"""
Core Utilities

Shared helpers used across the package.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def utc_isoformat() -> str:
    """Current UTC time as an ISO-8601 string."""
    return utcnow().isoformat()
