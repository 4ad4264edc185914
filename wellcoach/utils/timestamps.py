"""
Timestamp helpers for ledger storage and display.
"""

from datetime import datetime
from typing import Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as stored in the ledger.

    Returns None for empty or unparseable values.
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp for storage (None stays None)."""
    return value.isoformat() if value else None


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as e.g. '1h 5m', '12m 30s'."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {secs}s"
