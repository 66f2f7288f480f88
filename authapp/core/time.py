"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """Render a stored timestamp as ISO-8601, marking naive values as UTC."""

    if value is None:
        return None
    out = value.isoformat()
    if not value.tzinfo:
        out += "Z"
    return out


__all__ = ["isoformat_utc", "utcnow"]
