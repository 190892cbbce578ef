"""Small time helpers used for record display and the outcome log."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp_milli(ts: datetime) -> str:
    """Format like ``Jan _2 15:04:05.000`` (day padded with a space)."""
    return f"{ts.strftime('%b')} {ts.day:>2} {ts.strftime('%H:%M:%S')}.{ts.microsecond // 1000:03d}"


def desc_duration(d: timedelta | float) -> str:
    """Human-readable description of how long ago something happened."""
    seconds = d.total_seconds() if isinstance(d, timedelta) else float(d)
    if seconds < 60:
        return f"{seconds:0.1f} sec ago"
    if seconds < 3600:
        return f"{seconds / 60:0.1f} min ago"
    if seconds < 86400:
        return f"{seconds / 3600:0.1f} hrs ago"
    return f"{seconds / 86400:0.1f} days ago"
