"""RFC 3339 timestamp helpers for index files."""

from __future__ import annotations

from datetime import datetime, timezone

EPOCH = "1970-01-01T00:00:00Z"


def format_timestamp(dt: datetime) -> str:
    """Render ``dt`` in UTC as ``YYYY-MM-DDTHH:MM:SS[.ffffff]Z``."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    out = dt.strftime("%Y-%m-%dT%H:%M:%S")
    if dt.microsecond:
        out += f".{dt.microsecond:06d}"
    return out + "Z"


def from_mtime(mtime: float) -> str:
    return format_timestamp(datetime.fromtimestamp(mtime, tz=timezone.utc))


def normalize_timestamp(value: object) -> str:
    """Accept either a string or the datetime PyYAML makes of bare timestamps."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if value is None:
        return ""
    return str(value)


def timestamp_sort_key(value: str) -> tuple[str, str]:
    """Order ``...SSZ`` and ``...SS.fffffffffZ`` stamps chronologically."""
    stamp = value.rstrip("Z")
    main, _, frac = stamp.partition(".")
    return (main, frac.ljust(9, "0")[:9])
