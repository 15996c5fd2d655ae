"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone
from typing import Optional
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    MongoDB hands back naive datetimes unless the client is tz-aware,
    so everything read from storage passes through here.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime

    Args:
        iso_string: ISO formatted datetime string

    Returns:
        Datetime object in UTC
    """
    return ensure_utc(date_parser.isoparse(iso_string))


def term_length_days(start: datetime, end: Optional[datetime] = None) -> int:
    """Whole days between a term start and its end (or now for open terms)"""
    end = ensure_utc(end) if end else utc_now()
    return max(0, (end - ensure_utc(start)).days)
