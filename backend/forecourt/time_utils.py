# Overview: UTC-naive time handling for shift windows, history timestamps and API output.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Closure time (closed_at, audit created_at) in UTC, tzinfo stripped."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a shift boundary sent by a station terminal.

    Terminals send either UTC with "Z", an offset, or a naive local-looking
    string that is taken as UTC. The result is UTC-naive, which is how shift
    windows, meter read_at and sold_at are stored.

    Raises:
        ValueError: if the text is not ISO-8601
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Stored UTC-naive datetime -> "YYYY-MM-DDTHH:MM:SSZ" for JSON responses."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def shift_key_parts(started_at: datetime, ended_at: datetime) -> tuple[date, str, str]:
    """
    Split a shift window into its uniqueness key parts.

    Returns (start calendar date, start "HH:MM", end "HH:MM"), all in UTC.
    Seconds are ignored so that 06:00:00 and 06:00:59 collide. A night
    shift ending after midnight keys on the date it started.
    """
    return (
        started_at.date(),
        started_at.strftime("%H:%M"),
        ended_at.strftime("%H:%M"),
    )


def shift_midpoint(started_at: datetime, ended_at: datetime) -> datetime:
    """Timestamp for product sales of a shift; never falls in a neighbouring shift."""
    return started_at + (ended_at - started_at) / 2
