"""Calendar-day normalization in the fixed reference timezone (UTC+7)."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from .models import ValidationError

REFERENCE_OFFSET = timedelta(hours=7)


def normalize(instant: datetime | date) -> date:
    """Return the calendar day of ``instant`` in the reference timezone.

    Naive datetimes are local wall-clock times, which is what a date picker
    hands back. A plain ``date`` is already a calendar day and is returned
    unchanged, so normalizing twice gives the same day.
    """
    if not isinstance(instant, datetime):
        return instant
    utc = instant.astimezone(timezone.utc)
    return (utc + REFERENCE_OFFSET).date()


def today(now: datetime | None = None) -> date:
    return normalize(now if now is not None else datetime.now(timezone.utc))


def parse_day(raw: str) -> date:
    """Parse a ``YYYY-MM-DD`` string."""
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        raise ValidationError(f"invalid date: {raw.strip()!r} (expected YYYY-MM-DD)") from None
