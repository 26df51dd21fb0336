from __future__ import annotations

from datetime import date, datetime, timezone

from ..core.constants import DATE_FORMAT
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, DATE_FORMAT).date()


def to_iso_date(value: date | str) -> str:
    """Normalize a date or YYYY-MM-DD string to the wire date string."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("date is required")
    try:
        return parse_iso_date(value.strip()).strftime(DATE_FORMAT)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def utc_now() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat().replace("+00:00", "Z")


def today_iso() -> str:
    return utc_now().date().strftime(DATE_FORMAT)
