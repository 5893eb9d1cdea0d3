"""Date helpers for sync windows."""

import calendar
import re
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def local_today(tz_name: Optional[str] = None) -> date:
    """
    Get today's date in the stores' timezone.

    Args:
        tz_name: IANA timezone name (defaults to settings.sync_timezone)

    Returns:
        Today's date in that timezone
    """
    if tz_name is None:
        from saron.core.config import get_settings

        tz_name = get_settings().sync_timezone
    return datetime.now(ZoneInfo(tz_name)).date()


def month_bounds(ref_date: date) -> tuple[date, date]:
    """
    Get the first and last day of the month containing ref_date.

    Examples:
        >>> month_bounds(date(2024, 2, 10))
        (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))
    """
    last_day = calendar.monthrange(ref_date.year, ref_date.month)[1]
    return ref_date.replace(day=1), ref_date.replace(day=last_day)


def parse_iso_date(value: str) -> date:
    """
    Parse a strict YYYY-MM-DD date.

    Raises:
        ValueError: If the value is not in YYYY-MM-DD format
    """
    if not ISO_DATE_RE.match(value or ""):
        raise ValueError(f"Invalid date format: {value}. Expected YYYY-MM-DD.")
    return date.fromisoformat(value)


def parse_erp_date(value: str) -> date:
    """
    Parse a date as returned by the ERP.

    Accepts ISO dates with or without a time part ("2024-01-15",
    "2024-01-15T10:30:00", "2024-01-15 10:30:00") and Brazilian
    DD/MM/YYYY dates.

    Raises:
        ValueError: If the value matches none of the formats
    """
    text = str(value).strip()
    if "/" in text:
        return datetime.strptime(text.split(" ")[0], "%d/%m/%Y").date()
    return date.fromisoformat(text[:10])
