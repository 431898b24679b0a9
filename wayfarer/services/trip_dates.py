"""Calendar-date helpers for trip validation.

Trip dates are calendar days, not instants. Converting a stored
``2025-03-10T00:00:00Z`` through a local timezone can shift it to the 9th, so
every comparison here works on the ``YYYY-MM-DD`` part only.
"""

from datetime import date, datetime, timedelta

REASON_DEPARTURE_PAST = "Departure date is in the past"
REASON_DEPARTURE_TOO_SOON = "Departure date must be at least 1 day in the future"
REASON_RETURN_BEFORE_DEPARTURE = "Return date is before departure date"

MIN_LEAD_DAYS = 1


def parse_calendar_date(value: date | datetime | str) -> date:
    """Calendar date of a ``date``, ``datetime`` or ISO string, without tz conversion."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip().split("T")[0])


def format_calendar_date(value: date | datetime | str) -> str:
    return parse_calendar_date(value).isoformat()


def validate_trip_dates(
    start: date | datetime | str,
    end: date | datetime | str,
    today: date | None = None,
) -> str | None:
    """Return the first reason the dates cannot be searched, or ``None``."""
    today = today or date.today()
    departure = parse_calendar_date(start)
    ret = parse_calendar_date(end)

    if departure < today:
        return REASON_DEPARTURE_PAST
    if departure < today + timedelta(days=MIN_LEAD_DAYS):
        return REASON_DEPARTURE_TOO_SOON
    if ret < departure:
        return REASON_RETURN_BEFORE_DEPARTURE
    return None


def format_date_range(start: date | datetime | str, end: date | datetime | str) -> str:
    """e.g. ``Mar 10, 2025 - Mar 17, 2025``."""
    s = parse_calendar_date(start)
    e = parse_calendar_date(end)
    return f"{s.strftime('%b')} {s.day}, {s.year} - {e.strftime('%b')} {e.day}, {e.year}"
