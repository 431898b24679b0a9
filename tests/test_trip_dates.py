from datetime import date, datetime, timezone

import pytest

from wayfarer.services.trip_dates import (
    REASON_DEPARTURE_PAST,
    REASON_DEPARTURE_TOO_SOON,
    REASON_RETURN_BEFORE_DEPARTURE,
    format_calendar_date,
    format_date_range,
    parse_calendar_date,
    validate_trip_dates,
)

TODAY = date(2025, 3, 1)


def test_parse_calendar_date_ignores_time_and_zone():
    assert parse_calendar_date("2025-03-10T00:00:00Z") == date(2025, 3, 10)
    assert parse_calendar_date("2025-03-10T23:30:00-08:00") == date(2025, 3, 10)
    assert parse_calendar_date(datetime(2025, 3, 10, 23, tzinfo=timezone.utc)) == date(2025, 3, 10)
    assert parse_calendar_date(date(2025, 3, 10)) == date(2025, 3, 10)


def test_parse_calendar_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_calendar_date("next tuesday")


def test_format_calendar_date():
    assert format_calendar_date("2025-03-10T12:00:00Z") == "2025-03-10"


@pytest.mark.parametrize(
    "start,end,expected",
    [
        ("2025-02-28", "2025-03-05", REASON_DEPARTURE_PAST),
        ("2025-03-01", "2025-03-05", REASON_DEPARTURE_TOO_SOON),
        ("2025-03-10", "2025-03-09", REASON_RETURN_BEFORE_DEPARTURE),
        ("2025-03-02", "2025-03-02", None),
        ("2025-03-10T00:00:00Z", "2025-03-17T00:00:00Z", None),
    ],
)
def test_validate_trip_dates(start, end, expected):
    assert validate_trip_dates(start, end, today=TODAY) == expected


def test_past_departure_wins_over_bad_return():
    assert validate_trip_dates("2025-02-01", "2025-01-01", today=TODAY) == REASON_DEPARTURE_PAST


def test_format_date_range():
    assert format_date_range("2025-03-10", date(2025, 3, 17)) == "Mar 10, 2025 - Mar 17, 2025"
