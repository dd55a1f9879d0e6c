from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.services.business_hours import BusinessHours, get_business_hours

LIMA = ZoneInfo("America/Lima")


@pytest.fixture
def hours():
    return BusinessHours()


@pytest.mark.parametrize("moment,expected", [
    (datetime(2026, 1, 15, 18, 0, tzinfo=LIMA), True),    # Thursday opening
    (datetime(2026, 1, 18, 22, 59, tzinfo=LIMA), True),   # Sunday, last minute
    (datetime(2026, 1, 15, 23, 0, tzinfo=LIMA), False),   # Thursday closing
    (datetime(2026, 1, 15, 17, 59, tzinfo=LIMA), False),
    (datetime(2026, 1, 14, 20, 0, tzinfo=LIMA), False),   # Wednesday
])
def test_is_open(hours, moment, expected):
    assert hours.is_open(moment) is expected


def test_utc_times_are_converted(hours):
    # Friday 00:30 UTC is Thursday 19:30 in Lima
    assert hours.is_open(datetime(2026, 1, 16, 0, 30, tzinfo=timezone.utc)) is True
    assert hours.is_open(datetime(2026, 1, 16, 0, 30)) is True


def test_next_open_message(hours):
    assert hours.next_open_message(datetime(2026, 1, 16, 20, 0, tzinfo=LIMA)) is None
    assert hours.next_open_message(datetime(2026, 1, 15, 12, 0, tzinfo=LIMA)) == \
        "We open today at 18:00"
    assert hours.next_open_message(datetime(2026, 1, 14, 12, 0, tzinfo=LIMA)) == \
        "We open tomorrow at 18:00"
    assert hours.next_open_message(datetime(2026, 1, 18, 23, 30, tzinfo=LIMA)) == \
        "We open on Thursday at 18:00"


def test_schedule_comes_from_settings(monkeypatch):
    from app.core.config import get_settings

    monkeypatch.setenv("OPEN_WEEKDAYS", "0")
    monkeypatch.setenv("OPENING_HOUR", "9")
    monkeypatch.setenv("CLOSING_HOUR", "12")
    get_settings.cache_clear()

    hours = get_business_hours()

    assert hours.is_open(datetime(2026, 1, 12, 10, 0, tzinfo=LIMA)) is True
    assert hours.next_open_message(datetime(2026, 1, 12, 13, 0, tzinfo=LIMA)) == \
        "We open on Monday at 09:00"
