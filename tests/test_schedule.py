"""
Tests for schedule construction.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from ntpburst.core.errors import ScheduleError
from ntpburst.core.schedule import build_schedule, parse_local_datetime


def test_converts_caller_zone_to_local_instant():
    schedule = build_schedule("2024-03-28T07:28:00", "Asia/Kolkata", "172.16.13.81", 4)

    assert schedule.requested_at == datetime(2024, 3, 28, 7, 28, tzinfo=ZoneInfo("Asia/Kolkata"))
    assert schedule.fire_at == datetime(2024, 3, 28, 1, 58, tzinfo=timezone.utc)
    assert schedule.fire_at.tzinfo is not None
    assert schedule.timezone == "Asia/Kolkata"
    assert schedule.server == "172.16.13.81"
    assert schedule.worker_count == 4


def test_fractional_seconds_are_kept():
    schedule = build_schedule("2024-03-19T15:01:42.531972", "UTC", "ntp.example.org", 1)
    assert schedule.fire_at == datetime(2024, 3, 19, 15, 1, 42, 531972, tzinfo=timezone.utc)


def test_exchange_settings_are_carried():
    schedule = build_schedule("2024-03-28T07:28:00", "UTC", "ntp.example.org", 2,
                              port=1123, exchange_timeout=2.5, ntp_version=4)
    assert (schedule.port, schedule.exchange_timeout, schedule.ntp_version) == (1123, 2.5, 4)


def test_schedule_is_immutable():
    schedule = build_schedule("2024-03-28T07:28:00", "UTC", "ntp.example.org", 1)
    with pytest.raises(AttributeError):
        schedule.server = "other.example.org"


def test_delay_from():
    schedule = build_schedule("2024-03-28T07:28:00", "UTC", "ntp.example.org", 1)
    before = schedule.fire_at - timedelta(seconds=90)
    after = schedule.fire_at + timedelta(seconds=90)
    assert schedule.delay_from(before) == 90.0
    assert schedule.delay_from(after) == 0.0


@pytest.mark.parametrize("value", ["", "yesterday", "2024-13-01T00:00:00", "2024-03-28 25:00"])
def test_unparseable_datetime(value):
    with pytest.raises(ScheduleError):
        build_schedule(value, "UTC", "ntp.example.org", 1)


def test_datetime_with_offset_rejected():
    with pytest.raises(ScheduleError):
        parse_local_datetime("2024-03-28T07:28:00+02:00")


@pytest.mark.parametrize("zone", ["Mars/Olympus_Mons", "", "../etc/passwd"])
def test_unknown_zone(zone):
    with pytest.raises(ScheduleError):
        build_schedule("2024-03-28T07:28:00", zone, "ntp.example.org", 1)


def test_worker_count_must_be_positive():
    with pytest.raises(ScheduleError):
        build_schedule("2024-03-28T07:28:00", "UTC", "ntp.example.org", 0)


def test_server_required():
    with pytest.raises(ScheduleError):
        build_schedule("2024-03-28T07:28:00", "UTC", "", 1)
