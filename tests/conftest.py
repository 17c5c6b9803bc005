"""
Shared fixtures for ntpburst tests.
"""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from ntpburst.client.exchange import ExchangeRecord
from ntpburst.core.errors import NetworkError
from ntpburst.core.schedule import ScheduleSpec

# 2023-08-02T21:20:00Z in NTP-era seconds
NTP_BASE = 3_900_000_000.0


def make_record(**overrides) -> ExchangeRecord:
    """A well-formed stratum 2 reply; t1..t4 are 1000/1005/1007/1012 ms past NTP_BASE."""
    record = ExchangeRecord(
        server="ntp.example.org",
        server_address="192.0.2.10",
        stratum=2,
        version=3,
        leap_indicator=0,
        mode=4,
        precision=-23,
        poll=6,
        root_delay=0.0153,
        root_dispersion=0.0271,
        reference_id=0xC0000201,  # 192.0.2.1
        reference_timestamp=NTP_BASE,
        originate_timestamp=NTP_BASE + 1.000,
        receive_timestamp=NTP_BASE + 1.005,
        transmit_timestamp=NTP_BASE + 1.007,
        destination_timestamp=NTP_BASE + 1.012,
    )
    return replace(record, **overrides)


def make_schedule(workers: int = 4, fire_at=None, **overrides) -> ScheduleSpec:
    """A schedule whose instant has already passed unless ``fire_at`` is given."""
    if fire_at is None:
        fire_at = datetime.now(timezone.utc) - timedelta(seconds=5)
    fields = dict(
        fire_at=fire_at,
        requested_at=fire_at,
        timezone="UTC",
        server="ntp.example.org",
        worker_count=workers,
        exchange_timeout=1.0,
    )
    fields.update(overrides)
    return ScheduleSpec(**fields)


def no_lookup(address):
    return address


class FakeClient:
    """Exchange client answering from a script of records and errors.

    Calls are numbered in arrival order; ``failures`` maps a call number to
    the error raised for it.
    """

    def __init__(self, record=None, failures=None, delay=0.0):
        self.record = record or make_record()
        self.failures = failures or {}
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def exchange(self, server, timeout=None):
        with self._lock:
            call = len(self.calls)
            self.calls.append((server, timeout, threading.current_thread().name))
        if self.delay:
            threading.Event().wait(self.delay)
        if call in self.failures:
            raise self.failures[call]
        return self.record


@pytest.fixture
def record():
    return make_record()


@pytest.fixture
def timeout_error():
    return NetworkError(NetworkError.TIMEOUT, "No response received from ntp.example.org within 1s")
