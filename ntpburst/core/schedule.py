"""
Schedule construction for ntpburst.

Converts a caller-supplied local date-time in a named time zone into the
absolute instant, expressed in this machine's local zone, at which every
worker fires.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ScheduleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleSpec:
    """Read-only run configuration shared by all workers."""
    fire_at: datetime
    requested_at: datetime
    timezone: str
    server: str
    worker_count: int
    port: int = 123
    exchange_timeout: float = 10.0
    ntp_version: int = 3

    def delay_from(self, now: Optional[datetime] = None) -> float:
        """Seconds until ``fire_at``; zero when the instant has already passed."""
        if now is None:
            now = datetime.now(timezone.utc)
        return max(0.0, (self.fire_at - now).total_seconds())


def parse_local_datetime(value: str) -> datetime:
    """Parse an ISO local date-time such as ``2024-03-28T07:28:00``."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ScheduleError(f"Unparseable date-time {value!r}: {e}") from e

    if parsed.tzinfo is not None:
        raise ScheduleError(
            f"Date-time {value!r} carries its own offset; pass a local "
            "date-time and a time zone name instead"
        )
    return parsed


def load_zone(name: str) -> ZoneInfo:
    """Look up an IANA time zone such as ``Asia/Kolkata``."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise ScheduleError(f"Unknown time zone {name!r}") from e


def build_schedule(
    local_datetime: str,
    zone_name: str,
    server: str,
    worker_count: int,
    port: int = 123,
    exchange_timeout: float = 10.0,
    ntp_version: int = 3,
) -> ScheduleSpec:
    """Build the ScheduleSpec for one run.

    Raises:
        ScheduleError: if the date-time or zone cannot be used, or
            ``worker_count`` is not positive.
    """
    if worker_count < 1:
        raise ScheduleError(f"Worker count must be at least 1, got {worker_count}")

    if not server:
        raise ScheduleError("No NTP server given")

    requested_at = parse_local_datetime(local_datetime).replace(tzinfo=load_zone(zone_name))
    # astimezone() with no argument converts to the machine's local zone
    fire_at = requested_at.astimezone()

    logger.debug(f"Requested {requested_at.isoformat()} ({zone_name})")
    logger.info(f"Workers fire at {fire_at.isoformat()} local time")

    return ScheduleSpec(
        fire_at=fire_at,
        requested_at=requested_at,
        timezone=zone_name,
        server=server,
        worker_count=worker_count,
        port=port,
        exchange_timeout=exchange_timeout,
        ntp_version=ntp_version,
    )
