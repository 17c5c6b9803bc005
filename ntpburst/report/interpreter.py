"""
Response interpretation for ntpburst.

Turns an ExchangeRecord into a SyncReport: reference classification and
naming, poll interval, root delay/dispersion in milliseconds, timestamp
rendering and the four-timestamp delay/offset estimate.
"""

import enum
import ipaddress
import logging
import math
import socket
import struct
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import ntplib

from ..client.exchange import ExchangeRecord
from ..core.errors import NameResolutionError

logger = logging.getLogger(__name__)

LOCAL_CLOCK_ADDRESS = "127.127.1.0"
# 127.127.<clock-type>.<unit> addresses name the server's own reference clock driver
REFERENCE_CLOCK_PREFIX = "127.127"

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Resolver = Callable[[str], str]


class ReferenceKind(enum.Enum):
    """Kind of time source a server follows, by stratum."""
    UNSPECIFIED = "unspecified"
    PRIMARY = "primary"
    SECONDARY = "secondary"

    @classmethod
    def from_stratum(cls, stratum: int) -> 'ReferenceKind':
        """Unspecified at 0 or below, primary at 1, secondary above."""
        if stratum <= 0:
            return cls.UNSPECIFIED
        if stratum == 1:
            return cls.PRIMARY
        return cls.SECONDARY


@dataclass(frozen=True)
class NtpTimestamp:
    """An NTP timestamp in its hex wire notation plus a readable UTC date."""
    ntp: str
    date: str

    @classmethod
    def from_ntp_time(cls, value: Optional[float]) -> 'NtpTimestamp':
        value = value or 0.0
        seconds = int(value)
        fraction = int((value - seconds) * (1 << 32))
        ntp = f"{seconds & 0xFFFFFFFF:08x}.{fraction & 0xFFFFFFFF:08x}"

        moment = _UNIX_EPOCH + timedelta(seconds=ntplib.ntp_to_system_time(value))
        date = f"{moment:%a, %b %d %Y %H:%M:%S}.{moment.microsecond // 1000:03d} UTC"
        return cls(ntp=ntp, date=date)


@dataclass(frozen=True)
class SyncReport:
    """Clock-synchronization report decoded from one NTP reply."""
    server: str
    server_address: str
    stratum: int
    reference_kind: ReferenceKind
    leap_indicator: int
    version: int
    precision: int
    mode_name: str
    mode_code: int
    poll_exponent: int
    poll_seconds: int
    root_delay_ms: float
    root_dispersion_ms: float
    reference_address: str
    reference_name: Optional[str]
    reference_timestamp: NtpTimestamp
    originate_timestamp: NtpTimestamp
    receive_timestamp: NtpTimestamp
    transmit_timestamp: NtpTimestamp
    destination_timestamp: NtpTimestamp
    round_trip_delay_ms: Optional[int]
    clock_offset_ms: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping suitable for JSON serialization."""
        data = asdict(self)
        data['reference_kind'] = self.reference_kind.value
        data['root_delay_ms'] = round(self.root_delay_ms, 2)
        data['root_dispersion_ms'] = round(self.root_dispersion_ms, 2)
        return data


def reverse_lookup(address: str) -> str:
    """Resolve ``address`` to a host name.

    Raises:
        NameResolutionError: if the address has no usable reverse record.
    """
    try:
        return socket.gethostbyaddr(address)[0]
    except OSError as e:
        raise NameResolutionError(f"Reverse lookup of {address} failed: {e}") from e


def poll_seconds(poll: int) -> int:
    """Poll interval in seconds for a log2 poll exponent."""
    return 1 if poll <= 0 else 2 ** poll


def reference_address(reference_id: int) -> str:
    """Dotted-quad form of a 32-bit reference identifier."""
    return str(ipaddress.IPv4Address(reference_id & 0xFFFFFFFF))


def reference_clock_label(reference_id: int) -> str:
    """Reference identifier read as an ASCII clock label such as ``GPS``.

    Reads bytes most significant first and stops at the first NUL. Bytes are
    returned as-is, so an identifier that is not a label yields garbage.
    """
    raw = struct.pack("!I", reference_id & 0xFFFFFFFF)
    return raw.split(b"\0", 1)[0].decode("latin-1")


def reference_name(record: ExchangeRecord, address: str,
                   resolver: Resolver = reverse_lookup) -> Optional[str]:
    """Best-effort name for the server's reference, before noise filtering."""
    if record.reference_id == 0:
        return None

    if address == LOCAL_CLOCK_ADDRESS:
        return "LOCAL"

    if record.stratum >= 2:
        if address.startswith(REFERENCE_CLOCK_PREFIX):
            return None
        try:
            name = resolver(address)
        except NameResolutionError as e:
            # Some servers run a reference clock but advertise stratum 2+
            logger.debug(f"{e}; reading reference id as clock label")
            return reference_clock_label(record.reference_id)
        if name and name != address:
            return name
        return None

    if record.version >= 3 and record.stratum in (0, 1):
        return reference_clock_label(record.reference_id)

    return None


def nearest_millisecond(milliseconds: float) -> int:
    """Round to the nearest whole millisecond, ties towards positive infinity."""
    return math.floor(milliseconds + 0.5)


def delay_and_offset(record: ExchangeRecord) -> Tuple[Optional[int], Optional[int]]:
    """Round-trip delay and clock offset in whole milliseconds.

    Both are ``None`` unless all four timestamps are available.
    """
    t1 = record.originate_timestamp
    t2 = record.receive_timestamp
    t3 = record.transmit_timestamp
    t4 = record.destination_timestamp
    if t1 is None or t2 is None or t3 is None or t4 is None:
        return None, None

    delay = ((t4 - t1) - (t3 - t2)) * 1000
    offset = ((t2 - t1) + (t3 - t4)) / 2 * 1000
    return nearest_millisecond(delay), nearest_millisecond(offset)


def mode_name(mode: int) -> str:
    """Text for an NTP association mode code."""
    try:
        return ntplib.mode_to_text(mode)
    except ntplib.NTPException:
        return "unknown"


def interpret(record: ExchangeRecord, resolver: Resolver = reverse_lookup) -> SyncReport:
    """Decode ``record`` into a SyncReport. Never raises for odd field values."""
    address = reference_address(record.reference_id)
    name = reference_name(record, address, resolver)
    if name is not None and len(name) < 2:
        name = None

    display_address = f"{address} ({name})" if name else address
    delay, offset = delay_and_offset(record)

    return SyncReport(
        server=record.server,
        server_address=record.server_address,
        stratum=record.stratum,
        reference_kind=ReferenceKind.from_stratum(record.stratum),
        leap_indicator=record.leap_indicator,
        version=record.version,
        precision=record.precision,
        mode_name=mode_name(record.mode),
        mode_code=record.mode,
        poll_exponent=record.poll,
        poll_seconds=poll_seconds(record.poll),
        root_delay_ms=record.root_delay * 1000,
        root_dispersion_ms=record.root_dispersion * 1000,
        reference_address=display_address,
        reference_name=name,
        reference_timestamp=NtpTimestamp.from_ntp_time(record.reference_timestamp),
        originate_timestamp=NtpTimestamp.from_ntp_time(record.originate_timestamp),
        receive_timestamp=NtpTimestamp.from_ntp_time(record.receive_timestamp),
        transmit_timestamp=NtpTimestamp.from_ntp_time(record.transmit_timestamp),
        destination_timestamp=NtpTimestamp.from_ntp_time(record.destination_timestamp),
        round_trip_delay_ms=delay,
        clock_offset_ms=offset,
    )
