"""
NTP round-trip for ntpburst.

Sending the request and decoding the reply is done by ntplib; this module
maps every way a round-trip can go wrong onto NetworkError.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Optional

import ntplib

from ..core.errors import NetworkError

DEFAULT_PORT = 123
DEFAULT_VERSION = 3
DEFAULT_TIMEOUT = 10.0

# Prefix of the ntplib error raised when the socket times out
NO_RESPONSE = "No response received"


@dataclass(frozen=True)
class ExchangeRecord:
    """Decoded reply of one NTP round-trip.

    Timestamps are NTP-era seconds (since 1900-01-01). ``None`` means the
    server left the field unset.
    """
    server: str
    server_address: str
    stratum: int
    version: int
    leap_indicator: int
    mode: int
    precision: int
    poll: int
    root_delay: float
    root_dispersion: float
    reference_id: int
    reference_timestamp: Optional[float]
    originate_timestamp: Optional[float]
    receive_timestamp: Optional[float]
    transmit_timestamp: Optional[float]
    destination_timestamp: Optional[float]

    @classmethod
    def from_stats(cls, server: str, server_address: str, stats: ntplib.NTPStats) -> 'ExchangeRecord':
        """Build a record from a decoded ntplib reply."""
        return cls(
            server=server,
            server_address=server_address,
            stratum=stats.stratum,
            version=stats.version,
            leap_indicator=stats.leap,
            mode=stats.mode,
            precision=stats.precision,
            poll=_signed_byte(stats.poll),
            root_delay=stats.root_delay,
            root_dispersion=stats.root_dispersion,
            reference_id=stats.ref_id,
            reference_timestamp=_unset_as_none(stats.ref_timestamp),
            originate_timestamp=_unset_as_none(stats.orig_timestamp),
            receive_timestamp=_unset_as_none(stats.recv_timestamp),
            transmit_timestamp=_unset_as_none(stats.tx_timestamp),
            destination_timestamp=_unset_as_none(stats.dest_timestamp),
        )


def _signed_byte(value: int) -> int:
    # poll is a signed 8-bit exponent on the wire
    return value - 256 if value > 127 else value


def _unset_as_none(timestamp: float) -> Optional[float]:
    return timestamp if timestamp else None


class TimeExchangeClient:
    """Performs one synchronous NTP round-trip per call."""

    def __init__(self, port: int = DEFAULT_PORT, version: int = DEFAULT_VERSION,
                 timeout: float = DEFAULT_TIMEOUT):
        self.port = port
        self.version = version
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def exchange(self, server: str, timeout: Optional[float] = None) -> ExchangeRecord:
        """Query ``server`` once.

        Raises:
            NetworkError: if the server cannot be resolved or reached, does not
                answer within ``timeout`` seconds, or sends an undecodable reply.
        """
        if timeout is None:
            timeout = self.timeout

        address = self._resolve(server)
        self.logger.debug(f"> {server}/{address}")

        # ntplib opens the socket for this request and closes it on every exit path
        try:
            stats = ntplib.NTPClient().request(
                address, version=self.version, port=self.port, timeout=timeout)
        except ntplib.NTPException as e:
            if str(e).startswith(NO_RESPONSE):
                raise NetworkError(
                    NetworkError.TIMEOUT,
                    f"No response received from {server} within {timeout:g}s"
                ) from e
            raise NetworkError(NetworkError.MALFORMED, f"Invalid reply from {server}: {e}") from e
        except OSError as e:
            raise NetworkError(NetworkError.UNREACHABLE, f"Cannot reach {server}: {e}") from e

        return ExchangeRecord.from_stats(server, address, stats)

    def _resolve(self, server: str) -> str:
        """Resolve ``server`` once so the query and the report name the same host."""
        try:
            return socket.getaddrinfo(server, self.port, proto=socket.IPPROTO_UDP)[0][4][0]
        except (socket.gaierror, UnicodeError) as e:
            raise NetworkError(NetworkError.UNREACHABLE, f"Cannot resolve {server}: {e}") from e
