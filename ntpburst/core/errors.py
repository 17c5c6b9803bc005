"""
Error types for ntpburst.
"""


class NtpBurstError(Exception):
    """Base class for all ntpburst errors."""


class ConfigError(NtpBurstError, ValueError):
    """Configuration file is missing keys or holds invalid values."""


class ScheduleError(NtpBurstError):
    """Scheduled date-time, time zone or worker count cannot be used."""


class NameResolutionError(NtpBurstError):
    """Reverse lookup of a reference address failed."""


class NetworkError(NtpBurstError):
    """A single NTP round-trip could not complete.

    ``kind`` is one of ``"timeout"``, ``"unreachable"`` or ``"malformed"``.
    """

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    MALFORMED = "malformed"

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"
