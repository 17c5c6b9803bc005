"""
ntpburst - Scheduled concurrent NTP query

Fires a pool of NTP queries against one server at a precisely scheduled
instant and collects every worker's clock-synchronization report, or the
reason it has none, into a single result set.
"""

__version__ = "1.0.0"
__author__ = "ntpburst Authors"
__license__ = "MIT"

from .core.config import Config
from .core.logger import setup_logging
from .core.schedule import ScheduleSpec, build_schedule
from .client.exchange import ExchangeRecord, TimeExchangeClient
from .report.interpreter import SyncReport, interpret
from .fanout.coordinator import FanOutCoordinator
from .fanout.aggregator import aggregate

__all__ = [
    "Config",
    "setup_logging",
    "ScheduleSpec",
    "build_schedule",
    "ExchangeRecord",
    "TimeExchangeClient",
    "SyncReport",
    "interpret",
    "FanOutCoordinator",
    "aggregate",
]
