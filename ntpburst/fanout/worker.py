"""
Scheduled NTP workers for ntpburst.

Each worker owns one OutcomeSlot and signals a shared CountDownLatch exactly
once when it is done, whether the exchange succeeded or not.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..client.exchange import ExchangeRecord
from ..core.errors import NetworkError
from ..core.schedule import ScheduleSpec
from ..report.interpreter import SyncReport, interpret

UNEXPECTED_ERROR = "error"


class CountDownLatch:
    """Blocks waiters until ``count_down`` has been called ``count`` times."""

    def __init__(self, count: int):
        if count < 0:
            raise ValueError("count must not be negative")
        self._count = count
        self._condition = threading.Condition()

    @property
    def count(self) -> int:
        """Calls to ``count_down`` still outstanding."""
        with self._condition:
            return self._count

    def count_down(self) -> None:
        """Decrement the count, releasing waiters when it reaches zero."""
        with self._condition:
            if self._count > 0:
                self._count -= 1
                if self._count == 0:
                    self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the count to reach zero; False if ``timeout`` elapsed first."""
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout)


@dataclass(frozen=True)
class Failure:
    """Why a worker produced no report."""
    kind: str
    message: str


@dataclass(frozen=True)
class WorkerOutcome:
    """Either a report or a failure for one worker."""
    index: int
    report: Optional[SyncReport] = None
    error: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        """True when the worker produced a report."""
        return self.report is not None

    @classmethod
    def success(cls, index: int, report: SyncReport) -> 'WorkerOutcome':
        """Outcome carrying ``report``."""
        return cls(index=index, report=report)

    @classmethod
    def failure(cls, index: int, kind: str, message: str) -> 'WorkerOutcome':
        """Outcome carrying a Failure of ``kind``."""
        return cls(index=index, error=Failure(kind=kind, message=message))


class OutcomeSlot:
    """Write-once holder for a worker's outcome."""

    def __init__(self, index: int):
        self.index = index
        self._outcome: Optional[WorkerOutcome] = None

    @property
    def outcome(self) -> Optional[WorkerOutcome]:
        """The recorded outcome, or ``None`` while the worker is running."""
        return self._outcome

    def write(self, outcome: WorkerOutcome) -> None:
        """Record ``outcome``; a second write raises RuntimeError."""
        if self._outcome is not None:
            raise RuntimeError(f"Outcome slot {self.index} already written")
        self._outcome = outcome


class ScheduledWorker:
    """One NTP exchange fired at the scheduled instant."""

    def __init__(
        self,
        index: int,
        schedule: ScheduleSpec,
        slot: OutcomeSlot,
        latch: CountDownLatch,
        client,
        interpreter: Callable[[ExchangeRecord], SyncReport] = interpret,
    ):
        self.index = index
        self.schedule = schedule
        self.slot = slot
        self.latch = latch
        self.client = client
        self.interpreter = interpreter
        self.logger = logging.getLogger(__name__)

        self._timer: Optional[threading.Timer] = None

    @property
    def name(self) -> str:
        """Thread name used for logging."""
        return f"worker-{self.index}"

    def arm(self, now: Optional[datetime] = None) -> float:
        """Start the timer; returns the delay in seconds until it fires."""
        if self._timer is not None:
            raise RuntimeError(f"{self.name} is already armed")

        delay = self.schedule.delay_from(now)
        self._timer = threading.Timer(delay, self.run)
        self._timer.name = self.name
        self._timer.daemon = True
        self._timer.start()
        return delay

    def run(self) -> None:
        """Perform the exchange and record its outcome."""
        try:
            self.logger.debug(f"{self.name} querying {self.schedule.server}")
            try:
                record = self.client.exchange(self.schedule.server, self.schedule.exchange_timeout)
                outcome = WorkerOutcome.success(self.index, self.interpreter(record))
            except NetworkError as e:
                self.logger.warning(f"{self.name} exchange failed: {e}")
                outcome = WorkerOutcome.failure(self.index, e.kind, e.message)
            except Exception as e:
                self.logger.exception(f"{self.name} failed unexpectedly")
                outcome = WorkerOutcome.failure(self.index, UNEXPECTED_ERROR, f"{type(e).__name__}: {e}")
            self.slot.write(outcome)
        finally:
            self.latch.count_down()
