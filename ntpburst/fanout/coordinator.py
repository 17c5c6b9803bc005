"""
Fan-out/fan-in coordination for ntpburst.
"""

import enum
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from ..client.exchange import ExchangeRecord, TimeExchangeClient
from ..core.schedule import ScheduleSpec
from ..report.interpreter import SyncReport, interpret
from .worker import CountDownLatch, OutcomeSlot, ScheduledWorker, WorkerOutcome


class CoordinatorState(enum.Enum):
    """Lifecycle of one fan-out run."""
    CREATED = "created"
    ARMED = "armed"
    WAITING_FOR_COMPLETIONS = "waiting_for_completions"
    ALL_COMPLETE = "all_complete"
    DEADLINE_EXPIRED = "deadline_expired"


class FanOutCoordinator:
    """Fires a pool of workers at the same instant and waits for all of them.

    A failing worker never cancels its siblings. ``completion_timeout`` bounds
    the overall wait; ``None`` waits until every worker has reported. Each
    coordinator runs once.
    """

    def __init__(
        self,
        client=None,
        completion_timeout: Optional[float] = None,
        interpreter: Callable[[ExchangeRecord], SyncReport] = interpret,
    ):
        self.client = client
        self.completion_timeout = completion_timeout
        self.interpreter = interpreter
        self.logger = logging.getLogger(__name__)

        self.state = CoordinatorState.CREATED
        self.workers: List[ScheduledWorker] = []
        self._latch: Optional[CountDownLatch] = None

    @property
    def pending(self) -> int:
        """Workers that have not signalled completion yet."""
        return self._latch.count if self._latch is not None else 0

    def run(self, schedule: ScheduleSpec, worker_count: Optional[int] = None,
            now: Optional[datetime] = None) -> List[Optional[WorkerOutcome]]:
        """Run ``worker_count`` workers (default ``schedule.worker_count``).

        Returns one entry per worker in index order. An entry is ``None`` only
        when the completion timeout expired before that worker reported.
        """
        if self.state is not CoordinatorState.CREATED:
            raise RuntimeError(f"Coordinator already used (state: {self.state.value})")

        count = schedule.worker_count if worker_count is None else worker_count
        if count < 1:
            raise ValueError(f"Worker count must be at least 1, got {count}")

        client = self.client or TimeExchangeClient(
            port=schedule.port,
            version=schedule.ntp_version,
            timeout=schedule.exchange_timeout,
        )

        self._latch = CountDownLatch(count)
        slots = [OutcomeSlot(index) for index in range(count)]
        self.workers = [
            ScheduledWorker(index, schedule, slots[index], self._latch, client, self.interpreter)
            for index in range(count)
        ]

        delay = 0.0
        for worker in self.workers:
            delay = worker.arm(now)
        self.state = CoordinatorState.ARMED
        self.logger.info(
            f"Armed {count} workers for {schedule.server}, firing in {delay:.3f}s"
        )

        self.state = CoordinatorState.WAITING_FOR_COMPLETIONS
        started = time.monotonic()
        if self._latch.wait(self.completion_timeout):
            self.state = CoordinatorState.ALL_COMPLETE
            self.logger.info(
                f"All {count} workers completed {time.monotonic() - started:.3f}s after arming"
            )
        else:
            self.state = CoordinatorState.DEADLINE_EXPIRED
            self.logger.warning(
                f"Completion timeout of {self.completion_timeout:g}s expired with "
                f"{self._latch.count} of {count} workers still pending"
            )

        return [slot.outcome for slot in slots]
