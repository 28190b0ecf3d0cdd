"""One-second clock that grows the person-seconds total."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from meeting_ticker.config import TICK_PERIOD_SECONDS
from meeting_ticker.domain.tracking import TrackerState, utc_now
from meeting_ticker.domain.units import ScaledValue, scale_person_seconds
from meeting_ticker.services.persistence import PersistenceAdapter

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickReading:
    """What a single tick produced."""

    elapsed_seconds: float
    total_person_seconds: float
    display: ScaledValue


@dataclass
class Ticker:
    """Adds the current participant count to the total once per second.

    This is a discrete per-second sum: the count observed at tick time is
    charged for the whole second, however old that observation is.
    """

    state: TrackerState
    persistence: PersistenceAdapter
    clock: Callable[[], datetime] = utc_now
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking; a second call only fills in a missing start time."""
        accumulation = self.state.accumulation
        if accumulation.start_time is None:
            accumulation.start_time = self.clock()
        accumulation.tracking = True
        if self.running:
            return
        _logger.info("Starting ticker")
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancel the tick schedule; safe when not running."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            _logger.info("Stopped ticker")
        self.state.accumulation.tracking = False

    def tick(self) -> TickReading:
        """Advance elapsed time, accumulate one second and save a snapshot."""
        accumulation = self.state.accumulation
        now = self.clock()
        if accumulation.start_time is None:
            accumulation.start_time = now
        accumulation.elapsed_seconds = max(
            0.0, (now - accumulation.start_time).total_seconds()
        )
        if accumulation.current_participant_count > 0:
            accumulation.total_person_seconds += accumulation.current_participant_count
        self.persistence.save(self.state)
        return TickReading(
            elapsed_seconds=accumulation.elapsed_seconds,
            total_person_seconds=accumulation.total_person_seconds,
            display=scale_person_seconds(accumulation.total_person_seconds),
        )

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(TICK_PERIOD_SECONDS)
            try:
                self.tick()
            except Exception:
                _logger.exception("Tick failed")
