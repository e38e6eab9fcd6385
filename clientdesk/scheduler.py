"""In-process recurring job scheduler.

Runs as an asyncio task inside the API lifespan. Time comes from an injected
Clock, so tests drive the scheduler by advancing a FixedClock and calling
``run_pending()``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from .clock import Clock, SystemClock
from .config import ScheduleConfig

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[dict]]


@dataclass(frozen=True)
class Schedule:
    """Cron-like schedule: daily at hour:minute, optionally on one weekday
    (Monday == 0) or one day of the month."""

    hour: int = 0
    minute: int = 0
    weekday: Optional[int] = None
    day: Optional[int] = None

    @classmethod
    def from_config(cls, config: ScheduleConfig) -> "Schedule":
        return cls(config.hour, config.minute, config.weekday, config.day)

    def _matches_date(self, dt: datetime) -> bool:
        if self.weekday is not None and dt.weekday() != self.weekday:
            return False
        if self.day is not None and dt.day != self.day:
            return False
        return True

    def next_after(self, dt: datetime) -> datetime:
        """First matching instant strictly after dt."""
        candidate = dt.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= dt:
            candidate += timedelta(days=1)
        while not self._matches_date(candidate):
            candidate += timedelta(days=1)
        return candidate


@dataclass
class ScheduledJob:
    name: str
    schedule: Schedule
    job: Job
    next_run: datetime
    last_run: Optional[datetime] = None
    last_result: dict = field(default_factory=dict)


class Scheduler:
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self.jobs: dict[str, ScheduledJob] = {}
        self._task: Optional[asyncio.Task] = None

    def add(self, name: str, schedule: Schedule, job: Job) -> ScheduledJob:
        entry = ScheduledJob(name, schedule, job, schedule.next_after(self.clock.now()))
        self.jobs[name] = entry
        logger.info(f"Scheduled {name}, next run {entry.next_run.isoformat()}")
        return entry

    async def run_pending(self) -> list[str]:
        """Run every due job once and advance it. Returns the names that ran."""
        now = self.clock.now()
        ran = []
        for entry in self.jobs.values():
            if entry.next_run > now:
                continue
            logger.info(f"Running scheduled job {entry.name}")
            try:
                entry.last_result = await entry.job()
            except Exception as e:
                logger.error(f"Scheduled job {entry.name} failed: {e}", exc_info=True)
                entry.last_result = {"error": str(e)}
            entry.last_run = now
            entry.next_run = entry.schedule.next_after(now)
            ran.append(entry.name)
        return ran

    async def run_forever(self, poll_seconds: int = 60) -> None:
        while True:
            await self.run_pending()
            await asyncio.sleep(poll_seconds)

    def start(self, poll_seconds: int = 60) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(poll_seconds))
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def describe(self) -> list[dict]:
        return [
            {
                "name": e.name,
                "nextRun": e.next_run.isoformat(),
                "lastRun": e.last_run.isoformat() if e.last_run else None,
                "lastResult": e.last_result,
            }
            for e in self.jobs.values()
        ]
