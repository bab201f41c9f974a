"""
Clock and periodic task scheduler.

All periodic work (expiry sweeps, penalty checks, emergency rolls,
background generation) is registered here with a period and driven by
tick(). Tests advance a ManualClock instead of waiting on wall time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """Clock that only moves when told to (testing)."""

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, 9, 0, 0)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta | None = None, **kwargs) -> datetime:
        """Move forward by a timedelta or timedelta kwargs (hours=1, minutes=30)."""
        self._now += delta if delta is not None else timedelta(**kwargs)
        return self._now

    def set(self, when: datetime) -> None:
        self._now = when


# Task receives the current time
Task = Callable[[datetime], object]


@dataclass
class ScheduledTask:
    name: str
    period: timedelta
    task: Task
    next_run: datetime
    runs: int = 0
    last_error: str | None = None


class Scheduler:
    """
    Owns every periodic task.

    tick() runs each due task once, in registration order, then schedules
    its next run one period after the current time.
    """

    def __init__(self, clock: Clock):
        self.clock = clock
        self._tasks: dict[str, ScheduledTask] = {}

    def every(
        self,
        name: str,
        period: timedelta,
        task: Task,
        run_immediately: bool = False,
    ) -> ScheduledTask:
        """Register (or replace) a periodic task."""
        now = self.clock.now()
        scheduled = ScheduledTask(
            name=name,
            period=period,
            task=task,
            next_run=now if run_immediately else now + period,
        )
        self._tasks[name] = scheduled
        return scheduled

    def cancel(self, name: str) -> bool:
        return self._tasks.pop(name, None) is not None

    def get(self, name: str) -> ScheduledTask | None:
        return self._tasks.get(name)

    @property
    def task_names(self) -> list[str]:
        return list(self._tasks)

    def tick(self) -> list[str]:
        """Run all due tasks. Returns the names that ran."""
        now = self.clock.now()
        ran = []
        for scheduled in list(self._tasks.values()):
            if scheduled.next_run > now:
                continue
            try:
                scheduled.task(now)
                scheduled.last_error = None
            except Exception as e:
                scheduled.last_error = str(e)
                logger.exception("Scheduled task %s failed", scheduled.name)
            scheduled.runs += 1
            scheduled.next_run = now + scheduled.period
            ran.append(scheduled.name)
        return ran
