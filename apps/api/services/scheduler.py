"""
Periodic Scheduler

Tick source + handlers. Handlers run on their first tick (the "check on
load") and then whenever their interval has elapsed since their last run.
Ticks are plain datetimes, so tests drive the scheduler with a synthetic
clock; in production ``run_forever`` feeds it from the wall clock, while the
Celery beat schedule covers the deployed worker.

A failing handler is logged and does not stop the others.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[datetime], object]


@dataclass
class ScheduledJob:
    name: str
    handler: Handler
    interval: timedelta
    last_run: Optional[datetime] = None
    runs: int = 0
    failures: int = 0

    def is_due(self, now: datetime) -> bool:
        return self.last_run is None or now - self.last_run >= self.interval


@dataclass
class PeriodicScheduler:
    jobs: List[ScheduledJob] = field(default_factory=list)

    def register(self, name: str, handler: Handler, interval_s: float) -> ScheduledJob:
        job = ScheduledJob(name=name, handler=handler, interval=timedelta(seconds=interval_s))
        self.jobs.append(job)
        return job

    def tick(self, now: datetime) -> List[str]:
        """Run every due job; returns the names of jobs that ran."""
        ran = []
        for job in self.jobs:
            if not job.is_due(now):
                continue
            job.last_run = now
            job.runs += 1
            ran.append(job.name)
            try:
                job.handler(now)
            except Exception as e:
                job.failures += 1
                logger.error(f"Scheduled job {job.name} failed: {e}", exc_info=True)
        return ran

    def run(self, ticks: Iterable[datetime]) -> None:
        for now in ticks:
            self.tick(now)

    def run_forever(self, poll_s: float = 1.0, clock: Callable[[], datetime] = None) -> None:
        clock = clock or (lambda: datetime.now(timezone.utc))
        logger.info(f"Scheduler started with jobs: {', '.join(j.name for j in self.jobs)}")
        while True:
            self.tick(clock())
            time.sleep(poll_s)
