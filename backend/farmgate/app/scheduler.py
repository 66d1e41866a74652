"""Recurring job runner with a per-job error boundary."""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .logging import get_logger

logger = get_logger("farmgate.scheduler")

JobAction = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class JobStats:
    runs: int = 0
    failures: int = 0
    last_run: Optional[datetime] = None
    last_error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "runs": self.runs,
            "failures": self.failures,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_error": self.last_error,
        }


@dataclass
class ScheduledJob:
    name: str
    cron: str
    action: JobAction
    stats: JobStats = field(default_factory=JobStats)


class Scheduler:
    """Run registered actions on cron cadences until shutdown.

    Each job runs inside its own error boundary: a raising action is logged
    and counted, and neither other jobs nor its own future ticks are affected.
    """

    def __init__(self, *, timezone_name: str = "UTC") -> None:
        self._timezone = timezone_name
        self._scheduler = AsyncIOScheduler(timezone=timezone_name)
        self._jobs: Dict[str, ScheduledJob] = {}

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    @property
    def job_names(self) -> list[str]:
        return sorted(self._jobs)

    def register(self, name: str, cron: str, action: JobAction, *, enabled: bool = True) -> bool:
        """Schedule ``action`` on ``cron``; returns ``False`` for disabled jobs."""

        if name in self._jobs:
            raise ValueError(f"Job '{name}' is already registered")
        if not enabled:
            logger.info("scheduled_job_disabled", job=name)
            return False

        trigger = CronTrigger.from_crontab(cron, timezone=self._timezone)
        self._jobs[name] = ScheduledJob(name=name, cron=cron, action=action)
        self._scheduler.add_job(
            self._run,
            trigger=trigger,
            args=(name,),
            id=name,
            name=name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info("scheduled_job_registered", job=name, cron=cron)
        return True

    async def _run(self, name: str) -> bool:
        job = self._jobs[name]
        job.stats.runs += 1
        job.stats.last_run = datetime.now(timezone.utc)
        try:
            result = job.action()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            job.stats.failures += 1
            job.stats.last_error = str(exc) or type(exc).__name__
            logger.exception("scheduled_job_failed", job=name)
            return False
        logger.debug("scheduled_job_completed", job=name)
        return True

    async def run_job(self, name: str) -> bool:
        """Run ``name`` immediately through its error boundary."""

        if name not in self._jobs:
            raise KeyError(name)
        return await self._run(name)

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return {name: job.stats.as_dict() for name, job in sorted(self._jobs.items())}

    def start(self) -> None:
        if not self.running:
            self._scheduler.start()
            logger.info("scheduler_started", jobs=self.job_names)

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")


__all__ = ["JobStats", "ScheduledJob", "Scheduler"]
