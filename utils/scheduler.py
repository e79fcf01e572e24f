from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger


logger = logging.getLogger(__name__)


class TaskHandle(Protocol):
    def start(self) -> None:
        ...

    def poke(self) -> None:
        ...

    def stop(self) -> None:
        ...

    def shutdown(self) -> None:
        ...

    @property
    def running(self) -> bool:
        ...


TaskFactory = Callable[[float, Callable[[], None]], TaskHandle]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduledTask:
    """Run `func` now and then every `interval` seconds as an APScheduler interval job.

    `poke()` pulls the next run forward to now (a poke landing during a run
    is folded into the next interval run); `stop()` removes the job and
    may be called from inside a run. A stopped task may be started again.
    `shutdown()` also stops the scheduler thread.
    """

    def __init__(
        self,
        interval: float,
        func: Callable[[], None],
        name: str = "scheduled-task",
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.interval = interval
        self.func = func
        self.name = name
        self._scheduler = scheduler or BackgroundScheduler(
            daemon=True,
            timezone=timezone.utc,
            job_defaults={
                "coalesce": True,  # A backlog of missed runs collapses into one
                "max_instances": 1,
                "misfire_grace_time": None,
            },
        )
        self._job = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._job is not None

    def start(self) -> None:
        with self._lock:
            if self._job is not None:
                self._modify_next_run(self._job)
                return
            if not self._scheduler.running:
                self._scheduler.start()
            # Fresh id per start: a run still finishing under an old id must not block this one
            self._job = self._scheduler.add_job(
                self._run,
                trigger=IntervalTrigger(seconds=self.interval),
                id=f"{self.name}-{uuid.uuid4().hex[:8]}",
                name=self.name,
                next_run_time=_now(),
            )

    def poke(self) -> None:
        with self._lock:
            job = self._job
        if job is not None:
            self._modify_next_run(job)

    def stop(self) -> None:
        with self._lock:
            job, self._job = self._job, None
        if job is None:
            return
        try:
            job.remove()
        except JobLookupError:
            pass

    def shutdown(self) -> None:
        self.stop()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    @staticmethod
    def _modify_next_run(job) -> None:
        try:
            job.modify(next_run_time=_now())
        except JobLookupError:
            pass

    def _run(self) -> None:
        try:
            self.func()
        except Exception:
            logger.exception(f"{self.name} run failed")


def scheduled_task_factory(interval: float, func: Callable[[], None]) -> TaskHandle:
    return ScheduledTask(interval, func, name="scrape-job-poller")
