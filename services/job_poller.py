from __future__ import annotations

import concurrent.futures as _fut
import logging
import threading
from contextlib import closing
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

import requests

from db.connection import get_connection
from db.repos.jobs_repo import JobsRepo
from models.scrape_job import TERMINAL_STATUSES
from ports.gateway import ScrapeGatewayPort
from utils.scheduler import TaskFactory, TaskHandle, scheduled_task_factory


logger = logging.getLogger(__name__)

_KNOWN_STATUSES = {"pending", "processing", "completed", "failed"}


@dataclass
class TrackedJob:
    id: str
    type: str
    urls: List[str] = field(default_factory=list)
    status: str = "pending"
    result: Optional[List[Any]] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "urls": list(self.urls),
            "status": self.status,
            "result": self.result,
            "error": self.error,
        }


CheckFunc = Callable[[str], Optional[Dict[str, Any]]]
CompletionCallback = Callable[[TrackedJob], None]


class ScrapeJobPoller:
    """Process-local registry of in-flight scrape jobs plus the loop that checks them.

    While any entry is non-terminal, every tick calls `check_func(job_id)` for
    each such entry and copies status/result/error from the answer. The loop
    stops itself once nothing is left to check.
    """

    def __init__(
        self,
        check_func: CheckFunc,
        interval_seconds: float = 15.0,
        task_factory: Optional[TaskFactory] = None,
        max_workers: int = 4,
        on_complete: Optional[CompletionCallback] = None,
    ):
        self.check_func = check_func
        self.interval_seconds = interval_seconds
        self.max_workers = max(1, max_workers)
        self.on_complete = on_complete
        self._task_factory = task_factory or scheduled_task_factory
        self._task: Optional[TaskHandle] = None
        self._jobs: Dict[str, TrackedJob] = {}
        self._callbacks: Dict[str, CompletionCallback] = {}
        self._lock = threading.Lock()
        # Orders "stop when idle" against registrations; held outside `_lock`
        self._task_lock = threading.RLock()
        self._started = False

    # --- lifecycle ---
    def start(self) -> None:
        with self._task_lock:
            self._started = True
            if self.pending_count:
                self._ensure_task()

    def stop(self) -> None:
        with self._task_lock:
            self._started = False
            task, self._task = self._task, None
        if task is not None:
            task.shutdown()

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.running

    def _ensure_task(self) -> None:
        with self._task_lock:
            if not self._started:
                return
            if self._task is None:
                self._task = self._task_factory(self.interval_seconds, self.tick)
            if self._task.running:
                self._task.poke()
            else:
                self._task.start()

    def _stop_if_idle(self) -> bool:
        """Stop the task when nothing is left to check; decided under the task lock."""
        with self._task_lock:
            if self.pending_count:
                return False
            if self._task is not None and self._task.running:
                self._task.stop()
            return True

    # --- registry ---
    def add_job(self, job_id: str, kind: str, urls: List[str], on_complete: Optional[CompletionCallback] = None) -> TrackedJob:
        entry = TrackedJob(id=job_id, type=kind, urls=list(urls))
        with self._task_lock:
            with self._lock:
                self._jobs[job_id] = entry
                if on_complete is not None:
                    self._callbacks[job_id] = on_complete
            self._ensure_task()
        logger.info("Tracking scrape job", extra={"step": "poller", "status": "pending", "job_id": job_id})
        return replace(entry)

    def remove_job(self, job_id: str) -> bool:
        """Stop tracking a job locally; the vendor scrape is not cancelled."""
        with self._lock:
            self._callbacks.pop(job_id, None)
            return self._jobs.pop(job_id, None) is not None

    def get(self, job_id: str) -> Optional[TrackedJob]:
        with self._lock:
            entry = self._jobs.get(job_id)
            return replace(entry) if entry else None

    def jobs(self) -> List[TrackedJob]:
        with self._lock:
            return [replace(j) for j in self._jobs.values()]

    @property
    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for j in self._jobs.values() if not j.is_terminal)

    def refresh(self) -> None:
        """Force a check of all pending jobs now."""
        self._ensure_task()

    # --- loop body ---
    def _safe_check(self, job_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.check_func(job_id)
        except Exception as e:
            # Transient: retried on the next tick
            logger.warning(
                f"Error checking job {job_id}",
                extra={"step": "poller", "status": "retry", "job_id": job_id, "error": str(e)},
            )
            return None

    def tick(self) -> int:
        """Check every non-terminal job once; returns how many checks were issued."""
        with self._lock:
            pending_ids = [j.id for j in self._jobs.values() if not j.is_terminal]
        if not pending_ids:
            self._stop_if_idle()
            return 0

        answers: Dict[str, Optional[Dict[str, Any]]] = {}
        if len(pending_ids) == 1 or self.max_workers == 1:
            for job_id in pending_ids:
                answers[job_id] = self._safe_check(job_id)
        else:
            with _fut.ThreadPoolExecutor(max_workers=min(self.max_workers, len(pending_ids))) as ex:
                futures = {ex.submit(self._safe_check, job_id): job_id for job_id in pending_ids}
                for fut in _fut.as_completed(futures):
                    answers[futures[fut]] = fut.result()

        finished: List[tuple] = []
        with self._lock:
            for job_id, answer in answers.items():
                entry = self._jobs.get(job_id)
                if entry is None or entry.is_terminal or not isinstance(answer, dict):
                    continue
                status = answer.get("status")
                if status not in _KNOWN_STATUSES:
                    logger.warning(f"Unexpected status {status!r} for job {job_id}", extra={"step": "poller", "job_id": job_id})
                    continue
                entry.status = status
                entry.result = answer.get("result")
                entry.error = answer.get("error")
                if entry.is_terminal:
                    finished.append((replace(entry), self._callbacks.pop(job_id, None)))

        for entry, callback in finished:
            logger.info(f"Job {entry.status}", extra={"step": "poller", "status": entry.status, "job_id": entry.id})
            for cb in (callback, self.on_complete):
                if cb is None:
                    continue
                try:
                    cb(entry)
                except Exception as e:
                    logger.error(
                        f"Completion callback failed for job {entry.id}",
                        extra={"step": "poller", "status": "error", "job_id": entry.id, "error": str(e)},
                    )

        # Counted after the callbacks: a job they register keeps the loop alive
        self._stop_if_idle()
        return len(pending_ids)


class LocalJobChecker:
    """Check function that runs the check operation in-process over its own connection."""

    def __init__(self, db_path: str, gateway: ScrapeGatewayPort):
        self.db_path = db_path
        self.gateway = gateway

    def __call__(self, job_id: str) -> Dict[str, Any]:
        from services.scrape_jobs import ScrapeJobController

        with closing(get_connection(self.db_path)) as conn:
            return ScrapeJobController(JobsRepo(conn), self.gateway).check(job_id)


class HttpJobChecker:
    """Check function that probes a running server's check endpoint."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, job_id: str) -> Optional[Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = self.session.get(
            f"{self.base_url}/api/scrape-linkedin/check/{job_id}",
            headers=headers,
            timeout=self.timeout,
        )
        if not response.ok:
            logger.warning(
                f"Check endpoint answered {response.status_code} for job {job_id}",
                extra={"step": "poller", "job_id": job_id},
            )
            return None
        return response.json()
