from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from config.settings import Settings, get_settings
from db.repos.jobs_repo import utc_now_iso
from models.scrape_job import MAX_BATCH_URLS, ScrapeJob, TriggerRequest
from ports.gateway import ScrapeGatewayPort
from ports.repos import JobStorePort
from services.errors import InvalidInputError, JobNotFoundError
from services.linkedin_urls import normalize_input_urls, parse_url_lines


logger = logging.getLogger(__name__)


def build_url_list(
    url: Optional[str],
    urls: Optional[List[Any]],
    kind: str,
    cap: int = 20,
) -> List[str]:
    """Resolve the URLs to scrape from a trigger body.

    A `urls` list wins and is filtered to LinkedIn URLs; a single `url` is
    taken as given. Oversized lists are truncated to `cap`.
    """
    url_list: List[str] = []
    if isinstance(urls, list):
        url_list = normalize_input_urls(kind, urls)
    elif url and str(url).strip():
        url_list = [str(url).strip()]

    if not url_list:
        raise InvalidInputError("No valid LinkedIn URLs provided")
    cap = min(cap, MAX_BATCH_URLS)
    if len(url_list) > cap:
        logger.info(f"Truncating {len(url_list)} URLs to the first {cap}", extra={"step": "trigger"})
        url_list = url_list[:cap]
    return url_list


def terminal_payload(job: ScrapeJob) -> Dict[str, Any]:
    """Answer for a job in a terminal state; same shape for fresh and stored results."""
    payload: Dict[str, Any] = {"job_id": job.id, "status": job.status}
    if job.status == "completed":
        payload["result"] = job.result or []
    else:
        payload["error"] = job.error_message
    return payload


class ScrapeJobController:
    """State machine of a scrape job: pending -> processing -> completed | failed.

    `trigger` creates the job and returns at once; `check` is the only writer
    after creation and makes at most one vendor call per invocation.
    """

    def __init__(self, jobs: JobStorePort, gateway: ScrapeGatewayPort, settings: Optional[Settings] = None):
        self.jobs = jobs
        self.gateway = gateway
        self.settings = settings or get_settings()

    def trigger(self, request: TriggerRequest) -> Dict[str, Any]:
        url_list = build_url_list(request.url, request.urls, request.type, cap=self.settings.max_batch_urls)

        logger.info(f"[Trigger] Starting {request.type} scrape for {len(url_list)} URLs", extra={"step": "trigger"})
        snapshot_id = self.gateway.trigger(request.type, url_list)

        try:
            job = self.jobs.create(request.type, url_list, snapshot_id)
        except sqlite3.Error as e:
            # The scrape is already running at the vendor; hand back the snapshot anyway
            logger.error(
                f"[Trigger] Error creating job for snapshot {snapshot_id}",
                extra={"step": "trigger", "status": "degraded", "error": str(e), "snapshot_id": snapshot_id},
            )
            return {
                "job_id": None,
                "snapshot_id": snapshot_id,
                "status": "pending",
                "url_count": len(url_list),
                "message": "Job created but not tracked in DB",
            }

        logger.info("[Trigger] Job created", extra={"step": "trigger", "status": "pending", "job_id": job.id, "snapshot_id": snapshot_id})
        return {
            "job_id": job.id,
            "snapshot_id": snapshot_id,
            "status": "pending",
            "url_count": len(url_list),
        }

    def check(self, job_id: str) -> Dict[str, Any]:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        if job.is_terminal:
            return terminal_payload(job)

        logger.info(f"[Check] Checking snapshot {job.snapshot_id}", extra={"step": "check", "job_id": job_id, "snapshot_id": job.snapshot_id})
        poll = self.gateway.poll_snapshot(job.snapshot_id)

        if not poll.ready and not poll.failed:
            return {"job_id": job.id, "status": "processing"}

        completed_at = utc_now_iso()
        if poll.ready:
            written = self.jobs.update_terminal(job.id, "completed", result=poll.records, completed_at=completed_at)
        else:
            written = self.jobs.update_terminal(job.id, "failed", error_message=poll.error, completed_at=completed_at)

        if not written:
            # Another checker finished the job first; its write is authoritative
            stored = self.jobs.get(job.id)
            if stored is not None and stored.is_terminal:
                return terminal_payload(stored)

        status = "completed" if poll.ready else "failed"
        logger.info(f"[Check] Job {status}", extra={"step": "check", "status": status, "job_id": job.id})
        finished = job.model_copy(update={
            "status": status,
            "result": poll.records if poll.ready else None,
            "error_message": None if poll.ready else poll.error,
            "completed_at": completed_at,
        })
        return terminal_payload(finished)

    def list_jobs(self, status: Optional[str] = None, limit: int = 50) -> Dict[str, Any]:
        jobs = self.jobs.list(status=status or None, limit=limit)
        return {"jobs": [j.model_dump() for j in jobs]}

    def scrape(self, request: TriggerRequest) -> Dict[str, Any]:
        """Trigger and block until the snapshot is ready (small interactive fetches)."""
        url_list = build_url_list(request.url, request.urls, request.type, cap=self.settings.max_batch_urls)
        snapshot_id = self.gateway.trigger(request.type, url_list)
        logger.info(
            f"Snapshot ID: {snapshot_id}, polling every {self.settings.poll_interval_ms / 1000:.0f}s",
            extra={"step": "scrape"},
        )
        records = self.gateway.poll_until_ready(
            snapshot_id,
            max_attempts=self.settings.poll_max_attempts,
            interval_ms=self.settings.poll_interval_ms,
        )
        return {"type": request.type, "data": records, "count": len(records)}


_IMPORT_EXAMPLES = {
    "profile": "https://linkedin.com/in/username",
    "company": "https://linkedin.com/company/name",
}


def build_import_urls(kind: str, urls: Optional[List[Any]], text: Optional[str], cap: int = 20) -> List[str]:
    """URLs for an import run: pasted text and/or a list, kept only if they name a `kind` page."""
    lines = [str(u) for u in (urls or []) if isinstance(u, str)]
    if text:
        lines.append(text)
    url_list = parse_url_lines("\n".join(lines), kind, limit=min(cap, MAX_BATCH_URLS))
    if not url_list:
        raise InvalidInputError(
            f"Please enter at least one valid LinkedIn {kind} URL (e.g., {_IMPORT_EXAMPLES.get(kind, '')})"
        )
    return url_list
