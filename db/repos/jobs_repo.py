from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from models.scrape_job import ScrapeJob, TERMINAL_STATUSES


_COLUMNS = "id, type, urls_json, snapshot_id, status, result_json, error_message, created_at, completed_at"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_job(row: tuple) -> ScrapeJob:
    (job_id, kind, urls_json, snapshot_id, status, result_json, error_message, created_at, completed_at) = row
    return ScrapeJob(
        id=job_id,
        type=kind,
        urls=json.loads(urls_json or "[]"),
        snapshot_id=snapshot_id,
        status=status,
        result=json.loads(result_json) if result_json is not None else None,
        error_message=error_message,
        created_at=created_at,
        completed_at=completed_at,
    )


class JobsRepo:
    """Persistence boundary for scrape job rows. No business rules here."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create(self, kind: str, urls: List[str], snapshot_id: str) -> ScrapeJob:
        job_id = str(uuid.uuid4())
        created_at = utc_now_iso()
        self.conn.execute(
            "INSERT INTO linkedin_scrape_jobs (id, type, urls_json, snapshot_id, status, created_at) "
            "VALUES (?, ?, ?, ?, 'pending', ?)",
            (job_id, kind, json.dumps(list(urls), ensure_ascii=False), snapshot_id, created_at),
        )
        self.conn.commit()
        return ScrapeJob(id=job_id, type=kind, urls=list(urls), snapshot_id=snapshot_id,
                         status="pending", created_at=created_at)

    def get(self, job_id: str) -> Optional[ScrapeJob]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM linkedin_scrape_jobs WHERE id = ?", (job_id,))
        row = cur.fetchone()
        return _row_to_job(row) if row else None

    def update_terminal(
        self,
        job_id: str,
        status: str,
        result: Optional[List[Any]] = None,
        error_message: Optional[str] = None,
        completed_at: Optional[str] = None,
    ) -> bool:
        """Write the single terminal transition of a job.

        Returns False when the row is missing or already terminal; a terminal
        row is never rewritten.
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Not a terminal status: {status}")
        if status == "completed":
            error_message = None
        else:
            result = None
        result_json = json.dumps(result, ensure_ascii=False) if result is not None else None
        cur = self.conn.execute(
            "UPDATE linkedin_scrape_jobs "
            "SET status = ?, result_json = ?, error_message = ?, completed_at = ? "
            "WHERE id = ? AND status NOT IN ('completed', 'failed')",
            (status, result_json, error_message, completed_at or utc_now_iso(), job_id),
        )
        self.conn.commit()
        return cur.rowcount == 1

    def list(self, status: Optional[str] = None, limit: int = 50) -> List[ScrapeJob]:
        """Newest first, optionally filtered by exact status."""
        sql = f"SELECT {_COLUMNS} FROM linkedin_scrape_jobs"
        params: List[Any] = []
        if status:
            sql += " WHERE status = ?"
            params.append(status)
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)
        cur = self.conn.cursor()
        cur.execute(sql, tuple(params))
        return [_row_to_job(r) for r in cur.fetchall()]
