from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from typing import Any, Callable, Dict, Iterable, List, Optional

from db.connection import get_connection
from pipelines.runner import Pipeline, RunContext
from pipelines.steps import (
    PersistProfiles,
    PersistScrapedCompanies,
    SyncCompaniesFromResults,
    ValidateScrapedCompanies,
    ValidateScrapedProfiles,
)


logger = logging.getLogger(__name__)


def import_profiles(
    conn: sqlite3.Connection,
    records: List[Dict[str, Any]],
    on_processed: Optional[Callable[[int], None]] = None,
) -> RunContext:
    """Validate and persist scraped profile records; outcomes line up with `records`."""
    ctx = RunContext(kind="profile", records=list(records))
    return Pipeline([ValidateScrapedProfiles(), PersistProfiles(conn, on_processed=on_processed)]).run(ctx)


def import_companies(conn: sqlite3.Connection, records: List[Dict[str, Any]]) -> RunContext:
    ctx = RunContext(kind="company", records=list(records))
    return Pipeline([ValidateScrapedCompanies(), PersistScrapedCompanies(conn)]).run(ctx)


def sync_companies(conn: sqlite3.Connection, company_ids: Iterable[int], records: List[Dict[str, Any]]) -> RunContext:
    ctx = RunContext(kind="company", records=list(records))
    return Pipeline([SyncCompaniesFromResults(conn, company_ids)]).run(ctx)


def make_company_sync_callback(db_path: str, company_ids: Iterable[int]) -> Callable[[Any], None]:
    """Completion callback for a tracked company job: apply its result to the selected companies."""
    ids = list(company_ids)

    def _on_complete(job: Any) -> None:
        if job.status != "completed":
            logger.warning(
                f"Company sync job {job.id} ended {job.status}: {job.error}",
                extra={"step": "sync_companies", "status": job.status, "job_id": job.id},
            )
            return
        with closing(get_connection(db_path)) as conn:
            ctx = sync_companies(conn, ids, job.result or [])
        logger.info(
            f"Updated {ctx.meta.get('updated_count', 0)} companies from job {job.id}",
            extra={"step": "sync_companies", "status": "ok", "job_id": job.id},
        )

    return _on_complete
