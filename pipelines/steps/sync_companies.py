from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from db.repos.companies_repo import CompaniesRepo
from models.import_outcome import RecordOutcome
from pipelines.runner import RunContext
from services import payload
from services.linkedin_urls import canonical_url, slug_of


logger = logging.getLogger(__name__)


class SyncCompaniesFromResults:
    """Apply a finished company scrape to the companies that were selected for it.

    Missing logo/website are filled in and each matched row's LinkedIn URL is
    rewritten to its canonical form. Records that match no selected company
    are ignored.
    """

    def __init__(self, conn: sqlite3.Connection, company_ids: Iterable[int]) -> None:
        self.conn = conn
        self.company_ids = list(company_ids)
        self.repo = CompaniesRepo(conn)

    @staticmethod
    def _match(record: Dict[str, Any], targets: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        scraped_slug = slug_of("company", payload.url_of(record))
        if not scraped_slug:
            return None
        for company in targets:
            if company.get("linkedin_url") and slug_of("company", company["linkedin_url"]) == scraped_slug:
                return company
        return None

    def run(self, ctx: RunContext) -> RunContext:
        targets = self.repo.list_by_ids(self.company_ids)
        updated = 0
        for record in ctx.records:
            if not isinstance(record, dict):
                continue
            company = self._match(record, targets)
            if company is None:
                continue
            company_id = int(company["id"])
            try:
                written = self.repo.backfill(
                    company_id,
                    {"logo_url": payload.logo_of(record), "website": payload.website_of(record)},
                )
                canonical = canonical_url("company", company["linkedin_url"])
                if canonical and canonical != company["linkedin_url"]:
                    self.repo.set_linkedin_url(company_id, canonical)
                    written.append("linkedin_url")
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(
                    f"Error updating company {company_id}",
                    extra={"step": "sync_companies", "status": "error", "error": str(e)},
                )
                ctx.outcomes.append(RecordOutcome(
                    url=company["linkedin_url"], name=company["name"], status="error",
                    message=f"Database error: {e}", entity_id=company_id,
                ))
                continue
            if written:
                updated += 1
            ctx.outcomes.append(RecordOutcome(
                url=canonical or company["linkedin_url"],
                name=company["name"],
                status="exists",
                entity_id=company_id,
                updated_fields=written,
            ))

        ctx.meta["fetched_count"] = len(ctx.records)
        ctx.meta["updated_count"] = updated
        logger.info(
            f"Synced {updated} of {len(targets)} companies from {len(ctx.records)} records",
            extra={"step": "sync_companies", "status": "ok"},
        )
        return ctx
