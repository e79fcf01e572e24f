from __future__ import annotations

import logging
import sqlite3
from typing import List

from db.repos.companies_repo import CompaniesRepo
from models.import_outcome import RecordOutcome
from models.scraped_profile import ParsedCompany
from pipelines.runner import RunContext


logger = logging.getLogger(__name__)


class PersistScrapedCompanies:
    """Match scraped companies by slug; back-fill matches, insert the rest."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.repo = CompaniesRepo(conn)

    def _persist_one(self, company: ParsedCompany) -> RecordOutcome:
        existing = self.repo.find_by_slug(company.slug)
        if existing:
            updated = self.repo.backfill(
                int(existing["id"]),
                {"logo_url": company.logo_url, "website": company.website},
            )
            return RecordOutcome(
                url=company.linkedin_url,
                name=existing["name"],
                status="exists",
                message="Company already exists",
                entity_id=int(existing["id"]),
                updated_fields=updated,
            )

        try:
            company_id = self.repo.insert(
                company.name,
                linkedin_url=company.linkedin_url,
                website=company.website,
                logo_url=company.logo_url,
            )
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Error saving company {company.name!r}", extra={"step": "persist_companies", "error": str(e)})
            return RecordOutcome(url=company.linkedin_url, name=company.name, status="skipped", message=str(e))
        return RecordOutcome(url=company.linkedin_url, name=company.name, status="saved", entity_id=company_id)

    def run(self, ctx: RunContext) -> RunContext:
        ctx.ensure_outcome_slots()
        saved: List[int] = []
        for index, company in ctx.companies:
            try:
                outcome = self._persist_one(company)
            except sqlite3.Error as e:
                self.conn.rollback()
                outcome = RecordOutcome(
                    url=company.linkedin_url,
                    name=company.name,
                    status="error",
                    message=f"Database error: {e}",
                )
            ctx.outcomes[index] = outcome
            if outcome.status == "saved" and outcome.entity_id is not None:
                saved.append(outcome.entity_id)
        ctx.meta["processed_companies"] = len(ctx.companies)
        ctx.meta["saved_company_ids"] = saved
        return ctx
