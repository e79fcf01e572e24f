from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable, Dict, List, Optional

from db.repos.companies_repo import CompaniesRepo
from db.repos.people_repo import PeopleRepo
from db.repos.positions_repo import PositionsRepo
from models.import_outcome import RecordOutcome
from models.scraped_profile import ParsedProfile, ScrapedPosition
from pipelines.runner import RunContext
from services.linkedin_urls import slug_of
from services.payload import split_location


logger = logging.getLogger(__name__)


def match_company_by_name(name: str, companies: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """First company whose name equals or contains `name`, or is contained in it (case-insensitive).

    Loose on purpose: "Acme" matches "Acme Corp", which can merge short or
    common names.
    """
    needle = name.lower()
    if not needle:
        return None
    for c in companies:
        have = (c.get("name") or "").lower()
        if not have:
            continue
        if have == needle or needle in have or have in needle:
            return c
    return None


class PersistProfiles:
    """Write validated profiles as people, companies and positions; one outcome per record."""

    def __init__(self, conn: sqlite3.Connection, on_processed: Optional[Callable[[int], None]] = None) -> None:
        self.conn = conn
        self.people_repo = PeopleRepo(conn)
        self.companies_repo = CompaniesRepo(conn)
        self.positions_repo = PositionsRepo(conn)
        self.on_processed = on_processed

    def _resolve_company(
        self,
        pos: ScrapedPosition,
        known: List[Dict[str, Any]],
        created: Dict[str, int],
    ) -> Optional[int]:
        slug = slug_of("company", pos.company_linkedin_url) if pos.company_linkedin_url else None
        row = self.companies_repo.find_by_slug(slug)
        if row:
            return int(row["id"])
        row = match_company_by_name(pos.company, known)
        if row:
            return int(row["id"])
        key = pos.company.lower()
        if key in created:
            return created[key]
        try:
            company_id = self.companies_repo.insert(pos.company, linkedin_url=pos.company_linkedin_url)
        except sqlite3.Error as e:
            self.conn.rollback()
            logger.error(f"Error creating company {pos.company!r}", extra={"step": "persist_profiles", "error": str(e)})
            return None
        created[key] = company_id
        return company_id

    def _persist_one(self, profile: ParsedProfile, known: List[Dict[str, Any]], created: Dict[str, int]) -> RecordOutcome:
        person = profile.person
        existing = self.people_repo.find_by_slug(slug_of("profile", person.linkedin_url))
        if existing:
            person_id = int(existing["id"])
            status, message = "exists", "Person already exists"
        else:
            city, country = split_location(person.location)
            person_id = self.people_repo.insert_person(
                name=person.name,
                linkedin_url=person.linkedin_url,
                avatar_url=person.avatar_url,
                city=city,
                country=country,
                notes=person.about,
            )
            status, message = "saved", ""

        position_ids: List[int] = []
        for pos in profile.positions:
            company_id = self._resolve_company(pos, known, created)
            if company_id is None:
                continue
            position_id = self.positions_repo.link(
                person_id, company_id, pos.title, active=pos.is_current, duration=pos.duration
            )
            if position_id is not None:
                position_ids.append(position_id)

        return RecordOutcome(
            url=person.linkedin_url,
            name=person.name,
            status=status,
            message=message,
            entity_id=person_id,
            position_ids=position_ids,
        )

    def run(self, ctx: RunContext) -> RunContext:
        ctx.ensure_outcome_slots()
        # Name matching only looks at companies that existed before this batch
        known = self.companies_repo.list_all()
        known_names = {(c.get("name") or "").lower() for c in known}
        created: Dict[str, int] = {}
        discovered: Dict[str, Dict[str, Any]] = {}
        processed = 0

        for index, profile in ctx.profiles:
            try:
                outcome = self._persist_one(profile, known, created)
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(
                    f"Error saving profile {profile.person.linkedin_url}",
                    extra={"step": "persist_profiles", "status": "error", "error": str(e)},
                )
                outcome = RecordOutcome(
                    url=profile.person.linkedin_url,
                    name=profile.person.name,
                    status="error",
                    message=f"Database error: {e}",
                )
            ctx.outcomes[index] = outcome

            if outcome.status == "saved":
                current = next((p for p in profile.positions if p.is_current), None)
                if current and current.company.lower() not in discovered:
                    discovered[current.company.lower()] = {
                        "name": current.company,
                        "linkedin_url": current.company_linkedin_url,
                        "already_exists": current.company.lower() in known_names,
                    }

            processed += 1
            if self.on_processed:
                self.on_processed(processed)

        ctx.meta["processed_profiles"] = processed
        ctx.meta["discovered_companies"] = list(discovered.values())
        return ctx
