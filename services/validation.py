from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models.scraped_profile import ParsedCompany, ParsedProfile, ScrapedPerson, ScrapedPosition
from services import payload
from services.linkedin_urls import canonical_url, slug_of


logger = logging.getLogger(__name__)

PLACEHOLDER_PERSON_NAMES = {"unknown", "linkedin member", "private", ""}
PLACEHOLDER_COMPANY_NAMES = {"unknown", "unknown company", "private", ""}

PROFILE_SCRAPE_FAILED = "Scrape failed: No valid data returned (profile may be private or URL invalid)"
COMPANY_SCRAPE_FAILED = "Scrape failed: No valid company data returned (page may be private or URL invalid)"


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def is_profile_payload_valid(record: Any) -> bool:
    """Whether a raw vendor profile record carries a usable person."""
    if not isinstance(record, dict) or not record:
        return False
    if payload.has_error_marker(record):
        return False
    return bool(record.get("name") or (record.get("first_name") and record.get("last_name")))


def is_company_payload_valid(record: Any) -> bool:
    if not isinstance(record, dict) or not record:
        return False
    if payload.has_error_marker(record):
        return False
    name = record.get("name")
    return bool(name) and str(name).lower() != "unknown"


def validate_parsed_profile(profile: ParsedProfile) -> ValidationResult:
    errors: List[str] = []
    warnings: List[str] = []
    name = profile.person.name
    if name.lower().strip() in PLACEHOLDER_PERSON_NAMES:
        errors.append(f'Invalid or missing name: "{name}"')

    if not profile.positions and profile.person.headline:
        warnings.append("No work experience found, but has headline")
    elif not profile.positions:
        warnings.append("No work experience found")
    for pos in profile.positions:
        if not pos.title or pos.title.lower() == "position":
            warnings.append(f'Position at "{pos.company}" has no valid title')
        if not pos.company:
            warnings.append("Position missing company name")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_parsed_company(company: ParsedCompany) -> ValidationResult:
    errors: List[str] = []
    warnings: List[str] = []
    if company.name.lower().strip() in PLACEHOLDER_COMPANY_NAMES:
        errors.append(f'Invalid or missing company name: "{company.name}"')
    if not company.website:
        warnings.append("No website URL found")
    if not company.logo_url:
        warnings.append("No logo URL found")
    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def format_validation_message(result: ValidationResult) -> str:
    parts: List[str] = []
    if result.errors:
        parts.append(f"Errors: {'; '.join(result.errors)}")
    if result.warnings:
        parts.append(f"Warnings: {'; '.join(result.warnings)}")
    return " | ".join(parts) or "No issues found"


def _company_link(raw: Optional[str]) -> Optional[str]:
    return canonical_url("company", raw) if raw else None


def parse_profile(record: Dict[str, Any]) -> ParsedProfile:
    """Reduce a vendor profile record to a person and a de-duplicated list of positions.

    The first experience entry is taken as current. The record's current company
    is put in front when no experience entry names it already.
    """
    person = ScrapedPerson(
        name=payload.name_of(record) or "Unknown",
        headline=payload.headline_of(record) or "",
        location=payload.location_of(record),
        avatar_url=payload.avatar_of(record),
        about=payload.about_of(record),
        linkedin_url=canonical_url("profile", payload.url_of(record)),
    )

    positions: List[ScrapedPosition] = []
    for entry in payload.experience_of(record):
        company = payload.experience_company_of(entry)
        title = payload.experience_title_of(entry)
        if not company or not title or company == title:
            logger.debug(f"Skipping experience entry company={company!r} title={title!r}")
            continue
        positions.append(ScrapedPosition(
            title=title,
            company=company,
            company_linkedin_url=_company_link(payload.experience_company_url_of(entry)),
            duration=payload.text_of(entry.get("duration")),
            location=payload.text_of(entry.get("location")),
            is_current=not positions,
        ))

    current = payload.current_company_of(record)
    current_title = payload.position_of(record)
    current_name = payload.text_of(current.get("name")) if current else None
    if current_name and current_title:
        if not any(p.company.lower() == current_name.lower() for p in positions):
            positions.insert(0, ScrapedPosition(
                title=current_title,
                company=current_name,
                company_linkedin_url=_company_link(payload.current_company_url_of(record)),
                is_current=True,
            ))

    unique: List[ScrapedPosition] = []
    seen = set()
    for pos in positions:
        key = pos.company.lower()
        if key not in seen:
            seen.add(key)
            unique.append(pos)

    return ParsedProfile(person=person, positions=unique)


def parse_company(record: Dict[str, Any]) -> ParsedCompany:
    raw_url = payload.url_of(record)
    return ParsedCompany(
        name=payload.name_of(record) or "Unknown Company",
        linkedin_url=canonical_url("company", raw_url),
        slug=slug_of("company", raw_url),
        logo_url=payload.logo_of(record),
        website=payload.website_of(record),
        about=payload.about_of(record),
    )


class ScrapeValidator:
    """Validates scraped records and keeps running counts for the run summary."""

    def __init__(self):
        self.validation_stats = {
            "total_records": 0,
            "valid_records": 0,
            "invalid_records": 0,
            "validation_errors": [],
        }

    def _count(self, ok: bool, errors: List[str]) -> None:
        self.validation_stats["total_records"] += 1
        if ok:
            self.validation_stats["valid_records"] += 1
        else:
            self.validation_stats["invalid_records"] += 1
            self.validation_stats["validation_errors"].extend(errors)

    def check_profile(self, record: Any) -> Tuple[Optional[ParsedProfile], ValidationResult]:
        if not is_profile_payload_valid(record):
            result = ValidationResult(is_valid=False, errors=[PROFILE_SCRAPE_FAILED])
            self._count(False, result.errors)
            return None, result
        parsed = parse_profile(record)
        result = validate_parsed_profile(parsed)
        self._count(result.is_valid, result.errors)
        if result.warnings:
            logger.warning(f"Profile {parsed.person.linkedin_url} has warnings: {result.warnings}")
        return (parsed if result.is_valid else None), result

    def check_company(self, record: Any) -> Tuple[Optional[ParsedCompany], ValidationResult]:
        if not is_company_payload_valid(record):
            result = ValidationResult(is_valid=False, errors=[COMPANY_SCRAPE_FAILED])
            self._count(False, result.errors)
            return None, result
        parsed = parse_company(record)
        result = validate_parsed_company(parsed)
        self._count(result.is_valid, result.errors)
        return (parsed if result.is_valid else None), result

    def get_validation_stats(self) -> Dict:
        """Return validation statistics."""
        return self.validation_stats.copy()
