from .scrape_job import CompanySyncRequest, ImportRequest, ScrapeJob, TriggerRequest, MAX_BATCH_URLS, TERMINAL_STATUSES
from .import_outcome import RecordOutcome
from .scraped_profile import ParsedCompany, ParsedProfile, ScrapedPerson, ScrapedPosition

__all__ = [
    "ScrapeJob",
    "TriggerRequest",
    "ImportRequest",
    "CompanySyncRequest",
    "TERMINAL_STATUSES",
    "MAX_BATCH_URLS",
    "RecordOutcome",
    "ParsedCompany",
    "ParsedProfile",
    "ScrapedPerson",
    "ScrapedPosition",
]
