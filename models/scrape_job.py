from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


ScrapeType = Literal["profile", "company"]
JobStatus = Literal["pending", "processing", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# Vendor batch limit for one scrape job
MAX_BATCH_URLS = 20


class ScrapeJob(BaseModel):
    """App/DB record shape for one batch request to the external scraper."""

    id: str
    type: ScrapeType
    urls: list[str] = Field(min_length=1, max_length=MAX_BATCH_URLS)
    snapshot_id: str
    status: JobStatus = "pending"
    result: list[Any] | None = None
    error_message: str | None = None
    created_at: str
    completed_at: str | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class TriggerRequest(BaseModel):
    """Body accepted by the trigger and synchronous scrape endpoints."""

    url: str | None = None
    urls: list[Any] | None = None
    type: ScrapeType = "profile"

    model_config = ConfigDict(extra="ignore")

    @field_validator("urls", mode="before")
    @classmethod
    def _urls_must_be_list(cls, value: Any) -> Any:
        # A non-list `urls` is ignored, mirroring the single-`url` fallback
        return value if isinstance(value, list) else None


class ImportRequest(BaseModel):
    """Body of the import endpoints: a URL list, free text with one URL per line, or both."""

    urls: list[Any] | None = None
    text: str | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("urls", mode="before")
    @classmethod
    def _urls_must_be_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None


class CompanySyncRequest(BaseModel):
    # Empty means every company that has a LinkedIn URL but no logo yet
    company_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
