from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


OutcomeStatus = Literal["saved", "exists", "skipped", "error"]


class RecordOutcome(BaseModel):
    """Per-record result of reconciling one scraped record against the store."""

    url: str | None = None
    name: str | None = None
    status: OutcomeStatus
    message: str = ""
    entity_id: int | None = None
    updated_fields: list[str] = Field(default_factory=list)
    position_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
