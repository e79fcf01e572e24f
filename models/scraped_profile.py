from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ScrapedPerson(BaseModel):
    name: str
    headline: str = ""
    location: str | None = None
    avatar_url: str | None = None
    about: str | None = None
    linkedin_url: str | None = None

    model_config = ConfigDict(extra="ignore")


class ScrapedPosition(BaseModel):
    title: str
    company: str
    company_linkedin_url: str | None = None
    duration: str | None = None
    location: str | None = None
    is_current: bool = False

    model_config = ConfigDict(extra="ignore")


class ParsedProfile(BaseModel):
    """A vendor profile record reduced to the fields the CRM persists."""

    person: ScrapedPerson
    positions: list[ScrapedPosition] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ParsedCompany(BaseModel):
    name: str
    linkedin_url: str | None = None
    slug: str | None = None
    logo_url: str | None = None
    website: str | None = None
    about: str | None = None

    model_config = ConfigDict(extra="ignore")
