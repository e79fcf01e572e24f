"""Narrow accessors over Bright Data records.

The vendor's JSON shape is not contractually stable, so records stay plain
dicts and each field the app needs is read through one function here.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


Record = Dict[str, Any]


def text_of(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def name_of(record: Record) -> Optional[str]:
    name = text_of(record.get("name"))
    if name:
        return name
    first = text_of(record.get("first_name")) or ""
    last = text_of(record.get("last_name")) or ""
    return text_of(f"{first} {last}")


def url_of(record: Record) -> Optional[str]:
    """URL the record was scraped from; the input URL wins over the vendor's."""
    return text_of(record.get("input_url")) or text_of(record.get("url")) or text_of(record.get("linkedin_url"))


def logo_of(record: Record) -> Optional[str]:
    return text_of(record.get("logo")) or text_of(record.get("image"))


def website_of(record: Record) -> Optional[str]:
    return text_of(record.get("website"))


def about_of(record: Record) -> Optional[str]:
    return text_of(record.get("about")) or text_of(record.get("description"))


def avatar_of(record: Record) -> Optional[str]:
    return text_of(record.get("avatar"))


def headline_of(record: Record) -> Optional[str]:
    return text_of(record.get("position")) or text_of(record.get("current_company_name"))


def location_of(record: Record) -> Optional[str]:
    return text_of(record.get("city")) or text_of(record.get("location"))


def position_of(record: Record) -> Optional[str]:
    return text_of(record.get("position"))


def experience_of(record: Record) -> List[Record]:
    exp = record.get("experience")
    if not isinstance(exp, list):
        return []
    return [e for e in exp if isinstance(e, dict)]


def current_company_of(record: Record) -> Optional[Record]:
    current = record.get("current_company")
    return current if isinstance(current, dict) else None


def experience_title_of(entry: Record) -> Optional[str]:
    return text_of(entry.get("title")) or text_of(entry.get("job_title")) or text_of(entry.get("position"))


def experience_company_of(entry: Record) -> Optional[str]:
    return text_of(entry.get("company")) or text_of(entry.get("company_name")) or text_of(entry.get("title"))


def experience_company_url_of(entry: Record) -> Optional[str]:
    return text_of(entry.get("company_url")) or text_of(entry.get("company_linkedin_url"))


def has_error_marker(record: Record) -> bool:
    return bool(record.get("error")) or record.get("status") == "error"


def split_location(location: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """'Berlin, Germany' -> ('Berlin', 'Germany'); a single part fills both."""
    if not location:
        return None, None
    parts = [p.strip() for p in location.split(",") if p.strip()]
    if not parts:
        return None, None
    return parts[0], parts[-1]


def current_company_url_of(record: Record) -> Optional[str]:
    current = current_company_of(record)
    if not current:
        return None
    return text_of(current.get("link")) or text_of(current.get("url"))
