from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

import tldextract

from config.datasets import DATASETS


LINKEDIN_DOMAIN = "linkedin.com"
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_INVISIBLE = ("\u200b", "\u200c", "\u200d")


def extract_apex_domain(url_or_domain: Optional[str]) -> Optional[str]:
    if not url_or_domain:
        return None
    try:
        text = str(url_or_domain).strip().lower()
        if not _SCHEME_RE.match(text):
            text = f"http://{text}"
        ext = tldextract.extract(text)
        if ext.domain and ext.suffix:
            return f"{ext.domain}.{ext.suffix}"
        return None
    except Exception:
        return None


def _marker(kind: str) -> str:
    return DATASETS[kind]["marker"]


def _path_segments(url: str) -> List[str]:
    return [seg for seg in urlsplit(url).path.split("/") if seg]


def _clean(slug: str) -> str:
    slug = slug.strip().lower()
    for ch in _INVISIBLE:
        slug = slug.replace(ch, "")
    return slug


def _slug(kind: str, raw_url: Optional[str]) -> Tuple[Optional[str], bool]:
    """Return (slug, parsed) where parsed is False when the fallback path was used."""
    if not raw_url:
        return None, True
    text = str(raw_url).strip()
    if not text:
        return None, True
    url = text if _SCHEME_RE.match(text) else f"https://{text}"
    try:
        segments = _path_segments(url)
    except ValueError:
        fallback = text.lower().split("?", 1)[0]
        if fallback.endswith("/"):
            fallback = fallback[:-1]
        return (fallback or None), False
    if not segments:
        return None, True
    marker = _marker(kind)
    lowered = [seg.lower() for seg in segments]
    if marker in lowered:
        idx = lowered.index(marker)
        slug = segments[idx + 1] if idx + 1 < len(segments) else None
    else:
        slug = segments[-1]
    slug = _clean(slug) if slug else None
    return (slug or None), True


def slug_of(kind: str, raw_url: Optional[str]) -> Optional[str]:
    """Stable lowercase LinkedIn identifier for a profile or company URL.

    Looks for the segment after ``/in/`` (profile) or ``/company/`` (company),
    falling back to the last path segment. Never raises.
    """
    return _slug(kind, raw_url)[0]


def canonical_url(kind: str, raw_url: Optional[str]) -> Optional[str]:
    """Form persisted to the store: https://www.linkedin.com/{in|company}/{slug}."""
    slug, parsed = _slug(kind, raw_url)
    if slug and parsed:
        return f"https://www.linkedin.com/{_marker(kind)}/{slug}"
    text = str(raw_url).strip() if raw_url else ""
    return text or None


def same_entity(kind: str, a: Optional[str], b: Optional[str]) -> bool:
    slug_a = slug_of(kind, a)
    slug_b = slug_of(kind, b)
    return bool(slug_a) and slug_a == slug_b


def has_marker(kind: str, raw_url: Optional[str]) -> bool:
    if not raw_url:
        return False
    text = str(raw_url).strip()
    url = text if _SCHEME_RE.match(text) else f"https://{text}"
    try:
        segments = [seg.lower() for seg in _path_segments(url)]
    except ValueError:
        return False
    marker = _marker(kind)
    return marker in segments and segments.index(marker) + 1 < len(segments)


def is_linkedin_url(value: object) -> bool:
    return isinstance(value, str) and LINKEDIN_DOMAIN in value.lower()


def normalize_input_urls(kind: str, urls: Iterable[object]) -> List[str]:
    """Keep LinkedIn URLs only; rewrite those carrying the kind's marker to canonical form."""
    out: List[str] = []
    for u in urls:
        if not is_linkedin_url(u):
            continue
        text = str(u).strip()
        if has_marker(kind, text):
            out.append(canonical_url(kind, text) or text)
        else:
            out.append(text)
    return out


def parse_url_lines(text: Optional[str], kind: str, limit: int = 20) -> List[str]:
    """Split pasted text into unique canonical LinkedIn URLs of one kind.

    Accepts one URL per line as well as comma or whitespace separated lists.
    """
    if not text:
        return []
    seen = set()
    urls: List[str] = []
    for token in re.split(r"[\s,]+", text):
        if not is_linkedin_url(token) or not has_marker(kind, token):
            continue
        slug = slug_of(kind, token)
        if not slug or slug in seen:
            continue
        seen.add(slug)
        urls.append(canonical_url(kind, token) or token)
        if len(urls) >= limit:
            break
    return urls
