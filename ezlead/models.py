"""
Domain types shared by the ingestion and enrichment pipelines.

Search payloads are parsed defensively: unknown fields are ignored and
missing fields default to empty values.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .normalize import canonical_url, compute_company_id, strip_markup


def utcnow() -> datetime:
    """Naive UTC timestamp, comparable with values read back from SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


@dataclass
class RawPosting:
    """A job listing as returned by the job search provider, pre-validation."""

    title: str = ""
    company_name: str = ""
    location: str = ""
    description: str = ""
    link: str = ""
    external_id: str = ""
    via: str = ""

    @classmethod
    def from_serpapi(cls, item: Dict[str, Any]) -> "RawPosting":
        link = _str(item.get("share_link"))
        if not link:
            for option in item.get("apply_options") or []:
                if isinstance(option, dict) and option.get("link"):
                    link = _str(option["link"])
                    break
        return cls(
            title=strip_markup(_str(item.get("title"))),
            company_name=strip_markup(_str(item.get("company_name"))),
            location=_str(item.get("location")).strip(),
            description=strip_markup(_str(item.get("description"))),
            link=link,
            external_id=_str(item.get("job_id")),
            via=_str(item.get("via")),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawPosting":
        """Build from a plain posting dict (CLI input), ignoring unknown keys."""
        return cls(
            title=_str(data.get("title")),
            company_name=_str(data.get("company_name") or data.get("company")),
            location=_str(data.get("location")),
            description=_str(data.get("description")),
            link=_str(data.get("link") or data.get("url")),
            external_id=_str(data.get("external_id") or data.get("job_id")),
            via=_str(data.get("via")),
        )


@dataclass
class SearchResult:
    """One organic web-search result."""

    position: int = 0
    title: str = ""
    link: str = ""
    displayed_link: str = ""
    snippet: str = ""
    date: str = ""
    highlighted_words: List[str] = field(default_factory=list)

    @classmethod
    def from_serpapi(cls, item: Dict[str, Any]) -> "SearchResult":
        try:
            position = int(item.get("position") or 0)
        except (TypeError, ValueError):
            position = 0
        words = item.get("snippet_highlighted_words") or []
        return cls(
            position=position,
            title=strip_markup(_str(item.get("title") or item.get("name"))),
            link=_str(item.get("link")),
            displayed_link=_str(item.get("displayed_link")),
            snippet=strip_markup(_str(item.get("snippet"))),
            date=_str(item.get("date")),
            highlighted_words=[_str(w) for w in words if w] if isinstance(words, list) else [],
        )


@dataclass
class HierarchyItem:
    name: str
    title: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "title": self.title}


@dataclass
class HierarchyResult:
    """Ordered hiring chain: closest manager first, VP or practice lead last."""

    items: List[HierarchyItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def names(self) -> List[str]:
        return [item.name for item in self.items]

    def to_dict(self) -> Dict[str, Any]:
        return {"orghierarchy": [item.to_dict() for item in self.items]}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HierarchyResult":
        """Rebuild from the stored/cached shape written by to_dict."""
        if not isinstance(data, dict):
            return cls()
        items = []
        for entry in data.get("orghierarchy") or []:
            if isinstance(entry, dict):
                items.append(HierarchyItem(name=_str(entry.get("name")), title=_str(entry.get("title"))))
        return cls(items=items)


def merge_hierarchies(
    primary: HierarchyResult,
    secondary: HierarchyResult,
    limit: Optional[int] = None,
) -> HierarchyResult:
    """
    Union by case-insensitive name: primary items first, then the secondary
    names not yet present. `limit` caps the result.
    """
    seen = set()
    merged: List[HierarchyItem] = []
    for item in list(primary.items) + list(secondary.items):
        key = item.name.strip().casefold()
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(HierarchyItem(name=item.name, title=item.title))
    if limit is not None:
        merged = merged[:max(0, limit)]
    return HierarchyResult(items=merged)


@dataclass
class DivisionInference:
    division: str = ""
    reasoning: str = ""
    confidence: int = 0


@dataclass
class JobRecord:
    """Validated, normalized job as persisted by the job repository."""

    job_id: str
    company_id: str
    company_name: str
    title: str
    location: str
    description: str = ""
    division: str = ""
    confidence: int = 0
    reasoning: str = ""
    source_link: str = ""
    source_name: str = "Google Jobs"
    hiring_agency: str = ""
    posted_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class CompanyProfile:
    """Enrichment state for one company."""

    company_id: str
    company_name: str
    domain_name: str = ""
    link: str = ""
    hierarchy: HierarchyResult = field(default_factory=HierarchyResult)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def for_company(cls, company_name: str, **kwargs) -> "CompanyProfile":
        return cls(company_id=compute_company_id(company_name), company_name=company_name, **kwargs)


def merge_profile(
    existing: CompanyProfile,
    hierarchy: HierarchyResult,
    domain_name: str = "",
    link: str = "",
    now: Optional[datetime] = None,
    max_items: int = 3,
) -> CompanyProfile:
    """
    Merge a fresh enrichment into an existing profile.

    Only these fields change: domain_name and link (when newly resolved),
    hierarchy and updated_at (never moves backwards). The fresh hierarchy
    leads; stored names fill the remaining slots up to `max_items`.
    """
    now = now or utcnow()
    return replace(
        existing,
        domain_name=domain_name or existing.domain_name,
        link=canonical_url(link) if link else existing.link,
        hierarchy=merge_hierarchies(hierarchy, existing.hierarchy, limit=max_items),
        updated_at=max(existing.updated_at, now),
    )


class EnrichmentState(str, Enum):
    """Lifecycle of one company's enrichment within a refresh pass."""

    PENDING = "pending"
    DISCOVERING_DOMAIN = "discovering_domain"
    SEARCHING_HIERARCHY = "searching_hierarchy"
    CACHE_HIT = "cache_hit"
    CALLING_AI = "calling_ai"
    SANITIZING = "sanitizing"
    PERSISTED = "persisted"
    SKIPPED_FRESH = "skipped_fresh"
    SKIPPED_NO_RESULTS = "skipped_no_results"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            EnrichmentState.PERSISTED,
            EnrichmentState.SKIPPED_FRESH,
            EnrichmentState.SKIPPED_NO_RESULTS,
            EnrichmentState.FAILED,
        )
