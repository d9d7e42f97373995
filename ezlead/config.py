"""
Runtime configuration.

Settings come from environment variables (optionally loaded from .env by
env.load_env). Keyword lists used by the validator, the sanitizer and the
hierarchy extractor are plain data on dataclasses so they can be tuned from a
JSON file (EZLEAD_CONFIG) or replaced in tests without touching the algorithms.
"""

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_SERPAPI_ENDPOINT = "https://serpapi.com/search.json"
DEFAULT_QUERY = "data engineer"
DEFAULT_LOCATION = "Charlotte, North Carolina, United States"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_DB_PATH = "data/ezlead.db"


@dataclass
class FilterConfig:
    """Posting acceptance rules and title normalization vocabulary."""

    region_suffixes: List[str] = field(default_factory=lambda: [", nc", ", sc"])
    remote_marker: str = "remote"
    excluded_title_terms: List[str] = field(default_factory=lambda: ["center"])
    recruiting_agencies: List[str] = field(default_factory=lambda: [
        "robert half",
        "teksystems",
        "insight global",
        "randstad",
        "kforce",
        "apex systems",
        "aerotek",
        "adecco",
        "manpower",
        "staffing",
        "recruiting",
        "talent solutions",
    ])
    default_title: str = "Data Engineer"
    roman_suffixes: List[str] = field(default_factory=lambda: ["I", "II", "III"])
    title_keywords: List[str] = field(default_factory=lambda: [
        "Engineer",
        "Developer",
        "Architect",
        "Analyst",
        "Scientist",
        "Administrator",
        "Consultant",
        "Specialist",
        "Manager",
        "Director",
        "Lead",
    ])


@dataclass
class SanitizerConfig:
    """Vocabulary for rejecting names that are not real people."""

    placeholder_names: List[str] = field(default_factory=lambda: [
        "John Smith",
        "Jane Doe",
        "John Doe",
        "Alice Johnson",
        "Closest Likely Hiring Manager",
        "Their Director",
        "Relevant VP or Practice Lead",
    ])
    pronouns: List[str] = field(default_factory=lambda: [
        "i", "me", "my", "we", "us", "our", "you", "your",
        "he", "him", "his", "she", "her", "hers",
        "they", "them", "their", "it", "its",
    ])
    conjunctions: List[str] = field(default_factory=lambda: [
        "and", "or", "but", "nor", "plus", "&",
    ])
    forbidden_name_words: List[str] = field(default_factory=lambda: [
        "unknown", "n/a", "na", "tbd", "none", "not", "available",
        "manager", "director", "vp", "president", "officer", "head",
        "lead", "team", "hiring", "executive", "ceo", "cto", "cfo", "cmo",
        "department", "division", "company", "leadership",
    ])


@dataclass
class EnrichmentConfig:
    """Search, AI prompt and freshness parameters for company enrichment."""

    relevance_tokens: List[str] = field(default_factory=lambda: [
        "lead",
        "manager",
        "director",
        "ceo",
        "president",
        "data",
        "engineer",
        "analytics",
        "architect",
        "scientist",
    ])
    domain_tlds: List[str] = field(default_factory=lambda: [
        "com", "org", "net", "io", "ai", "dev", "co",
    ])
    prompt_char_budget: int = 1500
    max_hierarchy_items: int = 3
    freshness_hours: int = 24
    lookback_days: int = 30
    hierarchy_cache_ttl_minutes: Optional[int] = None


@dataclass
class Settings:
    """Top-level settings for one EzLead run."""

    serpapi_api_key: str = ""
    serpapi_endpoint: str = DEFAULT_SERPAPI_ENDPOINT
    search_query: str = DEFAULT_QUERY
    search_location: str = DEFAULT_LOCATION
    search_cache_minutes: int = 1440
    search_max_pages: int = 2
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL
    request_timeout: float = 20.0
    db_path: Path = Path(DEFAULT_DB_PATH)
    filters: FilterConfig = field(default_factory=FilterConfig)
    sanitizer: SanitizerConfig = field(default_factory=SanitizerConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        settings = cls(
            serpapi_api_key=os.getenv("SERPAPI_API_KEY", ""),
            serpapi_endpoint=os.getenv("SERPAPI_ENDPOINT", DEFAULT_SERPAPI_ENDPOINT),
            search_query=os.getenv("EZLEAD_QUERY", DEFAULT_QUERY),
            search_location=os.getenv("EZLEAD_LOCATION", DEFAULT_LOCATION),
            search_cache_minutes=_env_int("EZLEAD_SEARCH_CACHE_MINUTES", 1440),
            search_max_pages=_env_int("EZLEAD_SEARCH_MAX_PAGES", 2),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            request_timeout=float(os.getenv("EZLEAD_REQUEST_TIMEOUT", "20")),
            db_path=Path(os.getenv("EZLEAD_DB_PATH", DEFAULT_DB_PATH)),
        )
        settings.enrichment.freshness_hours = _env_int("EZLEAD_FRESHNESS_HOURS", 24)
        settings.enrichment.lookback_days = _env_int("EZLEAD_LOOKBACK_DAYS", 30)

        config_path = os.getenv("EZLEAD_CONFIG")
        if config_path:
            settings = load_keyword_overrides(settings, Path(config_path))
        return settings


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")


def _apply_section(section: Any, overrides: Dict[str, Any], section_name: str) -> Any:
    known = {f.name for f in fields(section)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(
            f"Unknown keys in config section '{section_name}': {', '.join(sorted(unknown))}"
        )
    return replace(section, **overrides)


def load_keyword_overrides(settings: Settings, path: Path) -> Settings:
    """
    Merge a JSON file of keyword/parameter overrides into settings.

    The file may contain the sections "filters", "sanitizer" and "enrichment";
    each maps field names to replacement values. Unknown keys are an error.

    Args:
        settings: Base settings
        path: JSON file path

    Returns:
        New Settings instance with the overrides applied
    """
    if not path.exists():
        raise ValueError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")

    sections = {
        "filters": settings.filters,
        "sanitizer": settings.sanitizer,
        "enrichment": settings.enrichment,
    }
    unknown = set(data) - set(sections)
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    updated = {
        name: _apply_section(section, data.get(name) or {}, name)
        for name, section in sections.items()
    }
    return replace(settings, **updated)
