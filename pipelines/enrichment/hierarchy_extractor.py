"""
Hierarchy Extraction.

Responsibilities:
- Search for org-structure / leadership snippets about a job's company.
- Gate on relevance before spending an AI call.
- Ask the AI chat service for the hiring chain and parse its JSON answer.
- Cache sanitized results by (company, snippet content).

Non-Responsibilities:
- No persistence of profiles.
- No merging with previously known hierarchy members.

Invariant:
Failures of search, AI or parsing are logged and reported as "no result";
they never raise out of extract().
"""
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ezlead.cache import CacheGateway, gen_cache_key
from ezlead.config import EnrichmentConfig, SanitizerConfig
from ezlead.llm import ChatService, ChatServiceError, parse_json_response
from ezlead.logger import StructuredLogger, get_logger
from ezlead.models import (
    EnrichmentState,
    HierarchyItem,
    HierarchyResult,
    JobRecord,
    merge_hierarchies,
)
from ezlead.normalize import hash_text
from ezlead.search import build_hierarchy_query

from .company_discovery import SearchProvider
from .prompts import HIERARCHY_MESSAGE, HIERARCHY_SYSTEM
from .sanitizer import sanitize_hierarchy

CACHE_OPERATION = "HierarchyExtractor"
HIERARCHY_KEY = "orghierarchy"
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _key(name: Any) -> str:
    return _NON_ALNUM.sub("", str(name).lower())


def parse_hierarchy(text: str) -> HierarchyResult:
    """
    Parse the model's reply into a HierarchyResult.

    Accepts "orghierarchy" spelled with any case/spacing ("Org Hierarchy")
    and item keys in any case.

    Raises:
        ValueError: if the reply holds no usable hierarchy payload
    """
    data = parse_json_response(text)
    entries = None
    for k, v in data.items():
        if _key(k) == HIERARCHY_KEY:
            entries = v
            break
    if entries is None:
        raise ValueError("Response has no orghierarchy field")
    if not isinstance(entries, list):
        raise ValueError("orghierarchy is not a list")

    items: List[HierarchyItem] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        fields: Dict[str, Any] = {_key(k): v for k, v in entry.items()}
        name = fields.get("name")
        title = fields.get("title")
        items.append(HierarchyItem(
            name=name if isinstance(name, str) else "",
            title=title if isinstance(title, str) else "",
        ))
    return HierarchyResult(items=items)


@dataclass
class ExtractionResult:
    hierarchy: Optional[HierarchyResult]
    states: List[EnrichmentState] = field(default_factory=list)
    reason: str = ""

    @property
    def found(self) -> bool:
        return self.hierarchy is not None and not self.hierarchy.is_empty

    @property
    def cache_hit(self) -> bool:
        return EnrichmentState.CACHE_HIT in self.states


class HierarchyExtractor:
    """Search + AI round trip producing a small, sanitized hiring chain."""

    def __init__(
        self,
        search: SearchProvider,
        chat: ChatService,
        cache: Optional[CacheGateway] = None,
        location: str = "United States",
        config: Optional[EnrichmentConfig] = None,
        sanitizer_config: Optional[SanitizerConfig] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        if search is None or chat is None:
            raise ValueError("search and chat services are required")
        self.search = search
        self.chat = chat
        self.cache = cache
        self.location = location
        self.config = config or EnrichmentConfig()
        self.sanitizer_config = sanitizer_config or SanitizerConfig()
        self.logger = logger or get_logger()

    @property
    def cache_ttl(self) -> Optional[timedelta]:
        minutes = self.config.hierarchy_cache_ttl_minutes
        return timedelta(minutes=minutes) if minutes else None

    def is_relevant(self, snippets: str) -> bool:
        lowered = snippets.lower()
        return any(token.lower() in lowered for token in self.config.relevance_tokens if token)

    def finalize(self, raw: HierarchyResult) -> HierarchyResult:
        """Sanitize, drop repeated names and cap the chain length."""
        cleaned = sanitize_hierarchy(raw, self.sanitizer_config)
        return merge_hierarchies(cleaned, HierarchyResult(), limit=self.config.max_hierarchy_items)

    def extract_hierarchy(self, job: JobRecord, domain: str = "") -> Optional[HierarchyResult]:
        """Hierarchy for the job's company, or None when nothing usable was found."""
        result = self.extract(job, domain)
        return result.hierarchy if result.found else None

    def extract(self, job: JobRecord, domain: str = "") -> ExtractionResult:
        if job is None:
            raise ValueError("job is required")
        if not job.company_name or not job.company_name.strip():
            raise ValueError("job.company_name is required")

        states = [EnrichmentState.SEARCHING_HIERARCHY]

        def no_result(reason: str) -> ExtractionResult:
            return ExtractionResult(None, states + [EnrichmentState.SKIPPED_NO_RESULTS], reason)

        company = job.company_name
        query = build_hierarchy_query(company, job.division, domain)
        try:
            results = self.search.search(query, self.location)
        except Exception as e:
            self.logger.error("Hierarchy search failed", company=company, query=query, error=str(e))
            self.logger.record_error(type(e).__name__)
            return no_result("search_failed")

        snippets = "\n".join(r.snippet for r in results if r.snippet)
        if not snippets:
            self.logger.warning("No search results for hierarchy", company=company, query=query)
            return no_result("no_results")
        if not self.is_relevant(snippets):
            self.logger.warning("No leadership titles found in results", company=company)
            return no_result("no_relevant_results")

        cache_key = gen_cache_key(CACHE_OPERATION, company, hash_text(snippets))
        if self.cache is not None:
            # Only non-empty hierarchies are written; an empty entry is treated as a miss.
            cached = HierarchyResult.from_dict(self.cache.try_get(cache_key))
            if not cached.is_empty:
                self.logger.info("Returning cached hierarchy", company=company, key=cache_key)
                states.append(EnrichmentState.CACHE_HIT)
                return ExtractionResult(cached, states, "cache_hit")

        states.append(EnrichmentState.CALLING_AI)
        budget = self.config.prompt_char_budget
        prompt = HIERARCHY_MESSAGE.format(
            company_name=company,
            description=(job.description or "")[:budget],
            results=snippets[:budget],
        )
        try:
            text = self.chat.complete(HIERARCHY_SYSTEM, prompt)
        except ChatServiceError as e:
            self.logger.error("AI hierarchy request failed", company=company, error=str(e))
            self.logger.record_error("ChatServiceError")
            return no_result("ai_unavailable")

        if not text or not text.strip():
            self.logger.warning("Empty organizational hierarchy response", company=company)
            return no_result("empty_response")

        try:
            raw = parse_hierarchy(text)
        except ValueError as e:
            self.logger.error(
                "Failed to parse hierarchy response",
                company=company, error=str(e), payload=text,
            )
            self.logger.record_error("MalformedHierarchy")
            return no_result("malformed_response")

        states.append(EnrichmentState.SANITIZING)
        hierarchy = self.finalize(raw)
        if hierarchy.is_empty:
            self.logger.info("Hierarchy empty after sanitizing", company=company, raw=raw.to_dict())
            return no_result("empty_after_sanitize")

        if self.cache is not None:
            self.cache.put(cache_key, hierarchy.to_dict(), self.cache_ttl)
        self.logger.info("Hierarchy extracted", company=company, names=hierarchy.names())
        return ExtractionResult(hierarchy, states, "extracted")
