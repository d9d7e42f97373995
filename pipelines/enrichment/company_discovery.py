"""
Company Domain Discovery.

Responsibilities:
- Resolve a company's official domain and canonical link from web search.
- Try a direct domain match on the result snippets first, then fall back to
  the first ranked result whose link mentions the company name.

Non-Responsibilities:
- No persistence.
- No hierarchy search.

Invariant:
Discovery never fails the enrichment: any search problem yields an empty
resolution and enrichment proceeds without a known domain.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol

from ezlead.config import EnrichmentConfig
from ezlead.logger import StructuredLogger, get_logger
from ezlead.models import SearchResult
from ezlead.normalize import canonical_url, host_of
from ezlead.search import build_discovery_query


class SearchProvider(Protocol):
    def search(self, query: str, location: str) -> List[SearchResult]:
        ...


@dataclass(frozen=True)
class DomainResolution:
    domain: str = ""
    link: str = ""

    @property
    def resolved(self) -> bool:
        return bool(self.domain)


def build_domain_pattern(tlds: List[str]) -> "re.Pattern[str]":
    """Regex matching a bare hostname ending in one of the given TLDs."""
    suffixes = "|".join(sorted({re.escape(t.lstrip(".").lower()) for t in tlds if t}, key=len, reverse=True))
    return re.compile(
        r"(?<![\w.@-])((?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+(?:" + suffixes + r"))(?![\w-])",
        re.IGNORECASE,
    )


def extract_domain_name(text: str, pattern: "re.Pattern[str]") -> str:
    """First domain name found in text, lower-cased and without www."""
    match = pattern.search(text or "")
    if not match:
        return ""
    domain = match.group(1).lower()
    return domain[4:] if domain.startswith("www.") else domain


class CompanyDiscovery:
    """Resolves (domain, canonical link) for a company name."""

    def __init__(
        self,
        search: SearchProvider,
        config: Optional[EnrichmentConfig] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        if search is None:
            raise ValueError("A search provider is required")
        self.search = search
        self.config = config or EnrichmentConfig()
        self.logger = logger or get_logger()
        self._domain_pattern = build_domain_pattern(self.config.domain_tlds)

    def resolve_domain(self, company_name: str, location: str) -> DomainResolution:
        if not company_name or not company_name.strip():
            raise ValueError("company_name is required")

        query = build_discovery_query(company_name)
        try:
            results = self.search.search(query, location)
        except Exception as e:
            self.logger.warning("Domain search failed", company=company_name, error=str(e))
            self.logger.record_error(type(e).__name__)
            return DomainResolution()

        if not results:
            self.logger.warning("No search results for company", company=company_name)
            return DomainResolution()

        resolution = self._from_snippets(results) or self._from_links(company_name, results)
        if resolution is None:
            self.logger.info("Company domain not resolved", company=company_name)
            return DomainResolution()

        self.logger.info("Company domain resolved", company=company_name, domain=resolution.domain)
        return resolution

    def _from_snippets(self, results: List[SearchResult]) -> Optional[DomainResolution]:
        snippet = " ".join(f"site:{r.snippet}" for r in results if r.snippet)
        domain = extract_domain_name(snippet, self._domain_pattern)
        if not domain:
            return None
        for r in results:
            host = host_of(r.link)
            if host and (host == domain or host.endswith("." + domain) or domain.endswith("." + host)):
                return DomainResolution(domain=domain, link=canonical_url(r.link))
        return DomainResolution(domain=domain, link=f"https://{domain}")

    def _from_links(self, company_name: str, results: List[SearchResult]) -> Optional[DomainResolution]:
        tokens = [t.lower() for t in company_name.split() if t.strip()]
        for r in results:
            link = (r.link or "").lower()
            if not link:
                continue
            if any(token in link for token in tokens):
                domain = host_of(r.link)
                if domain:
                    return DomainResolution(domain=domain, link=canonical_url(r.link))
        return None
