"""
Company Profile Refresh.

Responsibilities:
- Walk the jobs created inside the lookback window.
- Skip companies whose profile was refreshed within the freshness window.
- Run domain discovery then hierarchy extraction for the rest.
- Merge results into the stored profile (or create it).

Non-Responsibilities:
- No search, AI or parsing logic of its own.
- No job ingestion.

Invariant:
One company's failure never aborts the batch. A company with no usable
hierarchy keeps its stored profile untouched.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ezlead.config import EnrichmentConfig
from ezlead.logger import StructuredLogger, get_logger
from ezlead.models import (
    CompanyProfile,
    EnrichmentState,
    JobRecord,
    merge_profile,
    utcnow,
)
from ezlead.normalize import canonical_url
from storage.repositories import CompanyRepository, JobRepository

from .company_discovery import CompanyDiscovery
from .hierarchy_extractor import HierarchyExtractor


@dataclass
class CompanyOutcome:
    company_id: str
    company_name: str
    state: EnrichmentState
    path: List[EnrichmentState] = field(default_factory=list)
    detail: str = ""


@dataclass
class RefreshSummary:
    """Result of one refresh pass."""

    outcomes: List[CompanyOutcome] = field(default_factory=list)
    matched: int = 0

    def count(self, state: EnrichmentState) -> int:
        return sum(1 for o in self.outcomes if o.state == state)

    @property
    def counts(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for outcome in self.outcomes:
            totals[outcome.state.value] = totals.get(outcome.state.value, 0) + 1
        return totals


class EnrichmentOrchestrator:
    def __init__(
        self,
        job_repo: JobRepository,
        company_repo: CompanyRepository,
        discovery: CompanyDiscovery,
        extractor: HierarchyExtractor,
        location: str = "United States",
        config: Optional[EnrichmentConfig] = None,
        logger: Optional[StructuredLogger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.job_repo = job_repo
        self.company_repo = company_repo
        self.discovery = discovery
        self.extractor = extractor
        self.location = location
        self.config = config or EnrichmentConfig()
        self.logger = logger or get_logger()
        self.clock = clock

    def refresh_company_profiles(self, as_of: Optional[datetime] = None) -> RefreshSummary:
        """
        Enrich the companies behind recent jobs.

        Args:
            as_of: Reference time for the lookback and freshness windows
                (default: now)

        Returns:
            RefreshSummary with per-company outcomes and the number of
            profiles updated since the lookback cutoff
        """
        as_of = as_of or self.clock()
        cutoff = as_of - timedelta(days=self.config.lookback_days)
        jobs = self.job_repo.list_created_since(cutoff)
        self.logger.info("Refreshing company profiles", jobs=len(jobs), since=cutoff)

        summary = RefreshSummary()
        for job in jobs:
            outcome = self._refresh_company(job, as_of)
            summary.outcomes.append(outcome)
            self.logger.record_enrichment_outcome(outcome.state.value)

        summary.matched = len(self.company_repo.list_updated_since(cutoff))
        self.logger.info("Company refresh complete", matched=summary.matched, **summary.counts)
        return summary

    def is_fresh(self, profile: Optional[CompanyProfile], as_of: datetime) -> bool:
        if profile is None:
            return False
        return as_of - profile.updated_at < timedelta(hours=self.config.freshness_hours)

    def _refresh_company(self, job: JobRecord, as_of: datetime) -> CompanyOutcome:
        path = [EnrichmentState.PENDING]

        def finish(state: EnrichmentState, detail: str = "") -> CompanyOutcome:
            return CompanyOutcome(job.company_id, job.company_name, state, path + [state], detail)

        try:
            profile = self.company_repo.get_by_id(job.company_id)
            if self.is_fresh(profile, as_of):
                self.logger.debug("Profile is fresh, skipping", company=job.company_name)
                return finish(EnrichmentState.SKIPPED_FRESH)

            path.append(EnrichmentState.DISCOVERING_DOMAIN)
            resolution = self.discovery.resolve_domain(job.company_name, self.location)

            extraction = self.extractor.extract(job, resolution.domain)
            path.extend(s for s in extraction.states if not s.is_terminal)
            if not extraction.found:
                return finish(EnrichmentState.SKIPPED_NO_RESULTS, extraction.reason)

            now = self.clock()
            if profile is not None:
                self.company_repo.update(merge_profile(
                    profile,
                    extraction.hierarchy,
                    domain_name=resolution.domain,
                    link=resolution.link,
                    now=now,
                    max_items=self.config.max_hierarchy_items,
                ))
            else:
                self.company_repo.add(CompanyProfile(
                    company_id=job.company_id,
                    company_name=job.company_name,
                    domain_name=resolution.domain,
                    link=canonical_url(resolution.link) if resolution.link else "",
                    hierarchy=extraction.hierarchy,
                    created_at=now,
                    updated_at=now,
                ))
            self.logger.info(
                "Company profile saved",
                company=job.company_name,
                domain=resolution.domain,
                names=extraction.hierarchy.names(),
            )
            return finish(EnrichmentState.PERSISTED, extraction.reason)
        except Exception as e:
            self.logger.error(
                "Company enrichment failed",
                company=job.company_name, job_id=job.job_id, error=str(e),
            )
            self.logger.record_error(type(e).__name__)
            return finish(EnrichmentState.FAILED, str(e))
