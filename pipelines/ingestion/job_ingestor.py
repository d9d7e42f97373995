"""
Job Ingestion.

Responsibilities:
- Fetch postings from the job search provider.
- Validate, de-duplicate by job id, normalize the title and infer the
  division of each posting.
- Persist accepted postings as JobRecord rows.

Non-Responsibilities:
- No company enrichment.
- No updates of already stored jobs.

Invariant:
A posting is stored at most once; a failing posting never stops the batch.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Protocol

from ezlead.config import FilterConfig
from ezlead.logger import StructuredLogger, get_logger
from ezlead.models import DivisionInference, JobRecord, RawPosting, utcnow
from ezlead.normalize import canonical_url, compute_company_id, compute_job_id
from ezlead.validator import is_valid_posting, normalize_title
from pipelines.enrichment.division_inference import DivisionInferrer
from storage.repositories import JobRepository

SOURCE_NAME = "Google Jobs"


class JobSearchProvider(Protocol):
    def search_jobs(self, query: str, location: str) -> List[RawPosting]:
        ...


@dataclass
class IngestSummary:
    fetched: int = 0
    rejected: int = 0
    duplicates: int = 0
    stored: int = 0
    failed: int = 0


def build_job_record(
    posting: RawPosting,
    filters: FilterConfig,
    inference: Optional[DivisionInference] = None,
    now: Optional[datetime] = None,
) -> JobRecord:
    """Map an accepted posting to the record persisted by the job repository."""
    now = now or utcnow()
    inference = inference or DivisionInference()
    company = posting.company_name.strip()
    return JobRecord(
        job_id=compute_job_id(posting.external_id),
        company_id=compute_company_id(company),
        company_name=company,
        title=normalize_title(posting, filters),
        location=posting.location.strip(),
        description=posting.description,
        division=inference.division,
        confidence=inference.confidence,
        reasoning=inference.reasoning,
        source_link=canonical_url(posting.link) if posting.link else "",
        source_name=SOURCE_NAME,
        hiring_agency=posting.via.strip(),
        posted_at=now,
        created_at=now,
        updated_at=now,
    )


class JobIngestor:
    def __init__(
        self,
        search: JobSearchProvider,
        job_repo: JobRepository,
        filters: Optional[FilterConfig] = None,
        division_inferrer: Optional[DivisionInferrer] = None,
        logger: Optional[StructuredLogger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if search is None or job_repo is None:
            raise ValueError("search provider and job repository are required")
        self.search = search
        self.job_repo = job_repo
        self.filters = filters or FilterConfig()
        self.division_inferrer = division_inferrer
        self.logger = logger or get_logger()
        self.clock = clock

    def ingest(self, query: str, location: str) -> IngestSummary:
        postings = self.search.search_jobs(query, location)
        summary = IngestSummary(fetched=len(postings))
        self.logger.info("Ingesting postings", query=query, location=location, fetched=len(postings))

        for posting in postings:
            try:
                if not is_valid_posting(posting, self.filters, self.logger):
                    summary.rejected += 1
                    continue

                job_id = compute_job_id(posting.external_id)
                if self.job_repo.get_by_external_id(job_id) is not None:
                    self.logger.debug("Posting already stored", job_id=job_id, company=posting.company_name)
                    summary.duplicates += 1
                    continue

                inference = None
                if self.division_inferrer is not None:
                    inference = self.division_inferrer.infer(posting.company_name, posting.description)

                record = build_job_record(posting, self.filters, inference, self.clock())
                self.job_repo.add(record)
                summary.stored += 1
                self.logger.info(
                    "Job stored",
                    job_id=record.job_id, company=record.company_name,
                    title=record.title, division=record.division,
                )
            except Exception as e:
                summary.failed += 1
                self.logger.error(
                    "Failed to ingest posting",
                    company=posting.company_name, external_id=posting.external_id, error=str(e),
                )
                self.logger.record_error(type(e).__name__)

        self.logger.info(
            "Ingestion complete",
            fetched=summary.fetched, stored=summary.stored, rejected=summary.rejected,
            duplicates=summary.duplicates, failed=summary.failed,
        )
        return summary
