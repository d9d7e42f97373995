"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List

from ezlead.config import EnrichmentConfig, FilterConfig, SanitizerConfig
from ezlead.database import dispose_engines
from ezlead.llm import ChatService
from ezlead.logger import get_logger, reset_logger
from ezlead.models import JobRecord, RawPosting, SearchResult, utcnow
from ezlead.normalize import compute_company_id, compute_job_id


class FakeSearchProvider:
    """In-process stand-in for SerpApiClient.

    `results` maps a query to its organic results; the "*" key answers any
    other query.
    """

    def __init__(self, results: Dict[str, List[SearchResult]] = None, jobs: List[RawPosting] = None, error=None):
        self.results = results or {}
        self.jobs = jobs or []
        self.error = error
        self.queries = []

    def search(self, query, location):
        self.queries.append((query, location))
        if self.error:
            raise self.error
        if query in self.results:
            return list(self.results[query])
        return list(self.results.get("*", []))

    def search_jobs(self, query, location):
        self.queries.append((query, location))
        if self.error:
            raise self.error
        return list(self.jobs)


class FakeChatService(ChatService):
    """Replays canned replies; the last reply repeats once the list runs out."""

    name = "fake"

    def __init__(self, responses: List[str] = None, error: Exception = None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def complete(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        if not self.responses:
            return ""
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture(autouse=True)
def quiet_logger():
    """Fresh global logger per test: no log files, no console noise."""
    reset_logger()
    logger = get_logger(enable_file=False, enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture(autouse=True)
def close_databases():
    yield
    dispose_engines()


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "ezlead.db"


@pytest.fixture
def filters() -> FilterConfig:
    return FilterConfig()


@pytest.fixture
def sanitizer_config() -> SanitizerConfig:
    return SanitizerConfig()


@pytest.fixture
def enrichment_config() -> EnrichmentConfig:
    return EnrichmentConfig()


@pytest.fixture
def fake_search() -> FakeSearchProvider:
    return FakeSearchProvider()


@pytest.fixture
def fake_chat() -> FakeChatService:
    return FakeChatService()


@pytest.fixture
def valid_posting() -> RawPosting:
    """Posting that passes every filter rule."""
    return RawPosting(
        title="Senior Data Engineer (Hybrid)",
        company_name="Acme Corp",
        location="Charlotte, NC",
        description="Build and run data pipelines for the analytics platform.",
        link="https://www.linkedin.com/jobs/view/123?utm_source=google",
        external_id="eyJqb2JfdGl0bGUiOiJEYXRhIEVuZ2luZWVyIn0=",
        via="LinkedIn",
    )


@pytest.fixture
def org_results() -> List[SearchResult]:
    """Organic results that mention leadership titles."""
    return [
        SearchResult(
            position=1,
            title="Acme Corp Leadership",
            link="https://acme.com/leadership",
            snippet="Jane Rivera, Director of Data Engineering at Acme Corp, leads the platform team.",
        ),
        SearchResult(
            position=2,
            title="Acme Corp org chart",
            link="https://theorg.com/acme",
            snippet="Marcus Lee is the VP of Analytics. Priya Natarajan is an Engineering Manager.",
        ),
    ]


def make_job(company_name: str = "Acme Corp", external_id: str = "job-1", created_at: datetime = None, **kwargs) -> JobRecord:
    created_at = created_at or utcnow() - timedelta(days=1)
    return JobRecord(
        job_id=compute_job_id(external_id),
        company_id=compute_company_id(company_name),
        company_name=company_name,
        title=kwargs.pop("title", "Data Engineer"),
        location=kwargs.pop("location", "Charlotte, NC"),
        description=kwargs.pop("description", "Own the data platform for the analytics group."),
        created_at=created_at,
        updated_at=created_at,
        posted_at=created_at,
        **kwargs,
    )


@pytest.fixture
def job_factory():
    return make_job
