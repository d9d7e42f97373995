"""
SerpApi search client.

Two query shapes are used: the "google" engine for organic web results
(company discovery, org-structure snippets) and the "google_jobs" engine for
job postings. Raw JSON payloads are cached through the CacheGateway, so the
same (engine, query, location) costs one API call per cache window.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional

import requests

from .cache import CacheGateway, gen_cache_key
from .config import DEFAULT_SERPAPI_ENDPOINT
from .logger import StructuredLogger, get_logger
from .models import RawPosting, SearchResult
from .normalize import hash_text
from .retry import RetryError, exponential_backoff, is_retryable_request_error

GOOGLE_ENGINE = "google"
GOOGLE_JOBS_ENGINE = "google_jobs"


@exponential_backoff(
    max_retries=2,
    base_delay=1.0,
    exceptions=(requests.exceptions.RequestException,),
    retry_if=is_retryable_request_error,
)
def _get_with_retry(session: requests.Session, url: str, params: Dict[str, Any], timeout: float):
    """GET that retries network faults and throttling or 5xx responses."""
    resp = session.get(url, params=params, timeout=timeout)
    resp.raise_for_status()
    return resp


class SerpApiClient:
    """Search provider backed by SerpApi."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_SERPAPI_ENDPOINT,
        cache: Optional[CacheGateway] = None,
        cache_minutes: Optional[int] = 1440,
        timeout: float = 20.0,
        max_pages: int = 2,
        session: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        if not api_key:
            raise ValueError("Missing SERPAPI_API_KEY. Set env var or pass api_key.")
        if not endpoint:
            raise ValueError("Missing SerpApi endpoint.")
        self.api_key = api_key
        self.endpoint = endpoint
        self.cache = cache
        self.cache_ttl = timedelta(minutes=cache_minutes) if cache_minutes else None
        self.timeout = timeout
        self.max_pages = max(1, max_pages)
        self.session = session or requests.Session()
        self.logger = logger or get_logger()

    def _fetch(self, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        One API request. Returns the decoded JSON object, or None on any
        transport/HTTP/decoding failure (logged, never raised).
        """
        query_params = {**params, "api_key": self.api_key, "hl": "en"}
        engine = params.get("engine", "")
        self.logger.record_api_call(f"serpapi:{engine}")
        try:
            resp = _get_with_retry(self.session, self.endpoint, query_params, self.timeout)
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "HTTPError"
            self.logger.record_error(f"HTTPError_{status}")
            self.logger.error("SerpApi request failed", engine=engine, q=params.get("q"), status=status)
            return None
        except RetryError as e:
            self.logger.record_error("RetryError")
            self.logger.warning("SerpApi request gave up after retries", engine=engine, q=params.get("q"), error=str(e))
            return None
        except requests.exceptions.RequestException as e:
            self.logger.record_error(type(e).__name__)
            self.logger.error("SerpApi request error", engine=engine, q=params.get("q"), error=str(e))
            return None

        if not resp.text or not resp.text.strip():
            self.logger.info("SerpApi returned an empty body", engine=engine, q=params.get("q"))
            return None
        try:
            data = resp.json()
        except ValueError as e:
            self.logger.record_error("JSONDecodeError")
            self.logger.error("SerpApi returned invalid JSON", engine=engine, q=params.get("q"), error=str(e))
            return None
        if not isinstance(data, dict):
            self.logger.warning("SerpApi returned an unexpected payload", engine=engine, q=params.get("q"))
            return None
        if data.get("error"):
            self.logger.warning("SerpApi reported an error", engine=engine, q=params.get("q"), error=data.get("error"))
            return None
        return data

    def _cached(self, key: str, fetch) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return fetch()
        return self.cache.get_or_create(key, fetch, self.cache_ttl)

    def search(self, query: str, location: str = "United States") -> List[SearchResult]:
        """
        Organic Google results for a query, in ranking order.

        Args:
            query: Search query string
            location: SerpApi location string

        Returns:
            List of SearchResult (empty on failure)
        """
        if not query or not query.strip():
            raise ValueError("Search query is required")

        key = gen_cache_key("SerpApiClient.search", query, hash_text(location))
        data = self._cached(
            key,
            lambda: self._fetch({"engine": GOOGLE_ENGINE, "q": query, "location": location}),
        )
        if not data:
            self.logger.warning("No search results", q=query, location=location)
            return []

        return [
            SearchResult.from_serpapi(item)
            for item in data.get("organic_results") or []
            if isinstance(item, dict)
        ]

    def _fetch_jobs(self, query: str, location: str) -> Optional[Dict[str, Any]]:
        params = {"engine": GOOGLE_JOBS_ENGINE, "q": query, "location": location}
        first = self._fetch(params)
        if not first or not first.get("jobs_results"):
            return None

        jobs = list(first.get("jobs_results") or [])
        token = (first.get("serpapi_pagination") or {}).get("next_page_token")
        pages = 1
        while token and pages < self.max_pages:
            page = self._fetch({**params, "next_page_token": token})
            pages += 1
            if not page or not page.get("jobs_results"):
                break
            jobs.extend(page.get("jobs_results") or [])
            token = (page.get("serpapi_pagination") or {}).get("next_page_token")

        return {"jobs_results": jobs}

    def search_jobs(self, query: str, location: str) -> List[RawPosting]:
        """
        Job postings from Google Jobs, following pagination up to max_pages.

        Returns:
            List of RawPosting (empty on failure)
        """
        if not query or not query.strip():
            raise ValueError("Search query is required")

        key = gen_cache_key("SerpApiClient.search_jobs", query, hash_text(location))
        data = self._cached(key, lambda: self._fetch_jobs(query, location))
        if not data:
            self.logger.warning("No job listings", q=query, location=location)
            return []

        return [
            RawPosting.from_serpapi(item)
            for item in data.get("jobs_results") or []
            if isinstance(item, dict)
        ]
