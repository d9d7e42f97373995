"""
Tests for the SerpApi client (HTTP layer mocked).
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from ezlead import retry
from ezlead.cache import CacheGateway, MemoryCacheStore
from ezlead.serpapi import SerpApiClient


def _response(payload=None, status=200, text=None):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text if text is not None else json.dumps(payload)
    resp.json.side_effect = lambda: json.loads(resp.text)
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(response=resp)
    return resp


def _job(job_id, company="Acme Corp"):
    return {
        "title": "Data Engineer",
        "company_name": company,
        "location": "Charlotte, NC",
        "via": "LinkedIn",
        "description": "Build pipelines",
        "job_id": job_id,
        "share_link": f"https://www.google.com/search?ibp=htl;jobs#{job_id}",
    }


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(retry.time, "sleep", lambda s: None)


@pytest.fixture
def session():
    return MagicMock()


def _client(session, **kwargs):
    return SerpApiClient(api_key="test-key", session=session, **kwargs)


class TestSearch:
    """Test organic web search."""

    def test_parses_organic_results(self, session):
        session.get.return_value = _response({"organic_results": [
            {"position": 1, "title": "Acme <b>Corp</b>", "link": "https://acme.com", "snippet": "Jane <b>Rivera</b> is Director"},
            {"position": 2, "title": "Acme on LinkedIn", "link": "https://linkedin.com/company/acme"},
            "junk",
        ]})

        results = _client(session).search("Acme Corp official site", "Charlotte, NC")

        assert [r.link for r in results] == ["https://acme.com", "https://linkedin.com/company/acme"]
        assert results[0].title == "Acme Corp"
        assert results[0].snippet == "Jane Rivera is Director"
        assert results[1].snippet == ""

    def test_request_parameters(self, session):
        session.get.return_value = _response({"organic_results": []})

        _client(session, timeout=5.0).search("acmecorp leadership", "Charlotte, NC")

        args, kwargs = session.get.call_args
        assert kwargs["params"]["engine"] == "google"
        assert kwargs["params"]["q"] == "acmecorp leadership"
        assert kwargs["params"]["location"] == "Charlotte, NC"
        assert kwargs["params"]["api_key"] == "test-key"
        assert kwargs["timeout"] == 5.0

    def test_results_are_cached(self, session, quiet_logger):
        session.get.return_value = _response({"organic_results": [{"link": "https://acme.com"}]})
        client = _client(session, cache=CacheGateway(MemoryCacheStore()))

        client.search("acme", "US")
        client.search("acme", "US")
        client.search("acme", "Charlotte, NC")

        assert session.get.call_count == 2
        assert quiet_logger.get_metrics()["api_calls"] == {"serpapi:google": 2}

    @pytest.mark.parametrize("resp", [
        _response({"error": "Invalid API key."}),
        _response(text=""),
        _response(text="<html>oops</html>"),
        _response([1, 2]),
        _response({"error": "x"}, status=500),
    ])
    def test_bad_responses_yield_no_results(self, session, resp):
        session.get.return_value = resp
        assert _client(session).search("acme", "US") == []

    def test_failures_are_not_cached(self, session):
        session.get.side_effect = [_response(text=""), _response({"organic_results": [{"link": "https://acme.com"}]})]
        client = _client(session, cache=CacheGateway(MemoryCacheStore()))

        assert client.search("acme", "US") == []
        assert len(client.search("acme", "US")) == 1

    def test_timeout_is_retried_then_gives_up(self, session, quiet_logger):
        session.get.side_effect = requests.exceptions.Timeout("read timed out")

        assert _client(session).search("acme", "US") == []
        assert session.get.call_count == 3
        assert quiet_logger.get_metrics()["errors_by_type"]["RetryError"] == 1

    def test_server_errors_are_retried(self, session):
        session.get.return_value = _response({"error": "x"}, status=503)

        assert _client(session).search("acme", "US") == []
        assert session.get.call_count == 3

    def test_auth_errors_are_not_retried(self, session, quiet_logger):
        session.get.return_value = _response({"error": "Invalid API key."}, status=401)

        assert _client(session).search("acme", "US") == []
        assert session.get.call_count == 1
        assert quiet_logger.get_metrics()["errors_by_type"] == {"HTTPError_401": 1}

    def test_blank_query_rejected(self, session):
        with pytest.raises(ValueError):
            _client(session).search("  ", "US")

    def test_api_key_required(self):
        with pytest.raises(ValueError):
            SerpApiClient(api_key="")


class TestSearchJobs:
    """Test Google Jobs search and pagination."""

    def test_follows_next_page_token(self, session):
        session.get.side_effect = [
            _response({"jobs_results": [_job("a")], "serpapi_pagination": {"next_page_token": "t1"}}),
            _response({"jobs_results": [_job("b")], "serpapi_pagination": {"next_page_token": "t2"}}),
            _response({"jobs_results": [_job("c")]}),
        ]

        postings = _client(session, max_pages=3).search_jobs("data engineer", "Charlotte, NC")

        assert [p.external_id for p in postings] == ["a", "b", "c"]
        assert session.get.call_args_list[1].kwargs["params"]["next_page_token"] == "t1"
        assert session.get.call_args_list[0].kwargs["params"]["engine"] == "google_jobs"

    def test_stops_at_max_pages(self, session):
        session.get.side_effect = [
            _response({"jobs_results": [_job("a")], "serpapi_pagination": {"next_page_token": "t1"}}),
            _response({"jobs_results": [_job("b")], "serpapi_pagination": {"next_page_token": "t2"}}),
        ]

        postings = _client(session, max_pages=2).search_jobs("data engineer", "Charlotte, NC")

        assert len(postings) == 2
        assert session.get.call_count == 2

    def test_failed_page_keeps_earlier_results(self, session):
        session.get.side_effect = [
            _response({"jobs_results": [_job("a")], "serpapi_pagination": {"next_page_token": "t1"}}),
            _response({"error": "quota"}),
        ]

        postings = _client(session).search_jobs("data engineer", "Charlotte, NC")

        assert [p.external_id for p in postings] == ["a"]

    def test_posting_fields(self, session):
        item = _job("a")
        del item["share_link"]
        item["apply_options"] = [{"title": "Apply", "link": "https://acme.com/careers/1"}]
        session.get.return_value = _response({"jobs_results": [item]})

        posting = _client(session).search_jobs("data engineer", "Charlotte, NC")[0]

        assert posting.company_name == "Acme Corp"
        assert posting.link == "https://acme.com/careers/1"
        assert posting.via == "LinkedIn"

    def test_no_jobs(self, session):
        session.get.return_value = _response({"search_metadata": {}})
        assert _client(session).search_jobs("data engineer", "Charlotte, NC") == []
