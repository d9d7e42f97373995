"""
Tests for posting validation and title normalization.
"""

import pytest
from dataclasses import replace

from ezlead.config import FilterConfig
from ezlead.models import RawPosting
from ezlead.validator import is_valid_posting, normalize_title, validate_posting


class TestValidatePosting:
    """Test the posting acceptance rules."""

    def test_valid_posting_has_no_errors(self, valid_posting, filters):
        assert validate_posting(valid_posting, filters) == []
        assert is_valid_posting(valid_posting, filters)

    def test_south_carolina_is_in_region(self, valid_posting, filters):
        posting = replace(valid_posting, location="Rock Hill, SC")
        assert validate_posting(posting, filters) == []

    def test_missing_company(self, valid_posting, filters):
        posting = replace(valid_posting, company_name="   ")
        assert "missing_company" in validate_posting(posting, filters)

    def test_missing_description(self, valid_posting, filters):
        posting = replace(valid_posting, description="")
        assert "missing_description" in validate_posting(posting, filters)

    def test_remote_location_rejected(self, valid_posting, filters):
        """A posting located "Remote" is dropped."""
        posting = replace(valid_posting, location="Remote")
        errors = validate_posting(posting, filters)
        assert "remote_location" in errors
        assert not is_valid_posting(posting, filters)

    def test_remote_marker_is_case_insensitive(self, valid_posting, filters):
        posting = replace(valid_posting, location="Charlotte, NC (REMOTE)")
        assert "remote_location" in validate_posting(posting, filters)

    def test_outside_region(self, valid_posting, filters):
        posting = replace(valid_posting, location="Austin, TX")
        assert validate_posting(posting, filters) == ["outside_region"]

    def test_region_suffix_ignores_case_and_whitespace(self, valid_posting, filters):
        posting = replace(valid_posting, location="  Raleigh, nc  ")
        assert validate_posting(posting, filters) == []

    def test_excluded_title(self, valid_posting, filters):
        posting = replace(valid_posting, title="Data Center Technician")
        assert "excluded_title" in validate_posting(posting, filters)

    def test_recruiting_agency(self, valid_posting, filters):
        posting = replace(valid_posting, company_name="Robert Half Technology")
        assert "recruiting_agency" in validate_posting(posting, filters)

    def test_multiple_errors_are_all_reported(self, filters):
        posting = RawPosting(title="Call Center Lead", location="Remote")
        errors = validate_posting(posting, filters)
        assert set(errors) == {
            "missing_company",
            "missing_description",
            "remote_location",
            "outside_region",
            "excluded_title",
        }

    def test_rejections_are_counted(self, valid_posting, filters, quiet_logger):
        is_valid_posting(replace(valid_posting, location="Remote"), filters)
        is_valid_posting(valid_posting, filters)

        metrics = quiet_logger.get_metrics()
        assert metrics["postings_accepted"] == 1
        assert metrics["postings_rejected"] == 1
        assert metrics["rejections_by_reason"] == {"remote_location": 1, "outside_region": 1}

    def test_none_posting_is_a_contract_error(self, filters):
        with pytest.raises(ValueError):
            is_valid_posting(None, filters)

    def test_configured_agency_list(self, valid_posting):
        filters = FilterConfig(recruiting_agencies=["acme"])
        assert "recruiting_agency" in validate_posting(valid_posting, filters)


class TestNormalizeTitle:
    """Test canonical title rewriting."""

    def _title(self, title, filters, company="Acme Corp"):
        return normalize_title(RawPosting(title=title, company_name=company), filters)

    def test_blank_title_uses_default(self, filters):
        """Acme Corp in Charlotte, NC with an empty title becomes a Data Engineer."""
        posting = RawPosting(
            title="",
            company_name="Acme Corp",
            location="Charlotte, NC",
            description="Build data pipelines.",
        )
        assert validate_posting(posting, filters) == []
        assert normalize_title(posting, filters) == "Data Engineer"

    def test_whitespace_title_uses_default(self, filters):
        assert self._title("   ", filters) == "Data Engineer"

    def test_title_equal_to_company_uses_default(self, filters):
        assert self._title("  ACME corp ", filters) == "Data Engineer"

    def test_roman_suffix_unchanged(self, filters):
        assert self._title("Program Manager II", filters) == "Program Manager II"
        assert self._title("  Software Engineer III ", filters) == "Software Engineer III"

    def test_roman_suffix_is_case_sensitive(self, filters):
        # "ii" is not a level marker, so the keyword cut applies
        assert self._title("Data Engineer ii", filters) == "Data Engineer"

    def test_cut_at_punctuation(self, filters):
        assert self._title("Senior Data Engineer (Hybrid)", filters) == "Senior Data Engineer"
        assert self._title("Engineering Manager, Data Platform", filters) == "Engineering Manager"

    def test_cut_after_last_keyword(self, filters):
        assert self._title("Data Engineer - Remote Eligible", filters) == "Data Engineer"
        assert self._title("Lead Data Engineer", filters) == "Lead Data Engineer"

    def test_highest_index_keyword_wins(self, filters):
        assert self._title("Analyst to Engineer Program", filters) == "Analyst to Engineer"

    def test_keyword_match_is_case_insensitive(self, filters):
        assert self._title("senior data engineer trainee", filters) == "senior data engineer"

    def test_title_without_keyword_is_trimmed_only(self, filters):
        assert self._title("  Data Wrangler  ", filters) == "Data Wrangler"

    def test_tie_keeps_earlier_keyword(self):
        """Two keywords starting at the same index: the one listed first decides the cut."""
        filters = FilterConfig(title_keywords=["Engineer", "Engineering"])
        assert self._title("Senior Engineering Team", filters) == "Senior Engineer"

        filters = FilterConfig(title_keywords=["Engineering", "Engineer"])
        assert self._title("Senior Engineering Team", filters) == "Senior Engineering"

    def test_title_cut_down_to_company_uses_default(self, filters):
        assert self._title("Acme Corp.", filters) == "Data Engineer"
        assert self._title("Acme (Contract)", filters, company="Acme") == "Data Engineer"

    @pytest.mark.parametrize("title,company", [
        ("", "Acme Corp"),
        ("Acme Corp", "Acme Corp"),
        ("Acme Corp.", "Acme Corp"),
        ("Acme (Contract)", "Acme"),
        ("Program Manager II", "Acme Corp"),
        ("Senior Data Engineer (Hybrid)", "Acme Corp"),
        ("Engineering Manager, Data Platform", "Acme Corp"),
        ("Data Engineer - Remote Eligible", "Acme Corp"),
        ("Analyst to Engineer Program", "Acme Corp"),
        ("Principal Architect/Developer", "Acme Corp"),
        ("Data Wrangler", "Acme Corp"),
        ("Senior Engineering Team", "Acme Corp"),
    ])
    def test_idempotent(self, filters, title, company):
        once = self._title(title, filters, company)
        twice = self._title(once, filters, company)
        assert once == twice
