"""
Posting acceptance rules and job title normalization.

validate_posting returns the list of rejection reasons (empty list = valid),
in the same shape as the other validation helpers; is_valid_posting wraps it
for the ingestion loop, logging each rejection instead of raising.
"""

import re
from typing import List, Optional

from .config import FilterConfig
from .logger import StructuredLogger, get_logger
from .models import RawPosting

# Characters allowed in a normalized title; anything else ends the title.
_TITLE_STOP_CHAR = re.compile(r"[^A-Za-z0-9 \-]")


def _is_blank(v: Optional[str]) -> bool:
    return v is None or v.strip() == ""


def validate_posting(posting: RawPosting, filters: FilterConfig) -> List[str]:
    """
    Returns a list of rejection reasons. Empty list means the posting is kept.
    """
    errors: List[str] = []

    if _is_blank(posting.company_name):
        errors.append("missing_company")
    if _is_blank(posting.description):
        errors.append("missing_description")

    location = (posting.location or "").strip().lower()
    if filters.remote_marker and filters.remote_marker.lower() in location:
        errors.append("remote_location")
    if not any(location.endswith(suffix.lower()) for suffix in filters.region_suffixes):
        errors.append("outside_region")

    title = (posting.title or "").lower()
    if any(term.lower() in title for term in filters.excluded_title_terms if term):
        errors.append("excluded_title")

    company = (posting.company_name or "").lower()
    if any(agency.lower() in company for agency in filters.recruiting_agencies if agency):
        errors.append("recruiting_agency")

    return errors


def is_valid_posting(
    posting: RawPosting,
    filters: FilterConfig,
    logger: Optional[StructuredLogger] = None,
) -> bool:
    """Log and skip invalid postings; never raises on bad data."""
    if posting is None:
        raise ValueError("posting is required")
    logger = logger or get_logger()

    errors = validate_posting(posting, filters)
    if errors:
        logger.record_posting_rejected(errors)
        logger.info(
            "Posting rejected",
            company=posting.company_name,
            title=posting.title,
            location=posting.location,
            reasons=errors,
        )
        return False

    logger.record_posting_accepted()
    return True


def _has_roman_suffix(title: str, roman_suffixes: List[str]) -> bool:
    words = title.split()
    return bool(words) and words[-1] in roman_suffixes


def normalize_title(posting: RawPosting, filters: FilterConfig) -> str:
    """
    Rewrite a posting title to its canonical short form.

    - blank title, or title equal to the company name before or after the
      cuts below -> filters.default_title
    - title ending in a roman-numeral level (I, II, III) -> unchanged
    - otherwise cut at the first character outside [A-Za-z0-9 -] and then
      right after the keyword occurring at the highest index; on equal
      indexes the keyword listed first wins
    """
    title = (posting.title or "").strip()
    company = (posting.company_name or "").strip()

    if not title or title.casefold() == company.casefold():
        return filters.default_title

    if _has_roman_suffix(title, filters.roman_suffixes):
        return title

    stop = _TITLE_STOP_CHAR.search(title)
    if stop and stop.start() > 0:
        title = title[:stop.start()].strip()

    lowered = title.lower()
    best_index = -1
    best_keyword = ""
    for keyword in filters.title_keywords:
        if not keyword:
            continue
        index = lowered.rfind(keyword.lower())
        if index > best_index:
            best_index = index
            best_keyword = keyword

    if best_index >= 0:
        title = title[:best_index + len(best_keyword)]

    title = title.strip()
    if not title or title.casefold() == company.casefold():
        return filters.default_title
    return title
