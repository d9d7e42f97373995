"""Query builders for the web searches issued during enrichment."""

from typing import Optional

ORG_STRUCTURE_TERMS = "organizational structure"
LEADERSHIP_TERMS = "leadership team"


def build_discovery_query(company_name: str) -> str:
    """Query used to find a company's official website."""
    return f"{company_name.strip()} official site"


def build_hierarchy_query(
    company_name: str,
    division: Optional[str] = None,
    domain: Optional[str] = None,
) -> str:
    """
    Query for org-structure / leadership pages about a company.

    The company name is compacted (lower-case, no spaces) the way it tends to
    appear in domains and profile slugs. The division and the domain are only
    added once the company's domain is known, which keeps the query focused
    on the right employer.
    """
    compact = "".join(company_name.split()).lower()
    parts = [compact, ORG_STRUCTURE_TERMS]
    if domain:
        if division and division.strip():
            parts.append(division.strip())
        parts.append(LEADERSHIP_TERMS)
        parts.append(domain)
    else:
        parts.append(LEADERSHIP_TERMS)
    return " ".join(parts)
