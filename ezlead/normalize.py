import hashlib
from urllib.parse import urlparse

from bs4 import BeautifulSoup


def normalize_text(s: str) -> str:
    return " ".join((s or "").strip().lower().split())


def normalize_company(company: str) -> str:
    return normalize_text(company)


def strip_markup(text: str) -> str:
    """Return the visible text of a snippet that may carry HTML (e.g. <b>Jane</b>)."""
    if not text:
        return ""
    if "<" not in text:
        return text.strip()
    return BeautifulSoup(text, "html.parser").get_text(" ", strip=True)


def canonical_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path.rstrip("/")
    # Drop query and fragment to avoid source-specific tracking
    return f"{parsed.scheme}://{parsed.netloc}{path}" if parsed.scheme and parsed.netloc else path


def host_of(url: str) -> str:
    """Lower-cased host of a URL without a leading www."""
    if not url:
        return ""
    netloc = urlparse(url if "//" in url else f"//{url}").netloc.lower()
    netloc = netloc.split("@")[-1].split(":")[0]
    return netloc[4:] if netloc.startswith("www.") else netloc


def hash_text(text: str) -> str:
    return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def compute_company_id(company_name: str) -> str:
    """Deterministic company identifier: same name (ignoring case/spacing) -> same id."""
    normalized = normalize_company(company_name)
    if not normalized:
        raise ValueError("Company name is required to compute a company id")
    return hash_text(normalized)


def compute_job_id(external_id: str) -> str:
    """Stable job id derived from the search provider's job identifier."""
    if not external_id or not external_id.strip():
        raise ValueError("External job id is required to compute a job id")
    return hash_text(external_id.strip())
