"""
Company Profiles Repository.

Responsibilities:
- CRUD operations for the company_profiles table.
- JSON (de)serialization of the stored hierarchy.

Non-Responsibilities:
- No merging of hierarchies (see ezlead.models.merge_profile).
- No freshness decisions.

Invariant:
At most one profile per company_id.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ezlead.database import Company, get_session_factory, init_database
from ezlead.models import CompanyProfile, HierarchyResult


def _to_profile(row: Company) -> CompanyProfile:
    try:
        hierarchy = HierarchyResult.from_dict(json.loads(row.hierarchy or "{}"))
    except (json.JSONDecodeError, TypeError, AttributeError):
        hierarchy = HierarchyResult()
    return CompanyProfile(
        company_id=row.company_id,
        company_name=row.company_name,
        domain_name=row.domain_name or "",
        link=row.link or "",
        hierarchy=hierarchy,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _require_id(profile: CompanyProfile) -> None:
    if profile is None:
        raise ValueError("profile is required")
    if not profile.company_id or not profile.company_id.strip():
        raise ValueError("Company ID cannot be null or empty.")


class CompanyRepository:
    """SQLite-backed company profile store."""

    def __init__(self, db_path: Path):
        init_database(db_path)
        self._session_factory = get_session_factory(db_path)

    def get_by_id(self, company_id: str) -> Optional[CompanyProfile]:
        if not company_id or not company_id.strip():
            raise ValueError("Company ID cannot be null or empty.")
        with self._session_factory() as session:
            row = session.get(Company, company_id)
            return _to_profile(row) if row is not None else None

    def add(self, profile: CompanyProfile) -> None:
        """Insert a profile; raises IntegrityError if the company already has one."""
        _require_id(profile)
        with self._session_factory() as session:
            session.add(Company(
                company_id=profile.company_id,
                company_name=profile.company_name,
                domain_name=profile.domain_name,
                link=profile.link,
                hierarchy=json.dumps(profile.hierarchy.to_dict()),
                created_at=profile.created_at,
                updated_at=profile.updated_at,
            ))
            session.commit()

    def update(self, profile: CompanyProfile) -> None:
        """Overwrite the stored profile fields; creates it when absent."""
        _require_id(profile)
        with self._session_factory() as session:
            row = session.get(Company, profile.company_id)
            if row is None:
                row = Company(company_id=profile.company_id, created_at=profile.created_at)
                session.add(row)
            row.company_name = profile.company_name
            row.domain_name = profile.domain_name
            row.link = profile.link
            row.hierarchy = json.dumps(profile.hierarchy.to_dict())
            if row.updated_at is None or profile.updated_at > row.updated_at:
                row.updated_at = profile.updated_at
            session.commit()

    def list_updated_since(self, since: datetime) -> List[CompanyProfile]:
        """Profiles updated at or after `since`, most recently created first."""
        with self._session_factory() as session:
            rows = (
                session.query(Company)
                .filter(Company.updated_at >= since)
                .order_by(Company.created_at.desc())
                .all()
            )
            return [_to_profile(r) for r in rows]
