"""
Jobs Repository.

Responsibilities:
- CRUD operations for the jobs table.
- Mapping between JobRecord and the Job row.

Non-Responsibilities:
- No validation or title normalization.
- No enrichment.

Invariant:
Repositories must not encode domain decisions.
A job_id is stored at most once.
"""
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ezlead.database import Job, get_session_factory, init_database
from ezlead.models import JobRecord


def _to_record(row: Job) -> JobRecord:
    return JobRecord(
        job_id=row.job_id,
        company_id=row.company_id,
        company_name=row.company_name,
        title=row.title,
        location=row.location,
        description=row.description or "",
        division=row.division or "",
        confidence=row.confidence or 0,
        reasoning=row.reasoning or "",
        source_link=row.source_link or "",
        source_name=row.source_name or "",
        hiring_agency=row.hiring_agency or "",
        posted_at=row.posted_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_row(record: JobRecord) -> Job:
    return Job(
        job_id=record.job_id,
        company_id=record.company_id,
        company_name=record.company_name,
        title=record.title,
        location=record.location,
        description=record.description,
        division=record.division,
        confidence=record.confidence,
        reasoning=record.reasoning,
        source_link=record.source_link,
        source_name=record.source_name,
        hiring_agency=record.hiring_agency,
        posted_at=record.posted_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class JobRepository:
    """SQLite-backed job store."""

    def __init__(self, db_path: Path):
        init_database(db_path)
        self._session_factory = get_session_factory(db_path)

    def get_by_external_id(self, job_id: str) -> Optional[JobRecord]:
        if not job_id:
            raise ValueError("job_id is required")
        with self._session_factory() as session:
            row = session.get(Job, job_id)
            return _to_record(row) if row is not None else None

    def add(self, record: JobRecord) -> None:
        """Insert a job; raises IntegrityError if the job_id already exists."""
        if record is None:
            raise ValueError("record is required")
        if not record.job_id or not record.company_id:
            raise ValueError("job_id and company_id are required")
        with self._session_factory() as session:
            session.add(_to_row(record))
            session.commit()

    def list_created_since(self, since: datetime) -> List[JobRecord]:
        """Jobs created at or after `since`, newest first."""
        with self._session_factory() as session:
            rows = (
                session.query(Job)
                .filter(Job.created_at >= since)
                .order_by(Job.created_at.desc())
                .all()
            )
            return [_to_record(r) for r in rows]

    def delete_created_before(self, cutoff: datetime) -> int:
        with self._session_factory() as session:
            removed = (
                session.query(Job)
                .filter(Job.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            session.commit()
        return removed

    def count(self) -> int:
        with self._session_factory() as session:
            return session.query(Job).count()
