"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for jobs, company profiles and cached
external-call results.
"""

from pathlib import Path
from typing import Dict

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .models import utcnow

Base = declarative_base()


class Job(Base):
    """Validated job posting."""

    __tablename__ = "jobs"

    job_id = Column(String, primary_key=True)  # sha256 of the provider job id
    company_id = Column(String, nullable=False, index=True)
    company_name = Column(String, nullable=False)
    title = Column(String, nullable=False)
    location = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    division = Column(String, nullable=False, default="")
    confidence = Column(Integer, nullable=False, default=0)
    reasoning = Column(Text, nullable=False, default="")
    source_link = Column(String, nullable=False, default="")
    source_name = Column(String, nullable=False, default="")
    hiring_agency = Column(String, nullable=False, default="")
    posted_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Company(Base):
    """Company profile with its inferred leadership hierarchy."""

    __tablename__ = "company_profiles"

    company_id = Column(String, primary_key=True)
    company_name = Column(String, nullable=False)
    domain_name = Column(String, nullable=False, default="")
    link = Column(String, nullable=False, default="")
    hierarchy = Column(Text, nullable=False, default='{"orghierarchy": []}')  # JSON
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, index=True)


class CacheEntry(Base):
    """Cached payload of an external call, keyed by a content hash."""

    __tablename__ = "cache_entries"

    cache_key = Column(String, primary_key=True)
    payload = Column(Text, nullable=False)  # JSON
    expires_at = Column(DateTime, nullable=True)  # NULL = never expires
    created_at = Column(DateTime, nullable=False, default=utcnow)


_engines: Dict[str, Engine] = {}
_session_factories: Dict[str, sessionmaker] = {}


def _url(db_path: Path) -> str:
    return f"sqlite:///{Path(db_path).resolve()}"


def get_engine(db_path: Path) -> Engine:
    """Engine for a SQLite file, shared by every caller using the same path."""
    url = _url(db_path)
    engine = _engines.get(url)
    if engine is None:
        engine = _engines[url] = create_engine(url)
    return engine


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)


def get_session_factory(db_path: Path) -> sessionmaker:
    """
    Session factory bound to one SQLite file.

    Args:
        db_path: Path to SQLite database file

    Returns:
        sessionmaker; use as `with factory() as session:`
    """
    url = _url(db_path)
    factory = _session_factories.get(url)
    if factory is None:
        factory = _session_factories[url] = sessionmaker(bind=get_engine(db_path), expire_on_commit=False)
    return factory


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return get_session_factory(db_path)()


def dispose_engines() -> None:
    """Close the pooled connections of every engine opened so far."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _session_factories.clear()
