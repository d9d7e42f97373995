"""
Retention for the SQLite store.

Stale jobs are those created more than a given number of days ago (default:
30, the enrichment lookback window). Expired cache entries are purged on the
same pass so the database does not accumulate obsolete payloads.
"""

from datetime import timedelta
from pathlib import Path
from typing import Tuple

from storage.repositories import JobRepository

from .cache import DatabaseCacheStore
from .logger import get_logger
from .models import utcnow


def cleanup_stale_jobs(db_path: Path, days: int = 30) -> Tuple[int, int]:
    """
    Remove jobs older than the specified number of days.

    Args:
        db_path: Path to the SQLite database
        days: Number of days to keep jobs (default: 30)

    Returns:
        Tuple of (total_jobs_before, total_jobs_after)
        Difference = jobs_removed
    """
    logger = get_logger()
    if days < 0:
        raise ValueError("days must be zero or positive")

    try:
        repo = JobRepository(db_path)
        jobs_before = repo.count()
        cutoff = utcnow() - timedelta(days=days)
        repo.delete_created_before(cutoff)
        jobs_after = repo.count()

        logger.info(
            f"Cleanup complete: {jobs_before - jobs_after} removed, {jobs_after} remaining",
            jobs_before=jobs_before,
            jobs_after=jobs_after,
            days_threshold=days,
        )
        return (jobs_before, jobs_after)

    except Exception as e:
        logger.error(f"Cleanup failed: {e}", error=str(e), days=days)
        logger.record_error(type(e).__name__)
        return (0, 0)


def purge_expired_cache(db_path: Path) -> int:
    """
    Delete expired cache entries.

    Returns:
        Number of entries removed (0 if the purge failed)
    """
    logger = get_logger()
    try:
        removed = DatabaseCacheStore(db_path).purge_expired()
        logger.info(f"Cache purge complete: {removed} expired entries removed")
        return removed
    except Exception as e:
        logger.error(f"Cache purge failed: {e}", error=str(e))
        logger.record_error(type(e).__name__)
        return 0
