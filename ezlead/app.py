import argparse
import json
from datetime import datetime, timedelta
from pathlib import Path

from .env import load_env

from . import __version__
from .cache import CacheGateway, DatabaseCacheStore
from .cleanup import cleanup_stale_jobs, purge_expired_cache
from .config import Settings
from .database import dispose_engines
from .llm import get_chat_service
from .logger import get_logger
from .models import RawPosting, utcnow
from .serpapi import SerpApiClient
from .validator import normalize_title, validate_posting
from pipelines.enrichment.company_discovery import CompanyDiscovery
from pipelines.enrichment.division_inference import DivisionInferrer
from pipelines.enrichment.hierarchy_extractor import HierarchyExtractor
from pipelines.enrichment.orchestrator import EnrichmentOrchestrator
from pipelines.ingestion.job_ingestor import JobIngestor
from storage.repositories import CompanyRepository, JobRepository


def build_search_client(settings: Settings) -> SerpApiClient:
    cache = CacheGateway(DatabaseCacheStore(settings.db_path))
    return SerpApiClient(
        api_key=settings.serpapi_api_key,
        endpoint=settings.serpapi_endpoint,
        cache=cache,
        cache_minutes=settings.search_cache_minutes,
        timeout=settings.request_timeout,
        max_pages=settings.search_max_pages,
    )


def build_chat_service(settings: Settings):
    return get_chat_service(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.request_timeout,
    )


def run_ingest(settings: Settings, query: str, location: str, infer_division: bool = True):
    inferrer = None
    if infer_division:
        inferrer = DivisionInferrer(
            build_chat_service(settings),
            prompt_char_budget=settings.enrichment.prompt_char_budget,
        )
    ingestor = JobIngestor(
        search=build_search_client(settings),
        job_repo=JobRepository(settings.db_path),
        filters=settings.filters,
        division_inferrer=inferrer,
    )
    return ingestor.ingest(query, location)


def run_refresh(settings: Settings, as_of: datetime = None):
    search = build_search_client(settings)
    extractor = HierarchyExtractor(
        search=search,
        chat=build_chat_service(settings),
        cache=CacheGateway(DatabaseCacheStore(settings.db_path)),
        location=settings.search_location,
        config=settings.enrichment,
        sanitizer_config=settings.sanitizer,
    )
    orchestrator = EnrichmentOrchestrator(
        job_repo=JobRepository(settings.db_path),
        company_repo=CompanyRepository(settings.db_path),
        discovery=CompanyDiscovery(search, settings.enrichment),
        extractor=extractor,
        location=settings.search_location,
        config=settings.enrichment,
    )
    return orchestrator.refresh_company_profiles(as_of)


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "db", None):
        settings.db_path = Path(args.db)
    return settings


def _print_ingest(summary) -> None:
    print(
        f"Done. fetched={summary.fetched} stored={summary.stored} rejected={summary.rejected} "
        f"duplicates={summary.duplicates} failed={summary.failed}"
    )


def _print_refresh(summary) -> None:
    counts = " ".join(f"{state}={count}" for state, count in sorted(summary.counts.items()))
    print(f"Done. {counts or 'no jobs in window'}")
    print(f"Profiles updated in window: {summary.matched}")


def cmd_ingest(args: argparse.Namespace) -> None:
    settings = _settings(args)
    summary = run_ingest(
        settings,
        query=args.query or settings.search_query,
        location=args.location or settings.search_location,
        infer_division=not args.no_division,
    )
    _print_ingest(summary)


def cmd_refresh(args: argparse.Namespace) -> None:
    settings = _settings(args)
    as_of = None
    if args.as_of:
        try:
            as_of = datetime.strptime(args.as_of, "%Y-%m-%d")
        except ValueError:
            raise SystemExit(f"Invalid --as-of date (expected YYYY-MM-DD): {args.as_of}")
    _print_refresh(run_refresh(settings, as_of))


def cmd_run(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _print_ingest(run_ingest(settings, settings.search_query, settings.search_location))
    _print_refresh(run_refresh(settings))


def cmd_validate(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise SystemExit("Input must be a JSON object")

    settings = Settings.from_env()
    posting = RawPosting.from_dict(data)
    errors = validate_posting(posting, settings.filters)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")
    print(f"Title: {normalize_title(posting, settings.filters)}")


def cmd_companies(args: argparse.Namespace) -> None:
    settings = _settings(args)
    since = utcnow() - timedelta(days=args.days)
    profiles = CompanyRepository(settings.db_path).list_updated_since(since)
    if not profiles:
        print("No company profiles.")
        return
    print(f"Found {len(profiles)} company profiles:\n")
    for profile in profiles:
        print(f"Company: {profile.company_name}")
        print(f"  Domain: {profile.domain_name or '-'}")
        print(f"  Link: {profile.link or '-'}")
        print(f"  Updated: {profile.updated_at:%Y-%m-%d %H:%M}")
        for item in profile.hierarchy.items:
            print(f"  - {item.name} ({item.title})")
        print()


def cmd_cleanup(args: argparse.Namespace) -> None:
    settings = _settings(args)
    before, after = cleanup_stale_jobs(settings.db_path, days=args.days)
    purged = purge_expired_cache(settings.db_path)
    print(f"Removed {before - after} stale jobs ({after} remaining), {purged} expired cache entries")


def main():
    # Load .env if present (SERPAPI_API_KEY, OPENAI_API_KEY, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="ezlead", description="EzLead: job ingestion and company hierarchy enrichment")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    ing = subparsers.add_parser("ingest", help="Fetch Google Jobs postings, validate and store them")
    ing.add_argument("--query", help="Job search query (default: EZLEAD_QUERY)")
    ing.add_argument("--location", help="Search location (default: EZLEAD_LOCATION)")
    ing.add_argument("--no-division", action="store_true", help="Skip AI division inference")
    ing.add_argument("--db", help="Path to SQLite database (default: EZLEAD_DB_PATH)")
    ing.set_defaults(func=cmd_ingest)

    ref = subparsers.add_parser("refresh", help="Enrich company profiles for recent jobs")
    ref.add_argument("--as-of", help="Reference date YYYY-MM-DD (default: now)")
    ref.add_argument("--db", help="Path to SQLite database (default: EZLEAD_DB_PATH)")
    ref.set_defaults(func=cmd_refresh)

    run = subparsers.add_parser("run", help="Ingest postings, then refresh company profiles")
    run.add_argument("--db", help="Path to SQLite database (default: EZLEAD_DB_PATH)")
    run.set_defaults(func=cmd_run)

    val = subparsers.add_parser("validate", help="Validate a posting JSON against the filter rules")
    val.add_argument("--input", required=True, help="Path to posting JSON input")
    val.set_defaults(func=cmd_validate)

    cmp_ = subparsers.add_parser("companies", help="List enriched company profiles")
    cmp_.add_argument("--days", type=int, default=30, help="Only profiles updated in the last N days (default 30)")
    cmp_.add_argument("--db", help="Path to SQLite database (default: EZLEAD_DB_PATH)")
    cmp_.set_defaults(func=cmd_companies)

    cln = subparsers.add_parser("cleanup", help="Delete stale jobs and expired cache entries")
    cln.add_argument("--days", type=int, default=30, help="Keep jobs created in the last N days (default 30)")
    cln.add_argument("--db", help="Path to SQLite database (default: EZLEAD_DB_PATH)")
    cln.set_defaults(func=cmd_cleanup)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        logger = get_logger()
        try:
            args.func(args)
        except ValueError as e:
            raise SystemExit(str(e))
        finally:
            logger.log_metrics_summary()
            dispose_engines()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
