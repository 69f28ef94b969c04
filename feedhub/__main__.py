"""Command line entry point.

Usage:
    python -m feedhub fetch --platform youtube --source-id @kan11 --max-items 50
    python -m feedhub fetch --platform tiktok --query "תל אביב"
    python -m feedhub jobs --platform youtube
    python -m feedhub check --platform telegram
"""

import argparse
import asyncio
import json
import logging
import sys

from feedhub.config import Settings, get_settings
from feedhub.crawler.registry import build_registry
from feedhub.database import Database
from feedhub.errors import ConfigurationError, ValidationError
from feedhub.services import ContentStore, JobLedger, JobOrchestrator, JobSpec

logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feedhub", description="Social content acquisition pipeline")
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Run one fetch or search job")
    fetch.add_argument("--platform", required=True)
    target = fetch.add_mutually_exclusive_group(required=True)
    target.add_argument("--source-id", help="Channel, page, profile or username to fetch")
    target.add_argument("--query", help="Search query (hashtag on instagram)")
    fetch.add_argument("--source-type", default=None, help="Ledger source type (default: channel)")
    fetch.add_argument("--max-items", type=int, default=None)

    jobs = commands.add_parser("jobs", help="List the latest job ledger entries")
    jobs.add_argument("--platform", default=None)

    check = commands.add_parser("check", help="Validate a connector's credentials")
    check.add_argument("--platform", required=True)

    return parser


async def run_fetch(args: argparse.Namespace, settings: Settings, db: Database) -> int:
    registry = build_registry(settings)
    orchestrator = JobOrchestrator(registry, ContentStore(db), JobLedger(db), settings.crawler)
    try:
        result = await orchestrator.run(
            JobSpec(
                platform=args.platform,
                source_id=args.source_id,
                search_query=args.query,
                source_type=args.source_type,
                max_items=args.max_items,
            )
        )
    finally:
        await registry.aclose()
    print(json.dumps(result.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
    return 0 if result.status == "completed" else 1


async def run_check(args: argparse.Namespace, settings: Settings) -> int:
    registry = build_registry(settings)
    try:
        valid = await registry.resolve(args.platform).validate_credentials()
    finally:
        await registry.aclose()
    print(f"{args.platform}: {'ok' if valid else 'invalid'}")
    return 0 if valid else 1


def run_jobs(args: argparse.Namespace, db: Database) -> int:
    for row in JobLedger(db).list_jobs(args.platform):
        last = row.last_result or {}
        last_run = row.last_run.isoformat() if row.last_run else "-"
        print(
            f"{row.platform:<10} {row.source_id:<30} {row.status:<10} {last_run}  "
            f"fetched={last.get('itemsFetched', 0)} new={last.get('newItems', 0)}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.command == "check":
        coro = run_check(args, settings)
    else:
        db = Database(settings.database.url)
        db.init_db()
        if args.command == "jobs":
            return run_jobs(args, db)
        coro = run_fetch(args, settings, db)

    try:
        return asyncio.run(coro)
    except (ValidationError, ConfigurationError) as e:
        logger.error(f"Rejected: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
