import argparse
import asyncio
import sys
import logging
from typing import List, Optional

import aiohttp
from pydantic import ValidationError

from src.config import CrawlerSettings
from src.infrastructure.github_client import GitHubRestClient
from src.infrastructure.database import PostgresRepository
from src.application.crawler_service import CrawlerService
from src.application.repository_upserter import RepositoryUpserter
from src.application.scheduler import CrawlScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl popular GitHub repositories into PostgreSQL.")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("schedule", help="Crawl now and then on every interval (default).")
    subparsers.add_parser("crawl", help="Run a single crawl and exit.")
    ingest = subparsers.add_parser("ingest", help="Refresh one repository given as owner/name.")
    ingest.add_argument("full_name", help="Repository identifier, e.g. octocat/Hello-World")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "schedule"
    return args


async def ingest(upserter: RepositoryUpserter, full_name: str) -> bool:
    """Manual trigger: refreshes one repository and reports the outcome on stdout."""
    try:
        async with aiohttp.ClientSession() as session:
            record = await upserter.upsert(session, full_name)
    except Exception as e:
        logger.exception(f"Ingest of {full_name} failed: {e}")
        print(f"failed: {full_name} ({e})")
        return False

    if record is None:
        print(f"failed: {full_name} (no metadata returned by GitHub)")
        return False

    print(f"ingested: {full_name}")
    return True


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = CrawlerSettings.from_env()
    except ValidationError as e:
        logger.error(f"Invalid crawler configuration: {e}")
        return 1

    if not settings.github_token:
        logger.error("GITHUB_TOKEN is not set in the environment.")
        return 1

    if not settings.database_url:
        logger.error("DATABASE_URL is not set in the environment.")
        return 1

    # Initialize the GitHub client and database repository
    github_client = GitHubRestClient(
        token=settings.github_token,
        api_url=settings.github_api_url,
        timeout_seconds=settings.github_timeout_seconds,
    )
    db_repository = PostgresRepository(db_url=settings.database_url)
    upserter = RepositoryUpserter(github_client=github_client, db_repository=db_repository)

    crawler_service = CrawlerService(github_client=github_client, upserter=upserter)
    scheduler = CrawlScheduler(
        crawler_service=crawler_service,
        interval_seconds=settings.interval_seconds,
        query=settings.query,
        languages=settings.languages,
        page_size=settings.per_page,
        max_pages=settings.max_pages,
    )

    try:
        await db_repository.create_schema()
        if args.command == "ingest":
            return 0 if await ingest(upserter, args.full_name) else 1
        await scheduler.run_forever(max_runs=1 if args.command == "crawl" else None)
    except KeyboardInterrupt:
        logger.info("Crawl interrupted by user. Exiting gracefully.")
    except Exception as e:
        logger.exception(f"An unexpected error occurred: {e}")
        return 1
    finally:
        await db_repository.engine.dispose()
    return 0

def cli() -> None:
    sys.exit(asyncio.run(main()))

if __name__ == "__main__":
    cli()
