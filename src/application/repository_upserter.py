import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Optional, Tuple

import aiohttp

from src.application.readme_fetcher import ConditionalReadmeFetcher
from src.domain.exceptions import InvalidIdentifier
from src.domain.models import RepositoryRecord
from src.infrastructure.acl import GitHubTranslator
from src.infrastructure.database import PostgresRepository
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)


def parse_full_name(full_name) -> Tuple[str, str]:
    """Splits 'owner/name' into its two non-empty parts or raises InvalidIdentifier."""
    if not isinstance(full_name, str):
        raise InvalidIdentifier(full_name)
    parts = full_name.split('/')
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidIdentifier(full_name)
    return parts[0], parts[1]


class RepositoryUpserter:
    """
    Refreshes one repository: metadata, README, last-crawled stamp, then a
    single upsert keyed by the GitHub id.
    """

    def __init__(
        self,
        github_client: GitHubRestClient,
        db_repository: PostgresRepository,
        readme_fetcher: Optional[ConditionalReadmeFetcher] = None,
    ):
        self.github_client = github_client
        self.db_repository = db_repository
        self.readme_fetcher = readme_fetcher or ConditionalReadmeFetcher(github_client)
        # Serializes merges for the same id when triggers overlap in one process.
        # Entries disappear once no upsert holds a reference to the lock.
        self._locks = weakref.WeakValueDictionary()

    async def upsert(self, session: aiohttp.ClientSession, full_name: str) -> Optional[RepositoryRecord]:
        """
        Args:
            full_name (str): Composite identifier 'owner/name'.

        Returns:
            Optional[RepositoryRecord]: The persisted record, or None when GitHub returned no metadata.

        Raises:
            InvalidIdentifier: If `full_name` is not 'owner/name'.
            MalformedMetadata: If the metadata has no numeric id.
        """
        owner, name = parse_full_name(full_name)

        raw = await self.github_client.get_repository(session, owner, name)
        if raw is None:
            logger.info(f"No metadata for {full_name}; skipping.")
            return None

        repo_id = GitHubTranslator.repository_id(raw)

        lock = self._locks.get(repo_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[repo_id] = lock

        async with lock:
            existing = await self.db_repository.find_by_id(repo_id)
            record = GitHubTranslator.to_domain(raw, existing)

            update = await self.readme_fetcher.fetch(session, owner, name, record.readme_etag)
            record = ConditionalReadmeFetcher.apply(record, update)

            record = record.model_copy(update={'last_crawled_at': datetime.now(timezone.utc)})
            await self.db_repository.upsert(record)

        logger.info(f"Upserted {full_name} (id={record.id}, stars={record.star_count}).")
        return record
