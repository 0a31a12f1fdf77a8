import logging
from typing import Optional

import aiohttp

from src.domain.models import ReadmeUpdate, RepositoryRecord
from src.infrastructure.github_client import GitHubRestClient
from src.infrastructure.readme_decoder import ReadmeDecoder

logger = logging.getLogger(__name__)

NOT_MODIFIED = 304


class ConditionalReadmeFetcher:
    """
    Fetches a repository README with If-None-Match so unchanged READMEs come
    back as 304 and are neither downloaded nor decoded again.
    """

    def __init__(self, github_client: GitHubRestClient, decoder: Optional[ReadmeDecoder] = None):
        self.github_client = github_client
        self.decoder = decoder or ReadmeDecoder(github_client)

    async def fetch(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        name: str,
        current_etag: Optional[str] = None,
    ) -> Optional[ReadmeUpdate]:
        """
        Returns:
            ReadmeUpdate for a 2xx response; None when the record must be left
            unchanged (transport failure, 304, any other status, unparseable body).
        """
        response = await self.github_client.get_readme(session, owner, name, current_etag)

        if response is None:
            return None

        if response.status == NOT_MODIFIED:
            logger.debug(f"README for {owner}/{name} not modified.")
            return None

        if not 200 <= response.status < 300:
            logger.info(f"README for {owner}/{name} skipped (status {response.status}).")
            return None

        readme = response.payload
        if readme is None:
            return None

        text = await self.decoder.decode(session, readme.content, readme.encoding, readme.download_url)
        if text is None:
            logger.warning(f"README for {owner}/{name} produced no text; recording sha {readme.sha} only.")

        return ReadmeUpdate(text=text, sha=readme.sha, etag=response.etag)

    @staticmethod
    def apply(record: RepositoryRecord, update: Optional[ReadmeUpdate]) -> RepositoryRecord:
        """Copies the README fields of `update` onto `record`; no update leaves it as is."""
        if update is None:
            return record
        return record.model_copy(update={
            'readme_text': update.text,
            'readme_sha': update.sha,
            'readme_etag': update.etag,
        })
