import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError

from src.domain.exceptions import InvalidTimestamp, MalformedMetadata
from src.domain.models import RepositoryPayload, RepositoryRecord

logger = logging.getLogger(__name__)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Parses an ISO-8601 timestamp as returned by the GitHub REST API.

    Returns None for an absent value and raises InvalidTimestamp for a value
    that cannot be parsed.
    """
    if raw is None:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise InvalidTimestamp(raw) from e


class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST repository documents into RepositoryRecord instances.
    """

    @staticmethod
    def to_domain(raw: Dict[str, Any], existing: Optional[RepositoryRecord] = None) -> RepositoryRecord:
        """
        Maps a raw repository metadata document onto a RepositoryRecord.

        Every metadata field is overwritten on each call. README fields and
        last_crawled_at are carried over from `existing` untouched.

        Args:
            raw (Dict[str, Any]): The JSON document from GET /repos/{owner}/{name}.
            existing (Optional[RepositoryRecord]): The stored record with the same id, if any.

        Returns:
            RepositoryRecord: The merged record.

        Raises:
            MalformedMetadata: If `id` is missing or not an integer.
        """
        raw_id = GitHubTranslator.repository_id(raw)

        try:
            payload = RepositoryPayload.model_validate(raw)
        except ValidationError as e:
            raise MalformedMetadata(f"Repository metadata for id {raw_id} failed validation: {e}") from e

        fields = {
            'id': payload.id,
            'node_id': payload.node_id,
            'name': payload.name,
            'full_name': payload.full_name,
            'owner_login': payload.owner.login if payload.owner else None,
            'html_url': payload.html_url,
            'description': payload.description,
            'primary_language': payload.language,
            'star_count': payload.stargazers_count,
            'created_at': GitHubTranslator._timestamp(payload, 'created_at'),
            'pushed_at': GitHubTranslator._timestamp(payload, 'pushed_at'),
            'updated_at': GitHubTranslator._timestamp(payload, 'updated_at'),
        }

        if existing is None:
            return RepositoryRecord(**fields)
        return existing.model_copy(update=fields)

    @staticmethod
    def repository_id(raw: Dict[str, Any]) -> int:
        """Returns the numeric id of a raw metadata document or raises MalformedMetadata."""
        raw_id = raw.get('id') if isinstance(raw, dict) else None
        # bool is an int subclass; GitHub never sends one as an id.
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise MalformedMetadata(f"Repository metadata has no numeric id: {raw_id!r}")
        return raw_id

    @staticmethod
    def _timestamp(payload: RepositoryPayload, field: str) -> Optional[datetime]:
        try:
            return parse_timestamp(getattr(payload, field))
        except InvalidTimestamp as e:
            logger.warning(f"Repository {payload.id}: ignoring {field}. {e}")
            return None
