import base64
from typing import Dict, Optional

from src.domain.models import ReadmePayload, ReadmeResponse, RepositoryRecord, SearchItem, SearchResultPage


def metadata(repo_id: int, full_name: str, stars: int = 100) -> dict:
    owner, name = full_name.split("/")
    return {
        "id": repo_id,
        "node_id": f"R_{repo_id}",
        "name": name,
        "full_name": full_name,
        "owner": {"login": owner},
        "html_url": f"https://github.com/{full_name}",
        "description": f"{name} description",
        "language": "Python",
        "stargazers_count": stars,
        "created_at": "2020-01-01T00:00:00Z",
        "pushed_at": "2024-05-01T00:00:00Z",
        "updated_at": "2024-05-02T00:00:00Z",
    }


class FakeGitHubClient:
    """In-memory stand-in for GitHubRestClient that honours If-None-Match."""

    def __init__(self, repos: Optional[Dict[str, dict]] = None, readmes: Optional[Dict[str, str]] = None) -> None:
        self.repos = repos or {}
        self.readmes = readmes or {}
        self.pages = []
        self.search_calls = []
        self.readme_calls = []

    async def search_repositories(self, session, query, page, per_page):
        self.search_calls.append((query, page, per_page))
        if page > len(self.pages):
            return None
        items = self.pages[page - 1]
        if items is None:
            return None
        return SearchResultPage(items=[SearchItem(full_name=name) for name in items])

    async def get_repository(self, session, owner, name):
        return self.repos.get(f"{owner}/{name}")

    async def get_readme(self, session, owner, name, etag=None):
        full_name = f"{owner}/{name}"
        self.readme_calls.append((full_name, etag))
        text = self.readmes.get(full_name)
        if text is None:
            return ReadmeResponse(status=404)
        current_etag = f'"{hash(text)}"'
        if etag == current_etag:
            return ReadmeResponse(status=304, etag=current_etag)
        return ReadmeResponse(
            status=200,
            etag=current_etag,
            payload=ReadmePayload(
                content=base64.b64encode(text.encode("utf-8")).decode("ascii"),
                encoding="base64",
                sha=f"sha-{len(text)}",
            ),
        )

    async def get_raw(self, session, url):
        return None


class FakeRepository:
    """Dict-backed stand-in for PostgresRepository."""

    def __init__(self) -> None:
        self.records: Dict[int, RepositoryRecord] = {}
        self.upsert_calls = 0

    async def find_by_id(self, repo_id: int) -> Optional[RepositoryRecord]:
        return self.records.get(repo_id)

    async def upsert(self, record: RepositoryRecord) -> None:
        self.upsert_calls += 1
        self.records[record.id] = record
