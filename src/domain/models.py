from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field, ConfigDict

class RepositoryRecord(BaseModel):
    """
    Immutable domain model representing one crawled GitHub repository.
    Updates are expressed as explicit copies (model_copy(update=...)).
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="The numeric repository id from GitHub (primary key)")
    node_id: Optional[str] = Field(None, description="The GraphQL Node ID")
    name: Optional[str] = None
    full_name: Optional[str] = Field(None, description="owner/name, may change upstream on rename")
    owner_login: Optional[str] = None
    html_url: Optional[str] = None
    description: Optional[str] = None
    primary_language: Optional[str] = None
    star_count: Optional[int] = None

    created_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    readme_text: Optional[str] = None
    readme_sha: Optional[str] = None
    readme_etag: Optional[str] = Field(None, description="Cache validator from the last 2xx README response")

    last_crawled_at: Optional[datetime] = None


# Upstream payloads. Unknown keys are ignored; every field is optional except
# where the mapper enforces it.

class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class OwnerPayload(_Payload):
    login: Optional[str] = None


class RepositoryPayload(_Payload):
    id: int
    node_id: Optional[str] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    owner: Optional[OwnerPayload] = None
    html_url: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: Optional[int] = None
    # Kept as raw values so a single bad value can be dropped without
    # rejecting the whole payload.
    created_at: Optional[Any] = None
    pushed_at: Optional[Any] = None
    updated_at: Optional[Any] = None


class SearchItem(_Payload):
    full_name: Optional[str] = None


class SearchResultPage(_Payload):
    total_count: Optional[int] = None
    items: Optional[List[SearchItem]] = None


class ReadmePayload(_Payload):
    content: Optional[str] = None
    encoding: Optional[str] = None
    sha: Optional[str] = None
    download_url: Optional[str] = None


class ReadmeResponse(BaseModel):
    """Outcome of one README request: status, validator header and parsed body (2xx only)."""
    status: int
    etag: Optional[str] = None
    payload: Optional[ReadmePayload] = None


class ReadmeUpdate(BaseModel):
    """README fields to copy onto a record after a successful fetch."""
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    sha: Optional[str] = None
    etag: Optional[str] = None


class CrawlSummary(BaseModel):
    pages: int = 0
    processed: int = 0
    failed: int = 0
