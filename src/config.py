import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from src.infrastructure.github_client import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS


def split_languages(csv: Optional[str]) -> List[str]:
    if not csv:
        return []
    return [language.strip() for language in csv.split(",") if language.strip()]


class CrawlerSettings(BaseModel):
    """Runtime configuration, read from the environment (and a .env file when present)."""

    github_token: Optional[str] = None
    database_url: Optional[str] = None
    github_api_url: str = DEFAULT_API_URL
    github_timeout_seconds: float = Field(DEFAULT_TIMEOUT_SECONDS, gt=0)

    query: str = "stars:>5000"
    languages: List[str] = Field(default_factory=list)
    per_page: int = Field(50, ge=1, le=100)
    max_pages: int = Field(3, ge=1)
    # Every three hours
    interval_seconds: float = Field(3 * 60 * 60, gt=0)

    @classmethod
    def from_env(cls) -> "CrawlerSettings":
        load_dotenv()

        values = {
            "github_token": os.getenv("GITHUB_TOKEN"),
            "database_url": os.getenv("DATABASE_URL"),
            "github_api_url": os.getenv("GITHUB_API_URL"),
            "github_timeout_seconds": os.getenv("GITHUB_TIMEOUT_SECONDS"),
            "query": os.getenv("CRAWLER_QUERY"),
            "per_page": os.getenv("CRAWLER_PER_PAGE"),
            "max_pages": os.getenv("CRAWLER_MAX_PAGES"),
            "interval_seconds": os.getenv("CRAWLER_INTERVAL_SECONDS"),
        }
        # Unset or blank variables fall back to the field defaults.
        values = {key: value for key, value in values.items() if value}
        values["languages"] = split_languages(os.getenv("CRAWLER_LANGUAGES"))
        return cls(**values)
