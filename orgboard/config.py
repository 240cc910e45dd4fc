"""
Application configuration using Pydantic settings.

Usage:
    from orgboard.config import get_settings
    settings = get_settings()

For constants, import from orgboard.constants:
    from orgboard.constants import GITHUB_GRAPHQL_ENDPOINT
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from orgboard.constants import (
    DEFAULT_ISSUES_PER_REPOSITORY,
    DEFAULT_MAX_REPOSITORY_PAGES,
    DEFAULT_PROJECT_ITEMS_PAGE_SIZE,
    DEFAULT_PROJECTS_PAGE_SIZE,
    DEFAULT_REPOSITORIES_PAGE_SIZE,
    GITHUB_API_BASE,
    GITHUB_GRAPHQL_ENDPOINT,
)


def _default_cache_path() -> str:
    return str(Path.home() / ".cache" / "orgboard" / "cache.sqlite3")


class Settings(BaseSettings):
    """
    Unified application settings loaded from environment variables and .env file.

    Required for live use:
        - GITHUB_TOKEN (or PAT_TOKEN) with read:org and read:project scopes
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # App settings
    app_name: str = "Orgboard"
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: Literal["auto", "console", "json"] = Field(default="auto", validation_alias="LOG_FORMAT")

    # GitHub
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "PAT_TOKEN"),
    )
    github_graphql_url: str = Field(default=GITHUB_GRAPHQL_ENDPOINT, validation_alias="GITHUB_GRAPHQL_URL")
    github_api_base: str = Field(default=GITHUB_API_BASE, validation_alias="GITHUB_API_BASE")
    request_timeout: int = Field(default=30, validation_alias="REQUEST_TIMEOUT")

    # Cache store
    cache_backend: Literal["sqlite", "redis", "memory"] = Field(
        default="sqlite", validation_alias="CACHE_BACKEND"
    )
    cache_path: str = Field(default_factory=_default_cache_path, validation_alias="CACHE_PATH")
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")
    redis_password: Optional[str] = Field(default=None, validation_alias="REDIS_PASSWORD")
    redis_key_prefix: str = Field(default="orgboard:", validation_alias="REDIS_KEY_PREFIX")

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # TTL classes (seconds, 0 = never expire)
    cache_ttl_short: int = Field(default=60 * 10, ge=0, validation_alias="CACHE_TTL_SHORT")
    cache_ttl_long: int = Field(default=60 * 60 * 24, ge=0, validation_alias="CACHE_TTL_LONG")

    # Pagination bounds
    repositories_page_size: int = Field(default=DEFAULT_REPOSITORIES_PAGE_SIZE, ge=1, le=100)
    max_repository_pages: Optional[int] = Field(
        default=DEFAULT_MAX_REPOSITORY_PAGES, ge=1, validation_alias="MAX_REPOSITORY_PAGES"
    )
    issues_per_repository: int = Field(default=DEFAULT_ISSUES_PER_REPOSITORY, ge=1, le=100)
    projects_page_size: int = Field(default=DEFAULT_PROJECTS_PAGE_SIZE, ge=1, le=100)
    project_items_page_size: int = Field(default=DEFAULT_PROJECT_ITEMS_PAGE_SIZE, ge=1, le=100)

    # Join
    status_conflict_policy: Literal["last_wins", "first_wins", "priority", "strict"] = Field(
        default="last_wins", validation_alias="STATUS_CONFLICT_POLICY"
    )
    status_priority: str = Field(default="", validation_alias="STATUS_PRIORITY")

    @field_validator("max_repository_pages", mode="before")
    @classmethod
    def parse_page_cap(cls, v):
        """Accept ``none``, ``off`` or an empty value as "walk every repository"."""
        if isinstance(v, str) and v.strip().lower() in ("", "none", "off"):
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level names."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def status_priority_list(self) -> List[str]:
        """Parse board priority order from comma-separated string."""
        return [p.strip() for p in self.status_priority.split(",") if p.strip()]

    def validate_runtime_config(self) -> tuple[List[str], List[str]]:
        """
        Validate configuration before talking to GitHub.

        Returns:
            Tuple of (errors, warnings) - errors are fatal, warnings are advisory
        """
        errors = []
        warnings = []

        if not self.github_token:
            errors.append("GITHUB_TOKEN is required for GitHub API access")

        if self.cache_backend == "memory":
            warnings.append("CACHE_BACKEND=memory - nothing will persist between runs")

        if self.max_repository_pages is None:
            warnings.append(
                "MAX_REPOSITORY_PAGES=none - every organization repository will be walked"
            )

        if self.status_conflict_policy == "priority" and not self.status_priority_list:
            errors.append("STATUS_PRIORITY is required when STATUS_CONFLICT_POLICY=priority")

        return errors, warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]
