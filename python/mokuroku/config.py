"""Application settings loaded from environment variables.

Environment Configuration:
    MOKUROKU_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string for the watch-record store (required)
    LOG_JSON: Emit JSON logs (default true); false switches to console output

Catalog Configuration:
    ANILIST_API_URL: AniList GraphQL endpoint
    CATALOG_TIMEOUT_S: Per-request timeout for catalog page fetches
    SEARCH_PAGE_SIZE: Items fetched per catalog page (AniList caps perPage at 50)

Session Configuration:
    SESSION_TIMEOUT_S: Fixed lifetime of an interactive lookup session
    WATCHLIST_PAGE_SIZE: Tracked items returned per watch-list page

Note: PostgreSQL (psycopg v3) is the production store. SQLite URLs are
accepted for local development and tests; both support the upsert used
for watch-record toggles.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

ANILIST_API_URL = "https://graphql.anilist.co/"

# AniList rejects perPage values above this
MAX_PAGE_SIZE = 50


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - SEARCH_PAGE_SIZE and WATCHLIST_PAGE_SIZE must be within 1..50
    - CATALOG_TIMEOUT_S and SESSION_TIMEOUT_S must be >= 1
    """

    mokuroku_env: Environment = Field(default=Environment.LOCAL, alias="MOKUROKU_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Catalog (AniList) settings
    anilist_api_url: str = Field(default=ANILIST_API_URL, alias="ANILIST_API_URL")
    catalog_timeout_s: float = Field(default=10.0, alias="CATALOG_TIMEOUT_S")
    search_page_size: int = Field(default=5, alias="SEARCH_PAGE_SIZE")

    # Interactive session settings
    session_timeout_s: float = Field(default=60.0, alias="SESSION_TIMEOUT_S")
    watchlist_page_size: int = Field(default=16, alias="WATCHLIST_PAGE_SIZE")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject page sizes and timeouts the catalog or sessions cannot honor."""
        for env_name, value in (
            ("SEARCH_PAGE_SIZE", self.search_page_size),
            ("WATCHLIST_PAGE_SIZE", self.watchlist_page_size),
        ):
            if not 1 <= value <= MAX_PAGE_SIZE:
                raise ValueError(f"{env_name} must be between 1 and {MAX_PAGE_SIZE}, got {value}")

        for env_name, value in (
            ("CATALOG_TIMEOUT_S", self.catalog_timeout_s),
            ("SESSION_TIMEOUT_S", self.session_timeout_s),
        ):
            if value < 1:
                raise ValueError(f"{env_name} must be >= 1, got {value}")

        return self

    @property
    def is_sqlite(self) -> bool:
        """Whether the configured store is a SQLite database."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
