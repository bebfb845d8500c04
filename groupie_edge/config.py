"""
Configuration module for the Groupie Edge server.

This module uses Pydantic Settings to load and validate environment variables
for the listen socket, the credential store, the upstream API relay and the
static site layout.

Environment variables are loaded from .env file or system environment.
Empty variables fall back to their defaults.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All configuration for the HTTP server, the credential store, password
    hashing, the upstream relay and static files is defined here.
    """

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the server",
    )

    PORT: int = Field(
        default=8080,
        description="Port to bind the server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    ENVIRONMENT: str = Field(
        default="production",
        description="Deployment environment name (development, production, ...)",
    )

    # =========================================================================
    # Credential Store Configuration
    # =========================================================================

    DISABLE_DB: bool = Field(
        default=False,
        description="Skip credential store initialization (DISABLE_DB=1)",
    )

    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the DB_* connection fields",
    )

    DB_HOST: str = Field(default="localhost", description="MySQL host")

    DB_PORT: int = Field(default=3306, description="MySQL port", ge=1, le=65535)

    DB_USER: str = Field(default="root", description="MySQL user")

    DB_PASS: str = Field(
        default="",
        description="MySQL password",
        validation_alias=AliasChoices("DB_PASS", "DB_PASSWORD"),
    )

    DB_NAME: str = Field(default="groupi_tracker", description="MySQL database name")

    DB_POOL_SIZE: int = Field(
        default=5,
        description="Idle connections retained by the pool",
        ge=1,
    )

    DB_MAX_OPEN_CONNS: int = Field(
        default=10,
        description="Maximum concurrently open connections",
        ge=1,
    )

    DB_CONN_MAX_LIFETIME_SECONDS: int = Field(
        default=1800,
        description="Recycle pooled connections older than this",
        ge=1,
    )

    DB_TIMEOUT_SECONDS: int = Field(
        default=5,
        description="Connect/read/write timeout for database round-trips",
        ge=1,
    )

    DB_CREATE_SCHEMA: bool = Field(
        default=True,
        description="Create the user table at startup when it is missing",
    )

    BCRYPT_ROUNDS: int = Field(
        default=10,
        description="bcrypt cost factor (log2 of the work factor)",
        ge=4,
        le=31,
    )

    # =========================================================================
    # Upstream Relay Configuration
    # =========================================================================

    UPSTREAM_BASE_URL: str = Field(
        default="https://groupietrackers.herokuapp.com/api",
        description="Base URL of the relayed Groupie Trackers API",
    )

    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for a single upstream fetch",
        gt=0,
    )

    # =========================================================================
    # Static Site Configuration
    # =========================================================================

    SITE_ROOT: str = Field(
        default=".",
        description="Directory the site paths below are relative to",
    )

    STATIC_DIRS: str = Field(
        default="web/static,public/static,static",
        description="Comma-separated static directories, searched in order",
    )

    TEMPLATES_DIR: str = Field(
        default="web/templates",
        description="Directory holding the HTML pages",
    )

    INDEX_FILE: str = Field(
        default="index.html",
        description="Page served for /, /search and /filters",
    )

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def database_url(self) -> URL:
        """
        SQLAlchemy URL for the credential store.

        DATABASE_URL wins when set; otherwise a MySQL URL is assembled from the
        DB_* fields.
        """
        if self.DATABASE_URL:
            return make_url(self.DATABASE_URL)

        return URL.create(
            "mysql+pymysql",
            username=self.DB_USER,
            password=self.DB_PASS or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            query={"charset": "utf8mb4"},
        )

    @property
    def static_dirs_list(self) -> List[str]:
        """Parse STATIC_DIRS into a clean ordered list."""
        return [d.strip() for d in self.STATIC_DIRS.split(",") if d.strip()]

    @property
    def upstream_base_url_str(self) -> str:
        """Upstream base URL without trailing slash."""
        return self.UPSTREAM_BASE_URL.rstrip("/")

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        v = v.upper()
        if v not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return v

    @model_validator(mode="after")
    def validate_pool_bounds(self) -> "Settings":
        """The idle pool can never be larger than the open-connection cap."""
        if self.DB_POOL_SIZE > self.DB_MAX_OPEN_CONNS:
            raise ValueError(
                f"DB_POOL_SIZE ({self.DB_POOL_SIZE}) cannot exceed "
                f"DB_MAX_OPEN_CONNS ({self.DB_MAX_OPEN_CONNS})"
            )
        return self


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If environment variables are invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Inspect the settings and return a status report.

    Called during application startup; warnings are logged, not fatal.

    Returns:
        Dictionary with warnings and the (password-masked) targets.
    """
    warnings = []

    if settings.DISABLE_DB:
        warnings.append("Credential store disabled (DISABLE_DB=1); auth routes return 503")
    elif not settings.DATABASE_URL and not settings.DB_PASS:
        warnings.append("DB_PASS is empty")

    if settings.BCRYPT_ROUNDS < 10:
        warnings.append(
            f"BCRYPT_ROUNDS={settings.BCRYPT_ROUNDS} is below the recommended minimum of 10"
        )

    if not settings.upstream_base_url_str.startswith("https://"):
        warnings.append("UPSTREAM_BASE_URL is not an https URL")

    return {
        "warnings": warnings,
        "database": "disabled" if settings.DISABLE_DB else settings.database_url.render_as_string(hide_password=True),
        "upstream": settings.upstream_base_url_str,
    }
