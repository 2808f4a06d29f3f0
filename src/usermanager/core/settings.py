"""Application settings and configuration.

This module defines all configuration options for the user manager service.
Settings are loaded from environment variables with sensible defaults.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="User Manager", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./usermanager.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    token_ttl: int = Field(default=3600, ge=1, alias="TOKEN_TTL")
    auth_cookie_name: str = Field(default="Authorization", alias="AUTH_COOKIE_NAME")
    auth_cookie_secure: bool = Field(default=False, alias="AUTH_COOKIE_SECURE")

    # Password hashing
    hash_salt: str = Field(alias="HASH_SALT")
    password_hash_iterations: int = Field(
        default=120_000,
        ge=1,
        alias="PASSWORD_HASH_ITERATIONS",
    )

    # Peer rating
    vote_cooldown_seconds: int = Field(default=3600, ge=0, alias="VOTE_COOLDOWN_SECONDS")

    # Pagination
    page_size_default: int = Field(default=5, ge=1, alias="PAGE_SIZE_DEFAULT")
    page_size_max: int = Field(default=100, ge=1, alias="PAGE_SIZE_MAX")
    default_sort: str = Field(default="id desc", alias="DEFAULT_SORT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def vote_cooldown(self) -> timedelta:
        """Minimum time a rater must wait between two votes."""
        return timedelta(seconds=self.vote_cooldown_seconds)


settings = Settings()  # type: ignore[call-arg]
