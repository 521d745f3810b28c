"""Application settings and configuration.

This module defines all configuration options for the Parley application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Parley", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    base_url: str = Field(default="http://localhost:8000", alias="BASE_URL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./parley.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Spent auth challenge nonces are kept in redis
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    auth_challenge_ttl_seconds: int = Field(default=300, alias="AUTH_CHALLENGE_TTL_SECONDS")

    # Posting rules
    min_post_length: int = Field(default=8, alias="MIN_POST_LENGTH")
    min_topic_title_length: int = Field(default=10, alias="MIN_TOPIC_TITLE_LENGTH")
    max_topic_title_length: int = Field(default=255, alias="MAX_TOPIC_TITLE_LENGTH")
    allow_uncategorized_topics: bool = Field(default=True, alias="ALLOW_UNCATEGORIZED_TOPICS")

    # Feeds
    feed_default_items: int = Field(default=50, alias="FEED_DEFAULT_ITEMS")
    feed_max_items: int = Field(default=100, alias="FEED_MAX_ITEMS")

    # Background jobs: when disabled, jobs run inline inside the request
    queue_jobs: bool = Field(default=False, alias="QUEUE_JOBS")
    job_worker_enabled: bool = Field(default=True, alias="JOB_WORKER_ENABLED")
    job_poll_interval_seconds: float = Field(default=1.0, alias="JOB_POLL_INTERVAL_SECONDS")
    job_batch_size: int = Field(default=20, alias="JOB_BATCH_SIZE")
    job_max_attempts: int = Field(default=3, alias="JOB_MAX_ATTEMPTS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
