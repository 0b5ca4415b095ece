# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""CampusIQ configuration.

Every group of knobs is its own ``BaseSettings`` with an environment
prefix (``REDIS_``, ``RATE_LIMIT_``, ``MUTATION_``, ``AUDIT_``,
``SECURITY_``, ``JWT_``). ``Settings`` nests them all.

Example:
    >>> settings = get_settings()
    >>> settings.rate_limit.limits["task:create"].max_requests
    10
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production"


class RedisSettings(BaseSettings):
    """Redis configuration for shared rate-limit counters.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
        url: Full Redis connection URL.
        max_connections: Maximum connection pool size.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "campusiq-redis"
    port: int = 6379
    password: SecretStr = SecretStr("campusiq_redis_password")
    database: int = 0
    max_connections: int = 50

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"


class RateLimitRule(BaseModel):
    """A single fixed-window limit.

    Attributes:
        max_requests: Requests allowed inside one window.
        window_seconds: Window length in seconds.
    """

    max_requests: int = Field(gt=0)
    window_seconds: int = Field(gt=0)


def _default_limits() -> dict[str, RateLimitRule]:
    return {
        "task:create": RateLimitRule(max_requests=10, window_seconds=3600),
        "task:update": RateLimitRule(max_requests=30, window_seconds=3600),
        "task:status_change": RateLimitRule(max_requests=20, window_seconds=3600),
        "task:comment": RateLimitRule(max_requests=50, window_seconds=3600),
    }


def _default_burst_limits() -> dict[str, RateLimitRule]:
    return {
        "task:create": RateLimitRule(max_requests=3, window_seconds=60),
        "task:update": RateLimitRule(max_requests=10, window_seconds=60),
    }


class RateLimitSettings(BaseSettings):
    """Mutation rate limiting configuration.

    Limits are keyed by action class. An action class without a rule is
    not limited. Burst rules are checked in addition to the hourly rule.

    Attributes:
        backend: Counter storage ("memory" for a single process, "redis"
            for counters shared between workers).
        limits: Per action class hourly rules.
        burst_limits: Per action class short-window rules.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    backend: Literal["memory", "redis"] = "memory"
    limits: dict[str, RateLimitRule] = Field(default_factory=_default_limits)
    burst_limits: dict[str, RateLimitRule] = Field(default_factory=_default_burst_limits)


class MutationSettings(BaseSettings):
    """Mutation boundary configuration.

    Attributes:
        default_timeout_seconds: Deadline applied when a caller passes none.
        title_max_length: Maximum task/exam title length.
        description_max_length: Maximum task description length.
        comment_max_length: Maximum task comment length.
    """

    model_config = SettingsConfigDict(
        env_prefix="MUTATION_",
        extra="ignore",
    )

    default_timeout_seconds: float = 10.0
    title_max_length: int = 200
    description_max_length: int = 5000
    comment_max_length: int = 2000


class AuditSettings(BaseSettings):
    """Audit trail configuration.

    Attributes:
        default_limit: Entries returned by fetch_recent when no limit given.
        max_limit: Upper bound on a single fetch.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        extra="ignore",
    )

    default_limit: int = 50
    max_limit: int = 500


class SecurityMonitorSettings(BaseSettings):
    """Security event monitoring thresholds.

    Attributes:
        window_minutes: Look-back window for a monitoring scan.
        high_severity_alert_threshold: High/critical events in the window
            above which an alert is raised.
        violation_warning_threshold: Rate-limit violations per actor above
            which the actor is reported.
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        extra="ignore",
    )

    window_minutes: int = 60
    high_severity_alert_threshold: int = 10
    violation_warning_threshold: int = 5


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Secret key for signing tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token expiration time.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=30,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )


class Settings(BaseSettings):
    """Top-level CampusIQ configuration.

    Each group reads its own prefixed variables; the top level reads
    ``ENVIRONMENT``, ``DEBUG`` and ``LOG_LEVEL`` plus a ``.env`` file.

    Attributes:
        environment: Deployment tier.
        debug: Expose the interactive API docs.
        log_level: Root log level.
        redis: Shared counter store.
        rate_limit: Per action class limits.
        mutation: Boundary deadline and field lengths.
        audit: Audit history paging.
        security: Monitor thresholds.
        jwt: Token signing.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    redis: RedisSettings = Field(default_factory=RedisSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    mutation: MutationSettings = Field(default_factory=MutationSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    security: SecurityMonitorSettings = Field(default_factory=SecurityMonitorSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Refuse to start production with the placeholder JWT secret."""
        if self.is_production and self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
            raise ValueError(
                "The JWT secret key is still the placeholder; "
                "set JWT_SECRET_KEY before running in production."
            )
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment once per process."""
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() reloads them."""
    get_settings.cache_clear()
