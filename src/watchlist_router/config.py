"""Configuration management for Watchlist Router.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ExpirationActionName = Literal["expire", "auto_approve"]


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the WATCHLIST_ROUTER_ prefix (e.g., WATCHLIST_ROUTER_DATABASE_URL).
    """

    model_config = SettingsConfigDict(
        env_prefix="WATCHLIST_ROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    database_url: str = Field(
        default="sqlite:///watchlist_router.sqlite3",
        description="SQLAlchemy database URL for rules, approvals and quota usage",
    )

    # Routing
    evaluator_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a single evaluator plugin's rule lookup",
    )
    evaluator_max_workers: int = Field(
        default=8,
        ge=1,
        description="Thread pool size used to run evaluator plugins in parallel",
    )

    # Approval expiration
    approval_expiration_enabled: bool = Field(
        default=False,
        description="Whether new approval requests receive an expiry deadline",
    )
    approval_default_expiration_hours: int = Field(
        default=72,
        ge=1,
        description="Hours until a pending approval request expires",
    )
    approval_expiration_action: ExpirationActionName = Field(
        default="expire",
        description="What happens to a pending request when its deadline passes",
    )
    quota_exceeded_expiration_hours: int | None = Field(default=None, ge=1)
    router_rule_expiration_hours: int | None = Field(default=None, ge=1)
    manual_flag_expiration_hours: int | None = Field(default=None, ge=1)
    content_criteria_expiration_hours: int | None = Field(default=None, ge=1)
    approval_expiration_action_overrides: dict[str, ExpirationActionName] = Field(
        default_factory=dict,
        description="Per-trigger expiration action, keyed by trigger name",
    )

    # Retention
    approval_cleanup_expired_days: int = Field(
        default=30,
        ge=1,
        description="Days after which expired/rejected requests are deleted",
    )
    quota_cleanup_retention_days: int = Field(
        default=90,
        ge=1,
        description="Days of quota usage history to keep",
    )

    # Quotas
    quota_weekly_rolling_days: int = Field(default=7, ge=1)
    quota_monthly_reset_day: int = Field(default=1, ge=1, le=31)

    # Content criteria that always require approval (list of condition nodes)
    approval_content_criteria: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Condition trees; an item matching any of them needs approval",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
