"""Quota and per-user policy models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from watchlist_router.models.content import ContentType

QuotaType = Literal["daily", "weekly_rolling", "monthly"]


class UserQuota(BaseModel):
    """Quota configured for one user and content type."""

    user_id: int
    content_type: ContentType
    quota_type: QuotaType = "monthly"
    quota_limit: int = Field(ge=0)
    bypass_approval: bool = False


class UserPolicy(BaseModel):
    """User-level approval settings."""

    user_id: int
    user_name: str | None = None
    requires_approval: bool = False


class QuotaStatus(BaseModel):
    """Current usage against a user's quota."""

    user_id: int
    content_type: ContentType
    quota_type: QuotaType
    quota_limit: int
    current_usage: int
    window_start: datetime
    bypass_approval: bool = False

    @property
    def exceeded(self) -> bool:
        return self.current_usage >= self.quota_limit

    @property
    def would_exceed(self) -> bool:
        """True if recording one more item would go over the limit."""

        return self.current_usage + 1 > self.quota_limit
