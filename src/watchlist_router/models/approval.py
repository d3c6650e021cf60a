"""Approval request models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from watchlist_router.models.content import ContentType
from watchlist_router.models.rule import RoutingDecision


class ApprovalStatus(str, Enum):
    """Lifecycle status of an approval request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    AUTO_APPROVED = "auto_approved"


class ApprovalTrigger(str, Enum):
    """Why an approval was required."""

    QUOTA_EXCEEDED = "quota_exceeded"
    ROUTER_RULE = "router_rule"
    MANUAL_FLAG = "manual_flag"
    CONTENT_CRITERIA = "content_criteria"


class ExpirationAction(str, Enum):
    """What an expired pending request turns into."""

    EXPIRE = "expire"
    AUTO_APPROVE = "auto_approve"


class ApprovalRequest(BaseModel):
    """A deferred routing decision awaiting human or time-based resolution."""

    id: str
    user_id: int
    user_name: str | None = None

    content_type: ContentType
    content_title: str
    content_key: str
    content_guids: list[str] = Field(default_factory=list)

    triggered_by: ApprovalTrigger
    approval_reason: str | None = None
    router_rule_id: str | None = None
    trigger_data: dict[str, Any] = Field(default_factory=dict)

    status: ApprovalStatus = ApprovalStatus.PENDING
    proposed_routing: RoutingDecision

    approved_by: int | None = None
    approval_notes: str | None = None

    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING


class ApprovalStats(BaseModel):
    """Counts of approval requests by status."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    expired: int = 0
    auto_approved: int = 0
    total_requests: int = 0


class BatchResult(BaseModel):
    """Outcome of a bulk approve/reject/delete call."""

    successful: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)


class SweepResult(BaseModel):
    """Outcome of one expiration sweep."""

    skipped: bool = False
    expired: list[str] = Field(default_factory=list)
    auto_approved: list[str] = Field(default_factory=list)
    execution_failures: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)


class CleanupResult(BaseModel):
    """Outcome of the retention cleanup."""

    deleted_requests: int = 0
    deleted_quota_usage: int = 0


class ApprovalRequirement(BaseModel):
    """Result of the approval check for one item."""

    required: bool
    trigger: ApprovalTrigger | None = None
    reason: str | None = None
    router_rule_id: str | None = None
    auto_approve: bool = False
    data: dict[str, Any] = Field(default_factory=dict)
