"""Interfaces to the services around the routing core.

The acquisition call itself lives outside this package; callers plug in an
:class:`ExecutionService`. Notifications are observational only.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from pydantic import BaseModel, Field

from watchlist_router.models import ApprovalRequest, ContentItem, ContentType, RoutingDecision

logger = structlog.get_logger()


class ContentRef(BaseModel):
    """Identifiers handed to the execution service along with a decision."""

    title: str
    content_type: ContentType
    guids: list[str] = Field(default_factory=list)
    content_key: str
    user_id: int | None = None

    @classmethod
    def from_item(cls, item: ContentItem, *, user_id: int | None, content_key: str | None = None) -> ContentRef:
        return cls(
            title=item.title,
            content_type=item.type,
            guids=list(item.guids),
            content_key=content_key or item.content_key,
            user_id=user_id,
        )

    @classmethod
    def from_request(cls, request: ApprovalRequest) -> ContentRef:
        return cls(
            title=request.content_title,
            content_type=request.content_type,
            guids=list(request.content_guids),
            content_key=request.content_key,
            user_id=request.user_id,
        )


class ExecutionResult(BaseModel):
    """Outcome of handing a decision to an acquisition instance."""

    success: bool
    instance_id: int
    error: str | None = None


class ExecutionService(Protocol):
    def execute(self, decision: RoutingDecision, content: ContentRef) -> ExecutionResult:
        """Add the content to the decision's instance. Must not raise for downstream failures."""
        ...


class Notifier(Protocol):
    def approval_created(self, request: ApprovalRequest) -> None: ...

    def approval_resolved(self, request: ApprovalRequest) -> None: ...


class LogNotifier:
    """Notifier that only logs."""

    def approval_created(self, request: ApprovalRequest) -> None:
        logger.info(
            "approval_request_created",
            request_id=request.id,
            user_id=request.user_id,
            title=request.content_title,
            triggered_by=request.triggered_by.value,
        )

    def approval_resolved(self, request: ApprovalRequest) -> None:
        logger.info(
            "approval_request_resolved",
            request_id=request.id,
            status=request.status.value,
            approved_by=request.approved_by,
        )


class UnconfiguredExecutionService:
    """Execution service used when no acquisition backend is wired in.

    Every call fails, so approvals are recorded and the missing hand-off is
    reported instead of silently dropped.
    """

    def execute(self, decision: RoutingDecision, content: ContentRef) -> ExecutionResult:
        logger.warning("execution_service_unconfigured", instance_id=decision.instance_id, title=content.title)
        return ExecutionResult(
            success=False,
            instance_id=decision.instance_id,
            error="no execution service configured",
        )
