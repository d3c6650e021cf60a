"""Request and response models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from watchlist_router.models import ApprovalRequest, ContentItem, RoutingContext, RoutingDecision


class SetEnabledRequest(BaseModel):
    enabled: bool


class RouteRequest(BaseModel):
    item: ContentItem
    context: RoutingContext


class RouteResponse(BaseModel):
    decisions: list[RoutingDecision]


class ApprovalListResponse(BaseModel):
    total: int
    limit: int
    offset: int
    requests: list[ApprovalRequest]


class ApprovalDecisionRequest(BaseModel):
    admin_id: int
    notes: str | None = None


class BulkApprovalRequest(BaseModel):
    request_ids: list[str] = Field(min_length=1)
    admin_id: int | None = None
    notes: str | None = None


class BulkResponse(BaseModel):
    successful: list[str]
    failed: list[str]
    errors: list[str]
    total: int
