"""Approval requests API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from watchlist_router.api.deps import get_services
from watchlist_router.api.models import (
    ApprovalDecisionRequest,
    ApprovalListResponse,
    BulkApprovalRequest,
    BulkResponse,
)
from watchlist_router.approval import MaintenanceResult
from watchlist_router.models import (
    ApprovalRequest,
    ApprovalStats,
    ApprovalStatus,
    ApprovalTrigger,
    BatchResult,
    ContentType,
    RoutingDecision,
    SweepResult,
)
from watchlist_router.services import Services

router = APIRouter(prefix="/api/approvals", tags=["approvals"])


def _bulk_response(result: BatchResult) -> BulkResponse:
    return BulkResponse(
        successful=result.successful,
        failed=result.failed,
        errors=result.errors,
        total=result.total,
    )


@router.get("", response_model=ApprovalListResponse)
def api_list_approvals(
    status: ApprovalStatus | None = None,
    user_id: int | None = None,
    content_type: ContentType | None = None,
    triggered_by: ApprovalTrigger | None = None,
    limit: int = 50,
    offset: int = 0,
    services: Services = Depends(get_services),
) -> ApprovalListResponse:
    limit = max(1, min(int(limit), 500))
    offset = max(0, int(offset))

    requests, total = services.approvals.list_requests(
        status=status,
        user_id=user_id,
        content_type=content_type,
        triggered_by=triggered_by,
        limit=limit,
        offset=offset,
    )
    return ApprovalListResponse(total=total, limit=limit, offset=offset, requests=requests)


@router.get("/stats", response_model=ApprovalStats)
def api_approval_stats(services: Services = Depends(get_services)) -> ApprovalStats:
    return services.approvals.stats()


@router.post("/sweep", response_model=SweepResult)
def api_expire_sweep(services: Services = Depends(get_services)) -> SweepResult:
    return services.approvals.expire_sweep()


@router.post("/maintenance", response_model=MaintenanceResult)
def api_run_maintenance(services: Services = Depends(get_services)) -> MaintenanceResult:
    return services.approvals.run_maintenance(quota_retention_days=services.settings.quota_cleanup_retention_days)


@router.post("/bulk/approve", response_model=BulkResponse)
def api_bulk_approve(body: BulkApprovalRequest, services: Services = Depends(get_services)) -> BulkResponse:
    if body.admin_id is None:
        raise HTTPException(status_code=400, detail="admin_id is required")
    return _bulk_response(services.approvals.batch_approve(body.request_ids, body.admin_id, body.notes))


@router.post("/bulk/reject", response_model=BulkResponse)
def api_bulk_reject(body: BulkApprovalRequest, services: Services = Depends(get_services)) -> BulkResponse:
    if body.admin_id is None:
        raise HTTPException(status_code=400, detail="admin_id is required")
    return _bulk_response(services.approvals.batch_reject(body.request_ids, body.admin_id, body.notes))


@router.post("/bulk/delete", response_model=BulkResponse)
def api_bulk_delete(body: BulkApprovalRequest, services: Services = Depends(get_services)) -> BulkResponse:
    return _bulk_response(services.approvals.batch_delete(body.request_ids))


@router.get("/{request_id}", response_model=ApprovalRequest)
def api_get_approval(request_id: str, services: Services = Depends(get_services)) -> ApprovalRequest:
    return services.approvals.get(request_id)


@router.post("/{request_id}/approve", response_model=ApprovalRequest)
def api_approve(
    request_id: str,
    body: ApprovalDecisionRequest,
    services: Services = Depends(get_services),
) -> ApprovalRequest:
    return services.approvals.approve(request_id, body.admin_id, body.notes)


@router.post("/{request_id}/reject", response_model=ApprovalRequest)
def api_reject(
    request_id: str,
    body: ApprovalDecisionRequest,
    services: Services = Depends(get_services),
) -> ApprovalRequest:
    return services.approvals.reject(request_id, body.admin_id, body.notes)


@router.put("/{request_id}/routing", response_model=ApprovalRequest)
def api_edit_routing(
    request_id: str,
    body: RoutingDecision,
    services: Services = Depends(get_services),
) -> ApprovalRequest:
    return services.approvals.edit_proposed_routing(request_id, body)


@router.delete("/{request_id}", status_code=204)
def api_delete_approval(request_id: str, services: Services = Depends(get_services)) -> None:
    services.approvals.delete(request_id)
