"""User quota API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from watchlist_router.api.deps import get_services
from watchlist_router.models import ContentType, QuotaStatus, UserPolicy, UserQuota
from watchlist_router.services import Services

router = APIRouter(prefix="/api/quota", tags=["quota"])


@router.get("/{user_id}/{content_type}", response_model=QuotaStatus)
def api_quota_status(user_id: int, content_type: ContentType, services: Services = Depends(get_services)) -> QuotaStatus:
    status = services.quota.get_status(user_id, content_type)
    if status is None:
        raise HTTPException(status_code=404, detail=f"No {content_type} quota for user {user_id}")
    return status


@router.put("", response_model=UserQuota)
def api_set_quota(body: UserQuota, services: Services = Depends(get_services)) -> UserQuota:
    return services.quota_repository.set_quota(body)


@router.put("/policies", response_model=UserPolicy)
def api_set_user_policy(body: UserPolicy, services: Services = Depends(get_services)) -> UserPolicy:
    return services.policies.upsert(body)
