"""Router rules API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from watchlist_router.api.deps import get_services
from watchlist_router.api.models import SetEnabledRequest
from watchlist_router.models import RouterRule
from watchlist_router.services import Services

router = APIRouter(prefix="/api/rules", tags=["rules"])


@router.get("", response_model=list[RouterRule])
def api_list_rules(enabled_only: bool = False, services: Services = Depends(get_services)) -> list[RouterRule]:
    return services.rules.list_rules(enabled_only=enabled_only)


@router.get("/fields")
def api_list_fields(services: Services = Depends(get_services)) -> list[dict[str, Any]]:
    return services.registry.describe()


@router.get("/{rule_id}", response_model=RouterRule)
def api_get_rule(rule_id: str, services: Services = Depends(get_services)) -> RouterRule:
    rule = services.rules.get_rule(rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail=f"Unknown rule_id: {rule_id}")
    return rule


@router.post("", response_model=RouterRule, status_code=201)
def api_create_rule(body: RouterRule, services: Services = Depends(get_services)) -> RouterRule:
    services.validator.validate_rule(body)
    return services.rules.create_rule(body)


@router.put("/{rule_id}", response_model=RouterRule)
def api_update_rule(rule_id: str, body: RouterRule, services: Services = Depends(get_services)) -> RouterRule:
    services.validator.validate_rule(body)
    return services.rules.update_rule(rule_id, body)


@router.post("/{rule_id}/enabled", response_model=RouterRule)
def api_set_rule_enabled(
    rule_id: str,
    body: SetEnabledRequest,
    services: Services = Depends(get_services),
) -> RouterRule:
    return services.rules.set_enabled(rule_id, bool(body.enabled))


@router.delete("/{rule_id}", status_code=204)
def api_delete_rule(rule_id: str, services: Services = Depends(get_services)) -> None:
    if not services.rules.delete_rule(rule_id):
        raise HTTPException(status_code=404, detail=f"Unknown rule_id: {rule_id}")
