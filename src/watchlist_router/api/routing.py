"""Routing API: evaluate rules for an item, optionally submitting it through the approval gate."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from watchlist_router.api.deps import get_services
from watchlist_router.api.models import RouteRequest, RouteResponse
from watchlist_router.approval import GateOutcome
from watchlist_router.services import Services

router = APIRouter(prefix="/api/routing", tags=["routing"])


@router.post("/route", response_model=RouteResponse)
def api_route(body: RouteRequest, services: Services = Depends(get_services)) -> RouteResponse:
    return RouteResponse(decisions=services.router.route(body.item, body.context))


@router.post("/submit", response_model=GateOutcome)
def api_submit(body: RouteRequest, services: Services = Depends(get_services)) -> GateOutcome:
    decisions = services.router.route(body.item, body.context)
    return services.gate.submit(body.item, body.context, decisions)
