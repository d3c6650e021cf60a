"""Approval gate and request lifecycle."""

from watchlist_router.approval.expiration import ExpirationPolicy
from watchlist_router.approval.gate import ApprovalGate, GateOutcome
from watchlist_router.approval.service import ApprovalService, MaintenanceResult
from watchlist_router.approval.state_machine import ApprovalAction, Transition, allowed_sources, transition

__all__ = [
    "ApprovalAction",
    "ApprovalGate",
    "ApprovalService",
    "ExpirationPolicy",
    "GateOutcome",
    "MaintenanceResult",
    "Transition",
    "allowed_sources",
    "transition",
]
