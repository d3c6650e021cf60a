"""Persistence layer (SQLAlchemy Core over SQLite or PostgreSQL)."""

from watchlist_router.repository.approval_repository import ApprovalRepository
from watchlist_router.repository.quota_repository import QuotaRepository, UserPolicyRepository
from watchlist_router.repository.rule_repository import RouterRuleRepository
from watchlist_router.repository.schema import ensure_schema

__all__ = [
    "ApprovalRepository",
    "QuotaRepository",
    "RouterRuleRepository",
    "UserPolicyRepository",
    "ensure_schema",
]
