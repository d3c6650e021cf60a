"""Data models for Watchlist Router.

This module contains Pydantic models for data validation and serialization.
"""

from watchlist_router.models.approval import (
    ApprovalRequest,
    ApprovalRequirement,
    ApprovalStats,
    ApprovalStatus,
    ApprovalTrigger,
    BatchResult,
    CleanupResult,
    ExpirationAction,
    SweepResult,
)
from watchlist_router.models.condition import Condition, ConditionGroup, ConditionNode, FieldCriterion
from watchlist_router.models.content import ContentItem, ContentType, InstanceType, RoutingContext, instance_type_for
from watchlist_router.models.quota import QuotaStatus, QuotaType, UserPolicy, UserQuota
from watchlist_router.models.rule import DEFAULT_RULE_ORDER, RouterRule, RoutingDecision, RuleType

__all__ = [
    "ApprovalRequest",
    "ApprovalRequirement",
    "ApprovalStats",
    "ApprovalStatus",
    "ApprovalTrigger",
    "BatchResult",
    "CleanupResult",
    "Condition",
    "ConditionGroup",
    "ConditionNode",
    "ContentItem",
    "ContentType",
    "DEFAULT_RULE_ORDER",
    "ExpirationAction",
    "FieldCriterion",
    "InstanceType",
    "QuotaStatus",
    "QuotaType",
    "RouterRule",
    "RoutingContext",
    "RoutingDecision",
    "RuleType",
    "SweepResult",
    "UserPolicy",
    "UserQuota",
    "instance_type_for",
]
