"""Rule evaluation and routing."""

from watchlist_router.routing.conditions import ConditionEvaluator
from watchlist_router.routing.registry import EvaluatorRegistry
from watchlist_router.routing.router import ContentRouter, resolve_conflicts
from watchlist_router.routing.rule_builder import RuleBuilder, RuleValidator

__all__ = [
    "ConditionEvaluator",
    "ContentRouter",
    "EvaluatorRegistry",
    "RuleBuilder",
    "RuleValidator",
    "resolve_conflicts",
]
