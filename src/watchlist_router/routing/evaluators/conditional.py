"""Route by arbitrary condition trees."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RouterRule, RoutingContext
from watchlist_router.routing.evaluators.base import TreeEvaluator


class ConditionalEvaluator(TreeEvaluator):
    """Evaluates stored AND/OR condition trees over every registered field.

    It owns no field of its own; leaves are delegated to the evaluator that
    owns each field.
    """

    name = "Conditional Router"
    description = "Routes content using nested AND/OR conditions across all fields"
    priority = 100
    rule_type = "conditional"

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return True

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        return False

    def rule_matches(self, rule: RouterRule, item: ContentItem, context: RoutingContext) -> bool:
        if rule.condition is None:
            return False
        return self._conditions.evaluate(rule.condition, item, context)
