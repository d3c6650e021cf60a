"""Recursive evaluation of condition trees."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from watchlist_router.models import Condition, ConditionGroup, ConditionNode, ContentItem, RoutingContext

if TYPE_CHECKING:
    from watchlist_router.routing.registry import EvaluatorRegistry

logger = structlog.get_logger()


class ConditionEvaluator:
    """Evaluates a condition tree against an item.

    Each node's ``negate`` is applied here and nowhere else. A node that cannot
    be evaluated (unknown field, unsupported operator, wrong value shape, empty
    group) is False whatever its ``negate`` says, so a broken rule never
    matches everything.
    """

    def __init__(self, registry: EvaluatorRegistry) -> None:
        self._registry = registry

    def evaluate(self, node: ConditionNode, item: ContentItem, context: RoutingContext) -> bool:
        raw = self._evaluate_raw(node, item, context)
        if raw is None:
            return False
        return not raw if node.negate else raw

    def _evaluate_raw(self, node: ConditionNode, item: ContentItem, context: RoutingContext) -> bool | None:
        if isinstance(node, ConditionGroup):
            if not node.conditions:
                logger.warning("condition_group_empty", operator=node.operator)
                return None
            if node.operator == "AND":
                return all(self.evaluate(child, item, context) for child in node.conditions)
            return any(self.evaluate(child, item, context) for child in node.conditions)

        return self._evaluate_leaf(node, item, context)

    def _evaluate_leaf(self, node: Condition, item: ContentItem, context: RoutingContext) -> bool | None:
        evaluator = self._registry.for_field(node.field)
        if evaluator is None:
            logger.warning("condition_field_unknown", field=node.field)
            return None

        problem = evaluator.check_leaf(node.field, node.operator, node.value)
        if problem is not None:
            logger.warning("condition_leaf_invalid", field=node.field, operator=node.operator, problem=problem)
            return None

        return evaluator.evaluate_leaf(node, item, context)
