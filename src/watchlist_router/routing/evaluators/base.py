"""Evaluator plugin contract.

Each evaluator owns one routable attribute. It answers three questions:

- ``applies``: does the item carry the attribute at all?
- ``match_rules``: which stored rules of my type match this item?
- ``evaluate_leaf``: does a single leaf condition on my field match?

``match_rules`` and ``evaluate_leaf`` both go through :meth:`compare`, so a
stored criterion and the equivalent leaf condition always agree. Neither
``compare`` nor ``evaluate_leaf`` applies ``negate``; the owner of the node
does that exactly once.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

import structlog

from watchlist_router.exceptions import EvaluationUnavailableError
from watchlist_router.models import (
    Condition,
    ContentItem,
    RouterRule,
    RoutingContext,
    RoutingDecision,
    RuleType,
    instance_type_for,
)
from watchlist_router.routing.operators import FieldInfo, OperatorInfo, value_has_shape

if TYPE_CHECKING:
    from watchlist_router.routing.conditions import ConditionEvaluator

logger = structlog.get_logger()


class RuleSource(Protocol):
    """Read access to stored router rules."""

    def rules_by_type(self, rule_type: RuleType) -> list[RouterRule]:
        """Return all rules of one type.

        Raises:
            EvaluationUnavailableError: If the rules cannot be loaded.
        """
        ...


class FieldEvaluator(ABC):
    """Base class for evaluator plugins."""

    name: ClassVar[str]
    description: ClassVar[str]
    priority: ClassVar[int]
    rule_type: ClassVar[RuleType]
    fields: ClassVar[tuple[FieldInfo, ...]] = ()
    operators: ClassVar[dict[str, tuple[OperatorInfo, ...]]] = {}
    content_types: ClassVar[frozenset[str]] = frozenset({"movie", "show"})

    def __init__(self, rules: RuleSource) -> None:
        self._rules = rules

    # Metadata

    def owns_field(self, field: str) -> bool:
        return any(f.name == field for f in self.fields)

    def operator_info(self, field: str, operator: str) -> OperatorInfo | None:
        for info in self.operators.get(field, ()):
            if info.name == operator:
                return info
        return None

    def check_leaf(self, field: str, operator: str, value: Any) -> str | None:
        """Return a description of what is wrong with a leaf, or None if it is well formed."""

        if not self.owns_field(field):
            return f"field '{field}' is not handled by {self.name}"
        info = self.operator_info(field, operator)
        if info is None:
            supported = ", ".join(o.name for o in self.operators.get(field, ()))
            return f"operator '{operator}' is not supported for '{field}' (supported: {supported})"
        if not value_has_shape(value, info.value_types):
            return f"value {value!r} does not fit '{operator}' (expected {' or '.join(info.value_types)})"
        return None

    def describe(self) -> dict[str, Any]:
        """Plugin metadata for the authoring surface."""

        return {
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "rule_type": self.rule_type,
            "content_types": sorted(self.content_types),
            "fields": [
                {
                    "name": f.name,
                    "description": f.description,
                    "value_types": list(f.value_types),
                    "operators": [
                        {
                            "name": o.name,
                            "description": o.description,
                            "value_types": list(o.value_types),
                            "value_format": o.value_format,
                        }
                        for o in self.operators.get(f.name, ())
                    ],
                }
                for f in self.fields
            ],
        }

    # Evaluation

    def handles_content_type(self, context: RoutingContext) -> bool:
        return context.content_type in self.content_types

    @abstractmethod
    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        """True if the item carries the attribute this evaluator judges."""

    @abstractmethod
    def compare(
        self,
        field: str,
        operator: str,
        value: Any,
        item: ContentItem,
        context: RoutingContext,
    ) -> bool:
        """Raw (un-negated) comparison of the item's attribute against ``value``.

        Only called with a well formed operator/value pair.
        """

    def evaluate_leaf(self, condition: Condition, item: ContentItem, context: RoutingContext) -> bool:
        """Evaluate one leaf condition on this evaluator's field, without negation."""

        if self.check_leaf(condition.field, condition.operator, condition.value) is not None:
            return False
        return self._safe_compare(condition.field, condition.operator, condition.value, item, context)

    def rule_matches(self, rule: RouterRule, item: ContentItem, context: RoutingContext) -> bool:
        """True if a stored rule of this evaluator's type matches the item."""

        criterion = rule.criterion
        if criterion is None:
            return False
        if self.check_leaf(criterion.field, criterion.operator, criterion.value) is not None:
            logger.warning("router_rule_criterion_invalid", rule_id=rule.id, rule_name=rule.name, evaluator=self.name)
            return False

        result = self._safe_compare(criterion.field, criterion.operator, criterion.value, item, context)
        return not result if criterion.negate else result

    def match_rules(self, item: ContentItem, context: RoutingContext) -> list[RoutingDecision] | None:
        """Map every enabled rule of this type that matches the item to a decision.

        Returns:
            The matching decisions (possibly empty), or None if rules could not be loaded.
        """

        try:
            rules = self._rules.rules_by_type(self.rule_type)
        except EvaluationUnavailableError as exc:
            logger.error(
                "evaluator_rules_unavailable",
                evaluator=self.name,
                rule_type=self.rule_type,
                content_type=context.content_type,
                error=str(exc),
            )
            return None

        target_type = instance_type_for(context.content_type)
        decisions: list[RoutingDecision] = []
        for rule in rules:
            if not rule.enabled or rule.target_type != target_type:
                continue
            if self.rule_matches(rule, item, context):
                logger.debug("router_rule_matched", evaluator=self.name, rule_id=rule.id, rule_name=rule.name, title=item.title)
                decisions.append(
                    RoutingDecision.from_rule(rule, evaluator=self.name, evaluator_priority=self.priority)
                )
        return decisions

    def _safe_compare(
        self,
        field: str,
        operator: str,
        value: Any,
        item: ContentItem,
        context: RoutingContext,
    ) -> bool:
        try:
            return bool(self.compare(field, operator, value, item, context))
        except (TypeError, ValueError, re.error) as exc:
            logger.warning("evaluator_compare_failed", evaluator=self.name, field=field, operator=operator, error=str(exc))
            return False


class TreeEvaluator(FieldEvaluator):
    """Base for evaluators whose rules store a full condition tree."""

    def __init__(self, rules: RuleSource, conditions: ConditionEvaluator) -> None:
        super().__init__(rules)
        self._conditions = conditions
