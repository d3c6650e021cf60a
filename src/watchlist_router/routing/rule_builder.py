"""Authoring helpers for condition trees and router rules.

Building is unchecked; :class:`RuleValidator` checks a tree or rule against the
registered evaluators' field and operator metadata and raises
:class:`~watchlist_router.exceptions.MalformedRuleError` with the path of the
offending node.
"""

from __future__ import annotations

from typing import Any

from watchlist_router.exceptions import MalformedRuleError
from watchlist_router.models import (
    DEFAULT_RULE_ORDER,
    Condition,
    ConditionGroup,
    ConditionNode,
    FieldCriterion,
    InstanceType,
    RouterRule,
)
from watchlist_router.routing.registry import EvaluatorRegistry

MAX_CONDITION_DEPTH = 16


class RuleBuilder:
    """Small constructors for condition trees and rules."""

    @staticmethod
    def condition(field: str, operator: str, value: Any, negate: bool = False) -> Condition:
        return Condition(field=field, operator=operator, value=value, negate=negate)

    @staticmethod
    def genre(genres: str | list[str], operator: str = "contains", negate: bool = False) -> Condition:
        return Condition(field="genres", operator=operator, value=genres, negate=negate)

    @staticmethod
    def year(value: int | list[int] | dict[str, int], operator: str | None = None, negate: bool = False) -> Condition:
        """Year condition; the operator defaults from the value shape."""

        if operator is None:
            if isinstance(value, dict):
                operator = "between"
            elif isinstance(value, list):
                operator = "in"
            else:
                operator = "equals"
        return Condition(field="year", operator=operator, value=value, negate=negate)

    @staticmethod
    def language(language: str | list[str], operator: str | None = None, negate: bool = False) -> Condition:
        if operator is None:
            operator = "in" if isinstance(language, list) else "equals"
        return Condition(field="language", operator=operator, value=language, negate=negate)

    @staticmethod
    def user(users: int | str | list[int | str], operator: str | None = None, negate: bool = False) -> Condition:
        if operator is None:
            operator = "in" if isinstance(users, list) else "equals"
        return Condition(field="user", operator=operator, value=users, negate=negate)

    @staticmethod
    def and_(*conditions: ConditionNode, negate: bool = False) -> ConditionGroup:
        return ConditionGroup(operator="AND", conditions=list(conditions), negate=negate)

    @staticmethod
    def or_(*conditions: ConditionNode, negate: bool = False) -> ConditionGroup:
        return ConditionGroup(operator="OR", conditions=list(conditions), negate=negate)

    @staticmethod
    def not_(node: ConditionNode) -> ConditionNode:
        """Return a copy of ``node`` with its negate flag flipped."""

        return node.model_copy(update={"negate": not node.negate})

    @staticmethod
    def create_rule(
        name: str,
        condition: ConditionNode,
        *,
        target_type: InstanceType,
        target_instance_id: int,
        order: int = DEFAULT_RULE_ORDER,
        **settings: Any,
    ) -> RouterRule:
        """Conditional rule storing a full tree."""

        return RouterRule(
            name=name,
            type="conditional",
            target_type=target_type,
            target_instance_id=target_instance_id,
            condition=condition,
            order=order,
            **settings,
        )

    @staticmethod
    def create_field_rule(
        name: str,
        registry: EvaluatorRegistry,
        field: str,
        operator: str,
        value: Any,
        *,
        target_type: InstanceType,
        target_instance_id: int,
        negate: bool = False,
        order: int = DEFAULT_RULE_ORDER,
        **settings: Any,
    ) -> RouterRule:
        """Simple rule whose type is that of the evaluator owning ``field``."""

        evaluator = registry.for_field(field)
        if evaluator is None:
            raise MalformedRuleError(f"unknown field '{field}'", path="criterion")
        return RouterRule(
            name=name,
            type=evaluator.rule_type,
            target_type=target_type,
            target_instance_id=target_instance_id,
            criterion=FieldCriterion(field=field, operator=operator, value=value, negate=negate),
            order=order,
            **settings,
        )


class RuleValidator:
    """Checks trees and rules against evaluator metadata."""

    def __init__(self, registry: EvaluatorRegistry) -> None:
        self._registry = registry

    def validate_condition(self, node: ConditionNode, path: str = "condition", depth: int = 0) -> None:
        if depth >= MAX_CONDITION_DEPTH:
            raise MalformedRuleError(f"condition nested deeper than {MAX_CONDITION_DEPTH} levels", path=path)

        if isinstance(node, ConditionGroup):
            if not node.conditions:
                raise MalformedRuleError("condition group has no conditions", path=path)
            for index, child in enumerate(node.conditions):
                self.validate_condition(child, f"{path}.conditions[{index}]", depth + 1)
            return

        self._validate_leaf(node.field, node.operator, node.value, path)

    def validate_rule(self, rule: RouterRule) -> None:
        if rule.type == "conditional":
            if rule.condition is None:
                raise MalformedRuleError("conditional rule has no condition", path="condition")
            self.validate_condition(rule.condition)
            return

        criterion = rule.criterion
        if criterion is None:
            raise MalformedRuleError(f"{rule.type} rule has no criterion", path="criterion")

        evaluator = self._registry.for_field(criterion.field)
        if evaluator is None:
            raise MalformedRuleError(f"unknown field '{criterion.field}'", path="criterion.field")
        if evaluator.rule_type != rule.type:
            raise MalformedRuleError(
                f"field '{criterion.field}' belongs to {evaluator.rule_type} rules, not {rule.type}",
                path="criterion.field",
            )
        self._validate_leaf(criterion.field, criterion.operator, criterion.value, "criterion")

    def _validate_leaf(self, field: str, operator: str, value: Any, path: str) -> None:
        evaluator = self._registry.for_field(field)
        if evaluator is None:
            raise MalformedRuleError(f"unknown field '{field}'", path=path)
        problem = evaluator.check_leaf(field, operator, value)
        if problem is not None:
            raise MalformedRuleError(problem, path=path)
