"""Evaluator registry."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from watchlist_router.exceptions import ConfigurationError
from watchlist_router.models import ContentItem, RouterRule, RoutingContext
from watchlist_router.routing.conditions import ConditionEvaluator
from watchlist_router.routing.evaluators import (
    CertificationEvaluator,
    ConditionalEvaluator,
    FieldEvaluator,
    GenreEvaluator,
    LanguageEvaluator,
    RuleSource,
    SeasonEvaluator,
    UserEvaluator,
    YearEvaluator,
)

logger = structlog.get_logger()

FIELD_EVALUATORS: tuple[type[FieldEvaluator], ...] = (
    GenreEvaluator,
    UserEvaluator,
    YearEvaluator,
    SeasonEvaluator,
    LanguageEvaluator,
    CertificationEvaluator,
)


class EvaluatorRegistry:
    """Ordered set of evaluator plugins with a field-to-evaluator index.

    Registration order is the final tie-breaker when routing decisions carry
    the same priorities. Each field may be owned by one evaluator only.
    """

    def __init__(self, evaluators: Iterable[FieldEvaluator] = ()) -> None:
        self._evaluators: list[FieldEvaluator] = []
        self._by_field: dict[str, FieldEvaluator] = {}
        self._by_rule_type: dict[str, FieldEvaluator] = {}
        self.conditions = ConditionEvaluator(self)
        for evaluator in evaluators:
            self.register(evaluator)

    @classmethod
    def default(cls, rules: RuleSource) -> EvaluatorRegistry:
        """Registry with the built-in evaluators, conditional first."""

        registry = cls()
        registry.register(ConditionalEvaluator(rules, registry.conditions))
        for evaluator_type in FIELD_EVALUATORS:
            registry.register(evaluator_type(rules))
        return registry

    def register(self, evaluator: FieldEvaluator) -> None:
        for field in evaluator.fields:
            owner = self._by_field.get(field.name)
            if owner is not None:
                raise ConfigurationError(f"Field '{field.name}' is already owned by {owner.name}")
        if evaluator.rule_type in self._by_rule_type:
            raise ConfigurationError(f"Rule type '{evaluator.rule_type}' is already handled")

        self._evaluators.append(evaluator)
        self._by_rule_type[evaluator.rule_type] = evaluator
        for field in evaluator.fields:
            self._by_field[field.name] = evaluator
        logger.debug("evaluator_registered", evaluator=evaluator.name, priority=evaluator.priority)

    @property
    def evaluators(self) -> tuple[FieldEvaluator, ...]:
        return tuple(self._evaluators)

    def for_field(self, field: str) -> FieldEvaluator | None:
        return self._by_field.get(field)

    def for_rule_type(self, rule_type: str) -> FieldEvaluator | None:
        return self._by_rule_type.get(rule_type)

    def rule_matches(self, rule: RouterRule, item: ContentItem, context: RoutingContext) -> bool:
        """Evaluate one stored rule against an item, whatever its type."""

        evaluator = self.for_rule_type(rule.type)
        if evaluator is None:
            logger.warning("router_rule_type_unknown", rule_id=rule.id, rule_type=rule.type)
            return False
        return evaluator.rule_matches(rule, item, context)

    def describe(self) -> list[dict[str, Any]]:
        return [evaluator.describe() for evaluator in self._evaluators]
