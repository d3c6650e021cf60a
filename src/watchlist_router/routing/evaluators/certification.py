"""Route by content rating."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RoutingContext
from watchlist_router.routing.evaluators.base import FieldEvaluator
from watchlist_router.routing.operators import FieldInfo, OperatorInfo, compile_pattern


class CertificationEvaluator(FieldEvaluator):
    """Compares certifications upper-cased, so 'pg-13' and 'PG-13' are equal."""

    name = "Certification Router"
    description = "Routes content based on its content rating"
    priority = 60
    rule_type = "certification"
    fields = (FieldInfo("certification", "Content rating, e.g. PG-13 or TV-MA", ("string", "string[]")),)
    operators = {
        "certification": (
            OperatorInfo("equals", "Rating is", ("string",)),
            OperatorInfo("notEquals", "Rating is not", ("string",)),
            OperatorInfo("contains", "Rating contains", ("string",)),
            OperatorInfo("notContains", "Rating does not contain", ("string",)),
            OperatorInfo("in", "Rating is one of", ("string[]",)),
            OperatorInfo("notIn", "Rating is none of", ("string[]",)),
            OperatorInfo("regex", "Rating matches the pattern", ("string",), "Regular expression"),
        ),
    }

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return bool(item.certification)

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        if not item.certification:
            return False
        rating = item.certification.upper()

        if operator == "regex":
            pattern = compile_pattern(value)
            return pattern is not None and pattern.search(item.certification) is not None

        if operator == "equals":
            return rating == value.upper()
        if operator == "notEquals":
            return rating != value.upper()
        if operator == "contains":
            return value.upper() in rating
        if operator == "notContains":
            return value.upper() not in rating
        if operator == "in":
            return rating in {v.upper() for v in value}
        if operator == "notIn":
            return rating not in {v.upper() for v in value}
        return False
