"""Route by original language."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RoutingContext
from watchlist_router.routing.evaluators.base import FieldEvaluator
from watchlist_router.routing.operators import FieldInfo, OperatorInfo


class LanguageEvaluator(FieldEvaluator):
    name = "Language Router"
    description = "Routes content based on original language"
    priority = 65
    rule_type = "language"
    fields = (FieldInfo("language", "Original language", ("string", "string[]")),)
    operators = {
        "language": (
            OperatorInfo("equals", "Language is", ("string",)),
            OperatorInfo("notEquals", "Language is not", ("string",)),
            OperatorInfo("contains", "Language name contains", ("string",)),
            OperatorInfo("in", "Language is one of", ("string[]",)),
            OperatorInfo("notIn", "Language is none of", ("string[]",)),
        ),
    }

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return bool(item.original_language)

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        if not item.original_language:
            return False
        language = item.original_language.lower()

        if operator == "equals":
            return language == value.lower()
        if operator == "notEquals":
            return language != value.lower()
        if operator == "contains":
            return value.lower() in language
        if operator == "in":
            return language in {v.lower() for v in value}
        if operator == "notIn":
            return language not in {v.lower() for v in value}
        return False
