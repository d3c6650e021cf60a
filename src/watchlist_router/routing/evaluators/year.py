"""Route by release year."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RoutingContext
from watchlist_router.routing.evaluators.base import FieldEvaluator
from watchlist_router.routing.operators import FieldInfo, OperatorInfo, parse_range


class YearEvaluator(FieldEvaluator):
    """Compares the release year numerically; ``between`` is inclusive."""

    name = "Year Router"
    description = "Routes content based on release year"
    priority = 70
    rule_type = "year"
    fields = (FieldInfo("year", "Release year", ("number", "number[]", "range")),)
    operators = {
        "year": (
            OperatorInfo("equals", "Year is", ("number",)),
            OperatorInfo("notEquals", "Year is not", ("number",)),
            OperatorInfo("greaterThan", "Year is after", ("number",)),
            OperatorInfo("lessThan", "Year is before", ("number",)),
            OperatorInfo("in", "Year is one of", ("number[]",)),
            OperatorInfo("notIn", "Year is none of", ("number[]",)),
            OperatorInfo(
                "between",
                "Year is within the range (inclusive)",
                ("range",),
                "{min, max}; either bound may be omitted",
            ),
        ),
    }

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return item.year is not None

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        year = item.year
        if year is None:
            return False

        if operator == "equals":
            return year == value
        if operator == "notEquals":
            return year != value
        if operator == "greaterThan":
            return year > value
        if operator == "lessThan":
            return year < value
        if operator == "in":
            return year in value
        if operator == "notIn":
            return year not in value
        if operator == "between":
            bounds = parse_range(value)
            if bounds is None:
                return False
            low, high = bounds
            return low <= year <= high
        return False
