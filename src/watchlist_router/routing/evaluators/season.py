"""Route shows by their season numbers."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RoutingContext
from watchlist_router.routing.evaluators.base import FieldEvaluator
from watchlist_router.routing.operators import FieldInfo, OperatorInfo, parse_range


class SeasonEvaluator(FieldEvaluator):
    """Matches if any season of the show satisfies the comparison.

    ``between`` matches when the show's season span overlaps the range.
    """

    name = "Season Router"
    description = "Routes shows based on their seasons"
    priority = 68
    rule_type = "season"
    content_types = frozenset({"show"})
    fields = (FieldInfo("season", "Season numbers of a show", ("number", "number[]", "range")),)
    operators = {
        "season": (
            OperatorInfo("equals", "Has the season", ("number",)),
            OperatorInfo("notEquals", "Has a season other than", ("number",)),
            OperatorInfo("greaterThan", "Has a season after", ("number",)),
            OperatorInfo("lessThan", "Has a season before", ("number",)),
            OperatorInfo("in", "Has any of the seasons", ("number[]",)),
            OperatorInfo("notIn", "Has a season outside the list", ("number[]",)),
            OperatorInfo(
                "between",
                "Season span overlaps the range",
                ("range",),
                "{min, max}; either bound may be omitted",
            ),
        ),
    }

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return context.content_type == "show" and bool(item.seasons)

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        seasons = item.seasons
        if not seasons:
            return False

        if operator == "equals":
            return any(s == value for s in seasons)
        if operator == "notEquals":
            return any(s != value for s in seasons)
        if operator == "greaterThan":
            return any(s > value for s in seasons)
        if operator == "lessThan":
            return any(s < value for s in seasons)
        if operator == "in":
            return any(s in value for s in seasons)
        if operator == "notIn":
            return any(s not in value for s in seasons)
        if operator == "between":
            bounds = parse_range(value)
            if bounds is None:
                return False
            low, high = bounds
            return min(seasons) <= high and max(seasons) >= low
        return False
