"""Route by genre."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RoutingContext
from watchlist_router.routing.evaluators.base import FieldEvaluator
from watchlist_router.routing.operators import FieldInfo, OperatorInfo, regex_matches_any


class GenreEvaluator(FieldEvaluator):
    """Matches an item's genres, case-insensitively."""

    name = "Genre Router"
    description = "Routes content based on genre"
    priority = 80
    rule_type = "genre"
    fields = (FieldInfo("genres", "Content genres", ("string", "string[]")),)
    operators = {
        "genres": (
            OperatorInfo("contains", "Has any of the given genres", ("string", "string[]")),
            OperatorInfo("in", "Has any of the given genres", ("string", "string[]")),
            OperatorInfo("notContains", "Has none of the given genres", ("string", "string[]")),
            OperatorInfo("notIn", "Has none of the given genres", ("string", "string[]")),
            OperatorInfo(
                "equals",
                "Genres are exactly the given set",
                ("string", "string[]"),
                "A single genre, or the full list of genres",
            ),
            OperatorInfo("regex", "Any genre matches the pattern", ("string",), "Regular expression"),
        ),
    }

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return bool(item.genres)

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        genres = {g.lower() for g in item.genres}
        if not genres:
            return False

        if operator == "regex":
            return regex_matches_any(value, list(item.genres))

        wanted = [value] if isinstance(value, str) else list(value)
        wanted_set = {w.lower() for w in wanted}

        if operator in ("contains", "in"):
            return bool(genres & wanted_set)
        if operator in ("notContains", "notIn"):
            return not genres & wanted_set
        if operator == "equals":
            return genres == wanted_set
        return False
