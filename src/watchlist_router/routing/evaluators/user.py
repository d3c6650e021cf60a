"""Route by the requesting user."""

from __future__ import annotations

from typing import Any

from watchlist_router.models import ContentItem, RoutingContext
from watchlist_router.routing.evaluators.base import FieldEvaluator
from watchlist_router.routing.operators import FieldInfo, OperatorInfo, compile_pattern


class UserEvaluator(FieldEvaluator):
    """Matches the user id or user name carried by the routing context."""

    name = "User Router"
    description = "Routes content based on the requesting user"
    priority = 75
    rule_type = "user"
    fields = (FieldInfo("user", "Requesting user id or name", ("string", "number", "scalar[]")),)
    operators = {
        "user": (
            OperatorInfo("equals", "User is", ("string", "number")),
            OperatorInfo("notEquals", "User is not", ("string", "number")),
            OperatorInfo("in", "User is one of", ("scalar[]",)),
            OperatorInfo("notIn", "User is none of", ("scalar[]",)),
            OperatorInfo("regex", "User name matches the pattern", ("string",), "Regular expression"),
        ),
    }

    def applies(self, item: ContentItem, context: RoutingContext) -> bool:
        return context.user_id is not None or bool(context.user_name)

    def compare(self, field: str, operator: str, value: Any, item: ContentItem, context: RoutingContext) -> bool:
        if context.user_id is None and not context.user_name:
            return False

        if operator == "equals":
            return self._is_user(value, context)
        if operator == "notEquals":
            return not self._is_user(value, context)
        if operator == "in":
            return any(self._is_user(v, context) for v in value)
        if operator == "notIn":
            return not any(self._is_user(v, context) for v in value)
        if operator == "regex":
            if not context.user_name:
                return False
            pattern = compile_pattern(value)
            return pattern is not None and pattern.search(context.user_name) is not None
        return False

    @staticmethod
    def _is_user(candidate: str | int, context: RoutingContext) -> bool:
        if context.user_id is not None:
            if candidate == context.user_id or str(candidate) == str(context.user_id):
                return True
        return context.user_name is not None and candidate == context.user_name
