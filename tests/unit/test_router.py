"""Unit tests for the router orchestrator."""

from __future__ import annotations

import time

from watchlist_router.models import FieldCriterion, RouterRule, RoutingContext, RoutingDecision
from watchlist_router.routing import ContentRouter, EvaluatorRegistry, RuleBuilder, resolve_conflicts
from watchlist_router.routing.evaluators import YearEvaluator


def _year_rule(rule_id: str, instance: int, operator: str, value, order: int) -> RouterRule:
    return RouterRule(
        id=rule_id,
        name=rule_id,
        type="year",
        target_type="radarr",
        target_instance_id=instance,
        criterion=FieldCriterion(field="year", operator=operator, value=value),
        order=order,
    )


def _decision(instance: int, priority: int, evaluator_priority: int = 70) -> RoutingDecision:
    return RoutingDecision(
        instance_id=instance,
        instance_type="radarr",
        priority=priority,
        evaluator_priority=evaluator_priority,
    )


class TestResolveConflicts:
    """Test suite for conflict resolution."""

    def test_higher_priority_wins_for_same_instance(self) -> None:
        """Test the higher priority wins for one instance."""
        low = _decision(3, 10)
        high = _decision(3, 20)
        assert resolve_conflicts([(0, low), (0, high)]) == [high]

    def test_evaluator_priority_is_primary_key(self) -> None:
        """Test evaluator priority is compared first."""
        from_year = _decision(2, 90, evaluator_priority=70)
        from_genre = _decision(4, 10, evaluator_priority=80)
        assert resolve_conflicts([(3, from_year), (1, from_genre)]) == [from_genre]

    def test_registration_order_breaks_exact_ties(self) -> None:
        """Test registration order breaks exact ties."""
        first = _decision(5, 50).model_copy(update={"evaluator": "first", "root_folder": "/a"})
        second = _decision(5, 50).model_copy(update={"evaluator": "second", "root_folder": "/b"})
        assert resolve_conflicts([(2, second), (1, first)]) == [first]

    def test_same_tier_keeps_one_decision_per_instance(self) -> None:
        """Test one decision per instance within a tier."""
        a = _decision(1, 50)
        b = _decision(2, 50)
        c = _decision(1, 50)
        assert resolve_conflicts([(0, a), (0, b), (0, c)]) == [a, b]

    def test_empty(self) -> None:
        """Test resolving no candidates."""
        assert resolve_conflicts([]) == []


class TestContentRouter:
    """Test suite for ContentRouter.route."""

    def test_decade_and_exact_year_scenario(self, make_router, movie, movie_context) -> None:
        """Test a decade rule against an exact year rule."""
        router = make_router(
            [
                _year_rule("A", 2, "between", {"min": 1980, "max": 1989}, order=10),
                _year_rule("B", 5, "equals", 1985, order=20),
            ]
        )
        decisions = router.route(movie, movie_context)

        assert len(decisions) == 1
        assert decisions[0].instance_id == 5
        assert decisions[0].rule_id == "B"

    def test_rules_targeting_same_instance_are_deduplicated(self, make_router, movie, movie_context) -> None:
        """Test rules for the same instance are deduplicated."""
        rules = [_year_rule(f"r{i}", 3, "greaterThan", 1900 + i, order=50) for i in range(5)]
        decisions = make_router(rules).route(movie, movie_context)
        assert [d.instance_id for d in decisions] == [3]

    def test_no_match_returns_empty(self, make_router, movie, movie_context) -> None:
        """Test no match returns no decisions."""
        router = make_router([_year_rule("A", 2, "equals", 2001, order=50)])
        assert router.route(movie, movie_context) == []

    def test_conditional_rules_outrank_field_rules(self, make_router, movie, movie_context) -> None:
        """Test conditional rules outrank field rules."""
        conditional = RuleBuilder.create_rule(
            "80s comedies",
            RuleBuilder.and_(RuleBuilder.genre("Comedy"), RuleBuilder.year({"min": 1980, "max": 1989})),
            target_type="radarr",
            target_instance_id=9,
            order=1,
        ).model_copy(update={"id": "cond"})
        router = make_router([conditional, _year_rule("A", 2, "equals", 1985, order=99)])

        decisions = router.route(movie, movie_context)

        assert [d.instance_id for d in decisions] == [9]
        assert decisions[0].evaluator == "Conditional Router"

    def test_failing_evaluator_does_not_abort_routing(self, make_registry, movie, movie_context) -> None:
        """Test a failing evaluator does not stop routing."""
        registry = make_registry(broken=True)
        router = ContentRouter(registry, timeout_seconds=2.0)
        try:
            assert router.route(movie, movie_context) == []
        finally:
            router.close()

    def test_slow_evaluator_is_time_bounded(self, movie, movie_context) -> None:
        """Test a slow evaluator is bounded by the timeout."""
        class SlowYears:
            def rules_by_type(self, rule_type):
                time.sleep(1.0)
                return [_year_rule("slow", 2, "equals", 1985, order=50)]

        registry = EvaluatorRegistry([YearEvaluator(SlowYears())])
        router = ContentRouter(registry, timeout_seconds=0.1)
        try:
            started = time.monotonic()
            assert router.route(movie, movie_context) == []
            assert time.monotonic() - started < 0.9
        finally:
            router.close()

    def test_forced_instance_bypasses_rules(self, make_router, movie) -> None:
        """Test a forced instance bypasses rules."""
        router = make_router([_year_rule("A", 2, "equals", 1985, order=50)])
        context = RoutingContext(content_type="movie", user_id=7, forced_instance_id=12)

        decisions = router.route(movie, context)

        assert [(d.instance_id, d.evaluator) for d in decisions] == [(12, "forced")]

    def test_sync_target_overrides_forced_instance(self, make_router, movie) -> None:
        """Test a sync target wins over a forced instance."""
        router = make_router()
        context = RoutingContext(content_type="movie", syncing=True, sync_target_instance_id=4, forced_instance_id=12)

        decisions = router.route(movie, context)

        assert [(d.instance_id, d.evaluator) for d in decisions] == [(4, "sync")]

    def test_show_rules_do_not_route_movies(self, make_router, movie, movie_context) -> None:
        """Test show rules do not route movies."""
        rule = _year_rule("A", 2, "equals", 1985, order=50).model_copy(update={"target_type": "sonarr"})
        assert make_router([rule]).route(movie, movie_context) == []
