"""Unit tests for the approval gate."""

from __future__ import annotations

from datetime import timedelta

import pytest

from watchlist_router.approval import ApprovalGate
from watchlist_router.models import (
    ApprovalStatus,
    ApprovalTrigger,
    ContentItem,
    FieldCriterion,
    RouterRule,
    RoutingContext,
    RoutingDecision,
    UserPolicy,
    UserQuota,
)
from watchlist_router.routing import RuleBuilder


@pytest.fixture
def decisions() -> list[RoutingDecision]:
    return [RoutingDecision(instance_id=2, instance_type="radarr")]


def _genre_rule(name: str, order: int, **flags) -> RouterRule:
    return RouterRule(
        name=name,
        type="genre",
        target_type="radarr",
        target_instance_id=2,
        criterion=FieldCriterion(field="genres", operator="contains", value="Comedy"),
        order=order,
        **flags,
    )


class TestCheckRequirements:
    """Test suite for ApprovalGate.check_requirements."""

    def test_nothing_required(self, services, movie, movie_context) -> None:
        """Test an item that needs no approval."""
        assert services.gate.check_requirements(movie, movie_context).required is False

    def test_rule_requiring_approval(self, services, movie, movie_context) -> None:
        """Test a rule that always requires approval."""
        rule = services.rules.create_rule(
            _genre_rule("Comedies", 60, always_require_approval=True, approval_reason="Comedies need a look")
        )

        requirement = services.gate.check_requirements(movie, movie_context)

        assert requirement.required
        assert requirement.trigger == ApprovalTrigger.ROUTER_RULE
        assert requirement.reason == "Comedies need a look"
        assert requirement.router_rule_id == rule.id

    def test_higher_order_rule_without_flag_stops_scan(self, services, movie, movie_context) -> None:
        """Test a higher-order rule without the flag stops the scan."""
        services.rules.create_rule(_genre_rule("Low", 10, always_require_approval=True))
        services.rules.create_rule(_genre_rule("High", 90))

        assert services.gate.check_requirements(movie, movie_context).required is False

    def test_non_matching_rule_is_ignored(self, services, show, show_context) -> None:
        """Test rules for other targets are ignored."""
        services.rules.create_rule(_genre_rule("Comedies", 60, always_require_approval=True))
        assert services.gate.check_requirements(show, show_context).required is False

    def test_manual_flag(self, services, movie) -> None:
        """Test the caller's manual flag."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)
        requirement = services.gate.check_requirements(movie, context)
        assert requirement.trigger == ApprovalTrigger.MANUAL_FLAG

    def test_user_policy(self, services, movie, movie_context) -> None:
        """Test a user policy that requires approval."""
        services.policies.upsert(UserPolicy(user_id=7, requires_approval=True))
        requirement = services.gate.check_requirements(movie, movie_context)
        assert requirement.trigger == ApprovalTrigger.MANUAL_FLAG
        assert requirement.reason == "User requires approval for all requests"

    def test_content_criteria(self, services, movie, movie_context) -> None:
        """Test configured content criteria."""
        gate = ApprovalGate(
            services.approvals,
            services.rules,
            services.registry,
            content_criteria=[RuleBuilder.genre("Comedy")],
        )
        requirement = gate.check_requirements(movie, movie_context)
        assert requirement.trigger == ApprovalTrigger.CONTENT_CRITERIA
        assert requirement.data == {"criteria_index": 0}

    def test_quota_exceeded(self, services, movie, movie_context, now) -> None:
        """Test a request that would exceed the quota."""
        services.quota_repository.set_quota(UserQuota(user_id=7, content_type="movie", quota_type="daily", quota_limit=1))
        services.quota.record_usage(7, "movie", at=now)

        requirement = services.gate.check_requirements(movie, movie_context, now=now + timedelta(hours=1))

        assert requirement.trigger == ApprovalTrigger.QUOTA_EXCEEDED
        assert requirement.auto_approve is False
        assert requirement.data["current_usage"] == 1

    def test_quota_bypass_from_rule(self, services, movie, movie_context, now) -> None:
        """Test a matching rule can bypass the quota."""
        services.rules.create_rule(_genre_rule("VIP comedies", 60, bypass_user_quotas=True))
        services.quota_repository.set_quota(UserQuota(user_id=7, content_type="movie", quota_type="daily", quota_limit=0))

        requirement = services.gate.check_requirements(movie, movie_context, now=now)

        assert requirement.trigger == ApprovalTrigger.QUOTA_EXCEEDED
        assert requirement.auto_approve is True

    def test_anonymous_requests_are_not_gated(self, services, movie) -> None:
        """Test anonymous requests are not gated."""
        context = RoutingContext(content_type="movie", require_approval=True)
        assert services.gate.check_requirements(movie, context).required is False


class TestSubmit:
    """Test suite for ApprovalGate.submit."""

    def test_executes_when_no_approval_needed(self, services, movie, movie_context, decisions, execution) -> None:
        """Test submitting executes when no approval is needed."""
        outcome = services.gate.submit(movie, movie_context, decisions)

        assert outcome.status == "executed"
        assert [e.success for e in outcome.executions] == [True]
        assert len(execution.calls) == 1

    def test_records_quota_usage_after_execution(self, services, movie, movie_context, decisions) -> None:
        """Test quota usage is recorded after execution."""
        services.quota_repository.set_quota(UserQuota(user_id=7, content_type="movie", quota_limit=5))
        services.gate.submit(movie, movie_context, decisions)
        assert services.quota.get_status(7, "movie").current_usage == 1

    def test_no_decisions(self, services, movie, movie_context) -> None:
        """Test submitting without decisions."""
        assert services.gate.submit(movie, movie_context, []).status == "no_decision"

    def test_creates_pending_request(self, services, movie, decisions, execution, notifier) -> None:
        """Test submitting creates a pending request."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)

        outcome = services.gate.submit(movie, context, decisions)

        assert outcome.status == "pending"
        assert outcome.request.status == ApprovalStatus.PENDING
        assert outcome.request.proposed_routing.instance_id == 2
        assert execution.calls == []
        assert len(notifier.created) == 1

    def test_pending_request_is_reused(self, services, movie, decisions) -> None:
        """Test a pending request is reused."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)
        first = services.gate.submit(movie, context, decisions)
        second = services.gate.submit(movie, context, decisions)

        assert second.status == "pending"
        assert second.request.id == first.request.id
        assert services.approvals.stats().total_requests == 1

    def test_rejected_request_blocks_routing(self, services, movie, decisions, execution) -> None:
        """Test a rejected request blocks routing."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)
        first = services.gate.submit(movie, context, decisions)
        services.approvals.reject(first.request.id, admin_id=1)

        outcome = services.gate.submit(movie, context, decisions)

        assert outcome.status == "blocked"
        assert execution.calls == []

    def test_approved_request_lets_routing_proceed(self, services, movie, decisions, execution) -> None:
        """Test an approved request lets routing proceed."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)
        first = services.gate.submit(movie, context, decisions)
        services.approvals.approve(first.request.id, admin_id=1)

        outcome = services.gate.submit(movie, context, decisions)

        assert outcome.status == "executed"
        assert len(execution.calls) == 2

    def test_expired_request_is_replaced(self, services, movie, decisions) -> None:
        """Test an expired request is replaced."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)
        first = services.gate.submit(movie, context, decisions)
        services.approvals_repository.transition(
            first.request.id,
            to_status=ApprovalStatus.EXPIRED,
            from_statuses={ApprovalStatus.PENDING},
            now=first.request.created_at,
        )

        outcome = services.gate.submit(movie, context, decisions)

        assert outcome.status == "pending"
        assert outcome.request.id != first.request.id
        assert services.approvals.stats().total_requests == 1

    def test_quota_bypass_auto_approves(self, services, movie, movie_context, decisions, execution) -> None:
        """Test a quota bypass auto-approves."""
        services.quota_repository.set_quota(
            UserQuota(user_id=7, content_type="movie", quota_type="daily", quota_limit=0, bypass_approval=True)
        )

        outcome = services.gate.submit(movie, movie_context, decisions)

        assert outcome.status == "auto_approved"
        assert outcome.request.status == ApprovalStatus.AUTO_APPROVED
        assert len(execution.calls) == 1

    def test_items_without_guids_get_their_own_requests(self, services, decisions) -> None:
        """Test items without GUIDs do not share approval requests."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True)
        first_item = ContentItem(title="Movie A", type="movie", year=2001)
        second_item = ContentItem(title="Movie B", type="movie", year=2001)

        first = services.gate.submit(first_item, context, decisions)
        services.approvals.reject(first.request.id, admin_id=1)
        second = services.gate.submit(second_item, context, decisions)

        assert second.status == "pending"
        assert second.request.id != first.request.id
        assert second.request.content_title == "Movie B"
        assert services.approvals.stats().total_requests == 2

    def test_auto_approved_request_is_not_announced_as_new(
        self, services, movie, movie_context, decisions, notifier
    ) -> None:
        """Test an auto-approved request sends no created notification."""
        services.quota_repository.set_quota(
            UserQuota(user_id=7, content_type="movie", quota_type="daily", quota_limit=0, bypass_approval=True)
        )

        services.gate.submit(movie, movie_context, decisions)

        assert notifier.created == []
        assert [r.status for r in notifier.resolved] == [ApprovalStatus.AUTO_APPROVED]

    def test_syncing_skips_approval(self, services, movie, decisions, execution) -> None:
        """Test syncing skips approval."""
        context = RoutingContext(content_type="movie", user_id=7, require_approval=True, syncing=True)
        assert services.gate.submit(movie, context, decisions).status == "executed"
        assert len(execution.calls) == 1
