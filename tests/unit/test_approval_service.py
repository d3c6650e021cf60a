"""Unit tests for the approval request lifecycle."""

from __future__ import annotations

from datetime import timedelta

import pytest

from watchlist_router.approval import ApprovalService, ExpirationPolicy
from watchlist_router.exceptions import ExecutionFailureError, NotFoundError, StateConflictError
from watchlist_router.models import (
    ApprovalRequirement,
    ApprovalStatus,
    ApprovalTrigger,
    ExpirationAction,
    RoutingDecision,
)
from watchlist_router.repository import ApprovalRepository


@pytest.fixture
def repo(engine) -> ApprovalRepository:
    return ApprovalRepository(engine)


@pytest.fixture
def make_service(repo, execution, notifier):
    def _make(**policy) -> ApprovalService:
        return ApprovalService(repo, execution, policy=ExpirationPolicy(**policy), notifier=notifier)

    return _make


@pytest.fixture
def decision() -> RoutingDecision:
    return RoutingDecision(instance_id=2, instance_type="radarr", quality_profile=1, root_folder="/movies")


@pytest.fixture
def create(movie, movie_context, decision, now):
    def _create(service: ApprovalService, trigger: ApprovalTrigger = ApprovalTrigger.QUOTA_EXCEEDED, at=None):
        requirement = ApprovalRequirement(required=True, trigger=trigger, reason="needs review")
        return service.create_request(movie, movie_context, decision, requirement, now=at or now)

    return _create


class TestCreateRequest:
    """Test suite for request creation."""

    def test_new_request_is_pending_without_decision_fields(self, make_service, create, notifier) -> None:
        """Test a new request starts pending with no decision recorded."""
        request = create(make_service())

        assert request.status == ApprovalStatus.PENDING
        assert request.approved_by is None
        assert request.approval_notes is None
        assert request.expires_at is None
        assert request.content_key == "tmdb:105"
        assert request.content_guids == ["tmdb:105", "imdb:tt0088763"]
        assert request.proposed_routing.root_folder == "/movies"
        assert [r.id for r in notifier.created] == [request.id]

    def test_expiry_uses_trigger_override(self, make_service, create, now) -> None:
        """Test the expiry deadline honours per-trigger hours."""
        service = make_service(
            enabled=True,
            default_hours=72,
            hours_by_trigger={ApprovalTrigger.MANUAL_FLAG: 6},
        )

        manual = create(service, ApprovalTrigger.MANUAL_FLAG)
        quota = create(service, ApprovalTrigger.QUOTA_EXCEEDED)

        assert manual.expires_at == now + timedelta(hours=6)
        assert quota.expires_at == now + timedelta(hours=72)


class TestApproveReject:
    """Test suite for manual transitions."""

    def test_approve_executes_proposed_decision(self, make_service, create, execution) -> None:
        """Test approving executes the proposed decision."""
        service = make_service()
        request = create(service)

        approved = service.approve(request.id, admin_id=1, notes="ok")

        assert approved.status == ApprovalStatus.APPROVED
        assert approved.approved_by == 1
        assert approved.approval_notes == "ok"
        assert len(execution.calls) == 1
        executed, content = execution.calls[0]
        assert executed.instance_id == 2
        assert content.content_key == "tmdb:105"
        assert content.user_id == 7

    def test_second_approve_conflicts_without_reexecuting(self, make_service, create, execution) -> None:
        """Test a second approve conflicts and does not execute again."""
        service = make_service()
        request = create(service)
        service.approve(request.id, admin_id=1)

        with pytest.raises(StateConflictError) as exc_info:
            service.approve(request.id, admin_id=2)

        assert exc_info.value.current_status == "approved"
        assert "already approved" in exc_info.value.reason
        assert len(execution.calls) == 1

    def test_rejected_request_can_be_approved(self, make_service, create, execution) -> None:
        """Test a rejected request can still be approved."""
        service = make_service()
        request = create(service)

        rejected = service.reject(request.id, admin_id=1, notes="not now")
        assert rejected.status == ApprovalStatus.REJECTED
        assert execution.calls == []

        approved = service.approve(request.id, admin_id=2)
        assert approved.status == ApprovalStatus.APPROVED
        assert approved.approved_by == 2
        assert len(execution.calls) == 1

    def test_approved_request_cannot_be_rejected(self, make_service, create) -> None:
        """Test rejecting an approved request conflicts."""
        service = make_service()
        request = create(service)
        service.approve(request.id, admin_id=1)

        with pytest.raises(StateConflictError, match="already approved"):
            service.reject(request.id, admin_id=1)

    def test_unknown_request(self, make_service) -> None:
        """Test approving an unknown request."""
        with pytest.raises(NotFoundError):
            make_service().approve("missing", admin_id=1)

    def test_execution_failure_keeps_approved_status(self, make_service, create, execution) -> None:
        """Test a failed execution leaves the request approved."""
        execution.failing.add(2)
        service = make_service()
        request = create(service)

        with pytest.raises(ExecutionFailureError) as exc_info:
            service.approve(request.id, admin_id=1)

        assert exc_info.value.error == "instance unreachable"
        assert exc_info.value.request.status == ApprovalStatus.APPROVED
        assert service.get(request.id).status == ApprovalStatus.APPROVED

    def test_lost_race_reports_winning_status(self, engine, execution, create) -> None:
        """Test a lost race reports the status that won."""
        class RacingRepository(ApprovalRepository):
            def transition(self, request_id, **kwargs):
                super().transition(
                    request_id,
                    to_status=ApprovalStatus.APPROVED,
                    from_statuses={ApprovalStatus.PENDING},
                    now=kwargs["now"],
                    approved_by=99,
                )
                return super().transition(request_id, **kwargs)

        service = ApprovalService(RacingRepository(engine), execution)
        request = create(service)

        with pytest.raises(StateConflictError) as exc_info:
            service.reject(request.id, admin_id=1)

        assert exc_info.value.current_status == "approved"
        assert service.get(request.id).approved_by == 99

    def test_notifier_failure_does_not_block_transition(self, repo, execution, create) -> None:
        """Test a failing notifier does not undo a transition."""
        class BrokenNotifier:
            def approval_created(self, request):
                raise RuntimeError("smtp down")

            def approval_resolved(self, request):
                raise RuntimeError("smtp down")

        service = ApprovalService(repo, execution, notifier=BrokenNotifier())
        request = create(service)
        assert service.reject(request.id, admin_id=1).status == ApprovalStatus.REJECTED


class TestEditAndDelete:
    """Test suite for routing edits and deletion."""

    def test_edit_while_pending_changes_what_is_executed(self, make_service, create, execution) -> None:
        """Test editing a pending request changes the executed decision."""
        service = make_service()
        request = create(service)
        edited = RoutingDecision(instance_id=8, instance_type="radarr", root_folder="/4k")

        updated = service.edit_proposed_routing(request.id, edited)
        assert updated.status == ApprovalStatus.PENDING
        assert updated.proposed_routing.instance_id == 8

        service.approve(request.id, admin_id=1)
        assert execution.calls[0][0].instance_id == 8

    def test_edit_after_resolution_conflicts(self, make_service, create, decision) -> None:
        """Test editing a resolved request conflicts."""
        service = make_service()
        request = create(service)
        service.reject(request.id, admin_id=1)

        with pytest.raises(StateConflictError, match="already rejected"):
            service.edit_proposed_routing(request.id, decision)

    @pytest.mark.parametrize("resolve", ["approve", "reject", None])
    def test_delete_from_any_status(self, make_service, create, resolve) -> None:
        """Test deleting requests in any status."""
        service = make_service()
        request = create(service)
        if resolve:
            getattr(service, resolve)(request.id, admin_id=1)

        service.delete(request.id)

        with pytest.raises(NotFoundError):
            service.get(request.id)

    def test_delete_unknown(self, make_service) -> None:
        """Test deleting an unknown request."""
        with pytest.raises(NotFoundError):
            make_service().delete("missing")


class TestExpireSweep:
    """Test suite for the expiration sweep."""

    def test_expire_action(self, make_service, create, execution, now) -> None:
        """Test due requests expire."""
        service = make_service(enabled=True, default_hours=24, default_action=ExpirationAction.EXPIRE)
        request = create(service)

        result = service.expire_sweep(now + timedelta(hours=25))

        assert result.expired == [request.id]
        assert result.auto_approved == []
        assert service.get(request.id).status == ApprovalStatus.EXPIRED
        assert execution.calls == []

    def test_auto_approve_action_executes_once(self, make_service, create, execution, now) -> None:
        """Test auto-approve on expiry executes exactly once."""
        service = make_service(enabled=True, default_hours=24, default_action=ExpirationAction.AUTO_APPROVE)
        request = create(service)
        later = now + timedelta(hours=25)

        first = service.expire_sweep(later)
        second = service.expire_sweep(later)

        assert first.auto_approved == [request.id]
        assert first.expired == []
        assert second.auto_approved == []
        assert second.expired == []
        assert service.get(request.id).status == ApprovalStatus.AUTO_APPROVED
        assert len(execution.calls) == 1

    def test_not_yet_due(self, make_service, create, now) -> None:
        """Test requests before their deadline are left pending."""
        service = make_service(enabled=True, default_hours=24)
        request = create(service)

        result = service.expire_sweep(now + timedelta(hours=23))

        assert result.expired == []
        assert service.get(request.id).status == ApprovalStatus.PENDING

    def test_requests_without_deadline_are_never_touched(self, make_service, create, now) -> None:
        """Test requests without a deadline are never swept."""
        request = create(make_service(enabled=False))
        service = make_service(enabled=True, default_hours=1)

        for days in (1, 30, 365):
            service.expire_sweep(now + timedelta(days=days))

        stored = service.get(request.id)
        assert stored.status == ApprovalStatus.PENDING
        assert stored.expires_at is None
        assert stored.updated_at == request.updated_at

    def test_action_override_per_trigger(self, make_service, create, now) -> None:
        """Test the expiry action can differ per trigger."""
        service = make_service(
            enabled=True,
            default_hours=24,
            default_action=ExpirationAction.EXPIRE,
            action_by_trigger={ApprovalTrigger.ROUTER_RULE: ExpirationAction.AUTO_APPROVE},
        )
        by_rule = create(service, ApprovalTrigger.ROUTER_RULE)
        by_quota = create(service, ApprovalTrigger.QUOTA_EXCEEDED)

        result = service.expire_sweep(now + timedelta(hours=25))

        assert result.auto_approved == [by_rule.id]
        assert result.expired == [by_quota.id]

    def test_auto_approve_execution_failure_is_reported(self, make_service, create, execution, now) -> None:
        """Test a failed execution during the sweep is reported."""
        execution.failing.add(2)
        service = make_service(enabled=True, default_hours=24, default_action=ExpirationAction.AUTO_APPROVE)
        request = create(service)

        result = service.expire_sweep(now + timedelta(hours=25))

        assert result.execution_failures == [request.id]
        assert service.get(request.id).status == ApprovalStatus.AUTO_APPROVED

    def test_overlapping_sweep_is_skipped(self, make_service, create, now) -> None:
        """Test an overlapping sweep is skipped."""
        service = make_service(enabled=True, default_hours=24)
        request = create(service)

        with service._sweep_guard.acquire() as acquired:
            assert acquired
            result = service.expire_sweep(now + timedelta(hours=25))

        assert result.skipped is True
        assert service.get(request.id).status == ApprovalStatus.PENDING


class TestCleanupAndBatch:
    """Test suite for retention cleanup, batches and stats."""

    def test_cleanup_deletes_old_terminal_requests(self, make_service, create, now) -> None:
        """Test cleanup removes old expired and rejected requests."""
        service = make_service(cleanup_after_days=30)
        old_rejected = create(service, at=now - timedelta(days=40))
        service.reject(old_rejected.id, admin_id=1, now=now - timedelta(days=40))
        old_pending = create(service, at=now - timedelta(days=40))
        recent_rejected = create(service)
        service.reject(recent_rejected.id, admin_id=1, now=now)

        deleted = service.cleanup(now)

        assert deleted == 1
        with pytest.raises(NotFoundError):
            service.get(old_rejected.id)
        assert service.get(old_pending.id).status == ApprovalStatus.PENDING
        assert service.get(recent_rejected.id).status == ApprovalStatus.REJECTED

    def test_batch_approve_reports_each_id(self, make_service, create) -> None:
        """Test batch approve reports every id."""
        service = make_service()
        first = create(service)
        second = create(service)
        service.reject(second.id, admin_id=1)
        third = create(service)
        service.approve(third.id, admin_id=1)

        result = service.batch_approve([first.id, second.id, third.id, "missing"], admin_id=5)

        assert result.successful == [first.id, second.id]
        assert result.failed == [third.id, "missing"]
        assert result.total == 4
        assert len(result.errors) == 2

    def test_batch_delete(self, make_service, create) -> None:
        """Test batch delete."""
        service = make_service()
        request = create(service)

        result = service.batch_delete([request.id, request.id])

        assert result.successful == [request.id]
        assert result.failed == [request.id]

    def test_stats_and_listing(self, make_service, create) -> None:
        """Test stats and filtered listing."""
        service = make_service()
        pending = create(service)
        rejected = create(service, ApprovalTrigger.MANUAL_FLAG)
        service.reject(rejected.id, admin_id=1)

        stats = service.stats()
        assert (stats.pending, stats.rejected, stats.total_requests) == (1, 1, 2)

        requests, total = service.list_requests(status=ApprovalStatus.PENDING)
        assert total == 1
        assert [r.id for r in requests] == [pending.id]

        requests, total = service.list_requests(triggered_by=ApprovalTrigger.MANUAL_FLAG)
        assert [r.id for r in requests] == [rejected.id]
