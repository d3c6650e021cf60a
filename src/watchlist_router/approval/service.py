"""Approval request lifecycle.

Every status change is checked against the state machine, then written with a
compare-and-set. When the write loses a race, the request is re-read and the
caller gets a :class:`StateConflictError` naming the status that won.
Execution happens only after a successful write, so a request is handed to
its instance at most once.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

import structlog
from pydantic import BaseModel, Field

from watchlist_router.approval.expiration import ExpirationPolicy
from watchlist_router.approval.state_machine import (
    EXECUTING_STATUSES,
    RETAINED_STATUSES,
    ApprovalAction,
    allowed_sources,
    transition,
)
from watchlist_router.collaborators import ContentRef, ExecutionResult, ExecutionService, LogNotifier, Notifier
from watchlist_router.exceptions import ExecutionFailureError, NotFoundError, StateConflictError
from watchlist_router.models import (
    ApprovalRequest,
    ApprovalRequirement,
    ApprovalStats,
    ApprovalStatus,
    ApprovalTrigger,
    BatchResult,
    CleanupResult,
    ContentItem,
    ContentType,
    ExpirationAction,
    RoutingContext,
    RoutingDecision,
    SweepResult,
)
from watchlist_router.quota import QuotaService
from watchlist_router.repository import ApprovalRepository
from watchlist_router.utils import SingleFlight, utc_now

logger = structlog.get_logger()


class MaintenanceResult(BaseModel):
    sweep: SweepResult
    cleanup: CleanupResult = Field(default_factory=CleanupResult)


class ApprovalService:
    """Creates approval requests and drives them through their lifecycle."""

    def __init__(
        self,
        repository: ApprovalRepository,
        execution: ExecutionService,
        *,
        policy: ExpirationPolicy | None = None,
        quota: QuotaService | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._repo = repository
        self._execution = execution
        self._policy = policy or ExpirationPolicy()
        self._quota = quota
        self._notifier = notifier or LogNotifier()
        self._sweep_guard = SingleFlight("approval_expiration_sweep")

    @property
    def policy(self) -> ExpirationPolicy:
        return self._policy

    # Queries

    def get(self, request_id: str) -> ApprovalRequest:
        request = self._repo.get(request_id)
        if request is None:
            raise NotFoundError("approval request", request_id)
        return request

    def find_for_content(self, user_id: int, content_key: str) -> ApprovalRequest | None:
        return self._repo.get_by_content(user_id, content_key)

    def list_requests(
        self,
        *,
        status: ApprovalStatus | None = None,
        user_id: int | None = None,
        content_type: ContentType | None = None,
        triggered_by: ApprovalTrigger | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ApprovalRequest], int]:
        return self._repo.list_requests(
            status=status,
            user_id=user_id,
            content_type=content_type,
            triggered_by=triggered_by,
            limit=limit,
            offset=offset,
        )

    def stats(self) -> ApprovalStats:
        return self._repo.stats()

    # Creation

    def create_request(
        self,
        item: ContentItem,
        context: RoutingContext,
        decision: RoutingDecision,
        requirement: ApprovalRequirement,
        *,
        now: datetime | None = None,
    ) -> ApprovalRequest:
        if context.user_id is None:
            raise ValueError("approval requests need a requesting user")
        if requirement.trigger is None:
            raise ValueError("approval requests need a trigger")

        now = now or utc_now()
        request = self._repo.create(
            user_id=context.user_id,
            user_name=context.user_name,
            content_type=context.content_type,
            content_title=item.title,
            content_key=context.item_key or item.content_key,
            content_guids=list(item.guids),
            triggered_by=requirement.trigger,
            approval_reason=requirement.reason,
            router_rule_id=requirement.router_rule_id,
            trigger_data=requirement.data,
            proposed_routing=decision,
            expires_at=self._policy.expires_at(requirement.trigger, now),
            now=now,
        )
        logger.info(
            "approval_request_stored",
            request_id=request.id,
            user_id=request.user_id,
            triggered_by=request.triggered_by.value,
            expires_at=request.expires_at.isoformat() if request.expires_at else None,
        )
        if not requirement.auto_approve:
            self._notify(self._notifier.approval_created, request)
        return request

    # Transitions

    def approve(
        self,
        request_id: str,
        admin_id: int,
        notes: str | None = None,
        *,
        now: datetime | None = None,
    ) -> ApprovalRequest:
        """Approve a pending or previously rejected request and execute it.

        Raises:
            StateConflictError: If the request is not pending or rejected.
            ExecutionFailureError: If the request was approved but execution failed.
        """

        request = self._apply(request_id, ApprovalAction.APPROVE, now=now, approved_by=admin_id, notes=notes)
        logger.info("approval_request_approved", request_id=request_id, admin_id=admin_id)
        self._notify(self._notifier.approval_resolved, request)
        self._execute_approved(request)
        return request

    def reject(
        self,
        request_id: str,
        admin_id: int,
        notes: str | None = None,
        *,
        now: datetime | None = None,
    ) -> ApprovalRequest:
        request = self._apply(request_id, ApprovalAction.REJECT, now=now, approved_by=admin_id, notes=notes)
        logger.info("approval_request_rejected", request_id=request_id, admin_id=admin_id)
        self._notify(self._notifier.approval_resolved, request)
        return request

    def auto_approve(self, request_id: str, notes: str | None = None, *, now: datetime | None = None) -> ApprovalRequest:
        request = self._apply(request_id, ApprovalAction.AUTO_APPROVE, now=now, notes=notes)
        logger.info("approval_request_auto_approved", request_id=request_id)
        self._notify(self._notifier.approval_resolved, request)
        self._execute_approved(request)
        return request

    def edit_proposed_routing(
        self,
        request_id: str,
        decision: RoutingDecision,
        *,
        now: datetime | None = None,
    ) -> ApprovalRequest:
        """Replace the proposed decision of a pending request."""

        current = self.get(request_id)
        step = transition(current.status, ApprovalAction.EDIT)
        if not step.ok:
            raise StateConflictError(request_id, current.status.value, step.conflict or "")

        updated = self._repo.update_proposed_routing(request_id, decision, now=now or utc_now())
        if updated is None:
            raise self._lost_race(request_id, ApprovalAction.EDIT)

        logger.info("approval_request_routing_edited", request_id=request_id, instance_id=decision.instance_id)
        return updated

    def delete(self, request_id: str) -> None:
        if not self._repo.delete(request_id):
            raise NotFoundError("approval request", request_id)
        logger.info("approval_request_deleted", request_id=request_id)

    # Bulk operations

    def batch_approve(self, request_ids: Iterable[str], admin_id: int, notes: str | None = None) -> BatchResult:
        return self._batch(request_ids, lambda rid: self.approve(rid, admin_id, notes))

    def batch_reject(self, request_ids: Iterable[str], admin_id: int, notes: str | None = None) -> BatchResult:
        return self._batch(request_ids, lambda rid: self.reject(rid, admin_id, notes))

    def batch_delete(self, request_ids: Iterable[str]) -> BatchResult:
        return self._batch(request_ids, self.delete)

    # Scheduled jobs

    def expire_sweep(self, now: datetime | None = None) -> SweepResult:
        """Resolve pending requests whose deadline has passed.

        Requests without a deadline are never touched. Overlapping calls are
        skipped; a request already resolved by someone else is reported as a
        conflict and not executed again.
        """

        with self._sweep_guard.acquire() as acquired:
            if not acquired:
                return SweepResult(skipped=True)

            now = now or utc_now()
            result = SweepResult()
            for request in self._repo.list_due_for_expiry(now):
                action = self._policy.action_for(request.triggered_by)
                try:
                    if action == ExpirationAction.AUTO_APPROVE:
                        self.auto_approve(request.id, notes="Auto-approved after expiration", now=now)
                        result.auto_approved.append(request.id)
                    else:
                        expired = self._apply(request.id, ApprovalAction.EXPIRE, now=now, notes="Expired")
                        self._notify(self._notifier.approval_resolved, expired)
                        result.expired.append(request.id)
                except ExecutionFailureError:
                    result.auto_approved.append(request.id)
                    result.execution_failures.append(request.id)
                except (StateConflictError, NotFoundError) as exc:
                    logger.info("approval_sweep_conflict", request_id=request.id, error=str(exc))
                    result.conflicts.append(request.id)

            logger.info(
                "approval_sweep_completed",
                expired=len(result.expired),
                auto_approved=len(result.auto_approved),
                execution_failures=len(result.execution_failures),
                conflicts=len(result.conflicts),
            )
            return result

    def cleanup(self, now: datetime | None = None) -> int:
        """Delete expired and rejected requests older than the retention period."""

        cutoff = (now or utc_now()) - timedelta(days=self._policy.cleanup_after_days)
        deleted = self._repo.delete_resolved_before(RETAINED_STATUSES, cutoff)
        logger.info("approval_requests_cleaned", deleted=deleted, retention_days=self._policy.cleanup_after_days)
        return deleted

    def run_maintenance(self, *, quota_retention_days: int, now: datetime | None = None) -> MaintenanceResult:
        now = now or utc_now()
        sweep = self.expire_sweep(now)
        cleanup = CleanupResult(deleted_requests=self.cleanup(now))
        if self._quota is not None:
            cleanup.deleted_quota_usage = self._quota.cleanup(quota_retention_days, now)
        return MaintenanceResult(sweep=sweep, cleanup=cleanup)

    # Execution

    def execute_decision(self, decision: RoutingDecision, content: ContentRef) -> ExecutionResult:
        """Hand a decision to the execution service and record quota usage on success."""

        try:
            result = self._execution.execute(decision, content)
        except Exception as exc:
            logger.error("execution_service_raised", instance_id=decision.instance_id, title=content.title, error=str(exc))
            return ExecutionResult(success=False, instance_id=decision.instance_id, error=str(exc))

        if result.success:
            logger.info("execution_succeeded", instance_id=decision.instance_id, title=content.title)
            if self._quota is not None and content.user_id is not None:
                self._quota.record_usage(content.user_id, content.content_type)
        else:
            logger.warning("execution_failed", instance_id=decision.instance_id, title=content.title, error=result.error)
        return result

    # Internals

    def _apply(
        self,
        request_id: str,
        action: ApprovalAction,
        *,
        now: datetime | None,
        approved_by: int | None = None,
        notes: str | None = None,
    ) -> ApprovalRequest:
        current = self.get(request_id)
        step = transition(current.status, action)
        if not step.ok or step.target is None:
            logger.warning(
                "approval_transition_conflict",
                request_id=request_id,
                action=action.value,
                status=current.status.value,
            )
            raise StateConflictError(request_id, current.status.value, step.conflict or "")

        updated = self._repo.transition(
            request_id,
            to_status=step.target,
            from_statuses=allowed_sources(action),
            now=now or utc_now(),
            approved_by=approved_by,
            approval_notes=notes,
        )
        if updated is None:
            raise self._lost_race(request_id, action)
        return updated

    def _lost_race(self, request_id: str, action: ApprovalAction) -> Exception:
        latest = self._repo.get(request_id)
        if latest is None:
            return NotFoundError("approval request", request_id)
        step = transition(latest.status, action)
        logger.warning("approval_transition_lost_race", request_id=request_id, action=action.value, status=latest.status.value)
        return StateConflictError(request_id, latest.status.value, step.conflict or "concurrent update")

    def _execute_approved(self, request: ApprovalRequest) -> None:
        if request.status not in EXECUTING_STATUSES:
            return
        result = self.execute_decision(request.proposed_routing, ContentRef.from_request(request))
        if not result.success:
            raise ExecutionFailureError(request, result.error or "execution failed")

    def _batch(self, request_ids: Iterable[str], operation: Callable[[str], object]) -> BatchResult:
        result = BatchResult()
        for request_id in request_ids:
            try:
                operation(request_id)
            except ExecutionFailureError as exc:
                result.successful.append(request_id)
                result.errors.append(str(exc))
            except (StateConflictError, NotFoundError) as exc:
                result.failed.append(request_id)
                result.errors.append(str(exc))
            else:
                result.successful.append(request_id)

        logger.info("approval_batch_completed", successful=len(result.successful), failed=len(result.failed))
        return result

    def _notify(self, hook: Callable[[ApprovalRequest], None], request: ApprovalRequest) -> None:
        try:
            hook(request)
        except Exception as exc:
            logger.warning("approval_notification_failed", request_id=request.id, error=str(exc))
