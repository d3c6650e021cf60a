"""Approval gate: execute routing decisions now or defer them for approval."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from watchlist_router.approval.service import ApprovalService
from watchlist_router.approval.state_machine import EXECUTING_STATUSES
from watchlist_router.collaborators import ContentRef, ExecutionResult
from watchlist_router.exceptions import ExecutionFailureError
from watchlist_router.models import (
    ApprovalRequest,
    ApprovalRequirement,
    ApprovalStatus,
    ApprovalTrigger,
    ConditionNode,
    ContentItem,
    RouterRule,
    RoutingContext,
    RoutingDecision,
    instance_type_for,
)
from watchlist_router.quota import QuotaService
from watchlist_router.repository import RouterRuleRepository, UserPolicyRepository
from watchlist_router.routing import EvaluatorRegistry

logger = structlog.get_logger()

GateStatus = Literal["executed", "pending", "auto_approved", "blocked", "no_decision"]


class GateOutcome(BaseModel):
    """What happened to an item submitted through the gate."""

    status: GateStatus
    decisions: list[RoutingDecision] = Field(default_factory=list)
    request: ApprovalRequest | None = None
    executions: list[ExecutionResult] = Field(default_factory=list)
    reason: str | None = None


class ApprovalGate:
    """Decides whether routed items execute immediately or wait for approval.

    Checks run in a fixed order and the first one that requires approval wins:
    router rules (highest order first), the caller's manual flag, the user's
    approval policy, configured content criteria, then the user's quota.
    """

    def __init__(
        self,
        approvals: ApprovalService,
        rules: RouterRuleRepository,
        registry: EvaluatorRegistry,
        *,
        quota: QuotaService | None = None,
        policies: UserPolicyRepository | None = None,
        content_criteria: Sequence[ConditionNode] = (),
    ) -> None:
        self._approvals = approvals
        self._rules = rules
        self._registry = registry
        self._quota = quota
        self._policies = policies
        self._content_criteria = list(content_criteria)

    def check_requirements(
        self,
        item: ContentItem,
        context: RoutingContext,
        *,
        now: datetime | None = None,
    ) -> ApprovalRequirement:
        if context.user_id is None:
            return ApprovalRequirement(required=False)

        bypass_quota = False
        for rule in self._matching_rules(item, context):
            if rule.bypass_user_quotas:
                bypass_quota = True
            if rule.always_require_approval:
                return ApprovalRequirement(
                    required=True,
                    trigger=ApprovalTrigger.ROUTER_RULE,
                    reason=rule.approval_reason or f"Router rule '{rule.name}' requires approval",
                    router_rule_id=rule.id,
                    data={"rule_name": rule.name},
                )
            break

        if context.require_approval:
            return ApprovalRequirement(
                required=True,
                trigger=ApprovalTrigger.MANUAL_FLAG,
                reason="Approval requested for this item",
            )

        if self._policies is not None and self._policies.requires_approval(context.user_id):
            return ApprovalRequirement(
                required=True,
                trigger=ApprovalTrigger.MANUAL_FLAG,
                reason="User requires approval for all requests",
            )

        for index, criteria in enumerate(self._content_criteria):
            if self._registry.conditions.evaluate(criteria, item, context):
                return ApprovalRequirement(
                    required=True,
                    trigger=ApprovalTrigger.CONTENT_CRITERIA,
                    reason="Content matches approval criteria",
                    data={"criteria_index": index},
                )

        if self._quota is not None:
            status = self._quota.get_status(context.user_id, context.content_type, now)
            if status is not None and status.would_exceed:
                return ApprovalRequirement(
                    required=True,
                    trigger=ApprovalTrigger.QUOTA_EXCEEDED,
                    reason=f"{status.quota_type} quota exceeded ({status.current_usage}/{status.quota_limit})",
                    auto_approve=status.bypass_approval or bypass_quota,
                    data={
                        "quota_type": status.quota_type,
                        "quota_limit": status.quota_limit,
                        "current_usage": status.current_usage,
                    },
                )

        return ApprovalRequirement(required=False)

    def submit(
        self,
        item: ContentItem,
        context: RoutingContext,
        decisions: list[RoutingDecision],
        *,
        now: datetime | None = None,
    ) -> GateOutcome:
        """Execute the decisions, or park the item behind an approval request."""

        if not decisions:
            return GateOutcome(status="no_decision", reason="no routing rule matched")

        content_key = context.item_key or item.content_key
        content = ContentRef.from_item(item, user_id=context.user_id, content_key=content_key)

        if context.user_id is None or context.syncing:
            return self._execute_all(decisions, content)

        existing = self._approvals.find_for_content(context.user_id, content_key)
        if existing is not None:
            if existing.status == ApprovalStatus.PENDING:
                logger.info("approval_gate_already_pending", request_id=existing.id, title=item.title)
                return GateOutcome(status="pending", decisions=decisions, request=existing, reason="approval already pending")
            if existing.status == ApprovalStatus.REJECTED:
                logger.info("approval_gate_blocked", request_id=existing.id, title=item.title)
                return GateOutcome(status="blocked", request=existing, reason="previously rejected")
            if existing.status == ApprovalStatus.EXPIRED:
                self._approvals.delete(existing.id)
            elif existing.status in EXECUTING_STATUSES:
                return self._execute_all(decisions, content)

        requirement = self.check_requirements(item, context, now=now)
        if not requirement.required:
            return self._execute_all(decisions, content)

        request = self._approvals.create_request(item, context, decisions[0], requirement, now=now)
        if not requirement.auto_approve:
            return GateOutcome(status="pending", decisions=decisions, request=request, reason=requirement.reason)

        try:
            request = self._approvals.auto_approve(request.id, notes="Auto-approved: quota bypass", now=now)
        except ExecutionFailureError as exc:
            return GateOutcome(
                status="auto_approved",
                decisions=decisions,
                request=exc.request,
                executions=[ExecutionResult(success=False, instance_id=exc.request.proposed_routing.instance_id, error=exc.error)],
                reason=requirement.reason,
            )
        return GateOutcome(status="auto_approved", decisions=decisions, request=request, reason=requirement.reason)

    def _matching_rules(self, item: ContentItem, context: RoutingContext) -> list[RouterRule]:
        target_type = instance_type_for(context.content_type)
        return [
            rule
            for rule in self._rules.list_rules(enabled_only=True)
            if rule.target_type == target_type and self._registry.rule_matches(rule, item, context)
        ]

    def _execute_all(self, decisions: list[RoutingDecision], content: ContentRef) -> GateOutcome:
        results = [self._approvals.execute_decision(decision, content) for decision in decisions]
        return GateOutcome(status="executed", decisions=decisions, executions=results)
