"""Approval request state machine.

All status changes are described by :func:`transition`; persistence applies the
result with a compare-and-set on :func:`allowed_sources`.

::

    pending  --approve-->      approved
    pending  --reject-->       rejected
    pending  --expire-->       expired
    pending  --auto_approve--> auto_approved
    rejected --approve-->      approved
    pending  --edit-->         pending
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from watchlist_router.models import ApprovalStatus


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    EXPIRE = "expire"
    AUTO_APPROVE = "auto_approve"
    EDIT = "edit"


_SOURCES: dict[ApprovalAction, frozenset[ApprovalStatus]] = {
    ApprovalAction.APPROVE: frozenset({ApprovalStatus.PENDING, ApprovalStatus.REJECTED}),
    ApprovalAction.REJECT: frozenset({ApprovalStatus.PENDING}),
    ApprovalAction.EXPIRE: frozenset({ApprovalStatus.PENDING}),
    ApprovalAction.AUTO_APPROVE: frozenset({ApprovalStatus.PENDING}),
    ApprovalAction.EDIT: frozenset({ApprovalStatus.PENDING}),
}

_TARGETS: dict[ApprovalAction, ApprovalStatus] = {
    ApprovalAction.APPROVE: ApprovalStatus.APPROVED,
    ApprovalAction.REJECT: ApprovalStatus.REJECTED,
    ApprovalAction.EXPIRE: ApprovalStatus.EXPIRED,
    ApprovalAction.AUTO_APPROVE: ApprovalStatus.AUTO_APPROVED,
    ApprovalAction.EDIT: ApprovalStatus.PENDING,
}

_STATUS_LABELS: dict[ApprovalStatus, str] = {
    ApprovalStatus.PENDING: "still pending",
    ApprovalStatus.APPROVED: "already approved",
    ApprovalStatus.REJECTED: "already rejected",
    ApprovalStatus.EXPIRED: "already expired",
    ApprovalStatus.AUTO_APPROVED: "already auto-approved",
}

EXECUTING_STATUSES = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.AUTO_APPROVED})
RETAINED_STATUSES = frozenset({ApprovalStatus.EXPIRED, ApprovalStatus.REJECTED})


@dataclass(frozen=True)
class Transition:
    """Result of applying an action to a status.

    ``target`` is set when the action is legal, ``conflict`` when it is not.
    """

    action: ApprovalAction
    current: ApprovalStatus
    target: ApprovalStatus | None = None
    conflict: str | None = None

    @property
    def ok(self) -> bool:
        return self.conflict is None


def transition(current: ApprovalStatus, action: ApprovalAction) -> Transition:
    if current in _SOURCES[action]:
        return Transition(action=action, current=current, target=_TARGETS[action])
    return Transition(
        action=action,
        current=current,
        conflict=f"cannot {action.value.replace('_', '-')}: {_STATUS_LABELS[current]}",
    )


def allowed_sources(action: ApprovalAction) -> frozenset[ApprovalStatus]:
    return _SOURCES[action]
