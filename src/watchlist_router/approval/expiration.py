"""Expiration and retention policy for approval requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from watchlist_router.config import Settings
from watchlist_router.exceptions import ConfigurationError
from watchlist_router.models import ApprovalTrigger, ExpirationAction


@dataclass(frozen=True)
class ExpirationPolicy:
    """How long pending requests live and what they become when they lapse."""

    enabled: bool = False
    default_hours: int = 72
    default_action: ExpirationAction = ExpirationAction.EXPIRE
    hours_by_trigger: dict[ApprovalTrigger, int] = field(default_factory=dict)
    action_by_trigger: dict[ApprovalTrigger, ExpirationAction] = field(default_factory=dict)
    cleanup_after_days: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> ExpirationPolicy:
        hours = {
            ApprovalTrigger.QUOTA_EXCEEDED: settings.quota_exceeded_expiration_hours,
            ApprovalTrigger.ROUTER_RULE: settings.router_rule_expiration_hours,
            ApprovalTrigger.MANUAL_FLAG: settings.manual_flag_expiration_hours,
            ApprovalTrigger.CONTENT_CRITERIA: settings.content_criteria_expiration_hours,
        }
        try:
            action_by_trigger = {
                ApprovalTrigger(trigger): ExpirationAction(action)
                for trigger, action in settings.approval_expiration_action_overrides.items()
            }
        except ValueError as exc:
            raise ConfigurationError(f"Invalid approval_expiration_action_overrides: {exc}") from exc

        return cls(
            enabled=settings.approval_expiration_enabled,
            default_hours=settings.approval_default_expiration_hours,
            default_action=ExpirationAction(settings.approval_expiration_action),
            hours_by_trigger={trigger: h for trigger, h in hours.items() if h is not None},
            action_by_trigger=action_by_trigger,
            cleanup_after_days=settings.approval_cleanup_expired_days,
        )

    def expires_at(self, trigger: ApprovalTrigger, created_at: datetime) -> datetime | None:
        """Deadline for a new request; None when expiration is disabled."""

        if not self.enabled:
            return None
        hours = self.hours_by_trigger.get(trigger, self.default_hours)
        return created_at + timedelta(hours=hours)

    def action_for(self, trigger: ApprovalTrigger) -> ExpirationAction:
        return self.action_by_trigger.get(trigger, self.default_action)
