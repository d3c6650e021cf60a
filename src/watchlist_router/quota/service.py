"""Quota windows and usage accounting."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

import structlog

from watchlist_router.models import ContentType, QuotaStatus, QuotaType
from watchlist_router.repository import QuotaRepository
from watchlist_router.utils import utc_now

logger = structlog.get_logger()


def window_start(
    quota_type: QuotaType,
    now: datetime,
    *,
    weekly_rolling_days: int = 7,
    monthly_reset_day: int = 1,
) -> datetime:
    """Start of the quota window containing ``now``.

    ``daily`` starts at midnight UTC, ``weekly_rolling`` covers the last N days,
    and ``monthly`` starts on the reset day, clamped to the month's last day.
    """

    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if quota_type == "daily":
        return midnight
    if quota_type == "weekly_rolling":
        return now - timedelta(days=weekly_rolling_days)

    this_month = midnight.replace(day=_clamp_day(now.year, now.month, monthly_reset_day))
    if now >= this_month:
        return this_month

    year, month = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)
    return midnight.replace(year=year, month=month, day=_clamp_day(year, month, monthly_reset_day))


def _clamp_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


class QuotaService:
    """Answers whether a user is within quota and records usage."""

    def __init__(
        self,
        repository: QuotaRepository,
        *,
        weekly_rolling_days: int = 7,
        monthly_reset_day: int = 1,
    ) -> None:
        self._repo = repository
        self._weekly_rolling_days = weekly_rolling_days
        self._monthly_reset_day = monthly_reset_day

    def get_status(self, user_id: int, content_type: ContentType, now: datetime | None = None) -> QuotaStatus | None:
        """Current usage for a user, or None if no quota is configured."""

        quota = self._repo.get_quota(user_id, content_type)
        if quota is None:
            return None

        now = now or utc_now()
        start = window_start(
            quota.quota_type,
            now,
            weekly_rolling_days=self._weekly_rolling_days,
            monthly_reset_day=self._monthly_reset_day,
        )
        usage = self._repo.count_usage(user_id, content_type, start)
        return QuotaStatus(
            user_id=user_id,
            content_type=content_type,
            quota_type=quota.quota_type,
            quota_limit=quota.quota_limit,
            current_usage=usage,
            window_start=start,
            bypass_approval=quota.bypass_approval,
        )

    def record_usage(self, user_id: int, content_type: ContentType, at: datetime | None = None) -> None:
        self._repo.record_usage(user_id, content_type, at or utc_now())
        logger.debug("quota_usage_recorded", user_id=user_id, content_type=content_type)

    def cleanup(self, retention_days: int, now: datetime | None = None) -> int:
        """Delete usage rows older than the retention period."""

        cutoff = (now or utc_now()) - timedelta(days=retention_days)
        deleted = self._repo.delete_usage_before(cutoff)
        logger.info("quota_usage_cleaned", deleted=deleted, retention_days=retention_days)
        return deleted
