"""Quota, usage ledger and user policy repositories."""

from __future__ import annotations

import uuid
from datetime import datetime

import structlog
from sqlalchemy import text
from sqlalchemy.engine import Engine

from watchlist_router.models import ContentType, UserPolicy, UserQuota
from watchlist_router.utils import to_db_timestamp

logger = structlog.get_logger()


class QuotaRepository:
    """Per-user quota configuration and the usage ledger."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get_quota(self, user_id: int, content_type: ContentType) -> UserQuota | None:
        q = text(
            """
            SELECT user_id, content_type, quota_type, quota_limit, bypass_approval
            FROM user_quota
            WHERE user_id = :user_id AND content_type = :content_type
            """
        )
        with self._engine.begin() as conn:
            row = conn.execute(q, {"user_id": user_id, "content_type": content_type}).fetchone()
        if not row:
            return None
        return UserQuota(
            user_id=row[0],
            content_type=row[1],
            quota_type=row[2],
            quota_limit=row[3],
            bypass_approval=bool(row[4]),
        )

    def set_quota(self, quota: UserQuota) -> UserQuota:
        q = text(
            """
            INSERT INTO user_quota (user_id, content_type, quota_type, quota_limit, bypass_approval)
            VALUES (:user_id, :content_type, :quota_type, :quota_limit, :bypass_approval)
            ON CONFLICT (user_id, content_type) DO UPDATE SET
                quota_type = excluded.quota_type,
                quota_limit = excluded.quota_limit,
                bypass_approval = excluded.bypass_approval
            """
        )
        with self._engine.begin() as conn:
            conn.execute(q, quota.model_dump())
        logger.info("user_quota_set", user_id=quota.user_id, content_type=quota.content_type, limit=quota.quota_limit)
        return quota

    def delete_quota(self, user_id: int, content_type: ContentType) -> bool:
        q = text("DELETE FROM user_quota WHERE user_id = :user_id AND content_type = :content_type")
        with self._engine.begin() as conn:
            result = conn.execute(q, {"user_id": user_id, "content_type": content_type})
        return result.rowcount > 0

    def record_usage(self, user_id: int, content_type: ContentType, at: datetime) -> None:
        q = text(
            """
            INSERT INTO quota_usage (id, user_id, content_type, request_date)
            VALUES (:id, :user_id, :content_type, :request_date)
            """
        )
        with self._engine.begin() as conn:
            conn.execute(
                q,
                {
                    "id": str(uuid.uuid4()),
                    "user_id": user_id,
                    "content_type": content_type,
                    "request_date": to_db_timestamp(at),
                },
            )

    def count_usage(self, user_id: int, content_type: ContentType, since: datetime) -> int:
        q = text(
            """
            SELECT COUNT(*)
            FROM quota_usage
            WHERE user_id = :user_id
              AND content_type = :content_type
              AND request_date >= :since
            """
        )
        with self._engine.begin() as conn:
            count = conn.execute(
                q,
                {"user_id": user_id, "content_type": content_type, "since": to_db_timestamp(since)},
            ).scalar_one()
        return int(count)

    def delete_usage_before(self, cutoff: datetime) -> int:
        q = text("DELETE FROM quota_usage WHERE request_date < :cutoff")
        with self._engine.begin() as conn:
            result = conn.execute(q, {"cutoff": to_db_timestamp(cutoff)})
        return int(result.rowcount)


class UserPolicyRepository:
    """User-level approval flags."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, user_id: int) -> UserPolicy | None:
        q = text("SELECT user_id, user_name, requires_approval FROM user_policy WHERE user_id = :user_id")
        with self._engine.begin() as conn:
            row = conn.execute(q, {"user_id": user_id}).fetchone()
        if not row:
            return None
        return UserPolicy(user_id=row[0], user_name=row[1], requires_approval=bool(row[2]))

    def upsert(self, policy: UserPolicy) -> UserPolicy:
        q = text(
            """
            INSERT INTO user_policy (user_id, user_name, requires_approval)
            VALUES (:user_id, :user_name, :requires_approval)
            ON CONFLICT (user_id) DO UPDATE SET
                user_name = excluded.user_name,
                requires_approval = excluded.requires_approval
            """
        )
        with self._engine.begin() as conn:
            conn.execute(q, policy.model_dump())
        return policy

    def requires_approval(self, user_id: int) -> bool:
        policy = self.get(user_id)
        return policy is not None and policy.requires_approval
