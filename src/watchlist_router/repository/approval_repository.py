"""Approval request repository.

Status changes go through :meth:`ApprovalRepository.transition`, a single
conditional UPDATE guarded by the allowed source statuses. A rowcount of zero
means another writer got there first.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Collection
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from watchlist_router.models import (
    ApprovalRequest,
    ApprovalStats,
    ApprovalStatus,
    ApprovalTrigger,
    ContentType,
    RoutingDecision,
)
from watchlist_router.utils import from_db_timestamp, to_db_timestamp

logger = structlog.get_logger()

_COLUMNS = """
    id,
    user_id,
    user_name,
    content_type,
    content_title,
    content_key,
    content_guids_json,
    triggered_by,
    approval_reason,
    router_rule_id,
    trigger_data_json,
    status,
    proposed_routing_json,
    approved_by,
    approval_notes,
    expires_at,
    created_at,
    updated_at
"""


def _row_to_request(row: Any) -> ApprovalRequest:
    m = row._mapping
    return ApprovalRequest(
        id=m["id"],
        user_id=m["user_id"],
        user_name=m["user_name"],
        content_type=m["content_type"],
        content_title=m["content_title"],
        content_key=m["content_key"],
        content_guids=json.loads(m["content_guids_json"]),
        triggered_by=ApprovalTrigger(m["triggered_by"]),
        approval_reason=m["approval_reason"],
        router_rule_id=m["router_rule_id"],
        trigger_data=json.loads(m["trigger_data_json"]),
        status=ApprovalStatus(m["status"]),
        proposed_routing=RoutingDecision.model_validate_json(m["proposed_routing_json"]),
        approved_by=m["approved_by"],
        approval_notes=m["approval_notes"],
        expires_at=from_db_timestamp(m["expires_at"]),
        created_at=from_db_timestamp(m["created_at"]),
        updated_at=from_db_timestamp(m["updated_at"]),
    )


class ApprovalRepository:
    """Persistence for approval requests."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def create(
        self,
        *,
        user_id: int,
        user_name: str | None,
        content_type: ContentType,
        content_title: str,
        content_key: str,
        content_guids: list[str],
        triggered_by: ApprovalTrigger,
        approval_reason: str | None,
        router_rule_id: str | None,
        trigger_data: dict[str, Any],
        proposed_routing: RoutingDecision,
        expires_at: datetime | None,
        now: datetime,
    ) -> ApprovalRequest:
        request_id = str(uuid.uuid4())
        stamp = to_db_timestamp(now)

        q = text(
            f"""
            INSERT INTO approval_request ({_COLUMNS})
            VALUES (
                :id,
                :user_id,
                :user_name,
                :content_type,
                :content_title,
                :content_key,
                :content_guids_json,
                :triggered_by,
                :approval_reason,
                :router_rule_id,
                :trigger_data_json,
                :status,
                :proposed_routing_json,
                NULL,
                NULL,
                :expires_at,
                :now,
                :now
            )
            """
        )
        with self._engine.begin() as conn:
            conn.execute(
                q,
                {
                    "id": request_id,
                    "user_id": user_id,
                    "user_name": user_name,
                    "content_type": content_type,
                    "content_title": content_title,
                    "content_key": content_key,
                    "content_guids_json": json.dumps(content_guids),
                    "triggered_by": triggered_by.value,
                    "approval_reason": approval_reason,
                    "router_rule_id": router_rule_id,
                    "trigger_data_json": json.dumps(trigger_data),
                    "status": ApprovalStatus.PENDING.value,
                    "proposed_routing_json": proposed_routing.model_dump_json(),
                    "expires_at": to_db_timestamp(expires_at) if expires_at else None,
                    "now": stamp,
                },
            )

        created = self.get(request_id)
        if created is None:
            raise RuntimeError(f"Failed to fetch created approval request {request_id}")
        return created

    def get(self, request_id: str) -> ApprovalRequest | None:
        q = text(f"SELECT {_COLUMNS} FROM approval_request WHERE id = :id")
        with self._engine.begin() as conn:
            row = conn.execute(q, {"id": request_id}).fetchone()
        return _row_to_request(row) if row else None

    def get_by_content(self, user_id: int, content_key: str) -> ApprovalRequest | None:
        """Most recent request by a user for a content key."""

        q = text(
            f"""
            SELECT {_COLUMNS}
            FROM approval_request
            WHERE user_id = :user_id AND content_key = :content_key
            ORDER BY created_at DESC
            LIMIT 1
            """
        )
        with self._engine.begin() as conn:
            row = conn.execute(q, {"user_id": user_id, "content_key": content_key}).fetchone()
        return _row_to_request(row) if row else None

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
        """Filtered page of requests (newest first) and the total matching count."""

        clauses: list[str] = []
        params: dict[str, Any] = {}
        if status is not None:
            clauses.append("status = :status")
            params["status"] = status.value
        if user_id is not None:
            clauses.append("user_id = :user_id")
            params["user_id"] = user_id
        if content_type is not None:
            clauses.append("content_type = :content_type")
            params["content_type"] = content_type
        if triggered_by is not None:
            clauses.append("triggered_by = :triggered_by")
            params["triggered_by"] = triggered_by.value
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        page_q = text(
            f"""
            SELECT {_COLUMNS}
            FROM approval_request
            {where}
            ORDER BY created_at DESC, id ASC
            LIMIT :limit OFFSET :offset
            """
        )
        count_q = text(f"SELECT COUNT(*) FROM approval_request {where}")

        with self._engine.begin() as conn:
            rows = conn.execute(page_q, {**params, "limit": limit, "offset": offset}).fetchall()
            total = conn.execute(count_q, params).scalar_one()

        return [_row_to_request(r) for r in rows], int(total)

    def transition(
        self,
        request_id: str,
        *,
        to_status: ApprovalStatus,
        from_statuses: Collection[ApprovalStatus],
        now: datetime,
        approved_by: int | None = None,
        approval_notes: str | None = None,
    ) -> ApprovalRequest | None:
        """Compare-and-set the status.

        Returns:
            The updated request, or None if its status was not in ``from_statuses``
            (or it no longer exists).
        """

        q = text(
            """
            UPDATE approval_request
            SET
                status = :to_status,
                approved_by = :approved_by,
                approval_notes = :approval_notes,
                updated_at = :now
            WHERE id = :id AND status IN :from_statuses
            """
        ).bindparams(bindparam("from_statuses", expanding=True))

        with self._engine.begin() as conn:
            result = conn.execute(
                q,
                {
                    "id": request_id,
                    "to_status": to_status.value,
                    "approved_by": approved_by,
                    "approval_notes": approval_notes,
                    "now": to_db_timestamp(now),
                    "from_statuses": [s.value for s in from_statuses],
                },
            )

        if result.rowcount == 0:
            return None
        return self.get(request_id)

    def update_proposed_routing(self, request_id: str, decision: RoutingDecision, *, now: datetime) -> ApprovalRequest | None:
        """Replace the proposed decision if the request is still pending."""

        q = text(
            """
            UPDATE approval_request
            SET proposed_routing_json = :proposed_routing_json, updated_at = :now
            WHERE id = :id AND status = :pending
            """
        )
        with self._engine.begin() as conn:
            result = conn.execute(
                q,
                {
                    "id": request_id,
                    "proposed_routing_json": decision.model_dump_json(),
                    "now": to_db_timestamp(now),
                    "pending": ApprovalStatus.PENDING.value,
                },
            )
        if result.rowcount == 0:
            return None
        return self.get(request_id)

    def list_due_for_expiry(self, now: datetime) -> list[ApprovalRequest]:
        """Pending requests whose deadline is at or before ``now``."""

        q = text(
            f"""
            SELECT {_COLUMNS}
            FROM approval_request
            WHERE status = :pending
              AND expires_at IS NOT NULL
              AND expires_at <= :now
            ORDER BY expires_at ASC
            """
        )
        with self._engine.begin() as conn:
            rows = conn.execute(q, {"pending": ApprovalStatus.PENDING.value, "now": to_db_timestamp(now)}).fetchall()
        return [_row_to_request(r) for r in rows]

    def delete(self, request_id: str) -> bool:
        q = text("DELETE FROM approval_request WHERE id = :id")
        with self._engine.begin() as conn:
            result = conn.execute(q, {"id": request_id})
        return result.rowcount > 0

    def delete_resolved_before(self, statuses: Collection[ApprovalStatus], cutoff: datetime) -> int:
        """Delete requests in ``statuses`` last updated before ``cutoff``."""

        q = text(
            """
            DELETE FROM approval_request
            WHERE status IN :statuses AND updated_at < :cutoff
            """
        ).bindparams(bindparam("statuses", expanding=True))
        with self._engine.begin() as conn:
            result = conn.execute(q, {"statuses": [s.value for s in statuses], "cutoff": to_db_timestamp(cutoff)})
        return int(result.rowcount)

    def stats(self) -> ApprovalStats:
        q = text("SELECT status, COUNT(*) FROM approval_request GROUP BY status")
        with self._engine.begin() as conn:
            rows = conn.execute(q).fetchall()

        counts = {str(r[0]): int(r[1]) for r in rows}
        return ApprovalStats(
            pending=counts.get(ApprovalStatus.PENDING.value, 0),
            approved=counts.get(ApprovalStatus.APPROVED.value, 0),
            rejected=counts.get(ApprovalStatus.REJECTED.value, 0),
            expired=counts.get(ApprovalStatus.EXPIRED.value, 0),
            auto_approved=counts.get(ApprovalStatus.AUTO_APPROVED.value, 0),
            total_requests=sum(counts.values()),
        )
