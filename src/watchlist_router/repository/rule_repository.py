"""Router rule repository."""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from watchlist_router.exceptions import EvaluationUnavailableError, NotFoundError
from watchlist_router.models import RouterRule, RuleType
from watchlist_router.utils import from_db_timestamp, to_db_timestamp, utc_now

logger = structlog.get_logger()

_COLUMNS = "id, enabled, rule_order, definition_json, created_at, updated_at"

# Stored in dedicated columns rather than the JSON definition.
_ROW_FIELDS = {"id", "created_at", "updated_at"}


def _row_to_rule(row: Any) -> RouterRule:
    rule = RouterRule.model_validate_json(row[3])
    return rule.model_copy(
        update={
            "id": row[0],
            "enabled": bool(row[1]),
            "order": int(row[2]),
            "created_at": from_db_timestamp(row[4]),
            "updated_at": from_db_timestamp(row[5]),
        }
    )


class RouterRuleRepository:
    """CRUD for router rules; also the rule source used by evaluator plugins."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_rules(self, *, enabled_only: bool = False) -> list[RouterRule]:
        where = "WHERE enabled = :enabled" if enabled_only else ""
        q = text(
            f"""
            SELECT {_COLUMNS}
            FROM router_rule
            {where}
            ORDER BY rule_order DESC, created_at ASC
            """
        )
        params = {"enabled": True} if enabled_only else {}
        with self._engine.begin() as conn:
            rows = conn.execute(q, params).fetchall()
        return [_row_to_rule(r) for r in rows]

    def rules_by_type(self, rule_type: RuleType) -> list[RouterRule]:
        """Load all rules of a type, highest order first.

        Raises:
            EvaluationUnavailableError: If the database cannot be read.
        """

        q = text(
            f"""
            SELECT {_COLUMNS}
            FROM router_rule
            WHERE type = :rule_type
            ORDER BY rule_order DESC, created_at ASC
            """
        )
        try:
            with self._engine.begin() as conn:
                rows = conn.execute(q, {"rule_type": rule_type}).fetchall()
        except SQLAlchemyError as exc:
            raise EvaluationUnavailableError(f"Failed to load {rule_type} rules: {exc}") from exc
        return [_row_to_rule(r) for r in rows]

    def get_rule(self, rule_id: str) -> RouterRule | None:
        q = text(f"SELECT {_COLUMNS} FROM router_rule WHERE id = :rule_id")
        with self._engine.begin() as conn:
            row = conn.execute(q, {"rule_id": rule_id}).fetchone()
        return _row_to_rule(row) if row else None

    def require_rule(self, rule_id: str) -> RouterRule:
        rule = self.get_rule(rule_id)
        if rule is None:
            raise NotFoundError("router rule", rule_id)
        return rule

    def create_rule(self, rule: RouterRule) -> RouterRule:
        rule_id = str(uuid.uuid4())
        now = to_db_timestamp(utc_now())

        q = text(
            """
            INSERT INTO router_rule (
                id,
                name,
                type,
                target_type,
                target_instance_id,
                enabled,
                rule_order,
                definition_json,
                created_at,
                updated_at
            )
            VALUES (
                :id,
                :name,
                :type,
                :target_type,
                :target_instance_id,
                :enabled,
                :rule_order,
                :definition_json,
                :now,
                :now
            )
            """
        )
        with self._engine.begin() as conn:
            conn.execute(q, {"id": rule_id, "now": now, **self._params(rule)})

        logger.info("router_rule_created", rule_id=rule_id, rule_name=rule.name, rule_type=rule.type)
        return self.require_rule(rule_id)

    def update_rule(self, rule_id: str, rule: RouterRule) -> RouterRule:
        q = text(
            """
            UPDATE router_rule
            SET
                name = :name,
                type = :type,
                target_type = :target_type,
                target_instance_id = :target_instance_id,
                enabled = :enabled,
                rule_order = :rule_order,
                definition_json = :definition_json,
                updated_at = :now
            WHERE id = :id
            """
        )
        with self._engine.begin() as conn:
            result = conn.execute(q, {"id": rule_id, "now": to_db_timestamp(utc_now()), **self._params(rule)})

        if result.rowcount == 0:
            raise NotFoundError("router rule", rule_id)
        logger.info("router_rule_updated", rule_id=rule_id, rule_name=rule.name)
        return self.require_rule(rule_id)

    def set_enabled(self, rule_id: str, enabled: bool) -> RouterRule:
        rule = self.require_rule(rule_id)
        return self.update_rule(rule_id, rule.model_copy(update={"enabled": enabled}))

    def delete_rule(self, rule_id: str) -> bool:
        q = text("DELETE FROM router_rule WHERE id = :rule_id")
        with self._engine.begin() as conn:
            result = conn.execute(q, {"rule_id": rule_id})
        deleted = result.rowcount > 0
        if deleted:
            logger.info("router_rule_deleted", rule_id=rule_id)
        return deleted

    @staticmethod
    def _params(rule: RouterRule) -> dict[str, Any]:
        return {
            "name": rule.name,
            "type": rule.type,
            "target_type": rule.target_type,
            "target_instance_id": rule.target_instance_id,
            "enabled": rule.enabled,
            "rule_order": rule.order,
            "definition_json": rule.model_dump_json(exclude=_ROW_FIELDS),
        }
