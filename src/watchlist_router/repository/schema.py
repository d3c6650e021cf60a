"""Schema bootstrap.

Idempotent ``CREATE ... IF NOT EXISTS`` statements that run on both SQLite and
PostgreSQL. Timestamps are stored as fixed-width UTC strings (see
``watchlist_router.utils.to_db_timestamp``) so range filters compare lexically.
"""

from __future__ import annotations

import structlog
from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = structlog.get_logger()

_DDL = (
    """
    CREATE TABLE IF NOT EXISTS router_rule (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        target_type TEXT NOT NULL,
        target_instance_id INTEGER NOT NULL,
        enabled BOOLEAN NOT NULL DEFAULT TRUE,
        rule_order INTEGER NOT NULL DEFAULT 50,
        definition_json TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_router_rule_type
        ON router_rule(type, target_type)
    """,
    """
    CREATE TABLE IF NOT EXISTS approval_request (
        id TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL,
        user_name TEXT,
        content_type TEXT NOT NULL,
        content_title TEXT NOT NULL,
        content_key TEXT NOT NULL,
        content_guids_json TEXT NOT NULL,
        triggered_by TEXT NOT NULL,
        approval_reason TEXT,
        router_rule_id TEXT,
        trigger_data_json TEXT NOT NULL,
        status TEXT NOT NULL,
        proposed_routing_json TEXT NOT NULL,
        approved_by INTEGER,
        approval_notes TEXT,
        expires_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_approval_request_status_expires
        ON approval_request(status, expires_at)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_approval_request_user_content
        ON approval_request(user_id, content_key)
    """,
    """
    CREATE TABLE IF NOT EXISTS user_quota (
        user_id INTEGER NOT NULL,
        content_type TEXT NOT NULL,
        quota_type TEXT NOT NULL,
        quota_limit INTEGER NOT NULL,
        bypass_approval BOOLEAN NOT NULL DEFAULT FALSE,
        PRIMARY KEY (user_id, content_type)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quota_usage (
        id TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL,
        content_type TEXT NOT NULL,
        request_date TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_quota_usage_user_date
        ON quota_usage(user_id, content_type, request_date)
    """,
    """
    CREATE TABLE IF NOT EXISTS user_policy (
        user_id INTEGER PRIMARY KEY,
        user_name TEXT,
        requires_approval BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
)


def ensure_schema(engine: Engine) -> None:
    """Ensure required tables and indexes exist (idempotent).

    Args:
        engine: SQLAlchemy engine bound to the application database.
    """

    with engine.begin() as conn:
        for statement in _DDL:
            conn.execute(text(statement))

    logger.info("schema_ensured", dialect=engine.dialect.name, statements=len(_DDL))
