"""Wiring of repositories, routing and approval services from settings."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from pydantic import TypeAdapter
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from watchlist_router.approval import ApprovalGate, ApprovalService, ExpirationPolicy
from watchlist_router.collaborators import ExecutionService, Notifier, UnconfiguredExecutionService
from watchlist_router.config import Settings, get_settings
from watchlist_router.exceptions import ConfigurationError, MalformedRuleError
from watchlist_router.models import ConditionNode
from watchlist_router.quota import QuotaService
from watchlist_router.repository import (
    ApprovalRepository,
    QuotaRepository,
    RouterRuleRepository,
    UserPolicyRepository,
    ensure_schema,
)
from watchlist_router.routing import ContentRouter, EvaluatorRegistry, RuleValidator

logger = structlog.get_logger()

_CRITERIA_ADAPTER = TypeAdapter(list[ConditionNode])


@dataclass
class Services:
    """Everything the API and CLI need, built once per process."""

    settings: Settings
    engine: Engine
    rules: RouterRuleRepository
    approvals_repository: ApprovalRepository
    quota_repository: QuotaRepository
    policies: UserPolicyRepository
    registry: EvaluatorRegistry
    validator: RuleValidator
    router: ContentRouter
    quota: QuotaService
    approvals: ApprovalService
    gate: ApprovalGate

    def close(self) -> None:
        self.router.close()
        self.engine.dispose()


def build_services(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    execution: ExecutionService | None = None,
    notifier: Notifier | None = None,
) -> Services:
    """Create the service graph and make sure the schema exists."""

    settings = settings or get_settings()
    engine = engine or create_engine(settings.database_url)
    ensure_schema(engine)

    try:
        content_criteria = _CRITERIA_ADAPTER.validate_python(settings.approval_content_criteria)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid approval_content_criteria: {exc}") from exc

    rules = RouterRuleRepository(engine)
    approvals_repository = ApprovalRepository(engine)
    quota_repository = QuotaRepository(engine)
    policies = UserPolicyRepository(engine)

    registry = EvaluatorRegistry.default(rules)
    validator = RuleValidator(registry)
    try:
        for index, node in enumerate(content_criteria):
            validator.validate_condition(node, path=f"approval_content_criteria[{index}]")
    except MalformedRuleError as exc:
        raise ConfigurationError(f"Invalid approval_content_criteria: {exc}") from exc

    quota = QuotaService(
        quota_repository,
        weekly_rolling_days=settings.quota_weekly_rolling_days,
        monthly_reset_day=settings.quota_monthly_reset_day,
    )
    approvals = ApprovalService(
        approvals_repository,
        execution or UnconfiguredExecutionService(),
        policy=ExpirationPolicy.from_settings(settings),
        quota=quota,
        notifier=notifier,
    )
    gate = ApprovalGate(
        approvals,
        rules,
        registry,
        quota=quota,
        policies=policies,
        content_criteria=content_criteria,
    )
    router = ContentRouter(
        registry,
        timeout_seconds=settings.evaluator_timeout_seconds,
        max_workers=settings.evaluator_max_workers,
    )

    logger.info(
        "services_built",
        database=engine.dialect.name,
        evaluators=[e.name for e in registry.evaluators],
        expiration_enabled=settings.approval_expiration_enabled,
    )
    return Services(
        settings=settings,
        engine=engine,
        rules=rules,
        approvals_repository=approvals_repository,
        quota_repository=quota_repository,
        policies=policies,
        registry=registry,
        validator=validator,
        router=router,
        quota=quota,
        approvals=approvals,
        gate=gate,
    )
