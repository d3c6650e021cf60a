"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine

from watchlist_router.collaborators import ContentRef, ExecutionResult
from watchlist_router.config import Settings
from watchlist_router.exceptions import EvaluationUnavailableError
from watchlist_router.models import ApprovalRequest, ContentItem, RouterRule, RoutingContext, RoutingDecision
from watchlist_router.repository import ensure_schema
from watchlist_router.services import build_services


class StaticRules:
    """In-memory rule source."""

    def __init__(self, rules: list[RouterRule] | None = None) -> None:
        self.rules = list(rules or [])

    def rules_by_type(self, rule_type: str) -> list[RouterRule]:
        return [r for r in self.rules if r.type == rule_type]


class BrokenRules:
    """Rule source whose backing store is down."""

    def rules_by_type(self, rule_type: str) -> list[RouterRule]:
        raise EvaluationUnavailableError("database is down")


class FakeExecution:
    """Records execution calls; fails for instance ids in ``failing``."""

    def __init__(self) -> None:
        self.calls: list[tuple[RoutingDecision, ContentRef]] = []
        self.failing: set[int] = set()

    def execute(self, decision: RoutingDecision, content: ContentRef) -> ExecutionResult:
        self.calls.append((decision, content))
        if decision.instance_id in self.failing:
            return ExecutionResult(success=False, instance_id=decision.instance_id, error="instance unreachable")
        return ExecutionResult(success=True, instance_id=decision.instance_id)


class RecordingNotifier:
    def __init__(self) -> None:
        self.created: list[ApprovalRequest] = []
        self.resolved: list[ApprovalRequest] = []

    def approval_created(self, request: ApprovalRequest) -> None:
        self.created.append(request)

    def approval_resolved(self, request: ApprovalRequest) -> None:
        self.resolved.append(request)


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Provide isolated settings backed by a temporary SQLite file."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'router.sqlite3'}",
        log_level="DEBUG",
        evaluator_timeout_seconds=2.0,
    )


@pytest.fixture
def engine(settings: Settings):
    engine = create_engine(settings.database_url)
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def execution() -> FakeExecution:
    return FakeExecution()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def services(settings: Settings, engine, execution: FakeExecution, notifier: RecordingNotifier):
    services = build_services(settings, engine=engine, execution=execution, notifier=notifier)
    yield services
    services.router.close()


@pytest.fixture
def movie() -> ContentItem:
    """Provide a sample movie."""
    return ContentItem(
        title="Back to the Future",
        type="movie",
        guids=["tmdb:105", "imdb:tt0088763"],
        genres=["Adventure", "Comedy", "Science Fiction"],
        year=1985,
        original_language="English",
        certification="PG",
    )


@pytest.fixture
def show() -> ContentItem:
    """Provide a sample show."""
    return ContentItem(
        title="Twin Peaks",
        type="show",
        guids=["tvdb:70533"],
        genres=["Drama", "Mystery"],
        year=1990,
        original_language="English",
        certification="TV-14",
        seasons=[1, 2, 3],
    )


@pytest.fixture
def movie_context() -> RoutingContext:
    return RoutingContext(content_type="movie", user_id=7, user_name="alice")


@pytest.fixture
def show_context() -> RoutingContext:
    return RoutingContext(content_type="show", user_id=7, user_name="alice")


@pytest.fixture
def make_registry():
    """Build a default evaluator registry over an in-memory list of rules."""
    from watchlist_router.routing import EvaluatorRegistry

    def _make(rules: list[RouterRule] | None = None, *, broken: bool = False) -> EvaluatorRegistry:
        source = BrokenRules() if broken else StaticRules(rules)
        return EvaluatorRegistry.default(source)

    return _make


@pytest.fixture
def make_router(make_registry):
    """Build a router over an in-memory list of rules."""
    from watchlist_router.routing import ContentRouter

    routers = []

    def _make(rules: list[RouterRule] | None = None, **kwargs):
        router = ContentRouter(make_registry(rules), timeout_seconds=2.0, **kwargs)
        routers.append(router)
        return router

    yield _make
    for router in routers:
        router.close()
