"""FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from watchlist_router.api.approvals import router as approvals_router
from watchlist_router.api.quota import router as quota_router
from watchlist_router.api.routing import router as routing_router
from watchlist_router.api.rules import router as rules_router
from watchlist_router.exceptions import (
    EvaluationUnavailableError,
    ExecutionFailureError,
    MalformedRuleError,
    NotFoundError,
    StateConflictError,
)
from watchlist_router.services import Services, build_services
from watchlist_router.utils import configure_logging

logger = structlog.get_logger()


def create_app(services: Services | None = None) -> FastAPI:
    """Build the HTTP app; ``services`` defaults to a graph built from settings."""

    services = services or build_services()
    configure_logging(services.settings.log_level)

    app = FastAPI(title="Watchlist Router", debug=services.settings.debug)
    app.state.services = services

    app.include_router(rules_router)
    app.include_router(routing_router)
    app.include_router(approvals_router)
    app.include_router(quota_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StateConflictError)
    def _conflict(request: Request, exc: StateConflictError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.reason, "request_id": exc.request_id, "status": exc.current_status},
        )

    @app.exception_handler(MalformedRuleError)
    def _malformed(request: Request, exc: MalformedRuleError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc), "path": exc.path})

    @app.exception_handler(ExecutionFailureError)
    def _execution_failed(request: Request, exc: ExecutionFailureError) -> JSONResponse:
        logger.warning("api_execution_failed", request_id=exc.request.id, error=exc.error)
        return JSONResponse(
            status_code=502,
            content={"detail": exc.error, "request": exc.request.model_dump(mode="json")},
        )

    @app.exception_handler(EvaluationUnavailableError)
    def _unavailable(request: Request, exc: EvaluationUnavailableError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app
