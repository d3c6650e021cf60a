"""Custom exceptions for Watchlist Router."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from watchlist_router.models import ApprovalRequest


class WatchlistRouterError(Exception):
    """Base exception for all Watchlist Router errors."""


class ConfigurationError(WatchlistRouterError):
    """Exception raised for configuration related errors."""


class MalformedRuleError(WatchlistRouterError):
    """Raised when a rule or condition tree is rejected at authoring time."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class EvaluationUnavailableError(WatchlistRouterError):
    """Raised when routing rules cannot be loaded for evaluation."""


class NotFoundError(WatchlistRouterError):
    """Raised for unknown rule or approval request ids."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"Unknown {kind}: {identifier}")


class StateConflictError(WatchlistRouterError):
    """Raised when an approval transition is not legal from the current status."""

    def __init__(self, request_id: str, current_status: str, reason: str) -> None:
        self.request_id = request_id
        self.current_status = current_status
        self.reason = reason
        super().__init__(f"Approval request {request_id}: {reason}")


class ExecutionFailureError(WatchlistRouterError):
    """Raised when an approved request could not be handed to its instance.

    The request keeps its approved status; ``request`` holds the stored record.
    """

    def __init__(self, request: ApprovalRequest, error: str) -> None:
        self.request = request
        self.error = error
        super().__init__(f"Approval request {request.id} approved but execution failed: {error}")
