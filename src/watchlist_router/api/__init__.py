"""HTTP administrative surface."""

from watchlist_router.api.app import create_app

__all__ = ["create_app"]
