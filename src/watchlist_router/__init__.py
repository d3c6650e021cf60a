"""Watchlist Router - rule-based routing and approval gating for watchlist items.

This package evaluates router rules against movies and shows to pick target
instances, and defers selected items behind an approval workflow.
"""

__version__ = "0.1.0"

from watchlist_router.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
