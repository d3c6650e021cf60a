"""User quotas."""

from watchlist_router.quota.service import QuotaService, window_start

__all__ = ["QuotaService", "window_start"]
