"""Utility functions for Watchlist Router."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from collections.abc import Iterator
from datetime import datetime, timezone

import structlog

logger = structlog.get_logger()

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(dt: datetime) -> str:
    """Render a datetime as a fixed-width UTC string.

    Fixed width keeps lexical ordering identical to chronological ordering, which
    the expiration and retention range queries rely on.
    """

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def from_db_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    return datetime.strptime(raw, _TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog filtering from a level name."""

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )


class SingleFlight:
    """Non-blocking guard that lets only one caller run a job at a time."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()

    @contextmanager
    def acquire(self) -> Iterator[bool]:
        """Yield True if the caller holds the guard, False if a run is in flight."""

        acquired = self._lock.acquire(blocking=False)
        if not acquired:
            logger.info("single_flight_skipped", job=self.name)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()
