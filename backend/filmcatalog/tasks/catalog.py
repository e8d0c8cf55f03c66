"""Periodic maintenance of the TMDb-backed part of the catalog."""

from __future__ import annotations

import logging

from celery import shared_task

from filmcatalog.db import SessionLocal
from filmcatalog.services.retention import run_retention_sweep

logger = logging.getLogger(__name__)


@shared_task(name="catalog.sweep_remote_movies")
def sweep_remote_movies(retention_days: float | None = None) -> int | None:
    """Remove TMDb-sourced movies that are stale and unreferenced."""
    removed = run_retention_sweep(SessionLocal, retention_days)
    logger.info("Scheduled retention sweep finished: removed=%s", removed)
    return removed
