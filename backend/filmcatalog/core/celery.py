"""Celery application configuration."""

from __future__ import annotations

from celery import Celery

from filmcatalog.core.settings import get_settings


def create_celery_app() -> Celery:
    """Build a Celery app configured from the current settings."""
    settings = get_settings()
    app = Celery("filmcatalog")

    app.conf.broker_url = settings.celery_broker_url
    app.conf.result_backend = settings.celery_result_backend
    app.conf.task_default_queue = settings.celery_default_queue
    app.conf.result_persistent = False

    app.conf.beat_schedule = {
        "sweep-stale-remote-movies": {
            "task": "catalog.sweep_remote_movies",
            "schedule": settings.sweep_interval_seconds,
        },
    }

    # Discover tasks AFTER the app is configured.
    app.autodiscover_tasks(["filmcatalog.tasks"])
    return app


celery_app = create_celery_app()
