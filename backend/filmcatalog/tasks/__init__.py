"""Celery tasks for the filmcatalog backend."""

from .catalog import sweep_remote_movies

__all__ = [
    "sweep_remote_movies",
]
