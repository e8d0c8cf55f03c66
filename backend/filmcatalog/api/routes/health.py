from collections.abc import Callable

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ...core.settings import get_settings
from ...db import get_session_factory

router = APIRouter()


@router.get("/health")
def health_check(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> dict[str, str | dict[str, bool]]:
    """Readiness endpoint with a database check."""
    settings = get_settings()
    checks: dict[str, bool] = {}

    try:
        with session_factory() as session:
            session.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception:
        checks["database"] = False

    return {
        "status": "ok",
        "environment": settings.environment,
        "version": settings.version,
        "checks": checks,
    }
