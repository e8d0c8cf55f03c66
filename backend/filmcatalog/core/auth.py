from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from filmcatalog.core.settings import get_settings


def require_admin(authorization: str | None = Header(default=None)) -> str:
    """Accept only the configured admin bearer token; returns the role name.

    Curation endpoints are closed entirely while ``ADMIN_TOKEN`` is unset.
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    admin_token = get_settings().admin_token
    if not admin_token or not hmac.compare_digest(token, admin_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token does not grant access to this resource",
        )
    return "admin"
