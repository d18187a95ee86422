"""Shared route dependencies."""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from ..services.billing import get_billing_config

ADMIN_TOKEN_HEADER = "X-Admin-Token"


def require_admin_token(
    admin_token: Optional[str] = Header(None, alias=ADMIN_TOKEN_HEADER),
) -> None:
    expected = get_billing_config().admin_api_token
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API token is not configured",
        )
    if not admin_token or not secrets.compare_digest(admin_token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


__all__ = ["ADMIN_TOKEN_HEADER", "require_admin_token"]
