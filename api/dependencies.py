"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from config.settings import config
from database.session import async_session_factory
from pieces.host import TriggerHost

_host: Optional[TriggerHost] = None


def get_trigger_host() -> TriggerHost:
    """Process-wide host bound to the configured database."""
    global _host
    if _host is None:
        _host = TriggerHost(async_session_factory)
    return _host


async def require_api_key(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> None:
    """
    Check ``Authorization: Bearer <API_KEY>`` on management routes.
    Open access when no API key is configured.
    """
    if not config.api_key:
        return
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )
    if not hmac.compare_digest(authorization[7:], config.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
