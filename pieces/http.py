"""
Thin bearer-token REST helper shared by all pieces.

Every call opens its own ``httpx.AsyncClient`` and raises on non-2xx via
``raise_for_status()``.  No retries and no error classification: callers
(and ultimately the host) see ``httpx.HTTPStatusError`` /
``httpx.TransportError`` unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import config

logger = logging.getLogger(__name__)


def bearer_headers(token: str, scheme: str = "Bearer") -> Dict[str, str]:
    return {
        "Authorization": f"{scheme} {token}",
        "Accept": "application/json",
    }


def _log_http_error(resp: httpx.Response) -> None:
    try:
        body = resp.json()
    except ValueError:
        body = resp.text[:500]
    logger.error(
        "%s %s → %d — body=%s",
        resp.request.method, resp.request.url, resp.status_code, body,
    )


async def send_request(
    method: str,
    url: str,
    token: str,
    *,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    auth_scheme: str = "Bearer",
) -> Any:
    """
    Issue one authenticated request and return the decoded JSON body.

    Returns ``None`` for empty bodies (e.g. ``204 No Content`` on DELETE).
    """
    async with httpx.AsyncClient(timeout=config.http_timeout_seconds) as client:
        resp = await client.request(
            method,
            url,
            headers=bearer_headers(token, auth_scheme),
            json=json,
            params=params,
        )
        if resp.is_error:
            _log_http_error(resp)
        resp.raise_for_status()

    if not resp.content:
        return None
    return resp.json()
