"""
Trigger host API routes — list pieces, enable/disable/poll trigger
instances, receive vendor webhooks.

Route prefix: /api/v1
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List
from urllib.parse import parse_qsl

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, ValidationError

from api.dependencies import get_trigger_host, require_api_key
from pieces.exceptions import (
    AuthenticationError,
    PieceError,
    PieceNotFound,
    TriggerInstanceNotFound,
    TriggerStateError,
)
from pieces.host import TriggerHost
from pieces.mailchimp.common import parse_webhook_form
from pieces.registry import PieceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["triggers"])


# ── Request / response schemas ─────────────────────────────────────────


class EnableTriggerRequest(BaseModel):
    piece: str = Field(..., min_length=1)
    trigger: str = Field(..., min_length=1)
    props: Dict[str, Any] = Field(default_factory=dict)


class TriggerBatch(BaseModel):
    instance_id: str
    events: List[Any]


# ── Error mapping ──────────────────────────────────────────────────────


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (PieceNotFound, TriggerInstanceNotFound)):
        return HTTPException(status.HTTP_404_NOT_FOUND, exc.message)
    if isinstance(exc, TriggerStateError):
        return HTTPException(status.HTTP_409_CONFLICT, exc.message)
    if isinstance(exc, AuthenticationError):
        return HTTPException(status.HTTP_400_BAD_REQUEST, exc.message)
    if isinstance(exc, ValidationError):
        return HTTPException(
            422,
            json.loads(exc.json(include_url=False)),
        )
    if isinstance(exc, httpx.HTTPStatusError):
        return HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            f"Upstream {exc.response.status_code} from {exc.request.url.host}",
        )
    if isinstance(exc, httpx.HTTPError):
        return HTTPException(status.HTTP_502_BAD_GATEWAY, f"Upstream unreachable: {exc}")
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


_MAPPED = (PieceError, ValidationError, httpx.HTTPError)


async def _read_webhook_payload(request: Request) -> Any:
    """Decode a vendor webhook body: JSON, form-encoded, or absent."""
    body = await request.body()
    if not body:
        return None
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type:
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Form-encoded webhook body is not valid UTF-8",
            )
        return parse_webhook_form(parse_qsl(text, keep_blank_values=True))
    try:
        return json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook body is neither JSON nor form-encoded",
        )


# ── Management routes ──────────────────────────────────────────────────


@router.get("/pieces")
async def list_pieces() -> list[dict]:
    """List all pieces with their triggers and props schemas."""
    registry = PieceRegistry()
    registry.discover()
    return registry.list_pieces()


@router.get("/triggers", dependencies=[Depends(require_api_key)])
async def list_triggers(host: TriggerHost = Depends(get_trigger_host)) -> list[dict]:
    return await host.list_instances()


@router.post(
    "/triggers",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
async def enable_trigger(
    req: EnableTriggerRequest,
    host: TriggerHost = Depends(get_trigger_host),
) -> Dict[str, Any]:
    """Create a trigger instance and run its ``on_enable``."""
    try:
        instance_id = await host.enable(req.piece, req.trigger, req.props)
    except _MAPPED as exc:
        raise _to_http_error(exc)
    return await host.get_instance(instance_id)


@router.get("/triggers/{instance_id}", dependencies=[Depends(require_api_key)])
async def get_trigger(
    instance_id: str,
    host: TriggerHost = Depends(get_trigger_host),
) -> Dict[str, Any]:
    try:
        return await host.get_instance(instance_id)
    except _MAPPED as exc:
        raise _to_http_error(exc)


@router.delete("/triggers/{instance_id}", dependencies=[Depends(require_api_key)])
async def disable_trigger(
    instance_id: str,
    host: TriggerHost = Depends(get_trigger_host),
) -> Dict[str, Any]:
    try:
        await host.disable(instance_id)
    except _MAPPED as exc:
        raise _to_http_error(exc)
    return {"status": "disabled", "instance_id": instance_id}


@router.post(
    "/triggers/{instance_id}/poll",
    response_model=TriggerBatch,
    dependencies=[Depends(require_api_key)],
)
async def poll_trigger(
    instance_id: str,
    host: TriggerHost = Depends(get_trigger_host),
) -> Dict[str, Any]:
    """Run a polling trigger once; scheduling is left to the caller."""
    try:
        events = await host.poll(instance_id)
    except _MAPPED as exc:
        raise _to_http_error(exc)
    return {"instance_id": instance_id, "events": events}


# ── Vendor webhooks (no API key, called by the vendor) ────────────────


@router.get("/webhooks/{instance_id}")
async def validate_webhook(instance_id: str) -> Dict[str, str]:
    """Mailchimp checks a webhook URL with a GET before saving it."""
    return {"status": "ok", "instance_id": instance_id}


@router.post("/webhooks/{instance_id}", response_model=TriggerBatch)
async def receive_webhook(
    instance_id: str,
    request: Request,
    host: TriggerHost = Depends(get_trigger_host),
) -> Dict[str, Any]:
    payload = await _read_webhook_payload(request)
    try:
        events = await host.deliver(instance_id, payload)
    except _MAPPED as exc:
        raise _to_http_error(exc)
    logger.info("Webhook %s produced %d events", instance_id, len(events))
    return {"instance_id": instance_id, "events": events}
