"""
Mailchimp helpers — server prefix lookup, webhook registration and
decoding of the form-encoded webhook bodies Mailchimp delivers.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from config.settings import config
from pieces.auth import OAuth2PropertyValue
from pieces.http import send_request

logger = logging.getLogger(__name__)


class MailchimpSubscribeProps(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    authentication: Optional[OAuth2PropertyValue] = None
    list_id: str = Field(..., alias="listId", min_length=1, description="Audience id")


def _api_base(server: str) -> str:
    return f"https://{server}.api.mailchimp.com/3.0"


async def get_server_prefix(access_token: str) -> str:
    """Resolve the data-center prefix (``us1``, ``us19``, …) for a token."""
    metadata = await send_request(
        "GET",
        config.mailchimp_metadata_url,
        access_token,
        auth_scheme="OAuth",
    )
    return metadata["dc"]


async def enable_webhook_request(
    server: str,
    token: str,
    list_id: str,
    webhook_url: str,
) -> str:
    """Create a subscribe-only webhook on the list; returns the webhook id."""
    body = await send_request(
        "POST",
        f"{_api_base(server)}/lists/{list_id}/webhooks",
        token,
        json={
            "url": webhook_url,
            "events": {"subscribe": True},
            "sources": {"user": True, "admin": True, "api": True},
        },
    )
    return body["id"]


async def disable_webhook_request(
    server: str,
    token: str,
    list_id: str,
    webhook_id: str,
) -> None:
    await send_request(
        "DELETE",
        f"{_api_base(server)}/lists/{list_id}/webhooks/{webhook_id}",
        token,
    )


# ── Webhook body decoding ──────────────────────────────────────────────

_KEY_PART = re.compile(r"\[([^\]]*)\]")
_KEY_SUFFIX = re.compile(r"(?:\[[^\]]*\])+")


def _split_key(key: str) -> list[str]:
    head, bracket, rest = key.partition("[")
    suffix = bracket + rest
    if not head or not _KEY_SUFFIX.fullmatch(suffix):
        return [key]
    return [head] + _KEY_PART.findall(suffix)


def parse_webhook_form(pairs: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Turn Mailchimp's bracketed form fields into a nested dict.

    ``data[merges][EMAIL]=a@b.c`` becomes ``{"data": {"merges": {"EMAIL": "a@b.c"}}}``.
    Later duplicates overwrite earlier ones.
    """
    result: Dict[str, Any] = {}
    for key, value in pairs:
        parts = _split_key(key)
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
    return result
