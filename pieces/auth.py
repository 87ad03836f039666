"""
Resolved authentication property values.

The OAuth consent flow and token refresh happen in the host; pieces only
read the resolved value it hands over.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from pieces.exceptions import AuthenticationError


class OAuth2PropertyValue(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: Optional[str] = None
    token_type: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None


def get_access_token_or_throw(auth: Optional[OAuth2PropertyValue]) -> str:
    """Return the bearer token, raising before any network call when absent."""
    access_token = auth.access_token if auth is not None else None
    if access_token is None:
        raise AuthenticationError("Invalid bearer token")
    return access_token
