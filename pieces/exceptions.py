"""
Exceptions raised by pieces and the trigger host.

Vendor HTTP failures are *not* wrapped here — ``httpx`` errors propagate
unchanged so the caller sees the upstream status and body.
"""

from __future__ import annotations


class PieceError(Exception):
    """Base class for all piece / trigger host errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class AuthenticationError(PieceError):
    """Credential missing or unusable; raised before any network call."""


class PieceNotFound(PieceError):
    pass


class TriggerInstanceNotFound(PieceError):
    pass


class TriggerStateError(PieceError):
    """Lifecycle call does not fit the instance (wrong strategy, disabled, …)."""
