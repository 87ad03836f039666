"""
PieceRegistry — discovers and provides access to all piece triggers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pieces import airtable, mailchimp
from pieces.base import BaseTrigger

logger = logging.getLogger(__name__)

# ── All known pieces; add new ones here ────────────────────────────────

_ALL_PIECES: Dict[str, Dict[str, Any]] = {
    "airtable": {"display_name": "Airtable", "triggers": airtable.TRIGGERS},
    "mailchimp": {"display_name": "Mailchimp", "triggers": mailchimp.TRIGGERS},
}


class PieceRegistry:
    """Singleton registry mapping (piece, trigger) → trigger definition."""

    _instance: Optional["PieceRegistry"] = None

    def __new__(cls) -> "PieceRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._triggers = {}
            cls._instance._discovered = False
        return cls._instance

    def discover(self) -> None:
        """Register every trigger of every known piece (idempotent)."""
        if self._discovered:
            return
        for piece_name, piece in _ALL_PIECES.items():
            for trigger in piece["triggers"]:
                self.register(piece_name, trigger)
        self._discovered = True
        logger.info("Registered %d triggers from %d pieces", len(self._triggers), len(_ALL_PIECES))

    def register(self, piece_name: str, trigger: BaseTrigger) -> None:
        key = (piece_name, trigger.name)
        if key in self._triggers:
            raise ValueError(f"Trigger '{piece_name}/{trigger.name}' registered twice")
        self._triggers[key] = trigger
        logger.debug("Trigger registered: %s/%s (%s)", piece_name, trigger.name, trigger.type.value)

    def get(self, piece: str, trigger: str) -> Optional[BaseTrigger]:
        return self._triggers.get((piece, trigger))

    def list_pieces(self) -> List[Dict[str, Any]]:
        """Return metadata of each piece with its registered triggers."""
        pieces: Dict[str, Dict[str, Any]] = {}
        for (piece_name, _), trigger in self._triggers.items():
            entry = pieces.setdefault(
                piece_name,
                {
                    "name": piece_name,
                    "display_name": _ALL_PIECES.get(piece_name, {}).get("display_name", piece_name),
                    "triggers": [],
                },
            )
            entry["triggers"].append(trigger.metadata())
        return list(pieces.values())

    # ── reset (for tests) ──────────────────────────────────────────────

    @classmethod
    def reset(cls) -> None:
        """Destroy singleton — only useful in test teardown."""
        cls._instance = None
