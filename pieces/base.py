"""
BaseTrigger — abstract interface for all piece triggers.

Every trigger (Airtable new record, Mailchimp subscribe, …) subclasses this
and implements the three lifecycle coroutines.  The host owns scheduling and
retries; a trigger only reacts to the calls it receives.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from pieces.store import Store

PropsT = TypeVar("PropsT", bound=BaseModel)


class TriggerStrategy(str, Enum):
    POLLING = "polling"
    WEBHOOK = "webhook"


@dataclass
class TriggerContext(Generic[PropsT]):
    """
    Everything a lifecycle call may touch.

    ``store`` is scoped to a single trigger instance.  ``webhook_url`` is only
    set for webhook triggers; ``payload`` only on webhook ``run`` calls.
    """

    props_value: PropsT
    store: Store
    webhook_url: Optional[str] = None
    payload: Any = None


class BaseTrigger(ABC, Generic[PropsT]):
    """Abstract base for all triggers."""

    # ── Identity ────────────────────────────────────────────────────────
    piece_name: str = ""
    name: str = ""
    display_name: str = ""
    description: str = ""
    type: TriggerStrategy = TriggerStrategy.POLLING
    props_model: Type[BaseModel] = BaseModel
    sample_data: Dict[str, Any] = {}

    def parse_props(self, raw: Dict[str, Any]) -> PropsT:
        """Validate resolved property values; raises ``pydantic.ValidationError``."""
        return self.props_model.model_validate(raw)  # type: ignore[return-value]

    def metadata(self) -> Dict[str, Any]:
        return {
            "piece": self.piece_name,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "type": self.type.value,
            "props_schema": self.props_model.model_json_schema(),
            "sample_data": self.sample_data,
        }

    # ── Lifecycle ───────────────────────────────────────────────────────

    @abstractmethod
    async def on_enable(self, context: TriggerContext[PropsT]) -> None:
        """Prepare state (snapshot, webhook registration) when switched on."""
        ...

    @abstractmethod
    async def on_disable(self, context: TriggerContext[PropsT]) -> None:
        """Release what ``on_enable`` set up."""
        ...

    @abstractmethod
    async def run(self, context: TriggerContext[PropsT]) -> List[Any]:
        """
        Produce the batch of events for one invocation.

        Returns
        -------
        A list of payloads, possibly empty.  Each element becomes one flow run
        in the host engine.
        """
        ...
