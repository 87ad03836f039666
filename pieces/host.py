"""
Trigger host — persist trigger instances and drive their lifecycle.

This is the single interface the HTTP routes use.  It owns no schedule and
no retry policy: every call runs one lifecycle method to completion, with
its network and store operations strictly sequential, and lets failures
propagate to the caller.  Calls on one instance are serialized by a
per-instance lock, so two overlapping polls never read the same snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import config
from database.models import TriggerInstance
from pieces.base import BaseTrigger, TriggerContext, TriggerStrategy
from pieces.encryption import decrypt_props, encrypt_props
from pieces.exceptions import PieceNotFound, TriggerInstanceNotFound, TriggerStateError
from pieces.registry import PieceRegistry
from pieces.store import DatabaseStore

logger = logging.getLogger(__name__)

STATUS_ENABLED = "enabled"
STATUS_DISABLED = "disabled"


class TriggerHost:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: Optional[PieceRegistry] = None,
    ):
        self._session_factory = session_factory
        self._registry = registry or PieceRegistry()
        self._registry.discover()
        self._locks: Dict[str, asyncio.Lock] = {}

    # ── helpers ─────────────────────────────────────────────────────────

    def _lock(self, instance_id: str) -> asyncio.Lock:
        """One lock per instance; lifecycle calls on an instance never overlap."""
        return self._locks.setdefault(instance_id, asyncio.Lock())

    def _trigger(self, piece: str, trigger_name: str) -> BaseTrigger:
        trigger = self._registry.get(piece, trigger_name)
        if trigger is None:
            raise PieceNotFound(f"Trigger '{piece}/{trigger_name}' not found")
        return trigger

    def _context(
        self,
        trigger: BaseTrigger,
        instance_id: str,
        props: Any,
        payload: Any = None,
    ) -> TriggerContext:
        webhook_url = (
            config.webhook_url_for(instance_id)
            if trigger.type == TriggerStrategy.WEBHOOK
            else None
        )
        return TriggerContext(
            props_value=props,
            store=DatabaseStore(instance_id, self._session_factory),
            webhook_url=webhook_url,
            payload=payload,
        )

    async def _load(self, instance_id: str) -> Tuple[TriggerInstance, BaseTrigger, Any]:
        async with self._session_factory() as session:
            instance = await session.get(TriggerInstance, instance_id)
        if instance is None:
            self._locks.pop(instance_id, None)
            raise TriggerInstanceNotFound(f"Trigger instance '{instance_id}' not found")
        trigger = self._trigger(instance.piece, instance.trigger)
        props = trigger.parse_props(decrypt_props(instance.props))
        return instance, trigger, props

    async def _set_status(self, instance_id: str, status: str, error: Optional[str] = None) -> None:
        async with self._session_factory() as session:
            instance = await session.get(TriggerInstance, instance_id)
            if instance is None:
                return
            instance.status = status
            instance.error_message = error
            instance.updated_at = datetime.now(timezone.utc)
            await session.commit()

    async def _delete(self, instance_id: str) -> None:
        await DatabaseStore(instance_id, self._session_factory).clear_all()
        async with self._session_factory() as session:
            await session.execute(
                delete(TriggerInstance).where(TriggerInstance.instance_id == instance_id)
            )
            await session.commit()

    @staticmethod
    def _require(instance: TriggerInstance, trigger: BaseTrigger, strategy: TriggerStrategy) -> None:
        if instance.status != STATUS_ENABLED:
            raise TriggerStateError(f"Trigger instance '{instance.instance_id}' is {instance.status}")
        if trigger.type != strategy:
            raise TriggerStateError(
                f"Trigger '{instance.piece}/{instance.trigger}' is a {trigger.type.value} "
                f"trigger, not {strategy.value}"
            )

    # ── lifecycle ───────────────────────────────────────────────────────

    async def enable(self, piece: str, trigger_name: str, props: Dict[str, Any]) -> str:
        """
        Create and enable a trigger instance.

        Props are validated first (``pydantic.ValidationError`` propagates).
        If ``on_enable`` fails the instance and its store are removed again
        and the original error is re-raised.
        """
        trigger = self._trigger(piece, trigger_name)
        parsed = trigger.parse_props(props)
        instance_id = str(uuid.uuid4())

        async with self._lock(instance_id):
            async with self._session_factory() as session:
                session.add(
                    TriggerInstance(
                        instance_id=instance_id,
                        piece=piece,
                        trigger=trigger_name,
                        props=encrypt_props(props),
                        status=STATUS_ENABLED,
                    )
                )
                await session.commit()

            try:
                await trigger.on_enable(self._context(trigger, instance_id, parsed))
            except Exception as exc:
                logger.error("Enable failed for %s/%s: %s", piece, trigger_name, exc)
                await self._delete(instance_id)
                self._locks.pop(instance_id, None)
                raise

        logger.info("Enabled trigger instance %s (%s/%s)", instance_id, piece, trigger_name)
        return instance_id

    async def disable(self, instance_id: str) -> None:
        async with self._lock(instance_id):
            instance, trigger, props = await self._load(instance_id)
            if instance.status != STATUS_ENABLED:
                raise TriggerStateError(f"Trigger instance '{instance_id}' is already {instance.status}")

            try:
                await trigger.on_disable(self._context(trigger, instance_id, props))
            except Exception as exc:
                logger.error("Disable failed for %s: %s", instance_id, exc)
                await self._set_status(instance_id, STATUS_ENABLED, error=f"Disable failed: {exc}")
                raise

            await self._set_status(instance_id, STATUS_DISABLED)
        logger.info("Disabled trigger instance %s", instance_id)

    async def poll(self, instance_id: str) -> List[Any]:
        """Run a polling trigger once and return its batch."""
        async with self._lock(instance_id):
            instance, trigger, props = await self._load(instance_id)
            self._require(instance, trigger, TriggerStrategy.POLLING)
            try:
                return await trigger.run(self._context(trigger, instance_id, props))
            except Exception as exc:
                logger.error("Poll failed for %s: %s", instance_id, exc)
                raise

    async def deliver(self, instance_id: str, payload: Any) -> List[Any]:
        """Hand one inbound webhook payload to a webhook trigger."""
        async with self._lock(instance_id):
            instance, trigger, props = await self._load(instance_id)
            self._require(instance, trigger, TriggerStrategy.WEBHOOK)
            return await trigger.run(self._context(trigger, instance_id, props, payload=payload))

    # ── queries ─────────────────────────────────────────────────────────

    async def get_instance(self, instance_id: str) -> Dict[str, Any]:
        async with self._session_factory() as session:
            instance = await session.get(TriggerInstance, instance_id)
        if instance is None:
            raise TriggerInstanceNotFound(f"Trigger instance '{instance_id}' not found")
        return _describe(instance)

    async def list_instances(self) -> List[Dict[str, Any]]:
        """All trigger instances (props are never exposed)."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TriggerInstance).order_by(TriggerInstance.created_at)
            )
            return [_describe(i) for i in result.scalars().all()]


def _describe(instance: TriggerInstance) -> Dict[str, Any]:
    return {
        "instance_id": instance.instance_id,
        "piece": instance.piece,
        "trigger": instance.trigger,
        "status": instance.status,
        "created_at": instance.created_at.isoformat() if instance.created_at else None,
        "updated_at": instance.updated_at.isoformat() if instance.updated_at else None,
        "error_message": instance.error_message,
    }
