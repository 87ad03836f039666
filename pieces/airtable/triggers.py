"""
Airtable polling triggers.

Both triggers keep the last full table snapshot in their store and compare
each fresh snapshot against it:

  • new_record      — emits records with no structurally-equal match in the
                      previous snapshot (any field edit looks "new")
  • updated_record  — keys by record id and emits known records whose
                      fields changed
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Dict, List

from pieces.airtable.common import (
    AirtableRecord,
    AirtableTriggerProps,
    diff_snapshots,
    find_new_records,
    get_table_snapshot,
)
from pieces.base import BaseTrigger, TriggerContext, TriggerStrategy

logger = logging.getLogger(__name__)

_SAMPLE_RECORD: Dict[str, Any] = {
    "id": "rec8116cdd76088af",
    "createdTime": "2023-01-24T12:00:00.000Z",
    "fields": {"Name": "Example", "Status": "Todo"},
}


class _AirtableSnapshotTrigger(BaseTrigger[AirtableTriggerProps]):
    piece_name = "airtable"
    type = TriggerStrategy.POLLING
    props_model = AirtableTriggerProps
    sample_data = _SAMPLE_RECORD
    store_key: str = ""

    async def _fetch(self, props: AirtableTriggerProps) -> List[AirtableRecord]:
        return await get_table_snapshot(
            personal_token=props.authentication,
            base_id=props.base,
            table_id=props.table.id,
        )

    async def on_enable(self, context: TriggerContext[AirtableTriggerProps]) -> None:
        snapshot = await self._fetch(context.props_value)
        await context.store.put(self.store_key, snapshot)
        logger.info(
            "Enabled %s on %s/%s with %d records",
            self.name, context.props_value.base, context.props_value.table.id, len(snapshot),
        )

    async def on_disable(self, context: TriggerContext[AirtableTriggerProps]) -> None:
        await context.store.put(self.store_key, None)
        logger.info("Disabled %s", self.name)

    @abstractmethod
    def _emit(
        self,
        current: List[AirtableRecord],
        previous: List[AirtableRecord],
    ) -> List[AirtableRecord]:
        """Pick the records to emit from the fresh snapshot."""

    async def run(self, context: TriggerContext[AirtableTriggerProps]) -> List[Any]:
        current = await self._fetch(context.props_value)
        previous = await context.store.get(self.store_key) or []
        payloads = self._emit(current, previous)
        await context.store.put(self.store_key, current)
        logger.debug("%s: %d current, %d previous, %d emitted", self.name, len(current), len(previous), len(payloads))
        return payloads


class AirtableNewRecordTrigger(_AirtableSnapshotTrigger):
    name = "new_record"
    display_name = "New Record"
    description = "Triggers when a new record is added to the selected table."
    store_key = "airtable_new_record_trigger"

    def _emit(self, current, previous):
        return find_new_records(current, previous)


class AirtableUpdatedRecordTrigger(_AirtableSnapshotTrigger):
    name = "updated_record"
    display_name = "Updated Record"
    description = "Triggers when the fields of an existing record change."
    store_key = "airtable_updated_record_trigger"

    def _emit(self, current, previous):
        return diff_snapshots(previous, current).updated


airtable_new_record = AirtableNewRecordTrigger()
airtable_updated_record = AirtableUpdatedRecordTrigger()
