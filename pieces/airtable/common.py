"""
Airtable helpers — props, snapshot fetch and snapshot diffing.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from config.settings import config
from pieces.http import send_request

logger = logging.getLogger(__name__)

AirtableRecord = Dict[str, Any]


class AirtableTable(BaseModel):
    id: str
    name: Optional[str] = None


class AirtableTriggerProps(BaseModel):
    authentication: str = Field(..., min_length=1, description="Personal access token")
    base: str = Field(..., min_length=1, description="Base id (app…)")
    table: AirtableTable

    @field_validator("table", mode="before")
    @classmethod
    def _table_from_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"id": value}
        return value


async def get_table_snapshot(
    personal_token: str,
    base_id: str,
    table_id: str,
) -> List[AirtableRecord]:
    """
    Fetch every record of a table, following the ``offset`` cursor.

    Records are returned in the order Airtable lists them.
    """
    url = f"{config.airtable_api_base}/{base_id}/{table_id}"
    records: List[AirtableRecord] = []
    params: Dict[str, Any] = {}

    while True:
        page = await send_request("GET", url, personal_token, params=params or None)
        records.extend(page.get("records", []))
        offset = page.get("offset")
        if not offset:
            break
        params = {"offset": offset}

    logger.debug("Fetched %d records from %s/%s", len(records), base_id, table_id)
    return records


# ── Diffing ────────────────────────────────────────────────────────────


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality over JSON values.

    Unlike ``==`` this keeps booleans and numbers apart (``True != 1``).
    Dict key order is irrelevant; list order is significant.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (dict, list)) or isinstance(b, (dict, list)):
        return False
    return a == b


def find_new_records(
    current: List[AirtableRecord],
    previous: List[AirtableRecord],
) -> List[AirtableRecord]:
    """Records of ``current`` with no structurally-equal match in ``previous``, in order."""
    return [
        record for record in current
        if not any(deep_equal(record, old) for old in previous)
    ]


class SnapshotDiff(BaseModel):
    created: List[AirtableRecord] = Field(default_factory=list)
    updated: List[AirtableRecord] = Field(default_factory=list)


def diff_snapshots(
    previous: List[AirtableRecord],
    current: List[AirtableRecord],
) -> SnapshotDiff:
    """
    Compare two snapshots by Airtable record id.

    ``created`` holds ids unseen before; ``updated`` holds known ids whose
    ``fields`` changed.  Both keep the order of ``current``.
    """
    previous_by_id = {r.get("id"): r for r in previous}
    diff = SnapshotDiff()
    for record in current:
        old = previous_by_id.get(record.get("id"))
        if old is None:
            diff.created.append(record)
        elif not deep_equal(record.get("fields", {}), old.get("fields", {})):
            diff.updated.append(record)
    return diff
