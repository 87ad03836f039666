"""
SQLAlchemy ORM models for trigger instances and their key/value stores.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JsonValue = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class TriggerInstance(Base):
    __tablename__ = "trigger_instances"

    instance_id = Column(String(36), primary_key=True, default=_new_id)
    piece = Column(String(64), nullable=False)
    trigger = Column(String(64), nullable=False)
    props = Column(Text, nullable=False)  # encrypted JSON (see pieces.encryption)
    status = Column(String(16), nullable=False, default="enabled")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    error_message = Column(Text)


class StoreEntry(Base):
    __tablename__ = "store_entries"
    __table_args__ = (UniqueConstraint("instance_id", "key", name="uq_store_entries_instance_key"),)

    entry_id = Column(String(36), primary_key=True, default=_new_id)
    instance_id = Column(
        String(36),
        ForeignKey("trigger_instances.instance_id", ondelete="CASCADE"),
        nullable=False,
    )
    key = Column(String(128), nullable=False)
    value = Column(JsonValue, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
