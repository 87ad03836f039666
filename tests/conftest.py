"""Pytest configuration shared by all tests."""

import os

# Settings are read at import time: point them at test values first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["WEBHOOK_BASE_URL"] = "https://hooks.example.test"
os.environ["API_KEY"] = ""
os.environ["TOKEN_ENCRYPTION_KEY"] = ""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database.models import Base
from pieces import encryption
from pieces.registry import PieceRegistry


@pytest.fixture(autouse=True)
def _fresh_singletons():
    PieceRegistry.reset()
    encryption.reset()
    yield
    PieceRegistry.reset()
    encryption.reset()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory SQLite database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
