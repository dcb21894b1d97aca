"""Pytest configuration and fixtures."""
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from app.db.mongodb import DELIVERY_AGENTS, KITCHENS, MACHINES, MongoDB
from factories import make_agent, make_kitchen, make_machine


@pytest_asyncio.fixture
async def db():
    """In-memory store wired into the shared connection manager."""
    client = AsyncMongoMockClient()
    MongoDB.client = client
    MongoDB.db = client["tea_refill_dispatch_test"]
    yield MongoDB.db
    MongoDB.client = None
    MongoDB.db = None


@pytest_asyncio.fixture
async def seeded(db):
    """Machine M001 mapped to online kitchen K1 at 1 km, agents A1 at 1.5 km and A2 at 2.5 km."""
    await db[MACHINES].insert_one(make_machine())
    await db[KITCHENS].insert_one(make_kitchen("K1", km=1.0))
    await db[DELIVERY_AGENTS].insert_many([make_agent("A1", km=1.5), make_agent("A2", km=2.5)])
    return db


@pytest_asyncio.fixture
async def async_client(db) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    from app.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client
