"""
Pytest configuration and fixtures
"""

from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient
from tortoise import Tortoise

from fakes import MemoryStorage
from truthmeme.app import create_app
from truthmeme.config import Settings
from truthmeme.coordinator import RoomCoordinator
from truthmeme.registry import ConnectionRegistry


@asynccontextmanager
async def tortoise_db(path):
    """Initialise Tortoise against a fresh SQLite file for one test body."""
    await Tortoise.init(db_url=f"sqlite://{path}", modules={"models": ["truthmeme.models"]})
    await Tortoise.generate_schemas()
    try:
        yield
    finally:
        await Tortoise.close_connections()


@pytest.fixture
def orm(tmp_path):
    """Factory for an `async with` block backed by a real Tortoise database."""
    return lambda: tortoise_db(tmp_path / "test.db")


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def coordinator(memory_storage, registry):
    return RoomCoordinator(memory_storage, registry)


@pytest.fixture
async def players(memory_storage):
    """Three registered users: alice (1), bob (2) and carol (3)."""
    alice = await memory_storage.create_user("alice", "Alice")
    bob = await memory_storage.create_user("bob", "Bob")
    carol = await memory_storage.create_user("carol", "Carol")
    return alice, bob, carol


@pytest.fixture
def app(tmp_path):
    """Application wired to a throwaway SQLite database"""
    return create_app(Settings(DATABASE_URL=f"sqlite://{tmp_path / 'api.db'}"))


@pytest.fixture
def client(app):
    """Create test client"""
    with TestClient(app) as test_client:
        yield test_client
