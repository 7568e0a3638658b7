# tests/conftest.py
"""
Shared fixtures: an in-memory SQLite database, the concept registry built on
it and a sync engine loaded with the full rule set.
"""

import pytest

from concepts.registry import build_registry
from core.dispatcher import SyncEngine
from database.db_setup import get_engine, init_db, make_session_factory
from syncs.catalog import build_sync_rules


@pytest.fixture
def db_engine():
    engine = get_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def registry(session_factory):
    return build_registry(session_factory)


@pytest.fixture
def engine(registry):
    return SyncEngine(registry, build_sync_rules())


@pytest.fixture
def store_id(registry):
    return registry.invoke("Store", "create", {"name": "Corner Cafe", "address": "1 Main St"}).payload["storeId"]


@pytest.fixture
def user_id(registry):
    outcome = registry.invoke(
        "User", "register", {"username": "alice", "email": "alice@example.com", "password": "secret1"}
    )
    return outcome.payload["userId"]
