"""
Global test configuration and fixtures for websessions

This module provides shared fixtures: a temporary SQLite database, session
stores bound to it, request contexts and an HTTP test client.
"""

import os
import tempfile

import pytest
from fastapi.testclient import TestClient

from websessions.core.config import Settings
from websessions.db.session import create_db_engine
from websessions.main import create_app
from websessions.stores.memory import MemoryStore
from websessions.stores.sql import SQLStore

from utils.helpers import build_context

HASH_KEY = b"test-hash-key-0123456789abcdef0123456789abcdef"
BLOCK_KEY = b"test-block-key-0123456789abcdef"
MAX_AGE = 3600


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def database_url():
    """Create a temporary SQLite database file for each test function"""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    yield f"sqlite:///{db_path}"

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture(scope="function")
def engine(database_url):
    engine = create_db_engine(database_url)
    yield engine
    engine.dispose()


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def key_pair():
    return (HASH_KEY, BLOCK_KEY)


@pytest.fixture(scope="function")
def sql_store(engine, key_pair):
    """SQL store on the temporary database"""
    return SQLStore(engine, "sessions", "/", MAX_AGE, key_pair)


@pytest.fixture(scope="function")
def memory_store(key_pair):
    return MemoryStore("/", MAX_AGE, key_pair)


@pytest.fixture(scope="function")
def context_factory():
    """Build request contexts carrying the given cookies"""
    return build_context


# ============================================================================
# Application Client Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_settings(database_url):
    """Settings for the test application"""
    return Settings(
        DATABASE_URL=database_url,
        SESSION_COOKIE_NAME="session",
        SESSION_MAX_AGE=MAX_AGE,
        SESSION_KEYS=[f"{HASH_KEY.decode()}:{BLOCK_KEY.decode()}"],
        LOG_JSON=False,
    )


@pytest.fixture(scope="function")
def client(test_settings):
    """Create FastAPI test client"""
    app = create_app(settings=test_settings)

    with TestClient(app) as test_client:
        yield test_client
