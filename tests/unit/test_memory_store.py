"""
Unit tests for the in-process session store
"""

from datetime import timedelta

import pytest

from websessions.sessions import save
from websessions.stores.common import utcnow

from utils.helpers import build_context, next_request, response_cookies

# Mark all tests in this module as unit tests
pytestmark = pytest.mark.unit


class TestMemoryStore:
    """Test the same lifecycle as the SQL store, held in memory"""

    def test_round_trip(self, memory_store):
        ctx = build_context()
        session = memory_store.get(ctx, "auth")
        assert session.is_new is True

        session.values["uid"] = 42
        save(ctx)
        assert session.id

        loaded = memory_store.get(next_request(ctx), "auth")
        assert loaded.is_new is False
        assert loaded.values["uid"] == 42
        assert "expires_on" in loaded.values

    def test_stored_values_are_copies(self, memory_store):
        ctx = build_context()
        session = memory_store.get(ctx, "auth")
        session.values["roles"] = ["admin"]
        save(ctx)

        session.values["roles"].append("dev")

        loaded = memory_store.get(next_request(ctx), "auth")
        assert loaded.values["roles"] == ["admin"]

    def test_expired_entry_gives_new_session(self, memory_store):
        ctx = build_context()
        session = memory_store.get(ctx, "auth")
        session.values["expires_on"] = utcnow() - timedelta(seconds=1)
        save(ctx)

        loaded = memory_store.get(next_request(ctx), "auth")

        assert loaded.is_new is True
        assert loaded.values == {}
        assert memory_store.purge_expired() == 1
        assert len(memory_store) == 0

    def test_delete(self, memory_store):
        ctx = build_context()
        memory_store.get(ctx, "auth").values["uid"] = 1
        save(ctx)

        ctx2 = next_request(ctx)
        loaded = memory_store.get(ctx2, "auth")
        memory_store.delete(ctx2, loaded)

        assert loaded.values == {}
        assert response_cookies(ctx2)["auth"]["max-age"] == "-1"
        assert memory_store.get(next_request(ctx), "auth").is_new is True
