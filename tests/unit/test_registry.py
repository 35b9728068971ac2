"""
Unit tests for the in-memory session registry.
"""

import re
import time
from unittest.mock import AsyncMock

import pytest

from pairing_api.sessions.models import SessionStatus
from pairing_api.sessions.registry import SessionRegistry


class TestSessionIds:
    """Tests for session id generation."""

    def test_id_format(self, registry):
        session_id = registry.generate_id()

        assert re.fullmatch(r"[a-z0-9]{16}", session_id)

    def test_ids_unique(self, registry):
        ids = {registry.generate_id() for _ in range(200)}

        assert len(ids) == 200

    def test_regenerates_on_collision(self, registry, monkeypatch):
        registry.create("15551234567", session_id="aaaaaaaabbbbbbbb")
        chunks = iter(["aaaaaaaa", "bbbbbbbb", "cccccccc", "dddddddd"])
        monkeypatch.setattr(
            "pairing_api.sessions.registry._random_chunk", lambda: next(chunks)
        )

        assert registry.generate_id() == "ccccccccdddddddd"


class TestSessionLifecycle:
    """Tests for create, update and remove."""

    def test_create_pending_session(self, registry, auth_root):
        session = registry.create("15551234567", client="client")

        assert session.status == SessionStatus.PENDING
        assert session.session is None
        assert session.phone == "15551234567"
        assert session.auth_dir == auth_root / session.session_id
        assert session.session_id in registry
        assert len(registry) == 1

    def test_make_auth_dir(self, registry):
        path = registry.make_auth_dir("abc123")

        assert path.is_dir()
        assert path.name == "abc123"

    def test_update_replaces_entry(self, registry):
        session = registry.create("15551234567")

        updated = registry.update(session.session_id, status=SessionStatus.CONNECTED, session="s")

        assert updated.status == SessionStatus.CONNECTED
        assert registry.get(session.session_id).session == "s"
        # Entries are immutable snapshots.
        assert session.status == SessionStatus.PENDING

    def test_update_missing_session(self, registry):
        assert registry.update("missing", status=SessionStatus.FAILED) is None

    def test_mark_failed(self, registry):
        session = registry.create("15551234567")

        assert registry.mark_failed(session.session_id).status == SessionStatus.FAILED

    def test_mark_failed_keeps_connected(self, registry):
        session = registry.create("15551234567")
        registry.update(session.session_id, status=SessionStatus.CONNECTED)

        assert registry.mark_failed(session.session_id).status == SessionStatus.CONNECTED

    def test_remove_purges_auth_dir(self, registry):
        session = registry.create("15551234567")
        registry.make_auth_dir(session.session_id)
        (session.auth_dir / "creds.json").write_text("{}")

        removed = registry.remove(session.session_id)

        assert removed.session_id == session.session_id
        assert session.session_id not in registry
        assert not session.auth_dir.exists()

    def test_remove_unknown_session(self, registry):
        assert registry.remove("unknown") is None


class TestExpiry:
    """Tests for expiry and the cleanup sweep."""

    def test_expired_after_ttl(self, registry):
        now = time.time()
        old = registry.create("15551234567", created=now - 601)
        registry.create("15551234568", created=now - 599)

        assert [s.session_id for s in registry.expired(now)] == [old.session_id]

    def test_is_expired_boundary(self, registry):
        session = registry.create("15551234567", created=1000.0)

        assert session.is_expired(1600.0, 600) is False
        assert session.is_expired(1600.5, 600) is True

    async def test_sweep_tears_down_expired(self, registry):
        now = time.time()
        client = AsyncMock()
        old = registry.create("15551234567", client=client, created=now - 700)
        registry.make_auth_dir(old.session_id)
        fresh = registry.create("15551234568", created=now)

        removed = await registry.sweep(now)

        assert removed == [old.session_id]
        client.close.assert_awaited_once()
        assert old.session_id not in registry
        assert fresh.session_id in registry
        assert not old.auth_dir.exists()

    async def test_sweep_survives_close_errors(self, registry):
        now = time.time()
        client = AsyncMock()
        client.close.side_effect = RuntimeError("socket already closed")
        old = registry.create("15551234567", client=client, created=now - 700)

        removed = await registry.sweep(now)

        assert removed == [old.session_id]
        assert len(registry) == 0

    async def test_sweep_nothing_expired(self, registry):
        registry.create("15551234567")

        assert await registry.sweep() == []
        assert len(registry) == 1

    async def test_close_all(self, registry):
        clients = [AsyncMock(), AsyncMock()]
        for index, client in enumerate(clients):
            registry.create(f"155512345{index:02d}", client=client)

        closed = await registry.close_all()

        assert closed == 2
        assert len(registry) == 0
        for client in clients:
            client.close.assert_awaited_once()


def test_registry_uses_ttl(tmp_path):
    registry = SessionRegistry(tmp_path, ttl_seconds=5)
    session = registry.create("15551234567", created=time.time() - 10)

    assert registry.expired() == [registry.get(session.session_id)]


class TestRemoveOptions:
    """Tests for SessionRegistry.remove keyword options."""

    def test_keep_files(self, registry):
        session = registry.create("15551234567")
        registry.make_auth_dir(session.session_id)

        registry.remove(session.session_id, purge_files=False)

        assert session.session_id not in registry
        assert session.auth_dir.is_dir()

    def test_purge_files_is_keyword_only(self, registry):
        session = registry.create("15551234567")

        with pytest.raises(TypeError):
            registry.remove(session.session_id, False)

        assert session.session_id in registry
