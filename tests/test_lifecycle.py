"""
Tests for DatabaseLifecycle (initialize, reinitialize, hard reset, health).
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

import training_history.lifecycle as lifecycle_module
from training_history.config import BACKUP_KEY
from training_history.errors import BackupRestoreError, HandleUnavailableError, SchemaError
from training_history.lifecycle import DatabaseLifecycle, LifecycleState
from training_history.persistence import SessionStore, run_atomic


class TestInitialize:

    async def test_starts_closed(self, db_path, mirror):
        lc = DatabaseLifecycle(db_path, mirror)
        assert lc.state is LifecycleState.CLOSED
        assert lc.is_ready is False

    async def test_initialize_reaches_ready(self, lifecycle, db_path):
        assert lifecycle.state is LifecycleState.READY
        assert db_path.exists()
        conn = await lifecycle.acquire()
        assert await SessionStore.count(conn) == 0

    async def test_initialize_when_ready_is_noop(self, lifecycle):
        conn = await lifecycle.acquire()
        await lifecycle.initialize()
        assert await lifecycle.acquire() is conn

    async def test_acquire_initializes_lazily(self, db_path, mirror):
        lc = DatabaseLifecycle(db_path, mirror)
        try:
            conn = await lc.acquire()
            assert conn is not None
            assert lc.state is LifecycleState.READY
        finally:
            await lc.close()

    async def test_concurrent_initialize_opens_one_handle(self, db_path, mirror, monkeypatch):
        real_open = lifecycle_module.open_connection
        calls = []
        states = []

        async def slow_open(path):
            calls.append(path)
            await asyncio.sleep(0.05)
            return await real_open(path)

        monkeypatch.setattr(lifecycle_module, "open_connection", slow_open)
        lc = DatabaseLifecycle(db_path, mirror)

        async def init_and_record():
            await lc.initialize()
            states.append(lc.state)

        try:
            await asyncio.gather(*(init_and_record() for _ in range(5)))
            assert len(calls) == 1
            assert states == [LifecycleState.READY] * 5
        finally:
            await lc.close()

    async def test_concurrent_acquire_shares_handle(self, db_path, mirror):
        lc = DatabaseLifecycle(db_path, mirror)
        try:
            handles = await asyncio.gather(*(lc.acquire() for _ in range(4)))
            assert all(h is handles[0] for h in handles)
        finally:
            await lc.close()

    async def test_schema_failure_leaves_handle_unset(self, db_path, mirror, monkeypatch):
        monkeypatch.setattr(
            lifecycle_module, "ensure_schema",
            AsyncMock(side_effect=SchemaError("no space")),
        )
        lc = DatabaseLifecycle(db_path, mirror)

        with pytest.raises(SchemaError):
            await lc.initialize()

        assert lc.state is LifecycleState.CLOSED
        assert lc.is_ready is False

    async def test_acquire_after_failed_initialize(self, db_path, mirror, monkeypatch):
        monkeypatch.setattr(
            lifecycle_module, "ensure_schema",
            AsyncMock(side_effect=SchemaError("no space")),
        )
        lc = DatabaseLifecycle(db_path, mirror)

        with pytest.raises(HandleUnavailableError) as exc_info:
            await lc.acquire()
        assert isinstance(exc_info.value.__cause__, SchemaError)

    async def test_waiters_see_the_same_failure(self, db_path, mirror, monkeypatch):
        async def failing_schema(conn):
            await asyncio.sleep(0.02)
            raise SchemaError("broken")

        monkeypatch.setattr(lifecycle_module, "ensure_schema", failing_schema)
        lc = DatabaseLifecycle(db_path, mirror)

        results = await asyncio.gather(lc.initialize(), lc.initialize(), return_exceptions=True)

        assert all(isinstance(r, SchemaError) for r in results)
        assert lc.state is LifecycleState.CLOSED

    async def test_restore_failure_is_not_fatal(self, db_path, kv_store, mirror):
        await kv_store.set(BACKUP_KEY, "garbage")
        lc = DatabaseLifecycle(db_path, mirror)
        try:
            await lc.initialize()
            assert lc.state is LifecycleState.READY
        finally:
            await lc.close()

    async def test_startup_restores_from_backup(self, db_path, mirror, service, lifecycle, make_session):
        session = make_session("s1")
        await service.save_session(session)
        await lifecycle.close()
        for suffix in ("", "-wal", "-shm"):
            db_path.with_name(db_path.name + suffix).unlink(missing_ok=True)

        fresh = DatabaseLifecycle(db_path, mirror)
        try:
            conn = await fresh.acquire()
            assert await SessionStore.get(conn, "s1") == session
        finally:
            await fresh.close()


class TestReinitialize:

    async def test_reinitialize_replaces_handle(self, lifecycle, make_session):
        conn = await lifecycle.acquire()
        await run_atomic(conn, lambda c: SessionStore.insert(c, make_session("s1")))

        await lifecycle.reinitialize()

        new_conn = await lifecycle.acquire()
        assert new_conn is not conn
        assert lifecycle.state is LifecycleState.READY
        assert await SessionStore.get(new_conn, "s1") is not None

    async def test_close(self, lifecycle):
        await lifecycle.close()
        assert lifecycle.state is LifecycleState.CLOSED
        assert lifecycle.is_ready is False


class TestResetHard:

    async def test_reset_destroys_data_and_backup(self, lifecycle, service, kv_store, make_session):
        await service.save_session(make_session("s1"))
        assert await kv_store.get(BACKUP_KEY) is not None

        await lifecycle.reset_hard()

        assert lifecycle.state is LifecycleState.READY
        assert await kv_store.get(BACKUP_KEY) is None
        assert await service.get_session("s1") is None

    async def test_reset_stops_when_backup_cannot_be_deleted(
            self, db_path, lifecycle, service, kv_store, make_session, monkeypatch):
        await service.save_session(make_session("s1"))
        monkeypatch.setattr(kv_store, "remove", AsyncMock(side_effect=OSError("read-only file system")))

        with pytest.raises(BackupRestoreError):
            await lifecycle.reset_hard()

        assert db_path.exists()
        assert await kv_store.get(BACKUP_KEY) is not None


class TestCheckHealthy:

    async def test_healthy_when_ready(self, lifecycle):
        assert await lifecycle.check_healthy() is True

    async def test_unhealthy_after_handle_closed(self, lifecycle):
        conn = await lifecycle.acquire()
        await conn.close()
        assert await lifecycle.check_healthy() is False

    async def test_unhealthy_when_initialize_fails(self, db_path, mirror, monkeypatch):
        monkeypatch.setattr(
            lifecycle_module, "open_connection",
            AsyncMock(side_effect=OSError("read-only file system")),
        )
        lc = DatabaseLifecycle(db_path, mirror)
        assert await lc.check_healthy() is False


class TestRecover:

    async def test_reinitialize_is_tried_first(self, lifecycle, service, make_session):
        await service.save_session(make_session("s1"))
        conn = await lifecycle.acquire()
        await conn.close()

        await lifecycle.recover()

        assert await lifecycle.check_healthy() is True
        assert await service.get_session("s1") is not None

    async def test_falls_back_to_hard_reset(self, lifecycle, service, make_session, monkeypatch):
        await service.save_session(make_session("s1"))
        monkeypatch.setattr(lifecycle, "reinitialize", AsyncMock(side_effect=SchemaError("corrupt")))

        await lifecycle.recover()

        assert lifecycle.state is LifecycleState.READY
        assert await service.get_session("s1") is None

    async def test_raises_when_everything_fails(self, lifecycle, monkeypatch):
        monkeypatch.setattr(lifecycle, "reinitialize", AsyncMock(side_effect=SchemaError("corrupt")))
        monkeypatch.setattr(lifecycle, "reset_hard", AsyncMock(side_effect=OSError("no disk")))

        with pytest.raises(HandleUnavailableError) as exc_info:
            await lifecycle.recover()
        assert isinstance(exc_info.value.__cause__, OSError)
