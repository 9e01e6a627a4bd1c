"""Tests for session storage, credential persistence and the session guard."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from tenant_console.errors import AuthInvalidError, RequestFailedError
from tenant_console.gateway.models import ApiError, ApiResult, StatusClass
from tenant_console.sessions.credential_store import (
    InMemoryCredentialStore,
    RedisCredentialStore,
    SQLiteCredentialStore,
    build_credential_store,
)
from tenant_console.sessions.guard import SessionGuard
from tenant_console.sessions.session_store import SessionStore
from tenant_console.storage import sqlite_base
from tenant_console.storage.sqlite_base import close_sqlite_db_connection
from tenant_console.utils.security import generate_fernet_key, mask_credential


class TestSessionStore:
    """Tests for SessionStore."""

    @pytest.mark.asyncio
    async def test_set_credential_persists_and_bumps_generation(self) -> None:
        backend = InMemoryCredentialStore()
        session = SessionStore(backend)

        await session.set_credential("token-abc")

        assert session.get_credential() == "token-abc"
        assert session.has_credential
        assert session.generation == 1
        assert await backend.load() == "token-abc"

    @pytest.mark.asyncio
    async def test_empty_credential_rejected(self) -> None:
        session = SessionStore(InMemoryCredentialStore())

        with pytest.raises(ValueError):
            await session.set_credential("")

    def test_requires_credential_store(self) -> None:
        with pytest.raises(TypeError):
            SessionStore(object())

    @pytest.mark.asyncio
    async def test_drop_keeps_persisted_value(self) -> None:
        backend = InMemoryCredentialStore()
        session = SessionStore(backend)
        await session.set_credential("token-abc")

        assert session.drop() is True
        assert session.drop() is False
        assert session.get_credential() is None
        assert session.generation == 2
        assert await backend.load() == "token-abc"

    @pytest.mark.asyncio
    async def test_clear_removes_persisted_value(self) -> None:
        backend = InMemoryCredentialStore()
        session = SessionStore(backend)
        await session.set_credential("token-abc")

        await session.clear()

        assert session.get_credential() is None
        assert await backend.load() is None

    @pytest.mark.asyncio
    async def test_restore_loads_persisted_credential(self) -> None:
        backend = InMemoryCredentialStore()
        await backend.save("token-from-last-run")
        session = SessionStore(backend)

        assert await session.restore() == "token-from-last-run"
        assert session.get_credential() == "token-from-last-run"


class TestCredentialStores:
    """Tests for the credential persistence backends."""

    @pytest.mark.asyncio
    async def test_sqlite_round_trip(self, tmp_path) -> None:
        db_path = str(tmp_path / "console.sqlite3")
        store = SQLiteCredentialStore(storage_key="ws_gadmin_token", db_path=db_path)
        await store.initialize()
        try:
            assert await store.load() is None
            await store.save("token-1")
            await store.save("token-2")
            assert await store.load() == "token-2"

            await store.delete()
            assert await store.load() is None
        finally:
            await store.teardown()
            await close_sqlite_db_connection(db_path)

    @pytest.mark.asyncio
    async def test_sqlite_teardown_closes_connection(self, tmp_path) -> None:
        db_path = str(tmp_path / "console.sqlite3")
        store = SQLiteCredentialStore(db_path=db_path)
        await store.initialize()
        await store.save("token-1")

        await store.teardown()

        assert str(Path(db_path).resolve()) not in sqlite_base._db_connections
        # Next use reopens the same file
        await store.initialize()
        try:
            assert await store.load() == "token-1"
        finally:
            await store.teardown()

    @pytest.mark.asyncio
    async def test_sqlite_survives_new_store_instance(self, tmp_path) -> None:
        db_path = str(tmp_path / "console.sqlite3")
        try:
            first = SQLiteCredentialStore(db_path=db_path)
            await first.initialize()
            await first.save("token-persisted")

            second = SQLiteCredentialStore(db_path=db_path)
            await second.initialize()
            assert await second.load() == "token-persisted"
        finally:
            await close_sqlite_db_connection(db_path)

    @pytest.mark.asyncio
    async def test_encrypted_at_rest(self) -> None:
        store = InMemoryCredentialStore(encryption_key=generate_fernet_key())

        await store.save("token-secret")

        assert await store._read_raw() != "token-secret"
        assert await store.load() == "token-secret"

    @pytest.mark.asyncio
    async def test_undecryptable_value_is_absent(self) -> None:
        store = InMemoryCredentialStore(encryption_key=generate_fernet_key())
        await store.save("token-secret")
        store._encryptor = InMemoryCredentialStore(encryption_key=generate_fernet_key())._encryptor

        assert await store.load() is None

    @pytest.mark.asyncio
    async def test_invalid_key_stores_plain_value(self) -> None:
        store = InMemoryCredentialStore(encryption_key="not-a-fernet-key")

        await store.save("token-plain")

        assert await store._read_raw() == "token-plain"
        assert await store.load() == "token-plain"

    @pytest.mark.asyncio
    async def test_redis_store_uses_namespaced_key(self) -> None:
        redis_client = AsyncMock()
        redis_client.get.return_value = b"token-redis"
        store = RedisCredentialStore(storage_key="ws_gadmin_token", redis_client=redis_client)
        await store.initialize()

        await store.save("token-redis")
        loaded = await store.load()
        await store.delete()

        redis_client.set.assert_awaited_once_with("console:credential:ws_gadmin_token", b"token-redis")
        redis_client.get.assert_awaited_once_with("console:credential:ws_gadmin_token")
        redis_client.delete.assert_awaited_once_with("console:credential:ws_gadmin_token")
        assert loaded == "token-redis"

    @pytest.mark.asyncio
    async def test_redis_store_requires_initialize(self) -> None:
        store = RedisCredentialStore()

        with pytest.raises(RuntimeError):
            await store.load()

    def test_build_credential_store(self) -> None:
        assert isinstance(build_credential_store("memory"), InMemoryCredentialStore)
        assert isinstance(build_credential_store("SQLite"), SQLiteCredentialStore)
        assert isinstance(build_credential_store("redis"), RedisCredentialStore)
        with pytest.raises(ValueError):
            build_credential_store("postgres")

    def test_mask_credential(self) -> None:
        assert mask_credential(None) == "None"
        assert mask_credential("short") == "********"
        assert mask_credential("token-0001-abcdef") == "toke...ef"


def auth_failure(generation: int) -> ApiResult:
    return ApiResult.failure(
        "tenants",
        ApiError(status_class=StatusClass.AUTH_INVALID, message="Unauthorized", status_code=401),
        generation,
    )


class TestSessionGuard:
    """Tests for SessionGuard.unwrap."""

    @pytest.mark.asyncio
    async def test_success_returns_data(self) -> None:
        guard = SessionGuard(SessionStore(InMemoryCredentialStore()))

        assert await guard.unwrap(ApiResult.success("dashboard", {"stats": {}})) == {"stats": {}}

    @pytest.mark.asyncio
    async def test_auth_invalid_ends_session_everywhere(self) -> None:
        backend = InMemoryCredentialStore()
        session = SessionStore(backend)
        await session.set_credential("token-abc")
        guard = SessionGuard(session)
        observed = []
        guard.add_listener(lambda: observed.append(session.get_credential()))

        with pytest.raises(AuthInvalidError):
            await guard.unwrap(auth_failure(session.generation))

        # Listeners already see the live credential gone
        assert observed == [None]
        assert await backend.load() is None

    @pytest.mark.asyncio
    async def test_auth_failure_from_replaced_session_is_ignored(self) -> None:
        backend = InMemoryCredentialStore()
        session = SessionStore(backend)
        await session.set_credential("token-old")
        old_generation = session.generation
        await session.set_credential("token-new")
        guard = SessionGuard(session)
        listener_calls = []
        guard.add_listener(lambda: listener_calls.append(True))

        with pytest.raises(RequestFailedError) as exc_info:
            await guard.unwrap(auth_failure(old_generation))

        assert exc_info.value.status_class == "auth_invalid"
        assert session.get_credential() == "token-new"
        assert await backend.load() == "token-new"
        assert listener_calls == []

    @pytest.mark.asyncio
    async def test_removed_listener_not_called(self) -> None:
        session = SessionStore(InMemoryCredentialStore())
        await session.set_credential("token-abc")
        guard = SessionGuard(session)
        calls = []
        listener = lambda: calls.append(True)  # noqa: E731
        guard.add_listener(listener)
        guard.remove_listener(listener)

        with pytest.raises(AuthInvalidError):
            await guard.unwrap(auth_failure(session.generation))

        assert calls == []

    @pytest.mark.asyncio
    async def test_other_failures_raise_request_failed(self) -> None:
        session = SessionStore(InMemoryCredentialStore())
        await session.set_credential("token-abc")
        guard = SessionGuard(session)
        result = ApiResult.failure(
            "suspend",
            ApiError(status_class=StatusClass.CLIENT_ERROR, message="Already suspended", status_code=409),
            session.generation,
        )

        with pytest.raises(RequestFailedError) as exc_info:
            await guard.unwrap(result)

        assert exc_info.value.message == "Already suspended"
        assert exc_info.value.status_class == "client_error"
        assert exc_info.value.status_code == 409
        assert session.get_credential() == "token-abc"
