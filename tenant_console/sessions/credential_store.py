# tenant_console/sessions/credential_store.py
import sqlite3
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..settings import settings as console_settings
from ..storage.sqlite_base import close_sqlite_db_connection, get_sqlite_db_connection
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


class AbstractCredentialStore(ABC):
    """
    Abstract base class for persisting the single session credential.

    Implementations store exactly one opaque value per storage key. Only the
    SessionStore talks to a credential store.
    """

    def __init__(self, storage_key: Optional[str] = None, encryption_key: Optional[str] = None):
        self.storage_key = storage_key or console_settings.credential_key
        self._encryptor = FernetEncryptor(encryption_key)
        if encryption_key and not self._encryptor.key_valid:
            logger.warning(
                f"{type(self).__name__}: encryption key is invalid; "
                "the credential will be stored unencrypted."
            )

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend for use."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Release backend resources."""
        pass

    @abstractmethod
    async def _read_raw(self) -> Optional[str]:
        pass

    @abstractmethod
    async def _write_raw(self, value: str) -> None:
        pass

    @abstractmethod
    async def delete(self) -> None:
        """Remove the persisted credential, if any."""
        pass

    def _encode(self, credential: str) -> str:
        if self._encryptor.key_valid:
            encrypted = self._encryptor.encrypt(credential)
            if encrypted is not None:
                return encrypted
        return credential

    def _decode(self, raw: str) -> Optional[str]:
        if self._encryptor.key_valid:
            return self._encryptor.decrypt(raw)
        return raw

    async def load(self) -> Optional[str]:
        """Return the persisted credential, or None when absent or unreadable."""
        raw = await self._read_raw()
        if raw is None:
            return None
        credential = self._decode(raw)
        if credential is None:
            logger.warning(
                f"Stored credential under '{self.storage_key}' could not be decrypted; treating as absent."
            )
        return credential

    async def save(self, credential: str) -> None:
        """Persist the credential, replacing any previous value."""
        await self._write_raw(self._encode(credential))


class InMemoryCredentialStore(AbstractCredentialStore):
    """Process-local credential store; nothing survives a restart."""

    def __init__(self, storage_key: Optional[str] = None, encryption_key: Optional[str] = None):
        super().__init__(storage_key, encryption_key)
        self._values: Dict[str, str] = {}

    async def initialize(self) -> None:
        pass

    async def teardown(self) -> None:
        pass

    async def _read_raw(self) -> Optional[str]:
        return self._values.get(self.storage_key)

    async def _write_raw(self, value: str) -> None:
        self._values[self.storage_key] = value

    async def delete(self) -> None:
        self._values.pop(self.storage_key, None)


class SQLiteCredentialStore(AbstractCredentialStore):
    """SQLite implementation keeping the credential in `console_credentials`."""

    def __init__(
        self,
        storage_key: Optional[str] = None,
        encryption_key: Optional[str] = None,
        db_path: Optional[str] = None,
    ):
        super().__init__(storage_key, encryption_key)
        self.db_path = db_path

    async def initialize(self) -> None:
        await get_sqlite_db_connection(self.db_path)
        logger.info("SQLiteCredentialStore initialized (table ensured by sqlite_base).")

    async def teardown(self) -> None:
        await close_sqlite_db_connection(self.db_path or console_settings.sqlite_db_path)
        logger.info("SQLiteCredentialStore teardown complete.")

    async def _execute_query(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = await get_sqlite_db_connection(self.db_path)
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query}': {e}", exc_info=True)
            conn.rollback()
            raise
        return cursor

    async def _read_raw(self) -> Optional[str]:
        conn = await get_sqlite_db_connection(self.db_path)
        cursor = conn.cursor()
        cursor.execute(
            "SELECT credential_value FROM console_credentials WHERE storage_key = ?",
            (self.storage_key,),
        )
        row = cursor.fetchone()
        return row["credential_value"] if row else None

    async def _write_raw(self, value: str) -> None:
        query = '''
            INSERT INTO console_credentials (storage_key, credential_value, stored_at)
            VALUES (?, ?, ?)
            ON CONFLICT(storage_key) DO UPDATE SET
                credential_value=excluded.credential_value,
                stored_at=excluded.stored_at
        '''
        await self._execute_query(
            query, (self.storage_key, value, datetime.now(timezone.utc).isoformat())
        )
        logger.debug(f"Saved credential under key '{self.storage_key}'.")

    async def delete(self) -> None:
        await self._execute_query(
            "DELETE FROM console_credentials WHERE storage_key = ?", (self.storage_key,)
        )
        logger.debug(f"Deleted credential under key '{self.storage_key}'.")


class RedisCredentialStore(AbstractCredentialStore):
    """Redis implementation; the credential lives under `console:credential:<key>`."""

    def __init__(
        self,
        storage_key: Optional[str] = None,
        encryption_key: Optional[str] = None,
        redis_client: Optional[aioredis.Redis] = None,
    ):
        super().__init__(storage_key, encryption_key)
        self._redis_client = redis_client

    @property
    def redis_key(self) -> str:
        return f"console:credential:{self.storage_key}"

    async def initialize(self) -> None:
        if self._redis_client:
            return

        connection_params = {
            "host": console_settings.redis_host,
            "port": console_settings.redis_port,
            "db": console_settings.redis_db,
            "decode_responses": False,
        }
        if console_settings.redis_password:
            connection_params["password"] = console_settings.redis_password

        logger.info(
            f"Connecting to Redis at {connection_params['host']}:"
            f"{connection_params['port']}, DB: {connection_params['db']}"
        )
        try:
            self._redis_client = aioredis.Redis(**connection_params)
            await self._redis_client.ping()
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}", exc_info=True)
            self._redis_client = None
            raise

    async def teardown(self) -> None:
        if self._redis_client:
            logger.info("Closing Redis connection.")
            await self._redis_client.close()
            self._redis_client = None

    def _get_client(self) -> aioredis.Redis:
        if not self._redis_client:
            raise RuntimeError("RedisCredentialStore not initialized. Call initialize() first.")
        return self._redis_client

    async def _read_raw(self) -> Optional[str]:
        value = await self._get_client().get(self.redis_key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def _write_raw(self, value: str) -> None:
        await self._get_client().set(self.redis_key, value.encode("utf-8"))

    async def delete(self) -> None:
        await self._get_client().delete(self.redis_key)


def build_credential_store(backend: Optional[str] = None) -> AbstractCredentialStore:
    """Create the credential store selected by `storage_backend`."""
    backend = (backend or console_settings.storage_backend).lower()
    encryption_key = console_settings.console_encryption_key
    if backend == "sqlite":
        return SQLiteCredentialStore(encryption_key=encryption_key)
    if backend == "redis":
        return RedisCredentialStore(encryption_key=encryption_key)
    if backend == "memory":
        return InMemoryCredentialStore(encryption_key=encryption_key)
    raise ValueError(f"Unsupported storage backend: '{backend}'")
