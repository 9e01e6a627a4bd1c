"""
Session management for the tenant console.

The SessionStore owns the single credential, credential stores persist it, and
the SessionGuard ends the session when the API stops accepting it.
"""

from .credential_store import (
    AbstractCredentialStore,
    InMemoryCredentialStore,
    SQLiteCredentialStore,
    RedisCredentialStore,
    build_credential_store,
)
from .session_store import SessionStore
from .guard import SessionGuard

__all__ = [
    "AbstractCredentialStore",
    "InMemoryCredentialStore",
    "SQLiteCredentialStore",
    "RedisCredentialStore",
    "build_credential_store",
    "SessionStore",
    "SessionGuard",
]
