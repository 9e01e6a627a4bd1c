# tenant_console/sessions/session_store.py
import logging
from typing import Optional

from .credential_store import AbstractCredentialStore
from ..utils.security import mask_credential

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Single owner of the session credential.

    The live credential is held here and nowhere else; the gateway reads it on
    every request through `get_credential()`. Persistence is delegated to an
    AbstractCredentialStore so the credential survives restarts.
    """

    def __init__(self, backend: AbstractCredentialStore):
        if not isinstance(backend, AbstractCredentialStore):
            raise TypeError("SessionStore requires an instance of AbstractCredentialStore.")
        self.backend = backend
        self._credential: Optional[str] = None
        # Bumped whenever the live credential changes
        self.generation = 0
        logger.info(f"SessionStore initialized with backend: {type(backend).__name__}")

    def get_credential(self) -> Optional[str]:
        return self._credential

    @property
    def has_credential(self) -> bool:
        return self._credential is not None

    async def set_credential(self, credential: str) -> None:
        """Replace the live credential and persist it."""
        if not credential:
            raise ValueError("Credential must be a non-empty string.")
        self._credential = credential
        self.generation += 1
        await self.backend.save(credential)
        logger.info(f"Session credential set ({mask_credential(credential)}).")

    def drop(self) -> bool:
        """Forget the live credential without touching persistence.

        Returns True when a credential was live.
        """
        had_credential = self._credential is not None
        self._credential = None
        if had_credential:
            self.generation += 1
        return had_credential

    async def clear(self) -> None:
        """Destroy the session: forget the live credential, then the persisted one."""
        self.drop()
        await self.backend.delete()
        logger.info("Session credential cleared.")

    async def restore(self) -> Optional[str]:
        """Load a previously persisted credential into the live slot."""
        credential = await self.backend.load()
        self._credential = credential or None
        self.generation += 1
        if self._credential:
            logger.info(f"Restored persisted session credential ({mask_credential(self._credential)}).")
        else:
            logger.debug("No persisted session credential to restore.")
        return self._credential
