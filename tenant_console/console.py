# tenant_console/console.py
import logging
from typing import Optional

import httpx

from .errors import AuthInvalidError, RequestFailedError
from .gateway.client import AdminApiClient
from .sessions.credential_store import AbstractCredentialStore, build_credential_store
from .sessions.guard import SessionGuard
from .sessions.session_store import SessionStore
from .tenants.action_orchestrator import ActionOrchestrator
from .tenants.detail import TenantDetailView
from .tenants.directory_state import DirectoryState
from .tenants.models import AdminProfile
from .tenants.query_coordinator import QueryCoordinator
from .tenants.service import TenantAdminApi

logger = logging.getLogger(__name__)


class AdminConsole:
    """
    Builds and owns every console component for one process.

    Use as an async context manager, or call `start()` and `aclose()`.
    """

    def __init__(
        self,
        credential_store: Optional[AbstractCredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_path: Optional[str] = None,
        debounce_seconds: Optional[float] = None,
    ):
        self.session = SessionStore(credential_store or build_credential_store())
        self.client = AdminApiClient(
            self.session, http_client=http_client, base_url=base_url, api_path=api_path
        )
        self.guard = SessionGuard(self.session)
        self.api = TenantAdminApi(self.client, self.guard)
        self.directory = DirectoryState()
        self.coordinator = QueryCoordinator(self.api, self.directory, debounce_seconds)
        self.actions = ActionOrchestrator(self.api, self.coordinator)
        self.detail = TenantDetailView(self.api, self.actions)
        self.admin: Optional[AdminProfile] = None
        self._started = False

        self.guard.add_listener(self._on_unauthenticated)

    @property
    def is_authenticated(self) -> bool:
        return self.session.has_credential and self.admin is not None

    async def __aenter__(self) -> "AdminConsole":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def start(self, load_directory: bool = True) -> bool:
        """
        Initialize persistence and resume a previous session if one was stored.

        The stored credential is validated with a statistics fetch; any failure
        discards it. Returns True when the console starts authenticated.
        """
        if not self._started:
            await self.session.backend.initialize()
            self._started = True

        credential = await self.session.restore()
        if not credential:
            return False

        try:
            await self.api.get_statistics()
        except AuthInvalidError:
            logger.info("Stored session was rejected by the API.")
            return False
        except RequestFailedError as e:
            logger.warning(f"Could not verify stored session ({e.message}); discarding it.")
            await self.session.clear()
            return False

        self.admin = AdminProfile()
        logger.info("Resumed stored session.")
        if load_directory:
            self.coordinator.refresh_all()
        return True

    async def login(self, username: str, password: str, load_directory: bool = True) -> AdminProfile:
        """
        Authenticate and store the new credential.

        Raises:
            RequestFailedError: wrong credentials or API failure
        """
        if not self._started:
            await self.session.backend.initialize()
            self._started = True

        token, admin = await self.api.login(username, password)
        self._reset_views()
        await self.session.set_credential(token)
        self.admin = admin
        logger.info(f"Logged in as '{admin.username}'.")
        if load_directory:
            self.coordinator.refresh_all()
        return admin

    async def logout(self) -> None:
        self.admin = None
        self._reset_views()
        await self.session.clear()
        logger.info("Logged out.")

    def _reset_views(self) -> None:
        self.coordinator.invalidate()
        self.detail.close()
        self.directory.reset()

    def _on_unauthenticated(self) -> None:
        self.admin = None
        self._reset_views()
        logger.info("Console is now unauthenticated.")

    async def aclose(self) -> None:
        await self.coordinator.drain()
        await self.client.aclose()
        if self._started:
            await self.session.backend.teardown()
            self._started = False
