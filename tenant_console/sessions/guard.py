# tenant_console/sessions/guard.py
import logging
from typing import Any, Callable, List, Optional

from .session_store import SessionStore
from ..errors import AuthInvalidError, RequestFailedError
from ..gateway.models import ApiResult

logger = logging.getLogger(__name__)

UnauthenticatedListener = Callable[[], None]


class SessionGuard:
    """
    Inspects every gateway result for authentication failures.

    An auth-invalid result drops the live credential and notifies every
    listener synchronously, so the whole console is unauthenticated before the
    failing call returns. The persisted credential is deleted afterwards.
    """

    def __init__(self, session: SessionStore):
        self.session = session
        self._listeners: List[UnauthenticatedListener] = []

    def add_listener(self, listener: UnauthenticatedListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: UnauthenticatedListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_unauthenticated(self) -> None:
        for listener in list(self._listeners):
            listener()

    async def expire_session(self, reason: Optional[str] = None) -> None:
        """Terminate the session: clear state everywhere, then persistence."""
        logger.warning(f"Session invalidated by API: {reason or 'authentication invalid'}")
        self.session.drop()
        self.notify_unauthenticated()
        await self.session.backend.delete()

    async def unwrap(self, result: ApiResult) -> Any:
        """
        Return the result's data, or raise the matching console error.

        Raises:
            AuthInvalidError: after the session has been expired
            RequestFailedError: for every other failure, including an auth
                failure for a request sent under a session that has since
                been replaced; the live session is left alone
        """
        if result.ok:
            return result.data

        error = result.error
        if error.is_auth_invalid:
            if result.session_generation == self.session.generation:
                await self.expire_session(error.message)
                raise AuthInvalidError(error.message)
            # Sent under a credential that has since been replaced or cleared
            logger.info(f"Ignoring auth failure from a previous session (action={result.action}).")

        raise RequestFailedError(
            error.message,
            status_class=error.status_class.value,
            status_code=error.status_code,
        )
