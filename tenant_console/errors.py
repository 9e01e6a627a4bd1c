# tenant_console/errors.py
from typing import Optional


class ConsoleError(Exception):
    """Base class for every error raised by the console core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthInvalidError(ConsoleError):
    """Raised when the API rejects, or never received, a valid credential.

    By the time a caller sees this error the Session Guard has already cleared
    the credential and moved the console to the unauthenticated state. Callers
    must treat it as "session ended", never as a form error.
    """

    def __init__(self, message: str = "Session expired. Please login again."):
        super().__init__(message)


class ValidationError(ConsoleError):
    """Raised when an action payload fails local pre-submission checks.

    Nothing is sent over the network when this is raised.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RequestFailedError(ConsoleError):
    """Raised for network failures and server-reported errors other than auth.

    Carries the server-provided message so it can be shown as is.
    """

    def __init__(self, message: str, status_class: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_class = status_class
        self.status_code = status_code


class BusyError(ConsoleError):
    """Raised when a mutating action is already in flight for the same tenant."""

    def __init__(self, tenant_id: int, kind: str):
        super().__init__(
            f"An action ({kind}) is already in progress for tenant {tenant_id}."
        )
        self.tenant_id = tenant_id
        self.kind = kind
