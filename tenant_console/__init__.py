"""
Client-side core of the multi-tenant admin console.
"""

from .console import AdminConsole
from .errors import (
    AuthInvalidError,
    BusyError,
    ConsoleError,
    RequestFailedError,
    ValidationError,
)

__all__ = [
    "AdminConsole",
    "AuthInvalidError",
    "BusyError",
    "ConsoleError",
    "RequestFailedError",
    "ValidationError",
]
