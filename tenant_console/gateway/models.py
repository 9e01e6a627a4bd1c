# tenant_console/gateway/models.py
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class StatusClass(str, Enum):
    """Classification of a failed request."""
    AUTH_INVALID = "auth_invalid"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


class ApiError(BaseModel):
    """Uniform description of a failed request."""

    status_class: StatusClass
    message: str
    status_code: Optional[int] = Field(
        default=None,
        description="HTTP status code, absent for transport failures."
    )

    @property
    def is_auth_invalid(self) -> bool:
        return self.status_class == StatusClass.AUTH_INVALID


class ApiResult(BaseModel):
    """Outcome of one gateway round trip: either `data` or `error` is set."""

    action: str
    data: Any = None
    error: Optional[ApiError] = None
    session_generation: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, action: str, data: Any, session_generation: int = 0) -> "ApiResult":
        return cls(action=action, data=data, session_generation=session_generation)

    @classmethod
    def failure(cls, action: str, error: ApiError, session_generation: int = 0) -> "ApiResult":
        return cls(action=action, error=error, session_generation=session_generation)
