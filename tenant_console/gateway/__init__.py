"""
API gateway: the one place requests to the admin API are made.
"""

from .models import ApiError, ApiResult, StatusClass
from .client import AdminApiClient, classify_failure

__all__ = [
    "ApiError",
    "ApiResult",
    "StatusClass",
    "AdminApiClient",
    "classify_failure",
]
