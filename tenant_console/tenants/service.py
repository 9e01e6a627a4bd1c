# tenant_console/tenants/service.py
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from .models import (
    AdminProfile,
    Query,
    Statistics,
    TenantDetail,
    TenantPage,
)
from ..errors import RequestFailedError
from ..gateway.client import AdminApiClient
from ..gateway.models import StatusClass
from ..sessions.guard import SessionGuard

logger = logging.getLogger(__name__)


def _unwrap_envelope(data: Any, key: str) -> Dict[str, Any]:
    """Accept both `{key: {...}}` and the bare object."""
    if isinstance(data, dict) and isinstance(data.get(key), dict):
        return data[key]
    return data if isinstance(data, dict) else {}


class TenantAdminApi:
    """
    Typed access to the admin API endpoints.

    Every call goes through the AdminApiClient and then the SessionGuard, so
    auth failures end the session no matter which component issued them.
    """

    def __init__(self, client: AdminApiClient, guard: SessionGuard):
        self.client = client
        self.guard = guard

    async def _call(
        self,
        action: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        result = await self.client.request(action, method=method, params=params, body=body)
        return await self.guard.unwrap(result)

    def _parse(self, model: type, payload: Dict[str, Any], action: str) -> Any:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(f"Service: Unexpected '{action}' payload shape: {e}")
            raise RequestFailedError(
                "Server returned an invalid response. Please try again.",
                status_class=StatusClass.SERVER_ERROR.value,
            ) from e

    async def login(self, username: str, password: str) -> Tuple[str, AdminProfile]:
        """Exchange credentials for a session token."""
        logger.info(f"Service: Logging in as '{username}'")
        data = await self._call("login", "POST", body={"username": username, "password": password})
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise RequestFailedError(
                "Login response did not include a session token.",
                status_class=StatusClass.SERVER_ERROR.value,
            )
        admin = data.get("admin") or {}
        return token, self._parse(AdminProfile, admin, "login")

    async def list_tenants(self, query: Query) -> TenantPage:
        data = await self._call("tenants", params=query.to_params())
        data = data if isinstance(data, dict) else {}
        page_info = {
            "page": data.get("page") or query.page,
            "total_pages": data.get("pages") or 1,
            "total_count": data.get("total") or 0,
        }
        return self._parse(
            TenantPage,
            {"tenants": data.get("tenants") or [], "page_info": page_info},
            "tenants",
        )

    async def get_statistics(self) -> Statistics:
        data = await self._call("dashboard")
        return self._parse(Statistics, _unwrap_envelope(data, "stats"), "dashboard")

    async def get_tenant(self, tenant_id: int) -> TenantDetail:
        data = await self._call("tenant", params={"id": tenant_id})
        return self._parse(TenantDetail, _unwrap_envelope(data, "tenant"), "tenant")

    async def extend_trial(self, tenant_id: int, days: int) -> Any:
        logger.info(f"Service: Extending trial for tenant {tenant_id} by {days} days")
        return await self._call("extend-trial", "POST", body={"id": tenant_id, "days": days})

    async def suspend(self, tenant_id: int, reason: str) -> Any:
        logger.info(f"Service: Suspending tenant {tenant_id}")
        return await self._call("suspend", "POST", body={"id": tenant_id, "reason": reason})

    async def activate(self, tenant_id: int, plan: str) -> Any:
        logger.info(f"Service: Activating tenant {tenant_id} on plan '{plan}'")
        return await self._call("activate", "POST", body={"id": tenant_id, "plan": plan})

    async def update_tenant(self, tenant_id: int, changes: Dict[str, Any]) -> Any:
        logger.info(f"Service: Updating tenant {tenant_id} fields {sorted(changes)}")
        return await self._call("update", "POST", body={"id": tenant_id, **changes})
