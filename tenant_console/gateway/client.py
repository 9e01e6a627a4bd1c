# tenant_console/gateway/client.py
import logging
from typing import Any, Dict, Optional

import httpx

from .models import ApiError, ApiResult, StatusClass
from ..sessions.session_store import SessionStore
from ..settings import settings

logger = logging.getLogger(__name__)

# Actions whose 401 means "wrong username/password", not a dead session
LOGIN_ACTIONS = frozenset({"login"})

# 403 bodies that still describe a missing or expired session
AUTH_MESSAGE_MARKERS = ("unauthorized", "expired", "invalid token")


def classify_failure(action: str, status_code: int, message: str) -> StatusClass:
    """Map a non-2xx response onto a StatusClass."""
    if action in LOGIN_ACTIONS:
        return StatusClass.SERVER_ERROR if status_code >= 500 else StatusClass.CLIENT_ERROR
    if status_code == 401:
        return StatusClass.AUTH_INVALID
    if status_code == 403 and any(marker in message.lower() for marker in AUTH_MESSAGE_MARKERS):
        return StatusClass.AUTH_INVALID
    if status_code >= 500:
        return StatusClass.SERVER_ERROR
    return StatusClass.CLIENT_ERROR


def _error_message(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error") or payload.get("detail")
        if isinstance(message, str) and message:
            return message
    return f"Request failed ({status_code})"


class AdminApiClient:
    """
    Single chokepoint for every request to the admin API.

    Attaches the session credential as a bearer token and turns every outcome
    into an ApiResult. HTTP and transport failures never raise from here; no
    retries are attempted.
    """

    def __init__(
        self,
        session: SessionStore,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_path: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.api_path = api_path or settings.console_api_path
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            base_url=base_url or settings.console_api_base_url,
            timeout=timeout or settings.request_timeout_seconds,
        )
        logger.info(f"AdminApiClient initialized for {self.http_client.base_url}{self.api_path}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        credential = self.session.get_credential()
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        return headers

    async def request(
        self,
        action: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> ApiResult:
        """Send one request for `action` and return its ApiResult."""
        query: Dict[str, Any] = {"action": action}
        if params:
            query.update({k: v for k, v in params.items() if v is not None})

        method = method.upper()
        generation = self.session.generation
        logger.debug(f"API Request: {method} {self.api_path} | Params: {query} | JSON: {body is not None}")

        try:
            response = await self.http_client.request(
                method, self.api_path, params=query, json=body, headers=self._headers()
            )
        except httpx.RequestError as e:
            logger.error(f"API RequestError: {method} action={action} - Error: {e}")
            return ApiResult.failure(action, ApiError(
                status_class=StatusClass.NETWORK_ERROR,
                message="Network error. Please check your connection.",
            ), generation)

        payload: Any = {}
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                logger.error(
                    f"API Response: action={action} -> {response.status_code} | "
                    f"Invalid JSON body: {response.text[:200]}"
                )
                if response.is_success:
                    return ApiResult.failure(action, ApiError(
                        status_class=StatusClass.NETWORK_ERROR,
                        message="Server returned an invalid response. Please try again.",
                        status_code=response.status_code,
                    ), generation)
                payload = {}

        if response.is_success:
            logger.debug(f"API Response: action={action} -> {response.status_code}")
            return ApiResult.success(action, payload, generation)

        message = _error_message(payload, response.status_code)
        status_class = classify_failure(action, response.status_code, message)
        logger.warning(
            f"API Error: action={action} -> {response.status_code} ({status_class.value}): {message}"
        )
        return ApiResult.failure(action, ApiError(
            status_class=status_class,
            message=message,
            status_code=response.status_code,
        ), generation)
