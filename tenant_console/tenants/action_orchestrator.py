# tenant_console/tenants/action_orchestrator.py
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .models import ACTION_PAYLOADS, ActionKind
from .query_coordinator import QueryCoordinator
from .service import TenantAdminApi
from ..errors import BusyError, ConsoleError, ValidationError

logger = logging.getLogger(__name__)


class ActionState(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PendingAction(BaseModel):
    """A mutating request currently in flight for one tenant."""

    kind: ActionKind
    tenant_id: int
    payload: Dict[str, Any] = Field(default_factory=dict)
    state: ActionState = ActionState.IN_FLIGHT
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ActionOutcome(BaseModel):
    """Returned to the caller once the server has confirmed an action."""

    kind: ActionKind
    tenant_id: int
    payload: Dict[str, Any] = Field(default_factory=dict)
    response: Any = None


def _describe_validation_error(error: PydanticValidationError) -> ValidationError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    message = first.get("msg", "Invalid value")
    return ValidationError(f"{field}: {message}" if field else message, field=field)


class ActionOrchestrator:
    """
    Runs one mutating action at a time per tenant.

    The directory is never touched before the server confirms an action. On
    success the current query and the statistics are each re-fetched once; on
    failure the error goes back to the caller and nothing is committed.
    """

    def __init__(self, api: TenantAdminApi, coordinator: QueryCoordinator):
        self.api = api
        self.coordinator = coordinator
        self._pending: Dict[int, PendingAction] = {}

    def state_for(self, tenant_id: int) -> ActionState:
        return ActionState.IN_FLIGHT if tenant_id in self._pending else ActionState.IDLE

    def is_busy(self, tenant_id: int) -> bool:
        return tenant_id in self._pending

    @property
    def in_flight(self) -> List[PendingAction]:
        return list(self._pending.values())

    def validate(self, kind: ActionKind | str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Check a payload locally and return the body fields to send.

        Raises:
            ValidationError: when the payload cannot be sent
        """
        try:
            kind = ActionKind(kind)
        except ValueError as e:
            raise ValidationError(f"Unknown action: {kind}", field="kind") from e

        model = ACTION_PAYLOADS[kind]
        try:
            validated = model.model_validate(payload or {})
        except PydanticValidationError as e:
            raise _describe_validation_error(e) from e

        fields = validated.model_dump(mode="json", exclude_none=True)
        if kind == ActionKind.UPDATE and not fields:
            raise ValidationError("Nothing to update: provide at least one field.")
        return fields

    async def run(
        self,
        kind: ActionKind | str,
        tenant_id: int,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ActionOutcome:
        """
        Execute one action against one tenant.

        Raises:
            ValidationError: payload rejected locally, nothing sent
            BusyError: another action for this tenant is still in flight
            RequestFailedError: the server or network reported a failure
            AuthInvalidError: the session ended while the action was in flight
        """
        fields = self.validate(kind, payload)
        kind = ActionKind(kind)

        current = self._pending.get(tenant_id)
        if current is not None:
            logger.info(
                f"Rejected {kind.value} for tenant {tenant_id}: {current.kind.value} already in flight"
            )
            raise BusyError(tenant_id, current.kind.value)

        pending = PendingAction(kind=kind, tenant_id=tenant_id, payload=fields)
        self._pending[tenant_id] = pending
        logger.info(f"Action {kind.value} started for tenant {tenant_id}")
        try:
            response = await self._send(kind, tenant_id, fields)
        except ConsoleError as e:
            pending.state = ActionState.FAILED
            logger.warning(f"Action {kind.value} failed for tenant {tenant_id}: {e.message}")
            raise
        finally:
            self._pending.pop(tenant_id, None)

        pending.state = ActionState.SUCCEEDED
        logger.info(f"Action {kind.value} succeeded for tenant {tenant_id}; refreshing directory")
        self.coordinator.refresh_all()
        return ActionOutcome(kind=kind, tenant_id=tenant_id, payload=fields, response=response)

    async def _send(self, kind: ActionKind, tenant_id: int, fields: Dict[str, Any]) -> Any:
        if kind == ActionKind.EXTEND:
            return await self.api.extend_trial(tenant_id, fields["days"])
        if kind == ActionKind.SUSPEND:
            return await self.api.suspend(tenant_id, fields["reason"])
        if kind == ActionKind.ACTIVATE:
            return await self.api.activate(tenant_id, fields["plan"])
        return await self.api.update_tenant(tenant_id, fields)

    async def extend_trial(self, tenant_id: int, days: int = 14) -> ActionOutcome:
        return await self.run(ActionKind.EXTEND, tenant_id, {"days": days})

    async def suspend(self, tenant_id: int, reason: str) -> ActionOutcome:
        return await self.run(ActionKind.SUSPEND, tenant_id, {"reason": reason})

    async def activate(self, tenant_id: int, plan: str = "starter") -> ActionOutcome:
        return await self.run(ActionKind.ACTIVATE, tenant_id, {"plan": plan})

    async def update(self, tenant_id: int, **changes: Any) -> ActionOutcome:
        return await self.run(ActionKind.UPDATE, tenant_id, changes)
