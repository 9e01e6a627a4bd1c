# tenant_console/tenants/detail.py
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from .action_orchestrator import ActionOrchestrator, ActionOutcome
from .models import EditDraft, TenantDetail
from .service import TenantAdminApi
from ..errors import BusyError, ConsoleError, RequestFailedError, ValidationError

logger = logging.getLogger(__name__)


class TenantDetailView:
    """Lazily loaded full record of one tenant, with an optional edit mode."""

    def __init__(self, api: TenantAdminApi, actions: ActionOrchestrator):
        self.api = api
        self.actions = actions
        self.tenant_id: Optional[int] = None
        self.detail: Optional[TenantDetail] = None
        self.loading = False
        self.saving = False
        self.error: Optional[ConsoleError] = None
        self.draft: Optional[EditDraft] = None
        self._load_token = 0

    @property
    def is_open(self) -> bool:
        return self.tenant_id is not None

    @property
    def editing(self) -> bool:
        return self.draft is not None

    async def open(self, tenant_id: int) -> Optional[TenantDetail]:
        self.close()
        self.tenant_id = tenant_id
        return await self.reload()

    async def reload(self) -> Optional[TenantDetail]:
        """Fetch the open tenant again; responses for a closed or replaced view are dropped."""
        if self.tenant_id is None:
            raise ValidationError("No tenant is open.")
        self._load_token += 1
        token = self._load_token
        tenant_id = self.tenant_id
        self.loading = True
        self.error = None
        try:
            detail = await self.api.get_tenant(tenant_id)
        except RequestFailedError as e:
            if token == self._load_token:
                self.error = e
            return None
        finally:
            if token == self._load_token:
                self.loading = False

        if token != self._load_token:
            logger.debug(f"Dropping stale detail response for tenant {tenant_id}")
            return None
        self.detail = detail
        return detail

    def close(self) -> None:
        self._load_token += 1
        self.tenant_id = None
        self.detail = None
        self.loading = False
        self.saving = False
        self.error = None
        self.draft = None

    def begin_edit(self) -> EditDraft:
        if self.detail is None:
            raise ValidationError("Tenant details have not been loaded yet.")
        self.draft = EditDraft.from_detail(self.detail)
        return self.draft

    def cancel_edit(self) -> None:
        self.draft = None

    def stage(self, **fields: Any) -> EditDraft:
        """Change staged fields; nothing is sent until submit_edit()."""
        if self.draft is None:
            raise ValidationError("Not in edit mode.")
        for name, value in fields.items():
            if name not in EditDraft.model_fields:
                raise ValidationError(f"Unknown field: {name}", field=name)
            try:
                setattr(self.draft, name, value)
            except PydanticValidationError as e:
                raise ValidationError(f"{name}: {e.errors()[0]['msg']}", field=name) from e
        return self.draft

    async def submit_edit(self) -> ActionOutcome:
        """
        Send the staged edits as one update action.

        On success the record is re-fetched and edit mode ends. On failure the
        draft is kept for resubmission and the error is recorded and raised.
        """
        if self.draft is None or self.tenant_id is None:
            raise ValidationError("Not in edit mode.")
        tenant_id = self.tenant_id
        self.saving = True
        self.error = None
        try:
            outcome = await self.actions.update(tenant_id, **self.draft.model_dump())
        except (ValidationError, BusyError, RequestFailedError) as e:
            self.error = e
            raise
        finally:
            self.saving = False

        if self.tenant_id == tenant_id:
            self.draft = None
            await self.reload()
        return outcome
