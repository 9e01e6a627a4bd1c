# tenant_console/tenants/models.py
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TenantStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


class StatusFilter(str, Enum):
    """Directory filter; `all` means no status constraint."""
    ALL = "all"
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


class Plan(str, Enum):
    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class ActionKind(str, Enum):
    EXTEND = "extend"
    SUSPEND = "suspend"
    ACTIVATE = "activate"
    UPDATE = "update"


def _empty_to_none(value: Any) -> Any:
    return None if value in ("", None) else value


class TenantSummary(BaseModel):
    """One row of the tenant directory. Immutable snapshot."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    company_name: str
    email: Optional[str] = None
    status: str
    plan: Optional[str] = None
    user_count: int = 0
    created_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None

    normalize_dates = field_validator(
        "created_at", "trial_ends_at", "subscription_ends_at", mode="before"
    )(_empty_to_none)

    @field_validator("user_count", mode="before")
    @classmethod
    def default_user_count(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def expiry_date(self) -> Optional[datetime]:
        """Trial end for trial tenants, subscription end otherwise."""
        if self.status == TenantStatus.TRIAL.value:
            return self.trial_ends_at or self.subscription_ends_at
        return self.subscription_ends_at or self.trial_ends_at

    def available_actions(self) -> List[ActionKind]:
        """Row actions the console offers for this tenant's status."""
        actions: List[ActionKind] = []
        if self.status in (TenantStatus.TRIAL.value, TenantStatus.ACTIVE.value):
            actions.append(ActionKind.EXTEND)
        if self.status != TenantStatus.SUSPENDED.value:
            actions.append(ActionKind.SUSPEND)
        else:
            actions.append(ActionKind.ACTIVATE)
        return actions


class TenantUser(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    last_login: Optional[datetime] = None

    normalize_last_login = field_validator("last_login", mode="before")(_empty_to_none)


class TenantCamp(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: Optional[str] = None
    location: Optional[str] = None


class TenantDetail(TenantSummary):
    """Full tenant record as returned by the detail endpoint."""

    phone: Optional[str] = None
    country: Optional[str] = None
    max_users: Optional[int] = None
    max_camps: Optional[int] = None
    camp_count: int = 0
    admin_notes: Optional[str] = None
    modules: Optional[str] = None
    users: List[TenantUser] = Field(default_factory=list)
    camps: List[TenantCamp] = Field(default_factory=list)

    @field_validator("camp_count", mode="before")
    @classmethod
    def default_camp_count(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("users", "camps", mode="before")
    @classmethod
    def default_lists(cls, value: Any) -> Any:
        return [] if value is None else value


class PageInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int = 1
    total_pages: int = 1
    total_count: int = 0


class TenantPage(BaseModel):
    """One page of the directory listing, before it is stamped with a sequence."""

    model_config = ConfigDict(frozen=True)

    tenants: List[TenantSummary] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)


class QueryResult(TenantPage):
    """A directory page tied to the dispatch that produced it."""

    sequence: int


class Statistics(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    total_tenants: int = 0
    active: int = 0
    trial: int = 0
    suspended: int = 0
    expiring_soon: int = 0


class Query(BaseModel):
    """The directory query currently selected by the operator."""

    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    status_filter: StatusFilter = StatusFilter.ALL
    page: int = Field(default=1, ge=1)

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": self.page}
        if self.status_filter != StatusFilter.ALL:
            params["status"] = self.status_filter.value
        if self.search_text:
            params["search"] = self.search_text
        return params


class AdminProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    username: str = "admin"


class EditDraft(BaseModel):
    """Locally staged edits of a tenant's limits, plan, notes and modules."""

    model_config = ConfigDict(validate_assignment=True)

    max_users: int = 10
    max_camps: int = 3
    plan: str = Plan.TRIAL.value
    notes: str = ""
    modules: str = ""

    @classmethod
    def from_detail(cls, detail: TenantDetail) -> "EditDraft":
        return cls(
            max_users=detail.max_users or 10,
            max_camps=detail.max_camps or 3,
            plan=detail.plan or Plan.TRIAL.value,
            notes=detail.admin_notes or "",
            modules=detail.modules or "",
        )


def days_left(expiry: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until `expiry`, rounded up; negative once it has passed."""
    if expiry is None:
        return None
    now = now or datetime.now(timezone.utc)
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return math.ceil((expiry - now).total_seconds() / 86400)


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%d %b %Y")


class ExtendTrialPayload(BaseModel):
    days: int = Field(ge=1, le=365)


class SuspendPayload(BaseModel):
    reason: str = Field(min_length=1)

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ActivatePayload(BaseModel):
    plan: Plan


class UpdatePayload(BaseModel):
    """Partial tenant update; only the fields that are set are sent."""

    model_config = ConfigDict(extra="forbid")

    max_users: Optional[int] = Field(default=None, ge=1)
    max_camps: Optional[int] = Field(default=None, ge=1)
    plan: Optional[Plan] = None
    notes: Optional[str] = None
    modules: Optional[str] = None


ACTION_PAYLOADS: Dict[ActionKind, type] = {
    ActionKind.EXTEND: ExtendTrialPayload,
    ActionKind.SUSPEND: SuspendPayload,
    ActionKind.ACTIVATE: ActivatePayload,
    ActionKind.UPDATE: UpdatePayload,
}
