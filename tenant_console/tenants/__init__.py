"""
Tenant directory, actions and detail views.

The QueryCoordinator feeds DirectoryState, the ActionOrchestrator runs
mutations and refreshes the directory, and TenantDetailView owns one tenant's
full record.
"""

from .models import (
    ActionKind,
    AdminProfile,
    EditDraft,
    PageInfo,
    Plan,
    Query,
    QueryResult,
    Statistics,
    StatusFilter,
    TenantCamp,
    TenantDetail,
    TenantPage,
    TenantStatus,
    TenantSummary,
    TenantUser,
    days_left,
)
from .service import TenantAdminApi
from .directory_state import DirectoryState
from .query_coordinator import QueryCoordinator
from .action_orchestrator import ActionOrchestrator, ActionOutcome, ActionState, PendingAction
from .detail import TenantDetailView

__all__ = [
    # Data models
    "ActionKind",
    "AdminProfile",
    "EditDraft",
    "PageInfo",
    "Plan",
    "Query",
    "QueryResult",
    "Statistics",
    "StatusFilter",
    "TenantCamp",
    "TenantDetail",
    "TenantPage",
    "TenantStatus",
    "TenantSummary",
    "TenantUser",
    "days_left",
    # API access
    "TenantAdminApi",
    # Orchestration
    "DirectoryState",
    "QueryCoordinator",
    "ActionOrchestrator",
    "ActionOutcome",
    "ActionState",
    "PendingAction",
    "TenantDetailView",
]
