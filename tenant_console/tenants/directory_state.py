# tenant_console/tenants/directory_state.py
import logging
from typing import Callable, List, Optional

from .models import PageInfo, QueryResult, Statistics, TenantSummary
from ..errors import ConsoleError

logger = logging.getLogger(__name__)

StateListener = Callable[["DirectoryState"], None]


class DirectoryState:
    """
    The reconciled tenant list, pagination metadata and statistics.

    Only the QueryCoordinator writes here. A commit never moves the committed
    sequence backwards, and a failure never clears the last good list.
    """

    def __init__(self):
        self._result: Optional[QueryResult] = None
        # Survives reset() so the committed sequence never moves backwards
        self._sequence = 0
        self._stats: Optional[Statistics] = None
        self._stats_sequence = 0
        self.error: Optional[ConsoleError] = None
        self.stats_error: Optional[ConsoleError] = None
        self._listeners: List[StateListener] = []

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def tenants(self) -> List[TenantSummary]:
        return list(self._result.tenants) if self._result else []

    @property
    def page_info(self) -> PageInfo:
        return self._result.page_info if self._result else PageInfo()

    @property
    def statistics(self) -> Optional[Statistics]:
        return self._stats

    @property
    def has_result(self) -> bool:
        return self._result is not None

    def find(self, tenant_id: int) -> Optional[TenantSummary]:
        for tenant in self.tenants:
            if tenant.id == tenant_id:
                return tenant
        return None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def commit(self, result: QueryResult) -> bool:
        """Replace the visible list with `result` unless it is older than the current one."""
        if result.sequence < self.sequence:
            logger.debug(
                f"DirectoryState: rejected commit #{result.sequence} (current #{self.sequence})"
            )
            return False
        self._result = result
        self._sequence = result.sequence
        self.error = None
        logger.debug(
            f"DirectoryState: committed #{result.sequence} "
            f"({len(result.tenants)} tenants, page {result.page_info.page}/{result.page_info.total_pages})"
        )
        self._notify()
        return True

    def commit_stats(self, stats: Statistics, sequence: int) -> bool:
        if sequence < self._stats_sequence:
            logger.debug(
                f"DirectoryState: rejected stats #{sequence} (current #{self._stats_sequence})"
            )
            return False
        self._stats = stats
        self._stats_sequence = sequence
        self.stats_error = None
        self._notify()
        return True

    def set_error(self, error: ConsoleError) -> None:
        """Attach a list failure; the previously committed tenants stay visible."""
        self.error = error
        self._notify()

    def set_stats_error(self, error: ConsoleError) -> None:
        self.stats_error = error
        self._notify()

    def reset(self) -> None:
        """Drop everything visible, e.g. when the session ends."""
        self._result = None
        self._stats = None
        self.error = None
        self.stats_error = None
        self._notify()
