# tenant_console/tenants/query_coordinator.py
import asyncio
import logging
from typing import Optional, Set, Tuple

from pydantic import ValidationError as PydanticValidationError

from .directory_state import DirectoryState
from .models import Query, QueryResult, StatusFilter
from .service import TenantAdminApi
from ..errors import AuthInvalidError, RequestFailedError, ValidationError
from ..settings import settings

logger = logging.getLogger(__name__)


class QueryCoordinator:
    """
    Turns operator input into an ordered stream of directory queries.

    Search text is debounced; status and page changes dispatch at once. Every
    dispatch is stamped with the next sequence number and only the response of
    the highest sequence dispatched so far is committed to DirectoryState.
    Superseded responses are ignored when they arrive; nothing is cancelled
    on the wire.

    Dispatches run as tasks on the running event loop, so the setters must be
    called from inside a coroutine.
    """

    def __init__(
        self,
        api: TenantAdminApi,
        state: DirectoryState,
        debounce_seconds: Optional[float] = None,
    ):
        self.api = api
        self.state = state
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None
            else settings.search_debounce_ms / 1000
        )
        self._query = Query()
        self._sequence = 0
        self._stats_sequence = 0
        self._loading_sequence = 0
        self._pending_text: Optional[str] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def query(self) -> Query:
        return self._query

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    @property
    def loading(self) -> bool:
        """True while the most recent directory dispatch has not resolved."""
        return self._loading_sequence != 0 and self._loading_sequence == self._sequence

    @property
    def pending_search_text(self) -> Optional[str]:
        return self._pending_text

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Query task failed unexpectedly", exc_info=task.exception())

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None

    # Operator input

    def set_search_text(self, text: str) -> None:
        """Record new search text; it is dispatched once input has been quiet."""
        self._pending_text = text
        self._cancel_debounce()
        self._debounce_task = self._spawn(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._debounce_task = None
        self.flush_search()

    def flush_search(self) -> Optional[asyncio.Task]:
        """Apply the pending search text now instead of waiting for the quiet period."""
        self._cancel_debounce()
        text, self._pending_text = self._pending_text, None
        if text is None or text == self._query.search_text:
            return None
        self._query = self._query.model_copy(update={"search_text": text, "page": 1})
        return self.dispatch()

    def set_status_filter(self, status_filter: StatusFilter | str) -> Optional[asyncio.Task]:
        """Change the status filter, reset to page 1 and dispatch immediately.

        Search text still waiting for its quiet period is folded into this dispatch.
        """
        try:
            status_filter = StatusFilter(status_filter)
        except ValueError as e:
            raise ValidationError(f"Unknown status filter: {status_filter}", field="status") from e

        update = {"status_filter": status_filter, "page": 1}
        if self._pending_text is not None:
            update["search_text"] = self._pending_text
        self._cancel_debounce()
        self._pending_text = None

        new_query = self._query.model_copy(update=update)
        if new_query == self._query:
            return None
        self._query = new_query
        return self.dispatch()

    def set_page(self, page: int) -> Optional[asyncio.Task]:
        """Move to another page of the current filters and dispatch immediately."""
        try:
            new_query = Query(
                search_text=self._query.search_text,
                status_filter=self._query.status_filter,
                page=page,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Page must be a positive integer, got {page!r}", field="page") from e
        if new_query == self._query:
            return None
        self._query = new_query
        return self.dispatch()

    def next_page(self) -> Optional[asyncio.Task]:
        if self._query.page >= self.state.page_info.total_pages:
            return None
        return self.set_page(self._query.page + 1)

    def previous_page(self) -> Optional[asyncio.Task]:
        if self._query.page <= 1:
            return None
        return self.set_page(self._query.page - 1)

    def apply_query(self, query: Query) -> asyncio.Task:
        """Replace the whole query at once and dispatch it, dropping any pending text."""
        self._cancel_debounce()
        self._pending_text = None
        self._query = query
        return self.dispatch()

    # Dispatch

    def dispatch(self) -> asyncio.Task:
        """Send the current query under a fresh sequence number."""
        self._sequence += 1
        sequence = self._sequence
        self._loading_sequence = sequence
        query = self._query
        logger.debug(f"Dispatching directory query #{sequence}: {query.to_params()}")
        return self._spawn(self._run_query(sequence, query))

    def retry(self) -> asyncio.Task:
        """Re-send the current query after a failure."""
        return self.dispatch()

    async def _run_query(self, sequence: int, query: Query) -> None:
        try:
            page = await self.api.list_tenants(query)
        except AuthInvalidError:
            # The guard has already reset the console
            return
        except RequestFailedError as e:
            if sequence == self._sequence:
                self._loading_sequence = 0
                logger.warning(f"Directory query #{sequence} failed: {e.message}")
                self.state.set_error(e)
            return

        if sequence != self._sequence:
            logger.debug(f"Dropping stale directory response #{sequence} (latest #{self._sequence})")
            return

        self._loading_sequence = 0
        self.state.commit(QueryResult(
            sequence=sequence,
            tenants=page.tenants,
            page_info=page.page_info,
        ))

    def refresh_stats(self) -> asyncio.Task:
        self._stats_sequence += 1
        return self._spawn(self._run_stats(self._stats_sequence))

    async def _run_stats(self, sequence: int) -> None:
        try:
            stats = await self.api.get_statistics()
        except AuthInvalidError:
            return
        except RequestFailedError as e:
            if sequence == self._stats_sequence:
                logger.warning(f"Statistics fetch #{sequence} failed: {e.message}")
                self.state.set_stats_error(e)
            return

        if sequence != self._stats_sequence:
            logger.debug(f"Dropping stale statistics response #{sequence} (latest #{self._stats_sequence})")
            return
        self.state.commit_stats(stats, sequence)

    def refresh_all(self) -> Tuple[asyncio.Task, asyncio.Task]:
        """Re-fetch the current directory page and the statistics."""
        return self.dispatch(), self.refresh_stats()

    def invalidate(self) -> None:
        """Forget the query and make every in-flight response stale."""
        self._cancel_debounce()
        self._pending_text = None
        self._query = Query()
        self._sequence += 1
        self._stats_sequence += 1
        self._loading_sequence = 0
        logger.debug("QueryCoordinator invalidated; in-flight responses will be dropped.")

    async def drain(self) -> None:
        """Wait until no debounce timer or dispatch is outstanding."""
        while True:
            pending = set(self._tasks)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
