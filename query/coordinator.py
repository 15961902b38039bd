"""
Query coordinator: turns criteria edits and page requests into an ordered
sequence of product page fetches.

Everything here runs on one asyncio event loop. Search and category edits
arm a shared quiescence timer; page size, page navigation and refreshes
fetch immediately. Every fetch carries a strictly increasing sequence
number and only the response to the most recently issued fetch may touch
the visible page. Superseded fetches are not aborted, their results are
dropped on arrival.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from config import QUERY_CONFIG
from core.exceptions import NetworkError
from core.logging_config import get_logger, log_error_with_context
from events import event_bus as default_event_bus, EventBus, EventTypes
from api.models import Page
from .criteria import FilterCriteria, FetchRequest

logger = get_logger(__name__)

DEFAULT_LOAD_ERROR = "Failed to load products"


class QueryCoordinator:
    """Owns filter criteria, the page cursor and the visible page"""

    def __init__(self,
                 fetch_page: Callable[[FilterCriteria, int], Awaitable[Page]],
                 criteria: Optional[FilterCriteria] = None,
                 debounce_seconds: float = QUERY_CONFIG["debounce_ms"] / 1000.0,
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 bus: Optional[EventBus] = None):
        """
        Args:
            fetch_page: Coroutine function (criteria, page_number) -> Page
            criteria: Initial criteria
            debounce_seconds: Quiescence window for search/category edits
            loop: Event loop to schedule on (defaults to the running loop)
            bus: Event bus for query events (defaults to the global bus)
        """
        self.fetch_page = fetch_page
        self.criteria = criteria or FilterCriteria()
        self.page_number = 0
        self.debounce_seconds = debounce_seconds
        self.bus = bus or default_event_bus
        self._loop = loop

        # Visible state
        self.page: Optional[Page] = None
        self.is_loading = False
        self.error_message: Optional[str] = None

        # Arbitration
        self._sequence = 0
        self._in_effect: Optional[FetchRequest] = None
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

        self._listeners: List[Callable[['QueryCoordinator'], None]] = []

        # Stats
        self.issued_count = 0
        self.accepted_count = 0
        self.discarded_count = 0
        self.suppressed_count = 0
        self.failed_count = 0

    # Criteria edits (debounced)

    def set_search(self, text: str):
        """Update the search text; the fetch waits for the quiescence window"""
        text = text or ""
        if text == self.criteria.search:
            return
        self.criteria = self.criteria.with_search(text)
        self._debounced_edit("search", text)

    def set_category(self, text: str):
        """Update the category filter; the fetch waits for the quiescence window"""
        text = text or ""
        if text == self.criteria.category:
            return
        self.criteria = self.criteria.with_category(text)
        self._debounced_edit("category", text)

    def _debounced_edit(self, field_name: str, value: str):
        self.page_number = 0

        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = self._get_loop().call_later(self.debounce_seconds, self._on_quiescent)

        self.bus.emit(EventTypes.QUERY_CRITERIA_CHANGED, {
            "field": field_name,
            "value": value,
        }, source="query_coordinator")

    def _on_quiescent(self):
        """Timer callback: issue one fetch for the combined pending edits"""
        self._debounce_handle = None

        if self._in_effect is not None and self._in_effect.key == (self.criteria, self.page_number):
            self.suppressed_count += 1
            logger.debug(f"Fetch suppressed, criteria unchanged: {self.criteria}")
            self.bus.emit(EventTypes.QUERY_FETCH_SUPPRESSED, {
                "sequence_number": self._in_effect.sequence_number,
            }, source="query_coordinator")
            return

        self._issue("debounce")

    # Immediate fetches

    def set_page_size(self, size: int) -> FetchRequest:
        """Change the page size and fetch page 0 immediately"""
        if size <= 0:
            raise ValueError(f"Page size must be positive, got {size}")

        self._cancel_debounce()
        self.criteria = self.criteria.with_page_size(size)
        # Reset before issuing so the request reads page 0
        self.page_number = 0
        return self._issue("page_size")

    def go_to_page(self, page_number: int) -> FetchRequest:
        """Move the cursor and fetch immediately"""
        if page_number < 0:
            raise ValueError(f"Page number cannot be negative, got {page_number}")

        self._cancel_debounce()
        self.page_number = page_number
        return self._issue("navigation")

    def refresh(self) -> FetchRequest:
        """Re-fetch the current criteria and page (used after mutations)"""
        self._cancel_debounce()
        return self._issue("refresh")

    def refresh_after_removal(self, removed: int = 1) -> FetchRequest:
        """
        Re-fetch after items were removed from the visible page.

        If the removal empties the page and it is not the first one, the
        cursor steps back one page instead of leaving an empty page visible.
        """
        if (self.page is not None and self.page_number > 0
                and len(self.page.items) <= removed):
            self.page_number -= 1
        return self.refresh()

    # Arbitration

    def _issue(self, reason: str) -> FetchRequest:
        self._sequence += 1
        request = FetchRequest(self._sequence, self.criteria, self.page_number)
        self._in_effect = request

        self.is_loading = True
        self.error_message = None
        self.issued_count += 1

        logger.debug(f"Issuing fetch #{request.sequence_number} ({reason}): "
                     f"page={request.page_number} criteria={request.criteria}")
        self.bus.emit(EventTypes.QUERY_FETCH_ISSUED, {
            "sequence_number": request.sequence_number,
            "page_number": request.page_number,
            "page_size": request.criteria.page_size,
            "search": request.criteria.search,
            "category": request.criteria.category,
            "reason": reason,
        }, source="query_coordinator")

        task = self._get_loop().create_task(self._run_fetch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        self._notify_listeners()
        return request

    async def _run_fetch(self, request: FetchRequest):
        try:
            page = await self.fetch_page(request.criteria, request.page_number)
        except NetworkError as e:
            self._on_failure(request, e.message)
        except Exception as e:
            log_error_with_context(logger, e, "fetch_page", sequence_number=request.sequence_number)
            self._on_failure(request, DEFAULT_LOAD_ERROR)
        else:
            self._on_success(request, page)

    def _is_latest(self, request: FetchRequest) -> bool:
        return request.sequence_number == self._sequence

    def _discard(self, request: FetchRequest, outcome: str):
        self.discarded_count += 1
        logger.debug(f"Discarding stale {outcome} for fetch #{request.sequence_number} "
                     f"(latest is #{self._sequence})")
        self.bus.emit(EventTypes.QUERY_FETCH_DISCARDED, {
            "sequence_number": request.sequence_number,
            "latest_sequence_number": self._sequence,
            "outcome": outcome,
        }, source="query_coordinator")

    def _on_success(self, request: FetchRequest, page: Page):
        if not self._is_latest(request):
            self._discard(request, "response")
            return

        # Never show an empty page past the first; step back to the last valid one
        if page.is_empty and request.page_number > 0:
            if page.total_pages > 0:
                fallback = min(request.page_number - 1, page.total_pages - 1)
            else:
                # Nothing matches at all
                fallback = 0
            logger.info(f"Page {request.page_number} is empty, falling back to page {fallback}")
            self.page_number = fallback
            self._issue("empty_page")
            return

        self.page = page
        self.is_loading = False
        self.error_message = None
        self.accepted_count += 1

        self.bus.emit(EventTypes.QUERY_FETCH_ACCEPTED, {
            "sequence_number": request.sequence_number,
            "page_number": page.page_number,
            "items": len(page.items),
            "total_elements": page.total_elements,
        }, source="query_coordinator")

        self._notify_listeners()

    def _on_failure(self, request: FetchRequest, message: Optional[str]):
        if not self._is_latest(request):
            self._discard(request, "failure")
            return

        # The previous page stays visible
        self.error_message = message or DEFAULT_LOAD_ERROR
        self.is_loading = False
        self.failed_count += 1
        # A retry with identical criteria must not be suppressed
        self._in_effect = None

        logger.warning(f"Fetch #{request.sequence_number} failed: {self.error_message}")
        self.bus.emit(EventTypes.QUERY_FETCH_FAILED, {
            "sequence_number": request.sequence_number,
            "error": self.error_message,
        }, source="query_coordinator")

        self._notify_listeners()

    # Observation

    @property
    def items(self) -> list:
        return list(self.page.items) if self.page else []

    @property
    def latest_sequence_number(self) -> int:
        return self._sequence

    @property
    def has_pending_edit(self) -> bool:
        return self._debounce_handle is not None

    @property
    def in_flight_count(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def add_listener(self, listener: Callable[['QueryCoordinator'], None]):
        """Add a visible-state change listener"""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[['QueryCoordinator'], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify_listeners(self):
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Error in query listener: {e}", exc_info=True)

    async def wait_until_idle(self):
        """Wait until no edit is pending and no fetch is in flight"""
        loop = self._get_loop()
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            elif self._debounce_handle is not None:
                delay = max(0.0, self._debounce_handle.when() - loop.time())
                await asyncio.sleep(delay + 0.001)
            else:
                return

    def get_stats(self) -> Dict[str, Any]:
        return {
            "criteria": {
                "search": self.criteria.search,
                "category": self.criteria.category,
                "page_size": self.criteria.page_size,
            },
            "page_number": self.page_number,
            "latest_sequence_number": self._sequence,
            "issued": self.issued_count,
            "accepted": self.accepted_count,
            "discarded": self.discarded_count,
            "suppressed": self.suppressed_count,
            "failed": self.failed_count,
            "in_flight": self.in_flight_count,
            "pending_edit": self.has_pending_edit,
        }

    def shutdown(self):
        """Cancel the pending edit timer and any in-flight fetches"""
        self._cancel_debounce()
        for task in list(self._tasks):
            task.cancel()

    def _cancel_debounce(self):
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()
