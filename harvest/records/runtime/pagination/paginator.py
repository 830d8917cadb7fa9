"""Pagination state machine.

Architecture:
    The paginator owns the ``*paginator*`` entity. Its fields (the reserved
    ``currentPage``, ``currentPageNumber``, ``nextPage``, ``nextPageNumber``
    and any custom field) are extracted from every page together with the
    user entities. After a page has been fully processed, ``advance`` reads the
    captured values, works out the next request and moves the machine:

        INIT -> HAS_NEXT -> FETCHING -> (HAS_NEXT | STOPPED)

    STOPPED is terminal for the parse; ``start`` resets the machine.

Design Decisions:
    - A next page equal to the current one (URL or number) is no progress and
      stops pagination instead of looping forever.
    - A positive follow-count limit caps the number of pages visited, 0 means
      unlimited.
    - A failed URL probe stops pagination silently.
    - ``stop`` is cooperative: it is observed before the next page is fetched.

See Also:
    - PaginationContext: Read/write view handed to pagination handlers
    - EntityParser: Drives the machine page by page
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from ...core.enums import PaginationStatus
from ...core.exceptions import ConfigurationError
from ...core.settings import ParserSettings
from ...graph.entity import Entity
from ...graph.plan import EntityPlan, compile_entity
from ...io.protocols import FetchRequest, FetchResponse
from .context import PaginationContext
from .definitions import (
    CURRENT_PAGE,
    CURRENT_PAGE_NUMBER,
    NEXT_PAGE,
    NEXT_PAGE_NUMBER,
    PAGINATOR_ENTITY,
    NextPage,
    PaginationState,
)
from .telemetry import log_page_started, log_pagination_stopped, log_probe_failed

if TYPE_CHECKING:
    from ...io.protocols import Fetcher

PaginationHandler = Callable[[PaginationContext], Awaitable[None] | None]


class Paginator:
    """Drives a parse across a sequence of pages."""

    def __init__(
        self,
        *,
        follow_count: int = 0,
        page_parameter: str = "page",
        page_size_parameter: str | None = None,
        ideal_page_size: int | None = None,
        url_testing_enabled: bool = False,
        handler: PaginationHandler | None = None,
    ) -> None:
        """Initialize the paginator.

        Args:
            follow_count: Maximum number of pages visited (0 means unlimited)
            page_parameter: Query parameter carrying the page number when only
                a next page number is found
            page_size_parameter: Query parameter carrying ``ideal_page_size``
            ideal_page_size: Page size requested from the server, if supported
            url_testing_enabled: Probe the next URL before following it
            handler: Called after every page with the pagination context; may
                stop pagination or edit the next request
        """
        self.follow_count = follow_count
        self.page_parameter = page_parameter
        self.page_size_parameter = page_size_parameter
        self.url_testing_enabled = url_testing_enabled
        self.handler = handler
        self.entity = Entity(PAGINATOR_ENTITY)
        self._initial_page_size = ideal_page_size
        self._state = PaginationState(follow_count_limit=follow_count, ideal_page_size=ideal_page_size)
        self.context = PaginationContext(self)

    # Configuration

    @property
    def follow_count(self) -> int:
        return self._follow_count

    @follow_count.setter
    def follow_count(self, value: int) -> None:
        if value < 0:
            raise ConfigurationError(f"follow_count must be >= 0, got {value}")
        self._follow_count = value

    def add_field(self, name: str, matcher: Any = None) -> Paginator:
        """Capture ``name`` on every page; readable through the context."""
        self.entity.add_field(name, matcher)
        return self

    def set_current_page(self, matcher: Any) -> Paginator:
        return self.add_field(CURRENT_PAGE, matcher)

    def set_current_page_number(self, matcher: Any) -> Paginator:
        return self.add_field(CURRENT_PAGE_NUMBER, matcher)

    def set_next_page(self, matcher: Any) -> Paginator:
        return self.add_field(NEXT_PAGE, matcher)

    def set_next_page_number(self, matcher: Any) -> Paginator:
        return self.add_field(NEXT_PAGE_NUMBER, matcher)

    @property
    def enabled(self) -> bool:
        return bool(self.entity.field_names) or self.handler is not None

    def plan(self, settings: ParserSettings) -> EntityPlan | None:
        """Compiled paginator entity, ``None`` when no field is captured."""
        if not self.entity.field_names:
            return None
        return compile_entity(self.entity, settings)

    # State machine

    @property
    def state(self) -> PaginationState:
        return self._state

    @property
    def status(self) -> PaginationStatus:
        return self._state.status

    def start(self, request: FetchRequest) -> None:
        """Reset the machine for a parse starting at ``request``."""
        self._state = PaginationState(
            next_request=request,
            next_page=request.full_url,
            next_page_number=1,
            follow_count_limit=self.follow_count,
            ideal_page_size=self._state.ideal_page_size or self._initial_page_size,
        )

    def has_more_pages(self) -> bool:
        state = self._state
        if state.status not in (PaginationStatus.INIT, PaginationStatus.HAS_NEXT):
            return False
        return state.next_request is not None and not state.limit_reached

    def begin_fetch(self) -> FetchRequest:
        """Promote the next page to current and mark the machine FETCHING."""
        if not self.has_more_pages():
            raise RuntimeError(f"No page to fetch (status={self._state.status.value})")
        state = self._state
        request = state.next_request
        assert request is not None
        if state.ideal_page_size and self.page_size_parameter:
            request = request.with_params(**{self.page_size_parameter: state.ideal_page_size})
        state.current_request = request
        state.current_page = request.full_url
        state.current_page_number = state.next_page_number or state.current_page_number + 1
        state.next_request = None
        state.next_page = None
        state.next_page_number = None
        state.follow_count += 1
        state.status = PaginationStatus.FETCHING
        log_page_started(page_number=state.current_page_number, url=state.current_page)
        return request

    def compute_next(
        self,
        fields: Mapping[str, str | None],
        *,
        resolve: Callable[[str | None, str], str] | None = None,
    ) -> NextPage | None:
        """Inspect captured values and describe the next page, if any."""
        state = self._state
        url = _clean(fields.get(NEXT_PAGE))
        number = _to_number(fields.get(NEXT_PAGE_NUMBER))
        current_number = _to_number(fields.get(CURRENT_PAGE_NUMBER)) or state.current_page_number

        if url is not None:
            if resolve is not None:
                url = resolve(state.current_page, url)
            if url == state.current_page:
                return None
            return NextPage(url=url, number=number)
        if number is not None:
            if number == current_number:
                return None
            return NextPage(number=number)
        return None

    async def advance(
        self,
        fields: Mapping[str, str | None],
        response: FetchResponse | None,
        fetcher: Fetcher | None = None,
    ) -> FetchRequest | None:
        """Record the finished page and prepare the next request.

        Returns:
            The next request, or ``None`` once pagination has stopped.
        """
        state = self._state
        state.fields = dict(fields)
        if state.status is PaginationStatus.STOPPED:
            log_pagination_stopped(reason="stopped", page_count=state.follow_count)
            return None

        current_number = _to_number(fields.get(CURRENT_PAGE_NUMBER))
        if current_number is not None:
            state.current_page_number = current_number
        if response is not None and response.url != state.current_page:
            # Redirected: relative next links resolve against the final URL.
            state.current_page = response.url

        nxt = self.compute_next(fields, resolve=fetcher.resolve if fetcher is not None else None)
        if nxt is not None:
            self._set_next(nxt)
        state.status = PaginationStatus.HAS_NEXT

        if self.handler is not None:
            outcome = self.handler(self.context)
            if inspect.isawaitable(outcome):
                await outcome

        if state.status is PaginationStatus.STOPPED:
            log_pagination_stopped(reason="stopped", page_count=state.follow_count)
            return None
        if state.next_request is None:
            return self._finish("last_page")
        if state.limit_reached:
            return self._finish("follow_count_limit")

        if self.url_testing_enabled and fetcher is not None:
            target = state.next_request.full_url
            if not await fetcher.probe(target):
                log_probe_failed(url=target)
                return self._finish("probe_failed")
        return state.next_request

    def stop(self) -> None:
        """Stop after the page being processed."""
        self._state.status = PaginationStatus.STOPPED

    # Next request editing (used by the context)

    def redirect(self, url: str) -> None:
        """Replace the next request with one for ``url``."""
        self._set_next(NextPage(url=url))

    def set_request_parameter(self, name: str, value: Any) -> None:
        """Set (or remove, when ``value`` is None) a parameter of the next request."""
        state = self._state
        base = state.next_request or state.current_request
        if base is None:
            raise RuntimeError("No request to update before the parse starts")
        state.next_request = base.with_params(**{name: value})
        state.next_page = state.next_request.full_url

    def _set_next(self, nxt: NextPage) -> None:
        state = self._state
        current = state.current_request
        if nxt.url is not None:
            if current is not None:
                request = FetchRequest(
                    nxt.url, method=current.method, headers=dict(current.headers), cookies=dict(current.cookies)
                )
            else:
                request = FetchRequest(nxt.url)
            number = nxt.number if nxt.number is not None else state.current_page_number + 1
        else:
            if current is None:
                return
            number = nxt.number if nxt.number is not None else state.current_page_number + 1
            request = current.with_params(**{self.page_parameter: number})
        state.next_request = request
        state.next_page = request.full_url
        state.next_page_number = number

    def _finish(self, reason: str) -> None:
        self._state.status = PaginationStatus.STOPPED
        log_pagination_stopped(reason=reason, page_count=self._state.follow_count)
        return None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_number(value: Any) -> int | None:
    text = _clean(value)
    if text is None:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None
