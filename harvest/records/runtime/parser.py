"""Entity parser: pages, link following and publication of results.

Architecture:
    ``EntityParser`` compiles the entity graph into plans when a parse starts
    and then walks the input page by page:

    1. fetch the page (rate limited per host) and run response hooks
    2. extract every entity plus the paginator entity
    3. follow links and nest rows through the ``LinkFollowingCoordinator``
    4. publish the completed page: processors are called and, for
       ``parse_all``, the page is merged into the accumulated ``Results``
    5. let the paginator compute the next request

    A page is assembled locally and only published once complete, so a
    cancelled or failed page never leaks partial rows.

Design Decisions:
    - Scheduler and rate limiter are explicit values; parsers sharing them
      share their limits.
    - Without an explicit fetcher, URLs use ``HTTPFetcher`` and paths use
      ``FileFetcher``; fetchers created by the parser are closed after the
      parse.
    - A directory input is read as a sequence of pages in name order.
    - The default error handler re-raises, so the first unrecovered error
      aborts the parse.

See Also:
    - Paginator: Pagination state machine
    - LinkFollowingCoordinator: Link following and nesting
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from pathlib import Path
from time import perf_counter
from typing import Any
from urllib.parse import urlsplit

from ..core.exceptions import ConfigurationError, ExtractionError, HarvestError
from ..core.settings import ParserSettings
from ..graph.entity import Entity, normalize_name
from ..graph.graph import EntityGraph
from ..graph.plan import EntityPlan
from ..io.downloads import DownloadStore
from ..io.files import FileFetcher
from ..io.http import HTTPFetcher
from ..io.protocols import Extractor, Fetcher, FetchRequest, FetchResponse
from ..models.record import Record
from ..models.result import Result
from ..models.results import Results
from .following.coordinator import LinkFollowingCoordinator, RowOutcome, cancel_all, output_headers, rows_for
from .following.rate_limiter import RateLimiter, ResponseHook, run_response_hooks, throttle_on_status
from .following.scheduler import LinkScheduler
from .pagination.context import PaginationContext
from .pagination.paginator import Paginator
from .pagination.telemetry import log_page_completed

logger = logging.getLogger(__name__)

ParseInput = str | FetchRequest | Path
Processor = Callable[[Record, "ParsingContext"], Awaitable[None] | None]
ErrorHandler = Callable[[Exception, "ParsingContext"], Awaitable[None] | None]


class ParsingContext:
    """State of the running parse, handed to processors, filters and error handlers."""

    def __init__(self, parser: EntityParser) -> None:
        self._parser = parser
        self._stopped = False
        self.entity: str | None = None
        self.row_index: int | None = None
        self.page_number = 0
        self.url: str | None = None
        self.file_name: str | None = None

    @property
    def pagination(self) -> PaginationContext:
        return self._parser.get_pagination_context()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Stop the parse after the current row."""
        self._stopped = True
        self._parser.paginator.stop()

    def _reset(self) -> None:
        self._stopped = False
        self.entity = None
        self.row_index = None
        self.page_number = 0
        self.url = None
        self.file_name = None


class EntityParser:
    """Parses entities from paginated documents and the documents they link to."""

    def __init__(
        self,
        graph: EntityGraph | None = None,
        settings: ParserSettings | None = None,
        *,
        extractor: Extractor,
        fetcher: Fetcher | None = None,
        paginator: Paginator | None = None,
        scheduler: LinkScheduler | None = None,
        rate_limiter: RateLimiter | None = None,
        response_hooks: Iterable[ResponseHook] | None = None,
    ) -> None:
        """Initialize the parser.

        Args:
            graph: Entities to extract (a new empty graph by default)
            settings: Global settings
            extractor: Turns documents into raw rows
            fetcher: Retrieves documents (chosen per input when omitted)
            paginator: Pagination configuration
            scheduler: Pool shared by link following (sized by
                ``settings.download_threads`` when omitted)
            rate_limiter: Per-host pacing (``settings.remote_interval`` when omitted)
            response_hooks: Hooks run on every response; defaults to
                ``[throttle_on_status]``
        """
        self.graph = graph or EntityGraph()
        self.settings = settings or ParserSettings()
        self.extractor = extractor
        self.fetcher = fetcher
        self.paginator = paginator or Paginator()
        self.scheduler = scheduler or LinkScheduler(self.settings.download_threads)
        self.rate_limiter = rate_limiter or RateLimiter(self.settings.remote_interval)
        self.response_hooks: list[ResponseHook] = (
            list(response_hooks) if response_hooks is not None else [throttle_on_status]
        )
        self.context = ParsingContext(self)
        self._processors: dict[str, Processor] = {}
        self._error_handler: ErrorHandler | None = None

    # Configuration

    def configure_entity(self, name: str) -> Entity:
        return self.graph.configure_entity(name)

    def set_processor(self, entity: str, processor: Processor | None) -> None:
        """Call ``processor(record, context)`` for every published row of ``entity``."""
        key = normalize_name(entity)
        if processor is None:
            self._processors.pop(key, None)
        else:
            self._processors[key] = processor

    def set_error_handler(self, handler: ErrorHandler | None) -> None:
        """Handle per-row and per-page errors; returning normally skips the failure."""
        self._error_handler = handler

    def add_response_hook(self, hook: ResponseHook) -> None:
        self.response_hooks.append(hook)

    def get_pagination_context(self) -> PaginationContext:
        return self.paginator.context

    # Parsing

    async def parse(self, source: ParseInput) -> None:
        """Parse ``source``, streaming rows to the registered processors."""
        await self._run(source, collect=False)

    async def parse_all(self, source: ParseInput) -> Results:
        """Parse ``source`` and return the results of every page."""
        return await self._run(source, collect=True)

    async def parse_all_records(self, source: ParseInput) -> Results:
        """Same as ``parse_all``; records are read through ``Result.records``."""
        return await self.parse_all(source)

    async def _run(self, source: ParseInput, *, collect: bool) -> Results:
        plans = self.graph.compile(self.settings)
        if not plans:
            raise ConfigurationError("No entities configured")
        paginator_plan = self.paginator.plan(self.settings)

        requests, local = self._requests(source)
        fetcher, owned = self._fetcher_for(local)
        downloads = DownloadStore(self.settings) if self.settings.downloads_enabled and not local else None
        coordinator = LinkFollowingCoordinator(
            fetcher,
            self.extractor,
            settings=self.settings,
            scheduler=self.scheduler,
            rate_limiter=self.rate_limiter,
            response_hooks=self.response_hooks,
            downloads=downloads,
            context=self.context,
        )
        self.context._reset()
        results = Results()
        try:
            if len(requests) == 1:
                await self._paginate(requests[0], plans, paginator_plan, coordinator, results, collect)
            else:
                await self._walk(requests, plans, paginator_plan, coordinator, results, collect)
        finally:
            if owned:
                await fetcher.close()  # type: ignore[attr-defined]
        return results

    async def _paginate(
        self,
        request: FetchRequest,
        plans: Sequence[EntityPlan],
        paginator_plan: EntityPlan | None,
        coordinator: LinkFollowingCoordinator,
        results: Results,
        collect: bool,
    ) -> None:
        paginator = self.paginator
        paginator.start(request)
        while paginator.has_more_pages() and not self.context.stopped:
            current = paginator.begin_fetch()
            page = await self._page(
                current, paginator.state.current_page_number, plans, paginator_plan, coordinator
            )
            if page is None:
                paginator.stop()
                break
            response, page_results, fields = page
            await self._publish(page_results, results, collect)
            await paginator.advance(fields, response, coordinator.fetcher)

    async def _walk(
        self,
        requests: Sequence[FetchRequest],
        plans: Sequence[EntityPlan],
        paginator_plan: EntityPlan | None,
        coordinator: LinkFollowingCoordinator,
        results: Results,
        collect: bool,
    ) -> None:
        limit = self.paginator.follow_count
        for number, request in enumerate(requests, start=1):
            if self.context.stopped or (limit and number > limit):
                break
            page = await self._page(request, number, plans, paginator_plan, coordinator)
            if page is None:
                break
            await self._publish(page[1], results, collect)

    async def _page(
        self,
        request: FetchRequest,
        number: int,
        plans: Sequence[EntityPlan],
        paginator_plan: EntityPlan | None,
        coordinator: LinkFollowingCoordinator,
    ) -> tuple[FetchResponse, list[tuple[EntityPlan, list[RowOutcome]]], dict[str, str | None]] | None:
        """Fetch, extract and follow one page; ``None`` if a handled error ended it."""
        started = perf_counter()
        self.context.page_number = number
        self.context.url = request.full_url
        try:
            await self.rate_limiter.acquire(request.host)
            response = await coordinator.fetcher.fetch(request.with_cookies(coordinator.cookies))
            coordinator.cookies.update(response.cookies)
            await run_response_hooks(self.response_hooks, response, self.rate_limiter)
            response.raise_for_status()
            file_name = None
            if coordinator.downloads is not None:
                file_name = await coordinator.downloads.save(response, page=number)
            self.context.file_name = file_name

            extracted = self._extract(response, plans, paginator_plan)
            tasks = [
                asyncio.create_task(
                    coordinator.process_entity(
                        plan,
                        rows_for(extracted, plan),
                        base_url=response.url,
                        page=number,
                        parent_file=file_name,
                    )
                )
                for plan in plans
            ]
            try:
                outcomes = await asyncio.gather(*tasks)
            except BaseException:
                # No entity of a failed page may keep following links.
                await cancel_all(tasks)
                raise
        except HarvestError as e:
            await self._handle_error(e)
            return None

        fields = _paginator_fields(extracted, paginator_plan)
        page_results = list(zip(plans, outcomes, strict=True))
        log_page_completed(
            page_number=number,
            url=response.url,
            rows=sum(len(o.rows) for _, entity_outcomes in page_results for o in entity_outcomes),
            latency_ms=(perf_counter() - started) * 1000.0,
        )
        return response, page_results, fields

    def _extract(
        self,
        response: FetchResponse,
        plans: Sequence[EntityPlan],
        paginator_plan: EntityPlan | None,
    ) -> Any:
        targets = (*plans, paginator_plan) if paginator_plan is not None else tuple(plans)
        try:
            return self.extractor.extract(response, targets)
        except HarvestError:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not extract entities from {response.url}: {e}") from e

    async def _publish(
        self,
        page: list[tuple[EntityPlan, list[RowOutcome]]],
        results: Results,
        collect: bool,
    ) -> None:
        """Build the page results, run processors, then merge the page."""
        page_results = Results()
        for plan, outcomes in page:
            result = Result(plan.name, output_headers(plan), empty_value=plan.options.empty_value)
            page_results.put(plan.name, result)
            for outcome in outcomes:
                if outcome.error is not None:
                    self.context.entity, self.context.row_index = plan.name, outcome.index
                    await self._handle_error(outcome.error)
                    continue
                for row in outcome.rows:
                    index = result.append(row, field_data=outcome.field_data, entity_data=outcome.entity_data)
                    await self._process(plan, result, index, outcome.index)
        if collect:
            results.merge(page_results)

    async def _process(self, plan: EntityPlan, result: Result, index: int, row_index: int) -> None:
        processor = self._processors.get(plan.key)
        if processor is None or self.context.stopped:
            return
        self.context.entity = plan.name
        self.context.row_index = row_index
        try:
            outcome = processor(result.record(index), self.context)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            await self._handle_error(e)

    async def _handle_error(self, error: Exception) -> None:
        if self._error_handler is None:
            raise error
        logger.warning(
            "parse_error_handled",
            extra={"entity": self.context.entity, "error_type": type(error).__name__, "error_message": str(error)},
        )
        outcome = self._error_handler(error, self.context)
        if inspect.isawaitable(outcome):
            await outcome

    def _requests(self, source: ParseInput) -> tuple[list[FetchRequest], bool]:
        """Requests to start from, and whether they point at local files."""
        if isinstance(source, Path):
            if source.is_dir():
                pages = FileFetcher.list_pages(source)
                if not pages:
                    raise ConfigurationError(f"No documents found in directory {source}")
                return [FetchRequest(page) for page in pages], True
            return [FetchRequest(str(source))], True
        request = source if isinstance(source, FetchRequest) else FetchRequest(str(source))
        if not request.url or not request.url.strip():
            raise ConfigurationError("Input URL cannot be blank")
        return [request], urlsplit(request.url).scheme not in ("http", "https")

    def _fetcher_for(self, local: bool) -> tuple[Fetcher, bool]:
        if self.fetcher is not None:
            return self.fetcher, False
        if local:
            return FileFetcher(encoding=self.settings.text_encoding), True
        return HTTPFetcher(timeout=self.settings.request_timeout, encoding=self.settings.text_encoding), True

    async def close(self) -> None:
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> EntityParser:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _paginator_fields(extracted: Any, plan: EntityPlan | None) -> dict[str, str | None]:
    """First non-blank value of each paginator field on the page."""
    if plan is None:
        return {}
    fields: dict[str, str | None] = dict.fromkeys(plan.headers)
    for row in rows_for(extracted, plan):
        for name, value in zip(plan.headers, row, strict=False):
            if fields[name] is None and value is not None and str(value).strip():
                fields[name] = value
    return fields
