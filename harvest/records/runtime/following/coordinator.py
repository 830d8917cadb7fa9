"""Link following and nesting of the rows extracted from one document.

Architecture:
    ``process_entity`` turns the raw rows of one entity into ``RowOutcome``
    values. For every row it starts one ``LinkTask`` per follower whose link
    value is not blank; all tasks of all rows run concurrently and each row
    only waits for its own tasks before being nested.

    ``follow`` runs one task:

    1. acquire a scheduler slot
    2. run the follower's next-link handler, which may rewrite or skip the request
    3. wait for the host in the rate limiter
    4. fetch, run response hooks, check the status
    5. persist the document when downloads are enabled
    6. extract the follower's entities
    7. release the slot, then process the extracted rows recursively

    Releasing the slot before recursing keeps nested following deadlock free
    whatever the pool size.

Design Decisions:
    - Link failures honour ``ignore_following_errors`` of the follower: when
      ignored the row keeps going without child data, otherwise the row is
      aborted and reported with its ``LinkFollowingError``.
    - Rows rejected by a record filter are dropped before any link is followed.
    - Nothing is published here; callers assemble pages and publish them once
      complete.

See Also:
    - harvest.records.runtime.nesting: How child rows attach to parent rows
    - EntityParser: Drives pages and publishes outcomes
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from time import perf_counter
from typing import TYPE_CHECKING, Any

from ...core.exceptions import ExtractionError, HarvestError, LinkFollowingError
from ...core.settings import ParserSettings
from ...graph.plan import EntityPlan, FollowerPlan
from ...io.protocols import Extractor, Fetcher, FetchRequest, Row
from ...models.record import Record
from ...models.result import Result
from ...models.results import Results
from ..nesting import LinkSlot, RowValues, nest_headers, nest_row
from .rate_limiter import RateLimiter, ResponseHook, run_response_hooks
from .scheduler import LinkScheduler
from .tasks import LinkContext, LinkTask
from .telemetry import log_link_failed, log_link_followed, log_link_skipped, log_row_aborted

if TYPE_CHECKING:
    from ...io.downloads import DownloadStore


@dataclass
class RowOutcome:
    """Output of one source row after link following and nesting.

    Attributes:
        index: Position of the source row in the document
        record: Source record, before nesting
        rows: Nested output rows (zero or more)
        field_data: Child result per followed link field
        entity_data: Additional entities extracted from linked documents
        error: Set when the row was aborted
    """

    index: int
    record: Record
    rows: list[RowValues] = field(default_factory=list)
    field_data: dict[str, Result] = field(default_factory=dict)
    entity_data: Results = field(default_factory=Results)
    error: LinkFollowingError | None = None


@dataclass
class FollowOutcome:
    result: Result
    entities: Results


async def cancel_all(tasks: Iterable[asyncio.Task[Any]]) -> None:
    """Cancel ``tasks`` and wait until every one of them has finished."""
    pending = list(tasks)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


def output_headers(plan: EntityPlan) -> tuple[str, ...]:
    """Headers of the rows produced for ``plan`` once nested."""
    return nest_headers(plan.headers, _slots(plan))


def _slots(plan: EntityPlan) -> list[LinkSlot]:
    return [LinkSlot(f.link_index, f.options.nesting, output_headers(f.plan)) for f in plan.followers]


class LinkFollowingCoordinator:
    """Follows links of extracted rows with bounded, rate-limited concurrency."""

    def __init__(
        self,
        fetcher: Fetcher,
        extractor: Extractor,
        *,
        settings: ParserSettings | None = None,
        scheduler: LinkScheduler | None = None,
        rate_limiter: RateLimiter | None = None,
        response_hooks: Iterable[ResponseHook] = (),
        downloads: DownloadStore | None = None,
        context: Any = None,
    ) -> None:
        self.settings = settings or ParserSettings()
        self.fetcher = fetcher
        self.extractor = extractor
        self.scheduler = scheduler or LinkScheduler(self.settings.download_threads)
        self.rate_limiter = rate_limiter or RateLimiter(self.settings.remote_interval)
        self.response_hooks = list(response_hooks)
        self.downloads = downloads
        self.context = context
        self.cookies: dict[str, str] = {}
        self._links_followed: dict[int, int] = {}
        self._sequences: dict[str | None, int] = {}

    def reset(self) -> None:
        """Forget per-parse state (link caps, cookies, download numbering)."""
        self._links_followed.clear()
        self._sequences.clear()
        self.cookies.clear()

    async def process_entity(
        self,
        plan: EntityPlan,
        rows: Sequence[Row],
        *,
        base_url: str | None = None,
        page: int = 1,
        parent_file: str | None = None,
    ) -> list[RowOutcome]:
        """Filter, follow and nest the rows of one entity.

        Outcomes keep document order. Aborted rows carry their error and no
        output rows.
        """
        pending: list[asyncio.Task[RowOutcome]] = []
        try:
            for index, values in enumerate(rows):
                record = self._record(plan, values)
                if not self._accepts(plan, record):
                    continue
                tasks = self._link_tasks(plan, index, record, base_url, page, parent_file)
                pending.append(asyncio.create_task(self._process_row(plan, index, record, tasks)))
            return list(await asyncio.gather(*pending))
        except BaseException:
            await cancel_all(pending)
            raise

    async def build_result(
        self,
        plan: EntityPlan,
        rows: Sequence[Row],
        *,
        base_url: str | None = None,
        page: int = 1,
        parent_file: str | None = None,
    ) -> Result:
        """Process ``rows`` and collect the nested rows into a ``Result``.

        Aborted rows are logged and left out.
        """
        outcomes = await self.process_entity(
            plan, rows, base_url=base_url, page=page, parent_file=parent_file
        )
        result = Result(plan.name, output_headers(plan), empty_value=plan.options.empty_value)
        for outcome in outcomes:
            if outcome.error is not None:
                log_row_aborted(entity=plan.name, row_index=outcome.index, error_message=str(outcome.error))
                continue
            for row in outcome.rows:
                result.append(row, field_data=outcome.field_data, entity_data=outcome.entity_data)
        return result

    async def follow(self, task: LinkTask) -> FollowOutcome | None:
        """Fetch, extract and process the document referenced by ``task``.

        Returns ``None`` when the link failed and errors are ignored.

        Raises:
            LinkFollowingError: If the link failed and errors are not ignored.
        """
        follower = task.follower
        request = task.request
        started = perf_counter()
        try:
            async with self.scheduler.slot():
                request = request.with_cookies(self.cookies)
                if follower.next_link_handler is not None:
                    link = LinkContext(task, self.rate_limiter, self.context, request=request)
                    outcome = follower.next_link_handler(link)
                    if inspect.isawaitable(outcome):
                        await outcome
                    if link.skipped:
                        log_link_skipped(entity=task.entity, field=task.field, reason="handler")
                        return None
                    request = link.request
                await self.rate_limiter.acquire(request.host)
                response = await self.fetcher.fetch(request)
                self.cookies.update(response.cookies)
                await run_response_hooks(self.response_hooks, response, self.rate_limiter)
                response.raise_for_status()
                file_name = None
                if self.downloads is not None:
                    file_name = await self.downloads.save(
                        response, page=task.page, parent=task.parent_file, follower=task.sequence
                    )
                extracted = self.extractor.extract(response, follower.extracted)

            result = await self.build_result(
                follower.plan,
                rows_for(extracted, follower.plan),
                base_url=response.url,
                page=task.page,
                parent_file=file_name,
            )
            entities = Results()
            for plan in follower.entities:
                entities.put(
                    plan.name,
                    await self.build_result(
                        plan,
                        rows_for(extracted, plan),
                        base_url=response.url,
                        page=task.page,
                        parent_file=file_name,
                    ),
                )
        except Exception as e:
            log_link_failed(
                entity=task.entity,
                field=task.field,
                url=request.full_url,
                error_type=type(e).__name__,
                error_message=str(e),
                ignored=task.ignore_errors,
            )
            if task.ignore_errors:
                return None
            raise LinkFollowingError(
                f"Could not follow '{task.field}' of '{task.entity}' to {request.full_url}: {e}",
                entity=task.entity,
                field=task.field,
                url=request.full_url,
            ) from e

        log_link_followed(
            entity=task.entity,
            field=task.field,
            url=request.full_url,
            rows=len(result),
            depth=task.depth,
            latency_ms=(perf_counter() - started) * 1000.0,
        )
        return FollowOutcome(result=result, entities=entities)

    def _record(self, plan: EntityPlan, values: Row) -> Record:
        row = tuple(values)
        if len(row) > len(plan.headers):
            raise ExtractionError(
                f"Row of {len(row)} values does not fit the {len(plan.headers)} fields of '{plan.name}'",
                entity=plan.name,
            )
        if len(row) < len(plan.headers):
            row = row + (plan.options.empty_value,) * (len(plan.headers) - len(row))
        return Record(plan.name, plan.headers, row)

    def _accepts(self, plan: EntityPlan, record: Record) -> bool:
        try:
            return all(record_filter(record, self.context) for record_filter in plan.filters)
        except HarvestError:
            raise
        except Exception as e:
            raise ExtractionError(f"Record filter of '{plan.name}' failed: {e}", entity=plan.name) from e

    def _link_tasks(
        self,
        plan: EntityPlan,
        index: int,
        record: Record,
        base_url: str | None,
        page: int,
        parent_file: str | None,
    ) -> list[LinkTask | None]:
        tasks: list[LinkTask | None] = []
        for follower in plan.followers:
            link = record[follower.link_index] if follower.link_index < len(record) else None
            if link is None or not str(link).strip():
                log_link_skipped(entity=plan.name, field=follower.link_field, reason="blank")
                tasks.append(None)
                continue
            if not self._take_link(follower):
                log_link_skipped(entity=plan.name, field=follower.link_field, reason="max_links")
                tasks.append(None)
                continue
            url = self.fetcher.resolve(follower.base_url or base_url, str(link).strip())
            request = FetchRequest(url).with_params(**follower.request_parameters(record))
            tasks.append(
                LinkTask(
                    entity=plan.name,
                    follower=follower,
                    row_index=index,
                    record=record,
                    request=request,
                    page=page,
                    depth=plan.depth + 1,
                    parent_file=parent_file,
                    sequence=self._next_sequence(parent_file),
                )
            )
        return tasks

    def _take_link(self, follower: FollowerPlan) -> bool:
        if follower.max_links <= 0:
            return True
        key = id(follower)
        taken = self._links_followed.get(key, 0)
        if taken >= follower.max_links:
            return False
        self._links_followed[key] = taken + 1
        return True

    def _next_sequence(self, parent_file: str | None) -> int:
        sequence = self._sequences.get(parent_file, 0) + 1
        self._sequences[parent_file] = sequence
        return sequence

    async def _process_row(
        self,
        plan: EntityPlan,
        index: int,
        record: Record,
        tasks: Sequence[LinkTask | None],
    ) -> RowOutcome:
        outcome = RowOutcome(index=index, record=record)
        followed = await asyncio.gather(
            *(self._follow_optional(task) for task in tasks), return_exceptions=True
        )
        children: list[Result | None] = []
        for follower, child in zip(plan.followers, followed, strict=True):
            if isinstance(child, LinkFollowingError):
                outcome.error = outcome.error or child
                children.append(None)
            elif isinstance(child, BaseException):
                raise child
            elif child is None:
                children.append(None)
            else:
                children.append(child.result)
                outcome.field_data[follower.link_field] = child.result
                for name, result in child.entities.items():
                    outcome.entity_data.put(name, result)
        if outcome.error is not None:
            return outcome

        outcome.rows = nest_row(
            record.values,
            _slots(plan),
            children,
            keep_unmatched=plan.options.keep_unmatched_rows,
        )
        return outcome

    async def _follow_optional(self, task: LinkTask | None) -> FollowOutcome | None:
        if task is None:
            return None
        return await self.follow(task)


def rows_for(extracted: Mapping[str, Sequence[Row]], plan: EntityPlan) -> Sequence[Row]:
    """Rows extracted for ``plan``, matching the entity name case-insensitively."""
    if plan.name in extracted:
        return extracted[plan.name]
    for name, rows in extracted.items():
        if name.strip().lower() == plan.key:
            return rows
    return ()
