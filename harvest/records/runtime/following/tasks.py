"""Unit of work for following one link, and the view handed to link handlers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from ...graph.plan import FollowerPlan
from ...io.protocols import FetchRequest
from ...models.record import Record

if TYPE_CHECKING:
    from .rate_limiter import RateLimiter


@dataclass(frozen=True)
class LinkTask:
    """Fetch and extract the document referenced by one field of one row.

    Attributes:
        entity: Name of the entity owning the row
        follower: Compiled follower of the link field
        row_index: Index of the row within its page
        record: Parent record (before nesting)
        request: Resolved request for the linked document
        page: Number of the page the row was found on
        depth: Nesting depth of the linked document (1 for links on pages)
        parent_file: Download name of the document holding the link
        sequence: Position of this link among those followed from the same document
    """

    entity: str
    follower: FollowerPlan
    row_index: int
    record: Record
    request: FetchRequest
    page: int = 1
    depth: int = 1
    parent_file: str | None = None
    sequence: int = 0

    @property
    def host(self) -> str:
        return self.request.host

    @property
    def field(self) -> str:
        return self.follower.link_field

    @property
    def ignore_errors(self) -> bool:
        return self.follower.options.ignore_following_errors


class LinkContext:
    """One link about to be fetched, as seen by a follower's next-link handler.

    The handler runs before the host is rate limited, so it may rewrite the
    request (URL, headers, cookies, parameters), adjust the wait time of any
    host, skip the link or stop the whole parse. A skipped link leaves its
    row without child data, like an ignored failure.
    """

    def __init__(
        self,
        task: LinkTask,
        rate_limiter: RateLimiter,
        parsing: Any = None,
        *,
        request: FetchRequest | None = None,
    ) -> None:
        self.task = task
        self.request = request or task.request
        self.rate_limiter = rate_limiter
        self.parsing = parsing
        self._skipped = False

    @property
    def entity(self) -> str:
        return self.task.entity

    @property
    def field(self) -> str:
        return self.task.field

    @property
    def record(self) -> Record:
        return self.task.record

    @property
    def page_number(self) -> int:
        return self.task.page

    @property
    def depth(self) -> int:
        return self.task.depth

    @property
    def url(self) -> str:
        return self.request.full_url

    def set_url(self, url: str) -> None:
        self.request = self.request.with_url(url)

    def set_header(self, name: str, value: str) -> None:
        self.request = replace(self.request, headers={**self.request.headers, name: value})

    def set_cookie(self, name: str, value: str) -> None:
        self.request = self.request.with_cookies({name: value})

    def set_request_parameter(self, name: str, value: Any) -> None:
        """Add or replace a query parameter; ``None`` removes it."""
        self.request = self.request.with_params(**{name: value})

    @property
    def skipped(self) -> bool:
        return self._skipped

    def skip(self) -> None:
        self._skipped = True

    def stop(self) -> None:
        """Skip this link and stop the parse."""
        self._skipped = True
        if self.parsing is not None:
            self.parsing.stop()

    def __repr__(self) -> str:
        return f"LinkContext(entity={self.entity!r}, field={self.field!r}, url={self.url!r})"
