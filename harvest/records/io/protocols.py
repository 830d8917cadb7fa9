"""Collaborator contracts and request/response value types.

Architecture:
    Fetching documents and turning them into raw rows are pluggable. The
    runtime only depends on the protocols below, so any class providing the
    right methods can be used (no inheritance required).

See Also:
    - HTTPFetcher / FileFetcher: Reference fetchers
    - LinkFollowingCoordinator: Main consumer of these contracts
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlencode, urlsplit

from ..core.exceptions import FetchError, RateLimitError

if TYPE_CHECKING:
    from ..graph.plan import EntityPlan
    from ..models.record import Record

Row = Sequence[str | None]

LOCAL_HOST = "local"


@dataclass(frozen=True)
class FetchRequest:
    """Description of a document to fetch."""

    url: str
    method: str = "GET"
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    data: Any = None

    @property
    def host(self) -> str:
        """Rate-limiter key for this request."""
        return request_host(self.url)

    @property
    def full_url(self) -> str:
        """URL with ``params`` encoded into its query string."""
        if not self.params:
            return self.url
        separator = "&" if urlsplit(self.url).query else "?"
        return f"{self.url}{separator}{urlencode(self.params)}"

    def with_url(self, url: str) -> FetchRequest:
        return replace(self, url=url)

    def with_params(self, **params: Any) -> FetchRequest:
        merged = dict(self.params)
        for name, value in params.items():
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = str(value)
        return replace(self, params=merged)

    def with_cookies(self, cookies: Mapping[str, str]) -> FetchRequest:
        if not cookies:
            return self
        return replace(self, cookies={**self.cookies, **cookies})


@dataclass(frozen=True)
class FetchResponse:
    """A fetched document."""

    url: str
    content: bytes
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding, errors="replace")

    @property
    def host(self) -> str:
        return request_host(self.url)

    @property
    def ok(self) -> bool:
        return self.status < 400

    def raise_for_status(self) -> None:
        """Raise FetchError (or RateLimitError) for error statuses."""
        if self.status in (418, 429):
            retry_after = parse_retry_after(self.headers.get("Retry-After"))
            raise RateLimitError(
                f"Rate limited by {self.host} ({self.status})", url=self.url, retry_after=retry_after
            )
        if not self.ok:
            raise FetchError(f"HTTP {self.status} for {self.url}", url=self.url, status_code=self.status)


class Fetcher(Protocol):
    """Retrieves documents."""

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        """Fetch a document. Error statuses are returned, not raised."""
        ...

    async def probe(self, url: str) -> bool:
        """Lightweight existence check used for URL testing."""
        ...

    def resolve(self, base: str | None, link: str) -> str:
        """Resolve a possibly relative link against a base location."""
        ...


class Extractor(Protocol):
    """Turns a document into raw rows per entity."""

    def extract(
        self, response: FetchResponse, plans: Sequence[EntityPlan]
    ) -> Mapping[str, Sequence[Row]]:
        """Return the ordered rows found for each entity, keyed by entity name.

        Rows must list values in the order of ``plan.headers``. Entities with no
        rows may be omitted.
        """
        ...


class RecordFilter(Protocol):
    """Decides whether a record is kept before link following and nesting."""

    def __call__(self, record: Record, context: Any) -> bool: ...


def request_host(url: str) -> str:
    """Return the host part of ``url``; local paths share one key."""
    netloc = urlsplit(url).netloc
    return netloc.lower() if netloc else LOCAL_HOST


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
