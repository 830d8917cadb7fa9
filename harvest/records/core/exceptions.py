"""Custom exception hierarchy."""

from __future__ import annotations


class HarvestError(Exception):
    """Base exception for all library errors."""

    pass


class ConfigurationError(HarvestError):
    """Entity graph or parser settings are inconsistent."""

    pass


class JoinConfigurationError(ConfigurationError):
    """Two results cannot be matched because no usable join fields exist.

    Raised instead of silently producing an unbounded cartesian product.
    """

    def __init__(self, message: str, master: str | None = None, child: str | None = None) -> None:
        super().__init__(message)
        self.master = master
        self.child = child


class EntityNotFoundError(HarvestError, KeyError):
    """Requested entity name does not exist in a result set."""

    def __init__(self, message: str, entity: str | None = None, available: list[str] | None = None) -> None:
        super().__init__(message)
        self.entity = entity
        self.available = available or []

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class FetchError(HarvestError):
    """A document could not be retrieved."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RateLimitError(FetchError):
    """Remote host signalled throttling."""

    def __init__(self, message: str, url: str | None = None, retry_after: float | None = None) -> None:
        super().__init__(message, url=url, status_code=429)
        self.retry_after = retry_after


class ExtractionError(HarvestError):
    """The extractor failed or produced rows that do not fit the headers."""

    def __init__(self, message: str, entity: str | None = None) -> None:
        super().__init__(message)
        self.entity = entity


class LinkFollowingError(HarvestError):
    """A link could not be followed and errors are not ignored for it."""

    def __init__(
        self,
        message: str,
        entity: str | None = None,
        field: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.entity = entity
        self.field = field
        self.url = url
