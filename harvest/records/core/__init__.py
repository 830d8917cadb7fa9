"""Core components."""

from .enums import Nesting, PaginationStatus
from .exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    ExtractionError,
    FetchError,
    HarvestError,
    JoinConfigurationError,
    LinkFollowingError,
    RateLimitError,
)
from .settings import DEFAULT_DOWNLOAD_THREADS, DEFAULT_REMOTE_INTERVAL, ParserSettings

__all__ = [
    "Nesting",
    "PaginationStatus",
    "HarvestError",
    "ConfigurationError",
    "JoinConfigurationError",
    "EntityNotFoundError",
    "ExtractionError",
    "FetchError",
    "RateLimitError",
    "LinkFollowingError",
    "ParserSettings",
    "DEFAULT_DOWNLOAD_THREADS",
    "DEFAULT_REMOTE_INTERVAL",
]
