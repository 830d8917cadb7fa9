"""Harvest Records - multi-entity extraction across paginated and linked documents."""

from .core import (
    DEFAULT_DOWNLOAD_THREADS,
    DEFAULT_REMOTE_INTERVAL,
    ConfigurationError,
    EntityNotFoundError,
    ExtractionError,
    FetchError,
    HarvestError,
    JoinConfigurationError,
    LinkFollowingError,
    Nesting,
    PaginationStatus,
    ParserSettings,
    RateLimitError,
)
from .graph import Entity, EntityGraph, EntityPlan, FollowerPlan, LinkFollower, ResolvedOptions
from .io import (
    DownloadStore,
    Extractor,
    Fetcher,
    FetchRequest,
    FetchResponse,
    FileFetcher,
    HTTPFetcher,
    RecordFilter,
    Row,
)
from .models import Record, Result, Results
from .runtime import (
    EntityParser,
    LinkContext,
    LinkFollowingCoordinator,
    LinkScheduler,
    LinkTask,
    NextPage,
    PaginationContext,
    PaginationState,
    Paginator,
    ParsingContext,
    RateLimiter,
    RowOutcome,
    join_results,
    link_results,
    nest_headers,
    nest_row,
    throttle_on_status,
)
from .utils import FileNamePattern

__version__ = "0.1.0"

__all__ = [
    # Parser
    "EntityParser",
    "ParsingContext",
    "ParserSettings",
    # Entity graph
    "EntityGraph",
    "Entity",
    "LinkFollower",
    "EntityPlan",
    "FollowerPlan",
    "ResolvedOptions",
    "Nesting",
    # Results
    "Record",
    "Result",
    "Results",
    "join_results",
    "link_results",
    "nest_headers",
    "nest_row",
    # Pagination
    "Paginator",
    "PaginationContext",
    "PaginationState",
    "PaginationStatus",
    "NextPage",
    # Link following
    "LinkContext",
    "LinkFollowingCoordinator",
    "LinkScheduler",
    "LinkTask",
    "RateLimiter",
    "RowOutcome",
    "throttle_on_status",
    # I/O
    "Fetcher",
    "Extractor",
    "RecordFilter",
    "Row",
    "FetchRequest",
    "FetchResponse",
    "HTTPFetcher",
    "FileFetcher",
    "DownloadStore",
    "FileNamePattern",
    # Exceptions
    "HarvestError",
    "ConfigurationError",
    "JoinConfigurationError",
    "EntityNotFoundError",
    "ExtractionError",
    "FetchError",
    "RateLimitError",
    "LinkFollowingError",
    # Constants
    "DEFAULT_DOWNLOAD_THREADS",
    "DEFAULT_REMOTE_INTERVAL",
]
