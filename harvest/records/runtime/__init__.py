"""Runtime: pagination, link following, nesting and the entity parser."""

from .following import (
    LinkContext,
    LinkFollowingCoordinator,
    LinkScheduler,
    LinkTask,
    RateLimiter,
    ResponseHook,
    RowOutcome,
    throttle_on_status,
)
from .nesting import LinkSlot, join_results, link_results, match_fields, nest_headers, nest_row
from .pagination import NextPage, PaginationContext, PaginationState, Paginator
from .parser import EntityParser, ErrorHandler, ParseInput, ParsingContext, Processor

__all__ = [
    "EntityParser",
    "ParsingContext",
    "ParseInput",
    "Processor",
    "ErrorHandler",
    "Paginator",
    "PaginationContext",
    "PaginationState",
    "NextPage",
    "LinkContext",
    "LinkFollowingCoordinator",
    "LinkScheduler",
    "LinkTask",
    "RateLimiter",
    "ResponseHook",
    "RowOutcome",
    "throttle_on_status",
    "LinkSlot",
    "nest_headers",
    "nest_row",
    "join_results",
    "link_results",
    "match_fields",
]
