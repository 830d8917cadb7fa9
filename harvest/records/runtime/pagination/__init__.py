"""Pagination state machine."""

from .context import PaginationContext
from .definitions import (
    CURRENT_PAGE,
    CURRENT_PAGE_NUMBER,
    NEXT_PAGE,
    NEXT_PAGE_NUMBER,
    PAGINATOR_ENTITY,
    RESERVED_FIELDS,
    NextPage,
    PaginationState,
)
from .paginator import PaginationHandler, Paginator

__all__ = [
    "Paginator",
    "PaginationHandler",
    "PaginationContext",
    "PaginationState",
    "NextPage",
    "PAGINATOR_ENTITY",
    "CURRENT_PAGE",
    "CURRENT_PAGE_NUMBER",
    "NEXT_PAGE",
    "NEXT_PAGE_NUMBER",
    "RESERVED_FIELDS",
]
