"""Pagination state and reserved paginator fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ...core.enums import PaginationStatus

if TYPE_CHECKING:
    from ...io.protocols import FetchRequest

PAGINATOR_ENTITY = "*paginator*"

CURRENT_PAGE = "currentPage"
CURRENT_PAGE_NUMBER = "currentPageNumber"
NEXT_PAGE = "nextPage"
NEXT_PAGE_NUMBER = "nextPageNumber"

RESERVED_FIELDS = (CURRENT_PAGE, CURRENT_PAGE_NUMBER, NEXT_PAGE, NEXT_PAGE_NUMBER)


@dataclass(frozen=True)
class NextPage:
    """Next page found on the current one.

    Attributes:
        url: Resolved next page URL (or token), if any
        number: Next page number, if any
    """

    url: str | None = None
    number: int | None = None


@dataclass
class PaginationState:
    """Mutable state of one parse; read outside the paginator through ``PaginationContext``."""

    current_request: FetchRequest | None = None
    current_page: str | None = None
    current_page_number: int = 0
    next_request: FetchRequest | None = None
    next_page: str | None = None
    next_page_number: int | None = None
    ideal_page_size: int | None = None
    follow_count: int = 0
    follow_count_limit: int = 0
    status: PaginationStatus = PaginationStatus.INIT
    fields: dict[str, str | None] = field(default_factory=dict)

    @property
    def limit_reached(self) -> bool:
        return self.follow_count_limit > 0 and self.follow_count >= self.follow_count_limit
