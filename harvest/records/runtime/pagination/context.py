"""Read/write view of the pagination state exposed to user code."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...core.enums import PaginationStatus

if TYPE_CHECKING:
    from .paginator import Paginator


class PaginationContext:
    """Pagination state of the current (or last) parse.

    Handed to pagination handlers and available through
    ``EntityParser.get_pagination_context()``.
    """

    def __init__(self, paginator: Paginator) -> None:
        self._paginator = paginator

    @property
    def current_page(self) -> str | None:
        return self._paginator.state.current_page

    @property
    def current_page_number(self) -> int:
        return self._paginator.state.current_page_number

    @property
    def next_page(self) -> str | None:
        return self._paginator.state.next_page

    @property
    def next_page_number(self) -> int | None:
        return self._paginator.state.next_page_number

    @property
    def page_count(self) -> int:
        """Pages visited so far."""
        return self._paginator.state.follow_count

    @property
    def follow_count_limit(self) -> int:
        return self._paginator.state.follow_count_limit

    @property
    def status(self) -> PaginationStatus:
        return self._paginator.state.status

    @property
    def stopped(self) -> bool:
        return self.status is PaginationStatus.STOPPED

    @property
    def has_more_pages(self) -> bool:
        return self._paginator.has_more_pages()

    @property
    def fields(self) -> dict[str, str | None]:
        """Paginator field values captured from the last page."""
        return dict(self._paginator.state.fields)

    def read_field(self, name: str) -> str | None:
        wanted = name.strip().lower()
        for field, value in self._paginator.state.fields.items():
            if field.lower() == wanted:
                return value
        return None

    @property
    def ideal_page_size(self) -> int | None:
        return self._paginator.state.ideal_page_size

    @ideal_page_size.setter
    def ideal_page_size(self, value: int | None) -> None:
        self._paginator.state.ideal_page_size = value

    def set_request_parameter(self, name: str, value: Any) -> None:
        self._paginator.set_request_parameter(name, value)

    def set_next_page(self, url: str) -> None:
        self._paginator.redirect(url)

    def stop_pagination(self) -> None:
        self._paginator.stop()

    def __repr__(self) -> str:
        return (
            f"PaginationContext(page={self.current_page_number}, status={self.status.value}, "
            f"next={self.next_page!r})"
        )
