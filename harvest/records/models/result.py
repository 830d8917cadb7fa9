"""Rows of one entity together with the data linked to each row.

Architecture:
    A ``Result`` is assembled page by page. The coordinator appends rows while
    a page is being processed; once the page is complete it is merged into the
    accumulated ``Result`` held by ``Results``. Linked data is stored per row
    index:

    - linked field data: the child ``Result`` produced by following a link
      field of the row, keyed by the (lower-cased) field name
    - linked entity data: a ``Results`` holding additional entities extracted
      from linked documents, or rows attached with ``Results.link``

See Also:
    - harvest.records.runtime.nesting: JOIN/LINK semantics used by ``join`` and ``link``
    - harvest.records.models.results: case-insensitive entity store
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from ..core.exceptions import ExtractionError
from .record import Record
from .results import Results


class Result:
    """Ordered rows of a single entity, all exactly ``len(headers)`` wide."""

    def __init__(
        self,
        entity_name: str,
        headers: Sequence[str],
        rows: Iterable[Sequence[str | None]] | None = None,
        *,
        empty_value: str | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.headers: tuple[str, ...] = tuple(headers)
        self.empty_value = empty_value
        self._rows: list[tuple[str | None, ...]] = []
        self._field_data: dict[int, dict[str, Result]] = {}
        self._entity_data: dict[int, Results] = {}
        for row in rows or ():
            self.append(row)

    @property
    def rows(self) -> list[tuple[str | None, ...]]:
        return list(self._rows)

    @property
    def records(self) -> list[Record]:
        return [self.record(i) for i in range(len(self._rows))]

    def record(self, index: int) -> Record:
        return Record(
            self.entity_name,
            self.headers,
            self._rows[index],
            field_data=self._field_data.get(index),
            entity_data=self._entity_data.get(index),
        )

    def is_empty(self) -> bool:
        return not self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __bool__(self) -> bool:
        # An empty result is still a result; truthiness must not hide it.
        return True

    def index_of(self, field: str) -> int | None:
        """Header position of ``field`` (case-insensitive), ``None`` if absent."""
        wanted = field.strip().lower()
        for position, name in enumerate(self.headers):
            if name.lower() == wanted:
                return position
        return None

    def append(
        self,
        row: Sequence[str | None],
        *,
        field_data: Mapping[str, Result] | None = None,
        entity_data: Results | None = None,
    ) -> int:
        """Append ``row``, padding short rows with the empty value.

        Returns the index of the new row.

        Raises:
            ExtractionError: If the row is wider than the headers.
        """
        values = tuple(row)
        width = len(self.headers)
        if len(values) > width:
            raise ExtractionError(
                f"Row of {len(values)} values does not fit the {width} fields of '{self.entity_name}'",
                entity=self.entity_name,
            )
        if len(values) < width:
            values = values + (self.empty_value,) * (width - len(values))
        index = len(self._rows)
        self._rows.append(values)
        if field_data:
            self._field_data[index] = {k.strip().lower(): v for k, v in field_data.items()}
        if entity_data is not None and len(entity_data):
            self._entity_data[index] = entity_data
        return index

    def merge(self, other: Result) -> None:
        """Append every row of ``other`` (next page of the same entity)."""
        if tuple(h.lower() for h in other.headers) != tuple(h.lower() for h in self.headers):
            raise ExtractionError(
                f"Cannot merge rows of '{other.entity_name}' {list(other.headers)} "
                f"into '{self.entity_name}' {list(self.headers)}",
                entity=self.entity_name,
            )
        offset = len(self._rows)
        self._rows.extend(other._rows)
        for index, data in other._field_data.items():
            self._field_data[offset + index] = data
        for index, results in other._entity_data.items():
            self._entity_data[offset + index] = results

    def linked_field_data(self, row_index: int, field: str | None = None) -> Result | None:
        """Child result of row ``row_index``, by link field or child entity name."""
        data = self._field_data.get(row_index)
        if not data:
            return None
        if field is None:
            return next(iter(data.values()))
        key = field.strip().lower()
        if key in data:
            return data[key]
        for child in data.values():
            if child.entity_name.strip().lower() == key:
                return child
        return None

    def linked_entity_data(self, row_index: int) -> Results:
        return self._entity_data.get(row_index) or Results()

    def links_of(self, row_index: int) -> tuple[dict[str, Result], Results | None]:
        """Linked field data and linked entity data of one row, by reference."""
        return dict(self._field_data.get(row_index) or {}), self._entity_data.get(row_index)

    def set_linked_field_data(self, row_index: int, field: str, result: Result) -> None:
        self._check_index(row_index)
        self._field_data.setdefault(row_index, {})[field.strip().lower()] = result

    def add_linked_entity_data(self, row_index: int, result: Result) -> None:
        self._check_index(row_index)
        self._entity_data.setdefault(row_index, Results()).put(result.entity_name, result)

    def join(self, other: Result, *fields: str, keep_unmatched: bool = True) -> Result:
        """New result combining matching rows of ``self`` and ``other``."""
        from ..runtime.nesting import join_results

        return join_results(self, other, fields, keep_unmatched=keep_unmatched)

    def link(self, other: Result, *fields: str) -> None:
        """Attach matching rows of ``other`` to each row as linked entity data."""
        from ..runtime.nesting import link_results

        link_results(self, other, fields)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [dict(zip(self.headers, row, strict=True)) for row in self._rows]

    def _check_index(self, row_index: int) -> None:
        if not 0 <= row_index < len(self._rows):
            raise IndexError(f"Row {row_index} out of range for '{self.entity_name}' ({len(self._rows)} rows)")

    def __repr__(self) -> str:
        return f"Result({self.entity_name!r}, headers={list(self.headers)!r}, rows={len(self._rows)})"
