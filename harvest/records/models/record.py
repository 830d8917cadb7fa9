"""Single extracted row bound to its headers and linked data."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .result import Result
    from .results import Results


class Record:
    """Immutable view over one row of an entity.

    Values are addressed by position or by field name. Linked data produced by
    link followers (or by ``Results.link``) is exposed through
    ``linked_field_data`` and ``linked_entity_data``.
    """

    __slots__ = ("entity_name", "headers", "values", "_field_data", "_entity_data", "_positions")

    def __init__(
        self,
        entity_name: str,
        headers: Sequence[str],
        values: Sequence[str | None],
        field_data: Mapping[str, Result] | None = None,
        entity_data: Results | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.headers = tuple(headers)
        self.values = tuple(values)
        self._field_data = field_data or {}
        self._entity_data = entity_data
        self._positions = {name: i for i, name in enumerate(self.headers)}

    def __getitem__(self, key: int | str) -> str | None:
        if isinstance(key, int):
            return self.values[key]
        return self.values[self.index_of(key)]

    def get(self, field: str, default: Any = None) -> Any:
        try:
            return self[field]
        except KeyError:
            return default

    def index_of(self, field: str) -> int:
        """Position of ``field``; exact match first, then case-insensitive."""
        if field in self._positions:
            return self._positions[field]
        lowered = field.strip().lower()
        for name, position in self._positions.items():
            if name.lower() == lowered:
                return position
        raise KeyError(f"Field '{field}' not found in {self.entity_name}. Available fields: {list(self.headers)}")

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[str | None]:
        return iter(self.values)

    def to_dict(self) -> dict[str, str | None]:
        return dict(zip(self.headers, self.values, strict=True))

    def linked_field_data(self, field: str | None = None) -> Result | None:
        """Child result for a link field or child entity name (first follower if omitted)."""
        if not self._field_data:
            return None
        if field is None:
            return next(iter(self._field_data.values()))
        key = field.strip().lower()
        if key in self._field_data:
            return self._field_data[key]
        return next(
            (child for child in self._field_data.values() if child.entity_name.strip().lower() == key), None
        )

    def linked_entity_data(self) -> Results:
        from .results import Results

        return self._entity_data if self._entity_data is not None else Results()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.headers == other.headers and self.values == other.values

    def __hash__(self) -> int:
        return hash((self.headers, self.values))

    def __repr__(self) -> str:
        return f"Record({self.entity_name!r}, {self.to_dict()!r})"
