"""Case-insensitive store of results keyed by entity name."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

from ..core.exceptions import EntityNotFoundError

if TYPE_CHECKING:
    from .result import Result


class Results(Mapping[str, "Result"]):
    """Mapping of entity name to ``Result`` with normalized lookups.

    Names are trimmed and lower-cased for lookup while the latest original
    spelling is kept for enumeration. Replacing an entry keeps its position.
    """

    def __init__(self, results: Mapping[str, Result] | None = None) -> None:
        self._store: dict[str, tuple[str, Result]] = {}
        for name, result in (results or {}).items():
            self.put(name, result)

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().lower()

    def put(self, name: str, result: Result) -> Result | None:
        """Store ``result`` under ``name`` and return the entry it replaced."""
        key = self.normalize(name)
        previous = self._store.get(key)
        self._store[key] = (name.strip(), result)
        return previous[1] if previous else None

    def get(self, name: str) -> Result:  # type: ignore[override]
        key = self.normalize(name)
        if key in self._store:
            return self._store[key][1]
        if not self._store:
            raise EntityNotFoundError(f"Empty results. Entity '{name}' not found.", entity=name)
        available = list(self)
        raise EntityNotFoundError(
            f"Entity name '{name}' not found in results. Available entities: {available}",
            entity=name,
            available=available,
        )

    def __getitem__(self, name: str) -> Result:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.normalize(name) in self._store

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def remove(self, name: str) -> Result | None:
        entry = self._store.pop(self.normalize(name), None)
        return entry[1] if entry else None

    def clear(self) -> None:
        self._store.clear()

    def merge(self, other: Results) -> None:
        """Accumulate ``other`` into this store, extending existing results."""
        for name, result in other.items():
            key = self.normalize(name)
            if key in self._store:
                self._store[key][1].merge(result)
            else:
                self.put(name, result)

    def join(self, master: str, child: str, *more: str, keep_unmatched: bool = True) -> Result:
        """Join ``child`` (then each of ``more``) into ``master`` on common fields."""
        from ..runtime.nesting import join_results

        joined = self.get(master)
        for name in (child, *more):
            joined = join_results(joined, self.get(name), (), keep_unmatched=keep_unmatched)
        return joined

    def link(self, master: str, child: str, *more: str) -> None:
        """Attach rows of each child entity to the matching ``master`` rows."""
        from ..runtime.nesting import link_results

        target = self.get(master)
        children = [self.get(name) for name in (child, *more)]
        for result in children:
            link_results(target, result, ())

    def __repr__(self) -> str:
        counts = {name: len(result) for name, result in self.items()}
        return f"Results({counts!r})"
