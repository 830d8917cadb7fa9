"""Registry of the entities configured on a parser."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..core.exceptions import EntityNotFoundError
from ..core.settings import ParserSettings
from .entity import Entity, normalize_name
from .plan import EntityPlan, compile_entity

logger = logging.getLogger(__name__)


class EntityGraph:
    """Entities in declaration order, looked up case-insensitively."""

    def __init__(self) -> None:
        self._entities: dict[str, Entity] = {}

    def configure_entity(self, name: str) -> Entity:
        """Return the entity called ``name``, creating it when needed."""
        key = normalize_name(name)
        entity = self._entities.get(key)
        if entity is None:
            entity = Entity(name)
            self._entities[key] = entity
        return entity

    def get_entity(self, name: str) -> Entity:
        try:
            return self._entities[normalize_name(name)]
        except KeyError:
            raise EntityNotFoundError(
                f"Entity '{name}' is not configured. Available entities: {self.entity_names}",
                entity=name,
                available=self.entity_names,
            ) from None

    def remove_entity(self, name: str) -> Entity | None:
        """Remove ``name`` together with every follower declared beneath it."""
        return self._entities.pop(normalize_name(name), None)

    @property
    def entity_names(self) -> list[str]:
        return [entity.name for entity in self._entities.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(name.strip()) and normalize_name(name) in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._entities.values()))

    def __len__(self) -> int:
        return len(self._entities)

    def compile(self, settings: ParserSettings) -> tuple[EntityPlan, ...]:
        """Freeze the current definitions into execution plans."""
        plans = tuple(compile_entity(entity, settings) for entity in self._entities.values())
        logger.debug("entity_graph_compiled", extra={"entities": [p.name for p in plans]})
        return plans
