"""Immutable execution plans compiled from entity definitions.

Architecture:
    ``compile_entity`` walks an entity and every follower beneath it once,
    resolving each option through the layer chain

        definition -> enclosing followers (innermost first) -> owning entity -> ParserSettings

    and freezes the outcome into ``EntityPlan``/``FollowerPlan`` trees. The
    runtime only reads plans; it never consults parent definitions.

Key Types:
    - ResolvedOptions: Effective nesting/error/empty-value options
    - EntityPlan: Fields, filters and followers of one entity
    - FollowerPlan: Link field position, request assignments and the plans
      of what is extracted from the linked document
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.enums import Nesting
from ..core.exceptions import ConfigurationError
from ..core.settings import ParserSettings
from .entity import Entity, LinkFollower, NextLinkHandler, normalize_name

if TYPE_CHECKING:
    from ..io.protocols import RecordFilter
    from ..models.record import Record


@dataclass(frozen=True)
class ResolvedOptions:
    nesting: Nesting
    ignore_following_errors: bool
    empty_value: str | None
    keep_unmatched_rows: bool


@dataclass(frozen=True)
class EntityPlan:
    """Compiled entity: what the extractor must produce and how rows are handled."""

    name: str
    headers: tuple[str, ...]
    matchers: tuple[Any, ...]
    options: ResolvedOptions
    followers: tuple[FollowerPlan, ...] = ()
    filters: tuple[RecordFilter, ...] = ()
    depth: int = 0

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    def matcher(self, field: str) -> Any:
        key = normalize_name(field)
        for name, matcher in zip(self.headers, self.matchers, strict=True):
            if name.lower() == key:
                return matcher
        raise KeyError(field)


@dataclass(frozen=True)
class FollowerPlan:
    """Compiled link follower attached to ``link_index`` of its parent rows."""

    link_field: str
    link_index: int
    plan: EntityPlan
    entities: tuple[EntityPlan, ...] = ()
    base_url: str | None = None
    assignments: tuple[tuple[str, Any], ...] = ()
    max_links: int = 0
    next_link_handler: NextLinkHandler | None = None

    @property
    def name(self) -> str:
        return self.plan.name

    @property
    def options(self) -> ResolvedOptions:
        return self.plan.options

    @property
    def extracted(self) -> tuple[EntityPlan, ...]:
        """Every entity the extractor must produce from a linked document."""
        return (self.plan, *self.entities)

    def request_parameters(self, record: Record) -> dict[str, Any]:
        """Evaluate assignments against the parent ``record``."""
        params: dict[str, Any] = {}
        for parameter, value in self.assignments:
            params[parameter] = value(record) if callable(value) else value
        return params


def resolve_options(layers: Sequence[Entity], settings: ParserSettings) -> ResolvedOptions:
    """Resolve options from the innermost definition outwards, then ``settings``."""
    resolved: dict[str, Any] = {
        "nesting": settings.nesting,
        "ignore_following_errors": settings.ignore_following_errors,
        "empty_value": settings.empty_value,
    }
    for layer in reversed(layers):
        resolved.update(layer.overrides())
    return ResolvedOptions(keep_unmatched_rows=settings.keep_unmatched_rows, **resolved)


def compile_entity(
    entity: Entity,
    settings: ParserSettings,
    enclosing: Sequence[Entity] = (),
    depth: int = 0,
) -> EntityPlan:
    """Compile ``entity`` with ``enclosing`` definitions ordered innermost first.

    Raises:
        ConfigurationError: If an entity other than a follower declares no
            fields, or a follower targets a field that is not declared.
    """
    if not entity.field_names and not isinstance(entity, LinkFollower):
        raise ConfigurationError(f"Entity '{entity.name}' has no fields")

    layers = (entity, *enclosing)
    followers = tuple(_compile_follower(entity, f, settings, layers, depth) for f in entity.followers)
    return EntityPlan(
        name=entity.name,
        headers=entity.field_names,
        matchers=entity.matchers,
        options=resolve_options(layers, settings),
        followers=followers,
        filters=entity.record_filters,
        depth=depth,
    )


def _compile_follower(
    owner: Entity,
    follower: LinkFollower,
    settings: ParserSettings,
    layers: Sequence[Entity],
    depth: int,
) -> FollowerPlan:
    link_index = owner.field_index(follower.link_field)
    if link_index is None:
        raise ConfigurationError(
            f"Cannot follow field '{follower.link_field}': not declared on '{owner.name}'. "
            f"Available fields: {list(owner.field_names)}"
        )
    plan = compile_entity(follower, settings, layers, depth + 1)
    follower_layers = (follower, *layers)
    entities = tuple(compile_entity(e, settings, follower_layers, depth + 1) for e in follower.entities)
    return FollowerPlan(
        link_field=owner.field_names[link_index],
        link_index=link_index,
        plan=plan,
        entities=entities,
        base_url=follower.base_url,
        assignments=tuple(follower.assignments.items()),
        max_links=follower.max_links,
        next_link_handler=follower.next_link_handler,
    )
