"""Entity definitions and their compiled execution plans."""

from .entity import Entity, LinkFollower, normalize_name
from .graph import EntityGraph
from .plan import EntityPlan, FollowerPlan, ResolvedOptions, compile_entity, resolve_options

__all__ = [
    "Entity",
    "LinkFollower",
    "EntityGraph",
    "EntityPlan",
    "FollowerPlan",
    "ResolvedOptions",
    "compile_entity",
    "resolve_options",
    "normalize_name",
]
