"""Mutable entity and link-follower definitions.

Definitions are edited freely while the parser is being configured and are
compiled into immutable plans (see ``plan.py``) when a parse starts, so a
running parse never observes later edits.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..core.enums import Nesting
from ..core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..io.protocols import RecordFilter
    from ..models.record import Record

_UNSET: Any = object()


def normalize_name(name: str) -> str:
    """Lookup key for entity and field names."""
    if name is None or not str(name).strip():
        raise ConfigurationError("Name cannot be blank")
    return str(name).strip().lower()


class Entity:
    """Named set of fields extracted from every document.

    Optional overrides (``nesting``, ``ignore_following_errors``,
    ``empty_value``) apply to this entity and to link followers declared
    beneath it unless they override them again.
    """

    def __init__(self, name: str) -> None:
        normalize_name(name)
        self.name = name.strip()
        self._fields: dict[str, tuple[str, Any]] = {}
        self._filters: list[RecordFilter] = []
        self._followers: dict[str, LinkFollower] = {}
        self._nesting: Nesting | None = None
        self._ignore_following_errors: bool | None = None
        self._empty_value: Any = _UNSET

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    # Fields

    def add_field(self, name: str, matcher: Any = None) -> Entity:
        """Declare a field; ``matcher`` is opaque and handed to the extractor."""
        key = normalize_name(name)
        if key in self._fields:
            name = self._fields[key][0]
        self._fields[key] = (name.strip(), matcher)
        return self

    def remove_field(self, name: str) -> Entity:
        key = normalize_name(name)
        if key not in self._fields:
            raise ConfigurationError(f"Field '{name}' not declared on entity '{self.name}'")
        del self._fields[key]
        self.remove_follower(name)
        return self

    def has_field(self, name: str) -> bool:
        return normalize_name(name) in self._fields

    def field_index(self, name: str) -> int | None:
        key = normalize_name(name)
        for position, field_key in enumerate(self._fields):
            if field_key == key:
                return position
        return None

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self._fields.values())

    @property
    def matchers(self) -> tuple[Any, ...]:
        return tuple(matcher for _, matcher in self._fields.values())

    # Overrides

    @property
    def nesting(self) -> Nesting | None:
        return self._nesting

    @nesting.setter
    def nesting(self, value: Nesting | str | None) -> None:
        self._nesting = Nesting(value) if value is not None else None

    @property
    def ignore_following_errors(self) -> bool | None:
        return self._ignore_following_errors

    @ignore_following_errors.setter
    def ignore_following_errors(self, value: bool | None) -> None:
        self._ignore_following_errors = value

    @property
    def empty_value(self) -> str | None:
        return None if self._empty_value is _UNSET else self._empty_value

    @empty_value.setter
    def empty_value(self, value: str | None) -> None:
        self._empty_value = value

    def overrides(self) -> dict[str, Any]:
        """Options explicitly set on this definition."""
        out: dict[str, Any] = {}
        if self._nesting is not None:
            out["nesting"] = self._nesting
        if self._ignore_following_errors is not None:
            out["ignore_following_errors"] = self._ignore_following_errors
        if self._empty_value is not _UNSET:
            out["empty_value"] = self._empty_value
        return out

    # Filters and followers

    def add_record_filter(self, record_filter: RecordFilter) -> Entity:
        """Rows rejected by ``record_filter`` are discarded before link following."""
        self._filters.append(record_filter)
        return self

    @property
    def record_filters(self) -> tuple[RecordFilter, ...]:
        return tuple(self._filters)

    def follow(self, field: str, name: str | None = None) -> LinkFollower:
        """Follow the links found in ``field``; returns the existing follower if any."""
        key = normalize_name(field)
        follower = self._followers.get(key)
        if follower is None:
            follower = LinkFollower(self, field.strip(), name)
            self._followers[key] = follower
        return follower

    def get_follower(self, field: str) -> LinkFollower | None:
        return self._followers.get(normalize_name(field))

    def remove_follower(self, field: str) -> LinkFollower | None:
        return self._followers.pop(normalize_name(field), None)

    @property
    def followers(self) -> tuple[LinkFollower, ...]:
        return tuple(self._followers.values())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, fields={list(self.field_names)!r})"


ParameterValue = Any | Callable[["Record"], Any]
NextLinkHandler = Callable[[Any], Awaitable[None] | None]


class LinkFollower(Entity):
    """Definition of how links found in one field of a parent are followed.

    The follower's own fields form the *linked field data* of each parent
    row. Entities added with ``add_entity`` are extracted from the same linked
    document and exposed as *linked entity data*.
    """

    def __init__(self, owner: Entity, link_field: str, name: str | None = None) -> None:
        super().__init__(name or f"{owner.name}.{link_field}")
        self.owner = owner
        self.link_field = link_field
        self.base_url: str | None = None
        # Called with a LinkContext before each linked document is fetched.
        self.next_link_handler: NextLinkHandler | None = None
        self._max_links = 0
        self._assignments: dict[str, ParameterValue] = {}
        self._entities: dict[str, Entity] = {}

    @property
    def max_links(self) -> int:
        """Maximum number of links followed per parse (0 means unlimited)."""
        return self._max_links

    @max_links.setter
    def max_links(self, value: int) -> None:
        if value < 0:
            raise ConfigurationError(f"max_links must be >= 0, got {value}")
        self._max_links = value

    def assigning(self, parameter: str, value: ParameterValue) -> LinkFollower:
        """Send ``parameter`` with every followed request.

        ``value`` is a constant or a callable receiving the parent record.
        """
        if not parameter or not parameter.strip():
            raise ConfigurationError("Request parameter name cannot be blank")
        self._assignments[parameter.strip()] = value
        return self

    @property
    def assignments(self) -> dict[str, ParameterValue]:
        return dict(self._assignments)

    def add_entity(self, name: str) -> Entity:
        """Declare an additional entity extracted from the linked document."""
        key = normalize_name(name)
        entity = self._entities.get(key)
        if entity is None:
            entity = Entity(name)
            self._entities[key] = entity
        return entity

    def remove_entity(self, name: str) -> Entity | None:
        return self._entities.pop(normalize_name(name), None)

    @property
    def entities(self) -> tuple[Entity, ...]:
        return tuple(self._entities.values())

