"""Core enumerations shared by the graph, runtime and result layers.

Architecture:
    String enums keep values readable in logs and settings files while still
    giving the runtime a closed set of states to branch on.

Key Types:
    - Nesting: How rows of a followed link attach to the parent row
    - PaginationStatus: States of the pagination state machine
"""

from __future__ import annotations

from enum import Enum


class Nesting(str, Enum):
    """Policy for attaching child rows obtained by following a link.

    Given a parent row ``[a, b, c]`` whose field ``b`` links to a document
    yielding ``[t, u]`` and ``[x, y]``:

    - JOIN: ``[a, b, t, u, c]`` and ``[a, b, x, y, c]``
    - REPLACE_JOIN: ``[a, t, u, c]`` and ``[a, x, y, c]``
    - LINK: ``[a, b, c]``; child rows available as linked field data
    - REPLACE_LINK: ``[a, c]``; child rows available as linked field data
    """

    JOIN = "join"
    REPLACE_JOIN = "replace_join"
    LINK = "link"
    REPLACE_LINK = "replace_link"

    @property
    def joins(self) -> bool:
        """Whether child values are merged into the parent row."""
        return self in (Nesting.JOIN, Nesting.REPLACE_JOIN)

    @property
    def links(self) -> bool:
        """Whether child rows are kept aside and indexed by parent row."""
        return self in (Nesting.LINK, Nesting.REPLACE_LINK)

    @property
    def replaces(self) -> bool:
        """Whether the link field itself is removed from the parent row."""
        return self in (Nesting.REPLACE_JOIN, Nesting.REPLACE_LINK)


class PaginationStatus(str, Enum):
    """States of the pagination state machine.

    INIT -> HAS_NEXT -> FETCHING -> (HAS_NEXT | STOPPED). STOPPED is terminal.
    """

    INIT = "init"
    HAS_NEXT = "has_next"
    FETCHING = "fetching"
    STOPPED = "stopped"
