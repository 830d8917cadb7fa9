"""Combination of parent rows with the rows of linked documents.

Two families of operations live here:

- Row nesting (``nest_headers`` / ``nest_row``): applies the nesting policy of
  each link follower to one parent row and the child results obtained by
  following its link fields.
- Cross-entity operations (``join_results`` / ``link_results``): combine two
  already extracted results on matching field values.

All functions are pure with respect to their inputs, except ``link_results``
which attaches linked entity data to the master result.

Design Decisions:
    - JOIN splices child values right after the link field.
    - Several joining followers on one row yield the cartesian product of
      their child rows, first follower varying slowest.
    - A joining follower without child rows keeps the parent row with child
      fields set to ``None`` unless ``keep_unmatched`` is false.
    - Implicit match fields are the fields common to both headers, in master
      header order. No common field is a configuration error, never a
      full cartesian product.
"""

from __future__ import annotations

import itertools
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.enums import Nesting
from ..core.exceptions import JoinConfigurationError
from ..models.result import Result

RowValues = tuple[str | None, ...]


@dataclass(frozen=True)
class LinkSlot:
    """Position of a followed link field and how its child rows attach."""

    index: int
    nesting: Nesting
    child_headers: tuple[str, ...]


def nest_headers(headers: Sequence[str], slots: Sequence[LinkSlot]) -> tuple[str, ...]:
    """Headers of rows produced by ``nest_row`` for the same slots."""
    by_index = {slot.index: slot for slot in slots}
    out: list[str] = []
    for position, name in enumerate(headers):
        slot = by_index.get(position)
        if slot is None:
            out.append(name)
            continue
        if not slot.nesting.replaces:
            out.append(name)
        if slot.nesting.joins:
            out.extend(slot.child_headers)
    return tuple(out)


def nest_row(
    row: Sequence[str | None],
    slots: Sequence[LinkSlot],
    children: Sequence[Result | None],
    *,
    keep_unmatched: bool = True,
) -> list[RowValues]:
    """Apply every slot to ``row``.

    ``children[i]`` is the result obtained for ``slots[i]`` (``None`` when the
    link was blank or could not be followed). Returns zero or more output
    rows; LINK policies never change the row count.
    """
    if len(slots) != len(children):
        raise ValueError("Each link slot needs exactly one child result entry")

    choices: dict[int, list[RowValues]] = {}
    for slot, child in zip(slots, children, strict=True):
        if not slot.nesting.joins:
            continue
        if child is not None and not child.is_empty():
            choices[slot.index] = child.rows
        elif keep_unmatched:
            choices[slot.index] = [(None,) * len(slot.child_headers)]
        else:
            return []

    by_index = {slot.index: slot for slot in slots}
    joined = list(choices)
    combinations = itertools.product(*(choices[i] for i in joined)) if joined else [()]

    out: list[RowValues] = []
    for combination in combinations:
        picked = dict(zip(joined, combination, strict=True))
        values: list[str | None] = []
        for position, value in enumerate(row):
            slot = by_index.get(position)
            if slot is None or not slot.nesting.replaces:
                values.append(value)
            if position in picked:
                values.extend(picked[position])
        out.append(tuple(values))
    return out


def match_fields(master: Result, child: Result, fields: Sequence[str] = ()) -> list[str]:
    """Resolve the fields used to match rows of ``master`` and ``child``.

    Raises:
        JoinConfigurationError: If no field can be used, or an explicit field
            is missing on either side.
    """
    if fields:
        for name in fields:
            if master.index_of(name) is None or child.index_of(name) is None:
                raise JoinConfigurationError(
                    f"Field '{name}' must exist in both '{master.entity_name}' {list(master.headers)} "
                    f"and '{child.entity_name}' {list(child.headers)}",
                    master=master.entity_name,
                    child=child.entity_name,
                )
        return list(fields)

    common = [name for name in master.headers if child.index_of(name) is not None]
    if not common:
        raise JoinConfigurationError(
            f"No common fields between '{master.entity_name}' {list(master.headers)} "
            f"and '{child.entity_name}' {list(child.headers)}. Provide the fields to match on",
            master=master.entity_name,
            child=child.entity_name,
        )
    return common


def _index_rows(result: Result, positions: Sequence[int]) -> dict[RowValues, list[int]]:
    index: dict[RowValues, list[int]] = {}
    for row_index, row in enumerate(result.rows):
        key = tuple(row[p] for p in positions)
        index.setdefault(key, []).append(row_index)
    return index


def join_results(
    master: Result,
    child: Result,
    fields: Sequence[str] = (),
    *,
    keep_unmatched: bool = True,
) -> Result:
    """Materialize master rows extended with the values of matching child rows.

    The output keeps the master entity name, all master fields and the child
    fields that are not match keys. Each master row yields one row per
    matching child row (in child order); unmatched master rows are kept with
    ``None`` child values when ``keep_unmatched`` is true. Linked data of a
    master row is shared by every row derived from it.
    """
    names = match_fields(master, child, fields)
    master_keys = [master.index_of(n) for n in names]
    child_keys = [child.index_of(n) for n in names]
    extra = [i for i in range(len(child.headers)) if i not in child_keys]

    joined = Result(
        master.entity_name,
        master.headers + tuple(child.headers[i] for i in extra),
        empty_value=master.empty_value,
    )
    child_rows = child.rows
    index = _index_rows(child, child_keys)  # type: ignore[arg-type]
    for row_index, row in enumerate(master.rows):
        key = tuple(row[p] for p in master_keys)  # type: ignore[index]
        matches = index.get(key)
        if matches:
            extensions = [tuple(child_rows[m][i] for i in extra) for m in matches]
        elif keep_unmatched:
            extensions = [(None,) * len(extra)]
        else:
            continue
        field_data, entity_data = master.links_of(row_index)
        for extension in extensions:
            joined.append(row + extension, field_data=field_data, entity_data=entity_data)
    return joined


def link_results(master: Result, child: Result, fields: Sequence[str] = ()) -> None:
    """Attach matching ``child`` rows to each master row as linked entity data."""
    names = match_fields(master, child, fields)
    master_keys = [master.index_of(n) for n in names]
    child_keys = [child.index_of(n) for n in names]
    child_rows = child.rows
    index = _index_rows(child, child_keys)  # type: ignore[arg-type]
    for row_index, row in enumerate(master.rows):
        matches = index.get(tuple(row[p] for p in master_keys))  # type: ignore[index]
        if not matches:
            continue
        linked = Result(child.entity_name, child.headers, empty_value=child.empty_value)
        for m in matches:
            field_data, entity_data = child.links_of(m)
            linked.append(child_rows[m], field_data=field_data, entity_data=entity_data)
        master.add_linked_entity_data(row_index, linked)

