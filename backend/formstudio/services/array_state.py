"""
Array state helpers.

An index set maps a repeatable element's concrete path (``"Tags"``,
``"Address.1.Phones"``) to its ordered list of live item indices. Indices
are decoupled from display positions: values stay addressed by the index
they were created with, and removal only drops that index from the list.

All functions are pure and return new mappings; inputs are never mutated.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from formstudio.utils.paths import (
    PATH_SEPARATOR,
    is_index_segment,
    key_has_prefix,
    split_path_key,
)

ArrayItems = dict[str, list[int]]

V = TypeVar("V")


def derive_from_values(values: Mapping[str, Any]) -> ArrayItems:
    """
    Reconstruct index sets from addressed values.

    Every integer segment of every key is recorded against the path prefix
    preceding it.
    """
    found: dict[str, set[int]] = {}
    for key in values:
        segments = split_path_key(key)
        for position, segment in enumerate(segments):
            if position == 0 or not is_index_segment(segment):
                continue
            array_path = PATH_SEPARATOR.join(segments[:position])
            found.setdefault(array_path, set()).add(int(segment))
    return {path_key: sorted(indices) for path_key, indices in found.items()}


def next_index(indices: list[int], floor: int = 0) -> int:
    """Next free index: ``max + 1``, or ``0`` for an empty list, never below ``floor``."""
    if not indices:
        return floor
    return max(max(indices) + 1, floor)


def add_item(
    array_items: Mapping[str, list[int]],
    path_key: str,
    issued: Mapping[str, int] | None = None,
) -> ArrayItems:
    """
    Append a new item index.

    ``issued`` optionally holds the next index ever handed out per path, so
    that an index freed by removing the last item is not issued again.
    """
    current = list(array_items.get(path_key, []))
    floor = issued.get(path_key, 0) if issued else 0
    current.append(next_index(current, floor))
    return {**array_items, path_key: current}


def remove_item(
    array_items: Mapping[str, list[int]],
    path_key: str,
    position: int,
) -> tuple[ArrayItems, int | None]:
    """
    Remove the item at a display position.

    Returns:
        Tuple of (updated index sets, removed index or None if the position
        is out of bounds)
    """
    current = list(array_items.get(path_key, []))
    if position < 0 or position >= len(current):
        return dict(array_items), None
    removed = current.pop(position)
    return {**array_items, path_key: current}, removed


def reorder_items(
    array_items: Mapping[str, list[int]],
    path_key: str,
    from_position: int,
    to_position: int,
) -> ArrayItems:
    """Move one item to another position. Out-of-bounds moves are no-ops."""
    current = list(array_items.get(path_key, []))
    size = len(current)
    if not (0 <= from_position < size and 0 <= to_position < size):
        return dict(array_items)
    moved = current.pop(from_position)
    current.insert(to_position, moved)
    return {**array_items, path_key: current}


def _without_prefix(mapping: Mapping[str, V], prefix: str) -> dict[str, V]:
    return {k: v for k, v in mapping.items() if not key_has_prefix(k, prefix)}


def purge_values_for_removed_index(
    values: Mapping[str, Any],
    errors: Mapping[str, str],
    touched: Mapping[str, bool],
    path_key: str,
    index: int,
) -> tuple[dict[str, Any], dict[str, str], dict[str, bool]]:
    """Drop every entry equal to ``path.index`` or beneath it from all three maps."""
    prefix = f"{path_key}{PATH_SEPARATOR}{index}"
    return (
        _without_prefix(values, prefix),
        _without_prefix(errors, prefix),
        _without_prefix(touched, prefix),
    )


def ensure_minimum(
    array_items: Mapping[str, list[int]],
    minimums: Mapping[str, int],
) -> ArrayItems:
    """Pad index lists up to their minimum item count."""
    updated = {path_key: list(indices) for path_key, indices in array_items.items()}
    for path_key, minimum in minimums.items():
        current = updated.get(path_key, [])
        while len(current) < minimum:
            current.append(next_index(current))
        updated[path_key] = current
    return updated
