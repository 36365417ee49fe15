"""
Path addressing helpers.

Form values are stored in a flat mapping keyed by dot-joined paths. Integer
segments address live items of repeatable elements, e.g. ``"Address.1.Street"``.
The template tree itself never contains index segments.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

PATH_SEPARATOR = "."

PathLike = str | Sequence[str | int]


def is_index_segment(segment: str | int) -> bool:
    """Return True if a path segment addresses an array item."""
    if isinstance(segment, bool):
        return False
    if isinstance(segment, int):
        return segment >= 0
    return segment.isascii() and segment.isdigit()


def to_path_key(path: PathLike) -> str:
    """Join path segments into a path key. Strings are returned unchanged."""
    if isinstance(path, str):
        return path
    return PATH_SEPARATOR.join(str(segment) for segment in path)


def split_path_key(path_key: str) -> list[str]:
    """Split a path key into its segments."""
    if not path_key:
        return []
    return path_key.split(PATH_SEPARATOR)


def join_path(*parts: str | int) -> str:
    """Join path parts, skipping empty ones."""
    return PATH_SEPARATOR.join(str(p) for p in parts if p != "" and p is not None)


def strip_index_segments(path: PathLike) -> list[str]:
    """Remove all array index segments from a path."""
    segments = split_path_key(path) if isinstance(path, str) else [str(s) for s in path]
    return [segment for segment in segments if not is_index_segment(segment)]


def strip_index_segments_from_key(path_key: str) -> str:
    """Map a concrete value key onto the template path it belongs to."""
    return PATH_SEPARATOR.join(strip_index_segments(path_key))


def key_has_prefix(key: str, prefix: str) -> bool:
    """True if ``key`` equals ``prefix`` or lies beneath it."""
    return key == prefix or key.startswith(prefix + PATH_SEPARATOR)


def has_value_with_prefix(values: Mapping[str, Any], path_key: str) -> bool:
    """True if any non-empty value is stored at or beneath ``path_key``."""
    return any(
        key_has_prefix(key, path_key) and not is_empty_value(value)
        for key, value in values.items()
    )


def is_empty_value(value: Any) -> bool:
    """Undefined, null and empty-string values count as empty."""
    return value is None or value == ""


def discover_indices(keys: Iterable[str], path_key: str) -> list[int]:
    """
    Find every array index used directly beneath ``path_key``.

    Returns the indices sorted ascending.
    """
    prefix = path_key + PATH_SEPARATOR
    indices: set[int] = set()
    for key in keys:
        if not key.startswith(prefix):
            continue
        head = key[len(prefix):].split(PATH_SEPARATOR, 1)[0]
        if is_index_segment(head):
            indices.add(int(head))
    return sorted(indices)


def scope_values(values: Mapping[str, Any], path_key: str, index: int) -> dict[str, Any]:
    """
    Scope a value map to one array item.

    Keys under ``path_key.index`` are rewritten with the index segment removed,
    so that per-item conversion can read them by template path. Keys belonging
    to other items of the same array are dropped, all other keys are kept.
    """
    item_prefix = f"{path_key}{PATH_SEPARATOR}{index}"
    scoped: dict[str, Any] = {}
    for key, value in values.items():
        if key_has_prefix(key, item_prefix):
            scoped[path_key + key[len(item_prefix):]] = value
        elif is_index_segment(_segment_after(key, path_key)):
            continue
        else:
            scoped[key] = value
    return scoped


def _segment_after(key: str, path_key: str) -> str:
    prefix = path_key + PATH_SEPARATOR
    if not key.startswith(prefix):
        return ""
    return key[len(prefix):].split(PATH_SEPARATOR, 1)[0]
