"""Nested-path reads and writes on the résumé record.

Both conversation modes address record fields with one path syntax:
dot-separated segments, where a segment may carry an array index
(``workExperience[2].jobTitle``, ``skills.languages``).

Paths are parsed once into tuples of ``PathSegment`` and cached. Writes are
copy-on-write: every container along the written path is copied, untouched
siblings are shared with the input. Malformed or partially-populated data is
coerced, never raised on.
"""

import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal

# Sequences whose elements are entries with their own ``id``.
ENTRY_SECTIONS: frozenset[str] = frozenset(
    {"workExperience", "education", "volunteering", "references"}
)

# Section key (as used by categories and counters) -> record array name.
SECTION_ARRAYS: dict[str, str] = {
    "work": "workExperience",
    "education": "education",
    "volunteering": "volunteering",
    "references": "references",
}

_INDEXED_SEGMENT = re.compile(r"^(\w+)\[(\d+)\]$")


@dataclass(frozen=True)
class PathSegment:
    """One step of a parsed path.

    Attributes:
        kind: "field" for a dict key, "index" for an array position.
        name: Key name (field segments only).
        index: Array position (index segments only).
    """

    kind: Literal["field", "index"]
    name: str = ""
    index: int = 0


def new_entry_id() -> str:
    """Generate an id for a fresh multi-entry element."""
    return uuid.uuid4().hex


# =============================================================================
# Parsing
# =============================================================================


@lru_cache(maxsize=512)
def parse_path(path: str) -> tuple[PathSegment, ...]:
    """Parse a record path into segments.

    ``name[3]`` yields a field segment followed by an index segment. Any
    other dot-separated piece is taken literally as a field name.

    Args:
        path: Dotted path, e.g. "workExperience[0].companyName".

    Returns:
        Tuple of PathSegment.
    """
    segments: list[PathSegment] = []
    for piece in path.split("."):
        match = _INDEXED_SEGMENT.match(piece)
        if match:
            segments.append(PathSegment(kind="field", name=match.group(1)))
            segments.append(PathSegment(kind="index", index=int(match.group(2))))
        else:
            segments.append(PathSegment(kind="field", name=piece))
    return tuple(segments)


def format_path(segments: tuple[PathSegment, ...] | list[PathSegment]) -> str:
    """Render segments back into wire syntax."""
    out = ""
    for seg in segments:
        if seg.kind == "index":
            out += f"[{seg.index}]"
        else:
            out += f".{seg.name}" if out else seg.name
    return out


def top_level_key(path: str) -> str:
    """Return the first key of a path ("workExperience" for "workExperience[0].x")."""
    return path.split("[")[0].split(".")[0]


def transform_field_path(path: str, section: str, entry_index: int) -> str:
    """Point a section field path at a specific entry.

    ``transform_field_path("workExperience[0].jobTitle", "work", 2)`` returns
    ``"workExperience[2].jobTitle"``. Paths outside the section's array are
    returned unchanged.
    """
    array_name = SECTION_ARRAYS.get(section)
    if array_name is None:
        return path

    segments = parse_path(path)
    rewritten: list[PathSegment] = []
    changed = False
    for i, seg in enumerate(segments):
        previous = segments[i - 1] if i > 0 else None
        if (
            not changed
            and seg.kind == "index"
            and previous is not None
            and previous.name == array_name
        ):
            rewritten.append(PathSegment(kind="index", index=entry_index))
            changed = True
        else:
            rewritten.append(seg)

    return format_path(rewritten) if changed else path


# =============================================================================
# Read
# =============================================================================


def get_path(root: Any, path: str, default: Any = None) -> Any:
    """Read the value at ``path``; ``default`` when any step is missing."""
    current = root
    for seg in parse_path(path):
        if seg.kind == "index":
            if not isinstance(current, list) or seg.index >= len(current):
                return default
            current = current[seg.index]
        else:
            if not isinstance(current, dict) or seg.name not in current:
                return default
            current = current[seg.name]
        if current is None:
            return default
    return current


# =============================================================================
# Write
# =============================================================================


def _fresh_container(next_seg: PathSegment, owner: str) -> Any:
    if next_seg.kind == "index":
        return []
    if owner in ENTRY_SECTIONS:
        return {"id": new_entry_id()}
    return {}


def _copy_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _copy_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def set_path(root: dict[str, Any] | None, path: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``root`` with ``value`` written at ``path``.

    Intermediate containers are created as needed. Extending an array pads
    the gap with None; an absent element at the written index becomes a fresh
    dict, with a new ``id`` when the array is an entry section. Values that
    are missing or of the wrong shape are replaced before descending.

    Args:
        root: The record (not modified).
        path: Target path.
        value: Value to store.

    Returns:
        New top-level dict.
    """
    segments = parse_path(path)
    new_root = _copy_dict(root)

    container: Any = new_root
    owner = ""
    for i, seg in enumerate(segments):
        is_last = i == len(segments) - 1
        if seg.kind == "field":
            if is_last:
                container[seg.name] = value
                break
            nxt = segments[i + 1]
            existing = container.get(seg.name)
            if nxt.kind == "index":
                child: Any = _copy_list(existing)
            else:
                child = _copy_dict(existing)
            container[seg.name] = child
            owner = seg.name
            container = child
        else:
            while len(container) <= seg.index:
                container.append(None)
            if is_last:
                container[seg.index] = value
                break
            nxt = segments[i + 1]
            existing = container[seg.index]
            if nxt.kind == "index":
                child = _copy_list(existing)
            elif isinstance(existing, dict):
                child = dict(existing)
            else:
                child = _fresh_container(nxt, owner)
            container[seg.index] = child
            container = child

    return new_root
