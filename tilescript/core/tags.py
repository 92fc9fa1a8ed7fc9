"""Tag Allocator and tile naming helpers.

Tags group related entities (a light, its toggle tile and overlay) and
drive cleanup, so a new tag must never collide with one already in the
scene. Allocation only reads the snapshot it is given.
"""

import re
from typing import Iterable

DEFAULT_PREFIX = "EM"


def to_pascal_case(text: str) -> str:
    """Convert free text to PascalCase.

    >>> to_pascal_case("floor trap-damage")
    'FloorTrapDamage'
    """
    words = re.split(r"[\s\-_]+", text)
    return "".join(word[:1].upper() + word[1:].lower() for word in words if word)


def allocate_tag(name: str, existing: Iterable[str], prefix: str = DEFAULT_PREFIX) -> str:
    """Derive a scene-unique tag from a name.

    Returns prefix + PascalCase(name) when free, otherwise the same base
    with the smallest free numeric suffix starting at 2.

    >>> allocate_tag("Torch", {"EMTorch"})
    'EMTorch2'
    """
    taken = set(existing)
    base = prefix + to_pascal_case(name)
    if base not in taken:
        return base

    counter = 2
    while f"{base}{counter}" in taken:
        counter += 1
    return f"{base}{counter}"


def allocate_trap_tag(
    name: str,
    trap_type: str,
    existing: Iterable[str],
    prefix: str = DEFAULT_PREFIX,
) -> str:
    """Trap tags carry the trap type, e.g. EMFloorTrapDamage."""
    return allocate_tag(f"{name} {trap_type}", existing, prefix)


def next_tile_number(base_name: str, tile_names: Iterable[str]) -> int:
    """Next free number for auto-named tiles like "Switch 3"."""
    pattern = re.compile(rf"^{re.escape(base_name)}\s+(\d+)$", re.IGNORECASE)
    highest = 0
    for tile_name in tile_names:
        match = pattern.match(tile_name or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def default_name(base_name: str, tile_names: Iterable[str]) -> str:
    return f"{base_name} {next_tile_number(base_name, tile_names)}"


def parse_custom_tags(custom_tags: str) -> list[str]:
    """Split a comma-separated tag string, dropping blanks."""
    if not custom_tags or not custom_tags.strip():
        return []
    return [t.strip() for t in custom_tags.split(",") if t.strip()]


def sanitize_identifier(text: str) -> str:
    """Replace anything outside [a-zA-Z0-9] with underscores."""
    return re.sub(r"[^a-zA-Z0-9]", "_", text)
