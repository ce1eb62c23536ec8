"""Decide which catalog items apply to a project's technologies and architecture.

Item names are split into ``-`` separated segments (a file extension is
dropped first). A segment matching a known technology token tags the item
with that technology wherever it appears; an architecture token only counts
as the leading segment. Untagged items are always eligible. Items tagged on
both axes require both the technology and the architecture to be selected.
"""

from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Iterable, Optional, Tuple, Union

from .tools import ARCHITECTURES, NO_ARCHITECTURE, TECHNOLOGIES

SEGMENT_SEPARATOR = "-"

KNOWN_TECHNOLOGIES: FrozenSet[str] = frozenset(TECHNOLOGIES)
KNOWN_ARCHITECTURES: FrozenSet[str] = frozenset(a for a in ARCHITECTURES if a != NO_ARCHITECTURE)


@dataclass(frozen=True)
class Generic:
    pass


@dataclass(frozen=True)
class TechTagged:
    techs: Tuple[str, ...]


@dataclass(frozen=True)
class ArchTagged:
    arch: str


@dataclass(frozen=True)
class DualTagged:
    techs: Tuple[str, ...]
    arch: str


ItemTag = Union[Generic, TechTagged, ArchTagged, DualTagged]


def split_segments(item_name: str) -> Tuple[str, ...]:
    stem = item_name
    if "." in stem and not stem.startswith("."):
        stem = stem.rsplit(".", 1)[0]
    return tuple(seg for seg in stem.lower().split(SEGMENT_SEPARATOR) if seg)


def classify(
    item_name: str,
    known_techs: AbstractSet[str] = KNOWN_TECHNOLOGIES,
    known_archs: AbstractSet[str] = KNOWN_ARCHITECTURES,
) -> ItemTag:
    """Classify an item name into one of the tag variants."""
    segments = split_segments(item_name)
    techs = tuple(dict.fromkeys(seg for seg in segments if seg in known_techs))
    arch = segments[0] if segments and segments[0] in known_archs else None

    if techs and arch:
        return DualTagged(techs=techs, arch=arch)
    if techs:
        return TechTagged(techs=techs)
    if arch:
        return ArchTagged(arch=arch)
    return Generic()


def tag_matches(tag: ItemTag, selected_techs: AbstractSet[str], selected_archs: AbstractSet[str]) -> bool:
    if isinstance(tag, Generic):
        return True
    if isinstance(tag, TechTagged):
        return any(t in selected_techs for t in tag.techs)
    if isinstance(tag, ArchTagged):
        return tag.arch in selected_archs
    # Dual tags are conjunctive
    return any(t in selected_techs for t in tag.techs) and tag.arch in selected_archs


def is_eligible(item_name: str, selected_techs: Iterable[str], selected_archs: Iterable[str]) -> bool:
    """Return True if ``item_name`` should be installed for the given selection."""
    archs = {a for a in selected_archs if a and a != NO_ARCHITECTURE}
    return tag_matches(classify(item_name), set(selected_techs), archs)


@dataclass(frozen=True)
class Selection:
    """Choices made once per interactive session."""

    tools: Tuple[str, ...]
    techs: FrozenSet[str] = frozenset()
    arch: Optional[str] = None
    link_mode: str = "symlink"
    categories: Tuple[str, ...] = ("rules", "skills", "agents")
    gitignore_mode: str = "add"

    @property
    def archs(self) -> FrozenSet[str]:
        if self.arch and self.arch != NO_ARCHITECTURE:
            return frozenset({self.arch})
        return frozenset()

    @property
    def copy_all(self) -> bool:
        return self.link_mode == "copy"

    def includes(self, item_name: str) -> bool:
        return is_eligible(item_name, self.techs, self.archs)
