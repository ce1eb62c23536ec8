"""Materialize catalog items into a project's tool directories.

Project-sensitive and always-copy items, and every item in copy mode, get a
single physical copy in the intermediate directory; each tool directory only
holds relative links to that copy. In symlink mode generic items are linked
straight to the stable mirror with absolute paths so they follow mirror
updates.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional

from .catalog import CatalogItem, scan_category
from .config import Settings
from .conflicts import ConflictResolver
from .fsops import (
    copy_path,
    create_absolute_symlink,
    create_relative_symlink,
    is_link,
    is_regular_entry,
    lexists,
    same_content,
)
from .gitignore import add_gitignore_section
from .selection import Selection
from .tools import ALWAYS_COPY, CATEGORIES, ToolProfile, get_tools

logger = logging.getLogger(__name__)

GENERIC_SUBDIR = "generic"

# Materialization states
COPIED = "copied"
UNCHANGED = "unchanged"
CONFLICT = "conflict"


@dataclass
class Materialization:
    source: Path
    dest: Path
    status: str


class MaterializationCache:
    """Session-scoped record of every project-local copy made during a run.

    Each destination is materialized at most once per run. Later requests for
    the same destination return the first result without copying or
    prompting again; the caller only adds its own link.
    """

    def __init__(self, resolver: ConflictResolver):
        self.resolver = resolver
        self._entries: Dict[Path, Materialization] = {}

    def __contains__(self, dest: Path) -> bool:
        return dest in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, dest: Path) -> Optional[Materialization]:
        return self._entries.get(dest)

    def materialize(self, source: Path, dest: Path, label: str) -> Materialization:
        existing = self._entries.get(dest)
        if existing is not None:
            return existing

        if not lexists(dest) or is_link(dest):
            copy_path(source, dest)
            status = COPIED
        elif same_content(source, dest):
            status = UNCHANGED
        else:
            self.resolver.add_copy(source, dest, label)
            status = CONFLICT

        result = Materialization(source, dest, status)
        self._entries[dest] = result
        logger.debug("%s: %s", dest, status)
        return result


@dataclass
class ToolSummary:
    tool: ToolProfile
    mode: str
    counts: Dict[str, int] = field(default_factory=dict)
    root_files: List[str] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)


def intermediate_path(intermediate_base: Path, item: CatalogItem, copy_all: bool) -> Optional[Path]:
    """Where the project-local copy of ``item`` lives, or None if it links to the mirror."""
    if item.project_sensitive or item.name in ALWAYS_COPY.get(item.category, ()):
        return intermediate_base / item.category / item.name
    if copy_all:
        return intermediate_base / GENERIC_SUBDIR / item.category / item.name
    return None


def eligible_items(source_root: Path, category: str, selection: Selection) -> List[CatalogItem]:
    return [item for item in scan_category(source_root, category) if selection.includes(item.name)]


def link_into_tool(
    item: CatalogItem,
    tool_dir: Path,
    intermediate_base: Path,
    selection: Selection,
    cache: MaterializationCache,
) -> None:
    """Link ``item`` into ``tool_dir``. A real file or directory already there is a conflict."""
    link = tool_dir / item.name
    staged = intermediate_path(intermediate_base, item, selection.copy_all)
    if staged is None:
        make_link = partial(create_absolute_symlink, item.path, link)
    else:
        cache.materialize(item.path, staged, f"{item.category}/{item.name}")
        make_link = partial(create_relative_symlink, staged, link)

    if is_regular_entry(link):
        cache.resolver.add(link, f"{tool_dir.parent.name}/{tool_dir.name}/{item.name}", make_link)
    else:
        make_link()


def install_category(
    category: str,
    tool: ToolProfile,
    project_root: Path,
    selection: Selection,
    settings: Settings,
    cache: MaterializationCache,
) -> int:
    """Install every eligible item of ``category`` for ``tool``. Returns the count."""
    tool_dir = tool.category_dir(project_root, category)
    if tool_dir is None:
        return 0
    items = eligible_items(settings.stable_config_dir, category, selection)
    tool_dir.mkdir(parents=True, exist_ok=True)

    intermediate_base = settings.intermediate_base(project_root)
    for item in items:
        link_into_tool(item, tool_dir, intermediate_base, selection, cache)
    logger.debug("%s %s: %d item(s)", tool.key, category, len(items))
    return len(items)


def install_root_files(tool: ToolProfile, project_root: Path, settings: Settings, cache: MaterializationCache) -> List[str]:
    """Stage each root file once in the intermediate directory and link the tool's name to it."""
    installed = []
    intermediate_base = settings.intermediate_base(project_root)
    for src_name, dest_name in tool.root_files.items():
        source = settings.stable_config_dir / src_name
        if not source.is_file():
            continue
        staged = intermediate_base / src_name
        cache.materialize(source, staged, src_name)

        link = project_root / dest_name
        if is_regular_entry(link):
            cache.resolver.add(link, dest_name, partial(create_relative_symlink, staged, link))
        else:
            create_relative_symlink(staged, link)
        installed.append(dest_name)
    return installed


def install_config_files(tool: ToolProfile, project_root: Path, settings: Settings, cache: MaterializationCache) -> List[str]:
    """Config files are always copied, never linked."""
    installed = []
    for src_name, dest_name in tool.config_files.items():
        source = settings.stable_config_dir / src_name
        if not source.is_file():
            continue
        cache.materialize(source, project_root / dest_name, dest_name)
        installed.append(dest_name)
    return installed


def install_tool(
    tool: ToolProfile,
    project_root: Path,
    selection: Selection,
    settings: Settings,
    cache: MaterializationCache,
) -> ToolSummary:
    summary = ToolSummary(tool=tool, mode="copied" if selection.copy_all else "linked")
    for category in CATEGORIES:
        if category in selection.categories and tool.supports(category):
            summary.counts[category] = install_category(category, tool, project_root, selection, settings, cache)
    summary.root_files = install_root_files(tool, project_root, settings, cache)
    summary.config_files = install_config_files(tool, project_root, settings, cache)
    return summary


def run_install(
    project_root: Path,
    selection: Selection,
    settings: Settings,
    resolver: ConflictResolver,
    spinner=None,
) -> List[ToolSummary]:
    """Install for every selected tool, then resolve conflicts and update .gitignore.

    The stable mirror must already be synced.
    """
    cache = MaterializationCache(resolver)
    intermediate_base = settings.intermediate_base(project_root)
    for category in selection.categories:
        (intermediate_base / category).mkdir(parents=True, exist_ok=True)

    summaries = []
    for tool in get_tools(selection.tools):
        if spinner is not None:
            spinner.message(f"Installing {tool.label}")
        summaries.append(install_tool(tool, project_root, selection, settings, cache))

    resolver.resolve()

    for summary in summaries:
        add_gitignore_section(project_root, summary.tool, selection.gitignore_mode)
    return summaries
