"""Bring previously installed copies up to date with the stable mirror."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .catalog import GENERIC, find_item
from .config import Settings
from .fsops import is_link, is_regular_entry, lexists, remove_path
from .installer import GENERIC_SUBDIR
from .mirror import MirrorReport, sync_entry, sync_file, sync_stable_mirror
from .tools import CATEGORIES, detect_configured_tools, root_file_sources

logger = logging.getLogger(__name__)


def _visible(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if not p.name.startswith("."))


def reconcile(intermediate_base: Path, catalog_dir: Path) -> MirrorReport:
    """Update generic intermediate copies from ``catalog_dir``.

    Only ``generic/<category>/`` and the root files at the top of the
    intermediate directory are visited, so project-sensitive and always-copy
    copies under ``<category>/`` are never touched. Of those, only entries
    already installed are considered: an entry whose catalog source disappeared
    is deleted, otherwise its content is synced byte for byte. Reported names
    are ``<category>/<item>`` or the root file name.
    """
    report = MirrorReport()

    for category in CATEGORIES:
        for entry in _visible(intermediate_base / GENERIC_SUBDIR / category):
            name = f"{category}/{entry.name}"
            source = find_item(catalog_dir, category, entry.name, GENERIC)
            if source is None:
                remove_path(entry)
                report.removed.append(name)
            elif sync_entry(source.path, entry):
                report.updated.append(name)

    for root_name in root_file_sources():
        staged = intermediate_base / root_name
        if not is_regular_entry(staged):
            continue
        source = catalog_dir / root_name
        if not source.is_file():
            remove_path(staged)
            report.removed.append(root_name)
        elif sync_file(source, staged):
            report.updated.append(root_name)

    logger.debug("Reconciled %s: %d updated, %d removed", intermediate_base, len(report.updated), len(report.removed))
    return report


def _prune_if_dangling(entry: Path, project_root: Path, pruned: List[str]) -> None:
    if is_link(entry) and not entry.exists():
        remove_path(entry)
        pruned.append(entry.relative_to(project_root).as_posix())


def prune_dangling_links(project_root: Path) -> List[str]:
    """Remove tool-directory and root-file links whose target no longer exists."""
    pruned: List[str] = []
    root_dests = []
    for tool in detect_configured_tools(project_root):
        for category in CATEGORIES:
            tool_dir = tool.category_dir(project_root, category)
            if tool_dir is None:
                continue
            for entry in _visible(tool_dir):
                _prune_if_dangling(entry, project_root, pruned)
        for dest in tool.root_files.values():
            if dest not in root_dests:
                root_dests.append(dest)
    for dest in root_dests:
        _prune_if_dangling(project_root / dest, project_root, pruned)
    return pruned


@dataclass
class UpgradeResult:
    mirror: MirrorReport
    local: Optional[MirrorReport] = None
    pruned: List[str] = field(default_factory=list)


def run_upgrade(project_root: Optional[Path], settings: Settings, version: Optional[str] = None, tracker=None) -> UpgradeResult:
    """Sync the stable mirror, then reconcile the project's copies if it has any.

    ``tracker`` is an optional step tracker with ``mirror``, ``reconcile`` and
    ``links`` steps.
    """
    if tracker:
        tracker.start("mirror")
    result = UpgradeResult(mirror=sync_stable_mirror(settings, version=version))
    if tracker:
        tracker.complete("mirror", result.mirror.summary())

    if project_root is None:
        if tracker:
            tracker.skip("reconcile", "no project")
            tracker.skip("links", "no project")
        return result

    intermediate_base = settings.intermediate_base(project_root)
    if lexists(intermediate_base):
        if tracker:
            tracker.start("reconcile")
        result.local = reconcile(intermediate_base, settings.stable_config_dir)
        if tracker:
            tracker.complete("reconcile", result.local.summary())
    elif tracker:
        tracker.skip("reconcile", f"no {settings.intermediate_dir.as_posix()}/ in {project_root.name}")

    result.pruned = prune_dangling_links(project_root)
    if tracker:
        tracker.complete("links", f"{len(result.pruned)} removed")
    return result
