"""Mirror one directory tree onto another and report what changed.

The same primitive backs the stable mirror sync and the per-item upgrade of a
project's generic intermediate copies.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Set

from .config import Settings, get_package_version
from .fsops import copy_path, files_differ, is_regular_entry, lexists, remove_path

logger = logging.getLogger(__name__)

ExcludePredicate = Callable[[str], bool]


@dataclass
class MirrorReport:
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    version: Optional[str] = None

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def summary(self) -> str:
        counts = f"{len(self.added)} added, {len(self.updated)} updated, {len(self.removed)} removed"
        return f"v{self.version}: {counts}" if self.version else counts


def _relative_files(root: Path) -> Set[str]:
    files: Set[str] = set()
    if not root.is_dir():
        return files
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in filenames:
            files.add((base / name).relative_to(root).as_posix())
        # Symlinked directories count as leaf entries; never descend into them
        for name in list(dirnames):
            if (base / name).is_symlink():
                files.add((base / name).relative_to(root).as_posix())
                dirnames.remove(name)
    return files


def _relative_dirs(root: Path) -> Set[str]:
    dirs: Set[str] = set()
    if not root.is_dir():
        return dirs
    for dirpath, dirnames, _ in os.walk(root):
        for name in dirnames:
            path = Path(dirpath) / name
            if not path.is_symlink():
                dirs.add(path.relative_to(root).as_posix())
    return dirs


def _prune_empty_dirs(root: Path, keep: Set[str]) -> None:
    for dirpath, _, _ in sorted(os.walk(root), key=lambda w: len(w[0]), reverse=True):
        path = Path(dirpath)
        if path == root:
            continue
        rel = path.relative_to(root).as_posix()
        if rel in keep:
            continue
        try:
            if not any(path.iterdir()):
                path.rmdir()
        except OSError:
            pass


def mirror_tree(
    source: Path,
    dest: Path,
    exclude: Optional[ExcludePredicate] = None,
    prune_empty: bool = True,
) -> MirrorReport:
    """Make ``dest`` a byte-identical replica of ``source``.

    Missing files are copied (``added``), files whose bytes differ are
    overwritten (``updated``) and files with no counterpart in ``source`` are
    deleted (``removed``). Paths for which ``exclude`` returns True are left
    untouched on both sides. Reported paths are POSIX paths relative to the
    tree roots.
    """
    report = MirrorReport()
    exclude = exclude or (lambda rel: False)

    source_files = {rel for rel in _relative_files(source) if not exclude(rel)}
    dest_files = {rel for rel in _relative_files(dest) if not exclude(rel)}

    for rel in sorted(dest_files - source_files):
        if remove_path(dest / rel):
            report.removed.append(rel)

    for rel in sorted(source_files):
        src = source / rel
        dst = dest / rel
        if not lexists(dst):
            copy_path(src, dst)
            report.added.append(rel)
        elif not dst.is_file() or dst.is_symlink() or files_differ(src, dst):
            copy_path(src, dst)
            report.updated.append(rel)

    if prune_empty and dest.is_dir():
        _prune_empty_dirs(dest, _relative_dirs(source))

    if report.changed:
        logger.debug(
            "Mirrored %s -> %s: %d added, %d updated, %d removed",
            source, dest, len(report.added), len(report.updated), len(report.removed),
        )
    return report


def sync_file(source: Path, dest: Path) -> bool:
    """Overwrite ``dest`` with ``source`` when their bytes differ."""
    if is_regular_entry(dest) and dest.is_file() and not files_differ(source, dest):
        return False
    copy_path(source, dest)
    return True


def sync_entry(source: Path, dest: Path, exclude: Optional[ExcludePredicate] = None) -> bool:
    """Sync a single file or directory item. Returns True if anything changed."""
    if source.is_dir():
        if lexists(dest) and not (dest.is_dir() and not dest.is_symlink()):
            remove_path(dest)
        dest.mkdir(parents=True, exist_ok=True)
        return mirror_tree(source, dest, exclude=exclude).changed
    if lexists(dest) and (dest.is_dir() and not dest.is_symlink()):
        remove_path(dest)
    return sync_file(source, dest)


def sync_stable_mirror(settings: Settings, version: Optional[str] = None) -> MirrorReport:
    """Bring the global stable mirror in line with the bundled catalog.

    Always returns a report, with empty lists on a no-op run, and rewrites the
    version marker.
    """
    settings.stable_config_dir.mkdir(parents=True, exist_ok=True)
    report = mirror_tree(settings.catalog_dir, settings.stable_config_dir, prune_empty=True)
    report.version = version or get_package_version()
    settings.version_file.write_text(report.version, encoding="utf-8")
    logger.debug("Stable mirror at %s is version %s", settings.stable_config_dir, report.version)
    return report
