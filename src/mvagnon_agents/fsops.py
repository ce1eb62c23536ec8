"""Filesystem primitives: copy, link, remove.

Only the probes (``lexists``, ``is_link``, ``remove_if_empty``) swallow
``OSError``. Copy, link and delete failures propagate to the caller.
"""

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def lexists(path: Path) -> bool:
    """True if ``path`` exists, including a dangling symlink."""
    try:
        os.lstat(path)
        return True
    except OSError:
        return False


def is_link(path: Path) -> bool:
    try:
        return path.is_symlink()
    except OSError:
        return False


def is_regular_entry(path: Path) -> bool:
    """True for an existing file or directory that is not a symlink."""
    return lexists(path) and not is_link(path)


def remove_path(target: Path) -> bool:
    """Remove a file, directory tree or symlink. Returns False if nothing was there."""
    if not lexists(target):
        return False
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        target.unlink()
    logger.debug("Removed %s", target)
    return True


def remove_if_empty(directory: Path) -> bool:
    try:
        if directory.is_dir() and not directory.is_symlink() and not any(directory.iterdir()):
            directory.rmdir()
            logger.debug("Removed empty directory %s", directory)
            return True
    except OSError:
        pass
    return False


def copy_path(source: Path, target: Path) -> None:
    """Replace ``target`` with a copy of ``source`` (file or directory tree)."""
    remove_path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, target)
    else:
        shutil.copy2(source, target)
    logger.debug("Copied %s -> %s", source, target)


def relative_link_target(source: Path, link: Path) -> str:
    """Path of ``source`` as seen from the directory containing ``link``."""
    return os.path.relpath(os.path.abspath(source), os.path.abspath(link.parent))


def create_relative_symlink(source: Path, link: Path) -> None:
    """Point ``link`` at ``source`` using a path relative to the link's parent."""
    remove_path(link)
    link.parent.mkdir(parents=True, exist_ok=True)
    target = relative_link_target(source, link)
    os.symlink(target, link, target_is_directory=source.is_dir())
    logger.debug("Linked %s -> %s", link, target)


def create_absolute_symlink(source: Path, link: Path) -> None:
    """Point ``link`` at the absolute path of ``source``.

    Used only for links into the global stable mirror, which lives at a fixed
    location on every machine.
    """
    remove_path(link)
    link.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(os.path.abspath(source), link, target_is_directory=source.is_dir())
    logger.debug("Linked %s -> %s (absolute)", link, source)


def link_points_into(link: Path, base: Path) -> bool:
    """True if ``link`` is a symlink whose target lies under ``base``."""
    if not is_link(link):
        return False
    try:
        target = Path(os.path.abspath(link.parent / os.readlink(link)))
        target.relative_to(os.path.abspath(base))
        return True
    except (OSError, ValueError):
        return False


def files_differ(a: Path, b: Path) -> bool:
    """Byte comparison of two regular files."""
    try:
        if a.stat().st_size != b.stat().st_size:
            return True
        return a.read_bytes() != b.read_bytes()
    except FileNotFoundError:
        return True


def same_content(a: Path, b: Path) -> bool:
    """True if two files, or two directory trees, hold identical bytes."""
    if a.is_dir() != b.is_dir():
        return False
    if not a.is_dir():
        return not files_differ(a, b)

    def listing(root: Path):
        return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())

    names = listing(a)
    if names != listing(b):
        return False
    return not any(files_differ(a / name, b / name) for name in names)
