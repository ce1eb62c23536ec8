"""Read-only view of a catalog tree (bundled catalog or stable mirror)."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from .selection import ItemTag, classify

logger = logging.getLogger(__name__)

GENERIC = "generic"
PROJECT_SENSITIVE = "project-sensitive"
SENSITIVITY_DIRS = (GENERIC, PROJECT_SENSITIVE)

# Files read for the description of a directory item
DESCRIPTION_FILES = ("SKILL.md", "AGENT.md", "README.md")


@dataclass(frozen=True)
class CatalogItem:
    """One installable rule, skill or agent."""

    category: str
    name: str
    sensitivity: str
    path: Path

    @property
    def kind(self) -> str:
        return "directory" if self.path.is_dir() else "file"

    @property
    def project_sensitive(self) -> bool:
        return self.sensitivity == PROJECT_SENSITIVE

    @property
    def tag(self) -> ItemTag:
        return classify(self.name)

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.category, self.name)


def _visible_entries(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if not p.name.startswith("."))


def scan_category(catalog_root: Path, category: str) -> List[CatalogItem]:
    """List the items of one category.

    Items under ``generic/`` and ``project-sensitive/`` take their sensitivity
    from the partition; anything else directly in the category directory is
    generic. A missing category yields an empty list.
    """
    category_dir = catalog_root / category
    if not category_dir.is_dir():
        logger.debug("Category %s not present in %s", category, catalog_root)
        return []

    items: List[CatalogItem] = []
    for sensitivity in SENSITIVITY_DIRS:
        for entry in _visible_entries(category_dir / sensitivity):
            items.append(CatalogItem(category, entry.name, sensitivity, entry))
    for entry in _visible_entries(category_dir):
        if entry.name in SENSITIVITY_DIRS and entry.is_dir():
            continue
        items.append(CatalogItem(category, entry.name, GENERIC, entry))
    return items


def find_item(catalog_root: Path, category: str, name: str, sensitivity: Optional[str] = None) -> Optional[CatalogItem]:
    for item in scan_category(catalog_root, category):
        if item.name == name and (sensitivity is None or item.sensitivity == sensitivity):
            return item
    return None


def item_names(catalog_root: Path, category: str, sensitivity: str) -> List[str]:
    return [i.name for i in scan_category(catalog_root, category) if i.sensitivity == sensitivity]


def parse_frontmatter(content: str) -> dict:
    """Return the YAML front matter of a markdown document, or ``{}``."""
    if not content.startswith("---"):
        return {}
    parts = content.split("---", 2)
    if len(parts) < 3:
        return {}
    try:
        data = yaml.safe_load(parts[1])
    except yaml.YAMLError as e:
        logger.debug("Malformed front matter ignored: %s", e)
        return {}
    return data if isinstance(data, dict) else {}


def read_description(item_path: Path) -> str:
    """Best-effort ``description`` from an item's front matter."""
    candidates = [item_path]
    if item_path.is_dir():
        candidates = [item_path / name for name in DESCRIPTION_FILES]
    for candidate in candidates:
        if candidate.is_file() and candidate.suffix == ".md":
            try:
                meta = parse_frontmatter(candidate.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError):
                continue
            description = meta.get("description")
            if description:
                return " ".join(str(description).split())
    return ""
