"""Resolved paths and version information shared by every command."""

import os
import sys
from dataclasses import dataclass
from importlib.resources import files
from pathlib import Path
from typing import Mapping, Optional

import platformdirs

from .errors import CatalogNotFoundError

APP_NAME = "mvagnon"
DIST_NAME = "mvagnon-agents"
HOME_ENV_VAR = "MVAGNON_AGENTS_HOME"

# Relative to the project root
INTERMEDIATE_DIR = Path(".mvagnon") / "agents"


def resolve_stable_base(env: Optional[Mapping[str, str]] = None, platform: Optional[str] = None) -> Path:
    """Return the global directory that holds the stable catalog mirror.

    ``MVAGNON_AGENTS_HOME`` takes precedence. macOS uses the machine-wide
    ``/Users/Shared`` so every account shares one mirror; other platforms use
    the per-user data directory.
    """
    env = os.environ if env is None else env
    platform = sys.platform if platform is None else platform

    override = (env.get(HOME_ENV_VAR) or "").strip()
    if override:
        return Path(override).expanduser()
    if platform == "darwin":
        return Path("/Users/Shared") / APP_NAME / "agents"
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False)) / "agents"


def bundled_catalog_dir() -> Path:
    """Locate the catalog shipped as package data."""
    catalog = Path(str(files("mvagnon_agents") / "assets"))
    if not catalog.is_dir():
        raise CatalogNotFoundError(f"Bundled catalog not found at {catalog}")
    return catalog


@dataclass(frozen=True)
class Settings:
    """Paths used by a single run. Pass this around instead of reading globals."""

    stable_base: Path
    catalog_dir: Path
    intermediate_dir: Path = INTERMEDIATE_DIR

    @property
    def stable_config_dir(self) -> Path:
        return self.stable_base / "config"

    @property
    def version_file(self) -> Path:
        return self.stable_base / "version"

    def intermediate_base(self, project_root: Path) -> Path:
        return project_root / self.intermediate_dir

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        return cls(stable_base=resolve_stable_base(env), catalog_dir=bundled_catalog_dir())


def get_package_version() -> str:
    """Get current mvagnon-agents version."""
    import importlib.metadata
    try:
        return importlib.metadata.version(DIST_NAME)
    except Exception:
        # Fallback: try reading from pyproject.toml
        try:
            import tomllib
            pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
            if pyproject_path.exists():
                with open(pyproject_path, "rb") as f:
                    data = tomllib.load(f)
                    return data.get("project", {}).get("version", "unknown")
        except Exception:
            pass
    return "unknown"


def read_stable_version(settings: Settings) -> Optional[str]:
    """Return the version marker written by the last mirror sync, if any."""
    try:
        return settings.version_file.read_text(encoding="utf-8").strip() or None
    except OSError:
        return None
