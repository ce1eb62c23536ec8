"""Shared fixtures: a temporary catalog, stable mirror and project."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from mvagnon_agents.config import Settings
from mvagnon_agents.mirror import sync_stable_mirror

DEFAULT_CATALOG: dict[str, str] = {
    "AGENTS.md": "# Agents\n",
    "claudecode.settings.json": '{"mcpServers": {}}\n',
    "opencode.settings.json": '{"mcp": {}}\n',
    "rules/project-sensitive/project.md": "# Project\n",
    "rules/generic/clean-code.md": "# Clean code\n",
    "rules/generic/react-hooks.md": "# React hooks\n",
    "rules/generic/hexagonal-architecture.md": "# Hexagonal\n",
    "rules/generic/hexagonal-ts-ports.md": "# Ports\n",
    "skills/generic/readme-writing/SKILL.md": "---\ndescription: Write READMEs\n---\n# README\n",
    "skills/generic/ts-testing/SKILL.md": "---\ndescription: Test TypeScript\n---\n# TS\n",
    "skills/project-sensitive/.gitkeep": "",
    "agents/generic/code-reviewer.md": "---\nname: code-reviewer\ndescription: Reviews diffs\n---\nReview.\n",
}


def write_tree(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def snapshot(root: Path) -> dict[str, Any]:
    """Map every entry under ``root`` to its link target or file content."""
    result: dict[str, Any] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        if path.is_symlink():
            result[rel] = ("link", str(path.readlink()))
        elif path.is_file():
            result[rel] = ("file", path.read_bytes())
        else:
            result[rel] = ("dir", None)
    return result


@pytest.fixture
def catalog_dir(tmp_path):
    return write_tree(tmp_path / "catalog", DEFAULT_CATALOG)


@pytest.fixture
def settings(tmp_path, catalog_dir):
    return Settings(stable_base=tmp_path / "stable", catalog_dir=catalog_dir)


@pytest.fixture
def synced(settings):
    """Settings whose stable mirror has been populated."""
    sync_stable_mirror(settings, version="1.0.0")
    return settings


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


class FakeSpinner:
    def __init__(self):
        self.events: list[str] = []
        self.active = False

    def start(self, message: str):
        self.active = True
        self.events.append(f"start:{message}")

    def message(self, message: str):
        self.events.append(f"message:{message}")

    def stop(self, message: str = ""):
        self.active = False
        self.events.append("stop")

    def paused(self):
        spinner = self

        class _Paused:
            def __enter__(self):
                self.was_active = spinner.active
                spinner.active = False
                spinner.events.append("pause")

            def __exit__(self, *exc):
                spinner.active = self.was_active
                spinner.events.append("resume")
                return False

        return _Paused()


class FakePrompter:
    """Scripted prompt provider. Answers are consumed in order per prompt type."""

    def __init__(self, confirms=None, selects=None, multiselects=None):
        self.confirms = list(confirms or [])
        self.selects = list(selects or [])
        self.multiselects = list(multiselects or [])
        self.asked: list[tuple[str, str]] = []
        self.messages: list[str] = []
        self.spinner_obj = FakeSpinner()

    def _next(self, queue, kind, message, default=None):
        self.asked.append((kind, message))
        if self.spinner_obj.active:
            raise AssertionError("prompt shown while spinner is running")
        if queue:
            return queue.pop(0)
        return default

    def confirm(self, message, default=False):
        return self._next(self.confirms, "confirm", message, default)

    def select(self, message, options, initial=None):
        return self._next(self.selects, "select", message, initial)

    def multiselect(self, message, options, initial=(), required=False):
        self.asked_options = options
        answer = self._next(self.multiselects, "multiselect", message, None)
        return list(initial) if answer is None else answer

    def spinner(self):
        return self.spinner_obj

    def intro(self, title):
        self.messages.append(title)

    outro = cancel = info = success = warn = intro

    def note(self, body, title=""):
        self.messages.append(f"{title}: {body}")

