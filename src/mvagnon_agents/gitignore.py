"""Per-tool fenced sections in a project's .gitignore."""

import logging
import re
from pathlib import Path

from .tools import ToolProfile

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"


def section_lines(tool: ToolProfile, mode: str = "add") -> list[str]:
    """Header plus entries; ``exceptions`` mode negates every entry."""
    prefix = "!" if mode == "exceptions" else ""
    return [tool.gitignore_header] + [f"{prefix}{entry}" for entry in tool.gitignore_entries]


def add_gitignore_section(project_root: Path, tool: ToolProfile, mode: str = "add") -> bool:
    """Append the tool's section unless its header is already present."""
    gitignore_path = project_root / GITIGNORE
    content = ""
    if gitignore_path.exists():
        content = gitignore_path.read_text(encoding="utf-8")
        if tool.gitignore_header in content.splitlines():
            return False
        if content and not content.endswith("\n"):
            content += "\n"
        if content:
            content += "\n"

    content += "\n".join(section_lines(tool, mode)) + "\n"
    gitignore_path.write_text(content, encoding="utf-8")
    logger.debug("Added %r to %s", tool.gitignore_header, gitignore_path)
    return True


def remove_gitignore_section(project_root: Path, tool: ToolProfile) -> bool:
    """Delete the header and its entries up to the next blank line, comment or EOF."""
    gitignore_path = project_root / GITIGNORE
    if not gitignore_path.exists():
        return False

    lines = gitignore_path.read_text(encoding="utf-8").split("\n")
    try:
        header_idx = lines.index(tool.gitignore_header)
    except ValueError:
        return False

    end_idx = header_idx + 1
    while end_idx < len(lines) and lines[end_idx].strip() and not lines[end_idx].startswith("#"):
        end_idx += 1
    del lines[header_idx:end_idx]

    result = re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()
    if result:
        result += "\n"
    gitignore_path.write_text(result, encoding="utf-8")
    logger.debug("Removed %r from %s", tool.gitignore_header, gitignore_path)
    return True


def detect_gitignore_mode(project_root: Path, tools) -> str:
    """Return ``exceptions`` if an existing tool section uses negated entries."""
    gitignore_path = project_root / GITIGNORE
    if not gitignore_path.exists():
        return "add"
    lines = gitignore_path.read_text(encoding="utf-8").split("\n")
    for tool in tools:
        if tool.gitignore_header in lines:
            idx = lines.index(tool.gitignore_header) + 1
            if idx < len(lines) and lines[idx].startswith("!"):
                return "exceptions"
            return "add"
    return "add"
