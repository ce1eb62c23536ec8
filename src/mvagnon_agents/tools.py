"""Static tool profiles and the technology/architecture tokens of the catalog."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

CATEGORIES: Tuple[str, ...] = ("rules", "skills", "agents")

# Item names containing one of these segments are technology-specific
TECHNOLOGIES = {
    "react": "React (components, hooks, patterns)",
    "ts": "TypeScript (conventions, testing)",
}

# Item names whose first segment is one of these are architecture-specific.
# "none" is a menu choice, never a tag.
ARCHITECTURES = {
    "none": "None (no custom architecture)",
    "hexagonal": "Hexagonal (ports & adapters pattern)",
}
NO_ARCHITECTURE = "none"

# Generic items that are always staged as a project copy so they can be customized
ALWAYS_COPY = {
    "rules": frozenset(),
    "skills": frozenset({"readme-writing", "implement-within"}),
    "agents": frozenset(),
}

LINK_MODES = {
    "symlink": "Symlinks (generic items follow the shared stable mirror)",
    "copy": "Copies (project-local copies, relative links only)",
}

GITIGNORE_MODES = {
    "add": "Add to .gitignore (ignore generated config)",
    "exceptions": "Create exceptions (negation patterns to track files)",
}


@dataclass(frozen=True)
class ToolProfile:
    """Where one tool expects its rules, skills, agents and config files."""

    key: str
    label: str
    hint: str
    # category -> directory relative to the project root
    paths: Dict[str, str]
    # catalog root file -> destination relative to the project root
    root_files: Dict[str, str] = field(default_factory=dict)
    # catalog config file -> destination; always copied, never linked
    config_files: Dict[str, str] = field(default_factory=dict)
    gitignore_entries: Tuple[str, ...] = ()

    @property
    def gitignore_header(self) -> str:
        return f"# {self.label} Configuration"

    def category_dir(self, project_root: Path, category: str) -> Path | None:
        rel = self.paths.get(category)
        return project_root / rel if rel else None

    def supports(self, category: str) -> bool:
        return bool(self.paths.get(category))


TOOL_CONFIG: Dict[str, ToolProfile] = {
    "claudecode": ToolProfile(
        key="claudecode",
        label="Claude Code",
        hint="Anthropic's CLI for Claude",
        paths={
            "rules": ".claude/rules",
            "skills": ".claude/skills",
            "agents": ".claude/agents",
        },
        root_files={"AGENTS.md": "CLAUDE.md"},
        config_files={"claudecode.settings.json": ".mcp.json"},
        gitignore_entries=(".claude", "CLAUDE.md", ".mcp.json"),
    ),
    "opencode": ToolProfile(
        key="opencode",
        label="OpenCode",
        hint="Open-source AI coding assistant",
        paths={
            "rules": ".opencode/rules",
            "skills": ".opencode/skills",
            "agents": ".opencode/agents",
        },
        root_files={"AGENTS.md": "AGENTS.md"},
        config_files={"opencode.settings.json": "opencode.json"},
        gitignore_entries=(".opencode", "AGENTS.md", "opencode.json"),
    ),
}


def get_tools(keys: Iterable[str]) -> List[ToolProfile]:
    """Resolve tool keys to profiles, keeping registry order."""
    wanted = set(keys)
    unknown = wanted - set(TOOL_CONFIG)
    if unknown:
        raise KeyError(f"Unknown tool(s): {', '.join(sorted(unknown))}")
    return [tool for key, tool in TOOL_CONFIG.items() if key in wanted]


def root_file_sources() -> List[str]:
    """All catalog root files referenced by any tool."""
    sources: List[str] = []
    for tool in TOOL_CONFIG.values():
        for src in tool.root_files:
            if src not in sources:
                sources.append(src)
    return sources


def detect_configured_tools(project_root: Path) -> List[ToolProfile]:
    """Tools that have at least one category directory in the project."""
    return [
        tool for tool in TOOL_CONFIG.values()
        if any((project_root / rel).exists() for rel in tool.paths.values())
    ]
