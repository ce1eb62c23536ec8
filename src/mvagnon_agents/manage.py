"""Add or remove tools and generic items in an already bootstrapped project."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .catalog import GENERIC, PROJECT_SENSITIVE, find_item, item_names, read_description, scan_category
from .config import Settings
from .errors import NoToolsDetectedError, NotBootstrappedError, SetupCancelled
from .fsops import (
    copy_path,
    create_absolute_symlink,
    create_relative_symlink,
    is_link,
    lexists,
    link_points_into,
    remove_if_empty,
    remove_path,
)
from .gitignore import add_gitignore_section, detect_gitignore_mode, remove_gitignore_section
from .installer import GENERIC_SUBDIR, intermediate_path
from .prompts import is_cancel
from .tools import CATEGORIES, TOOL_CONFIG, ToolProfile, detect_configured_tools

logger = logging.getLogger(__name__)


def _visible(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if not p.name.startswith("."))


# --- Tool add/remove ---

def add_tool(
    tool: ToolProfile,
    project_root: Path,
    settings: Settings,
    peers: Iterable[ToolProfile] = (),
    gitignore_mode: str = "add",
) -> None:
    """Create the tool's directories and link every item already installed.

    ``peers`` are tools already active in the project; their links into the
    stable mirror are replicated for the new tool.
    """
    intermediate_base = settings.intermediate_base(project_root)
    for rel in tool.paths.values():
        (project_root / rel).mkdir(parents=True, exist_ok=True)

    for category in CATEGORIES:
        tool_dir = tool.category_dir(project_root, category)
        if tool_dir is None:
            continue

        # Project-sensitive and always-copy copies
        for entry in _visible(intermediate_base / category):
            if is_link(entry):
                continue
            create_relative_symlink(entry, tool_dir / entry.name)

        for entry in _visible(intermediate_base / GENERIC_SUBDIR / category):
            create_relative_symlink(entry, tool_dir / entry.name)

        for peer in peers:
            peer_dir = peer.category_dir(project_root, category)
            if peer_dir is None or peer.key == tool.key:
                continue
            for entry in _visible(peer_dir):
                if link_points_into(entry, settings.stable_config_dir) and not lexists(tool_dir / entry.name):
                    create_absolute_symlink(entry.resolve(), tool_dir / entry.name)

    for src_name, dest_name in tool.root_files.items():
        staged = intermediate_base / src_name
        if not lexists(staged):
            source = settings.stable_config_dir / src_name
            if source.exists():
                copy_path(source, staged)
        if lexists(staged):
            create_relative_symlink(staged, project_root / dest_name)

    for src_name, dest_name in tool.config_files.items():
        source = settings.stable_config_dir / src_name
        if source.exists():
            copy_path(source, project_root / dest_name)

    add_gitignore_section(project_root, tool, gitignore_mode)
    logger.debug("Added tool %s", tool.key)


def remove_tool(tool: ToolProfile, project_root: Path, remaining_tools: Iterable[ToolProfile]) -> None:
    """Delete the tool's directories and files; intermediate copies are kept."""
    remaining = [t for t in remaining_tools if t.key != tool.key]

    for rel in tool.paths.values():
        remove_path(project_root / rel)

    still_needed = {dest for t in remaining for dest in t.root_files.values()}
    for dest in tool.root_files.values():
        if dest not in still_needed:
            remove_path(project_root / dest)

    for dest in tool.config_files.values():
        remove_path(project_root / dest)

    dirs_to_check = set()
    for rel in tool.paths.values():
        top_level = Path(rel).parts[0] if Path(rel).parts else ""
        if top_level:
            dirs_to_check.add(project_root / top_level)
    for dest in tool.config_files.values():
        parent = Path(dest).parent
        if str(parent) != ".":
            dirs_to_check.add(project_root / parent)
    for directory in dirs_to_check:
        remove_if_empty(directory)

    remove_gitignore_section(project_root, tool)
    logger.debug("Removed tool %s", tool.key)


# --- Generic item management ---

@dataclass
class CategoryState:
    project_sensitive: List[str]
    generic: List[str]
    current_generic: List[str]


def scan_current_state(category: str, project_root: Path, settings: Settings, active_tools: Iterable[ToolProfile]) -> CategoryState:
    """Available items from the stable mirror and the generic items currently installed."""
    intermediate_base = settings.intermediate_base(project_root)
    project_sensitive = item_names(settings.stable_config_dir, category, PROJECT_SENSITIVE)
    generic = item_names(settings.stable_config_dir, category, GENERIC)

    current = set()
    for entry in _visible(intermediate_base / GENERIC_SUBDIR / category):
        current.add(entry.name)
    # Always-copy generic items are staged next to project-sensitive copies
    for entry in _visible(intermediate_base / category):
        if entry.name in generic and not is_link(entry):
            current.add(entry.name)
    for tool in active_tools:
        tool_dir = tool.category_dir(project_root, category)
        if tool_dir is None:
            continue
        for entry in _visible(tool_dir):
            if link_points_into(entry, settings.stable_config_dir):
                current.add(entry.name)

    current_generic = [name for name in generic if name in current]
    current_generic += sorted(current - set(generic))
    return CategoryState(project_sensitive, generic, current_generic)


def diff_selection(current: Iterable[str], selected: Iterable[str]) -> Tuple[List[str], List[str]]:
    current_list = list(current)
    selected_list = list(selected)
    to_add = [x for x in selected_list if x not in current_list]
    to_remove = [x for x in current_list if x not in selected_list]
    return to_add, to_remove


def add_generic_items(category: str, names: Iterable[str], project_root: Path, settings: Settings, active_tools: Iterable[ToolProfile]) -> List[str]:
    """Copy each item into the intermediate directory and link it from every tool."""
    intermediate_base = settings.intermediate_base(project_root)
    tools = list(active_tools)
    added = []
    for name in names:
        item = find_item(settings.stable_config_dir, category, name, GENERIC)
        if item is None:
            continue
        staged = intermediate_path(intermediate_base, item, copy_all=True)
        copy_path(item.path, staged)
        for tool in tools:
            tool_dir = tool.category_dir(project_root, category)
            if tool_dir is None:
                continue
            tool_dir.mkdir(parents=True, exist_ok=True)
            create_relative_symlink(staged, tool_dir / name)
        added.append(name)
    return added


def remove_generic_items(category: str, names: Iterable[str], project_root: Path, settings: Settings, active_tools: Iterable[ToolProfile]) -> List[str]:
    """Unlink each item from every tool and delete its intermediate copy."""
    intermediate_base = settings.intermediate_base(project_root)
    generic = set(item_names(settings.stable_config_dir, category, GENERIC))
    tools = list(active_tools)
    removed = []
    for name in names:
        remove_path(intermediate_base / GENERIC_SUBDIR / category / name)
        staged = intermediate_base / category / name
        if name in generic and not is_link(staged):
            remove_path(staged)
        for tool in tools:
            tool_dir = tool.category_dir(project_root, category)
            if tool_dir is not None:
                remove_path(tool_dir / name)
        removed.append(name)
    return removed


def ensure_project_sensitive(category: str, project_root: Path, settings: Settings, active_tools: Iterable[ToolProfile]) -> List[str]:
    """Stage project-sensitive items that are missing and link them. Existing copies are left alone."""
    intermediate_base = settings.intermediate_base(project_root)
    tools = list(active_tools)
    created = []
    for item in scan_category(settings.stable_config_dir, category):
        if not item.project_sensitive:
            continue
        staged = intermediate_base / category / item.name
        if lexists(staged):
            continue
        copy_path(item.path, staged)
        for tool in tools:
            tool_dir = tool.category_dir(project_root, category)
            if tool_dir is not None:
                create_relative_symlink(staged, tool_dir / item.name)
        created.append(item.name)
    return created


# --- Interactive flow ---

@dataclass
class ManageResult:
    tools_added: List[str] = field(default_factory=list)
    tools_removed: List[str] = field(default_factory=list)
    items: Dict[str, Tuple[List[str], List[str]]] = field(default_factory=dict)


def _ask(value):
    if is_cancel(value):
        raise SetupCancelled("manage")
    return value


def run_manage(project_root: Path, settings: Settings, prompter) -> ManageResult:
    """Interactively reconcile the project's tools and generic items."""
    intermediate_base = settings.intermediate_base(project_root)
    if not intermediate_base.is_dir():
        raise NotBootstrappedError(f"{settings.intermediate_dir.as_posix()}/ not found. Run bootstrap first.")

    configured = detect_configured_tools(project_root)
    if not configured:
        raise NoToolsDetectedError("No configured tools detected in this project.")

    prompter.intro(f"Manage → {project_root}")
    result = ManageResult()

    current_keys = [t.key for t in configured]
    selected_keys = _ask(prompter.multiselect(
        "Select tools",
        {key: tool.label for key, tool in TOOL_CONFIG.items()},
        initial=current_keys,
        required=True,
    ))
    to_add, to_remove = diff_selection(current_keys, selected_keys)
    active_tools = [TOOL_CONFIG[k] for k in TOOL_CONFIG if k in selected_keys]
    gitignore_mode = detect_gitignore_mode(project_root, configured)

    for key in to_add:
        add_tool(TOOL_CONFIG[key], project_root, settings, peers=configured, gitignore_mode=gitignore_mode)
    for key in to_remove:
        remove_tool(TOOL_CONFIG[key], project_root, active_tools)
    result.tools_added = [TOOL_CONFIG[k].label for k in to_add]
    result.tools_removed = [TOOL_CONFIG[k].label for k in to_remove]

    if to_add or to_remove:
        changes = []
        if to_add:
            changes.append(f"added: {', '.join(result.tools_added)}")
        if to_remove:
            changes.append(f"removed: {', '.join(result.tools_removed)}")
        prompter.success(f"Tools: {' | '.join(changes)}")
    else:
        prompter.info("Tools: no changes")

    for category in CATEGORIES:
        if not any(tool.supports(category) for tool in active_tools):
            continue

        state = scan_current_state(category, project_root, settings, active_tools)
        if not state.project_sensitive and not state.generic:
            continue

        if state.project_sensitive:
            ensure_project_sensitive(category, project_root, settings, active_tools)
            prompter.note(", ".join(state.project_sensitive), f"{category.capitalize()}: project-sensitive (always included)")

        if not state.generic:
            continue

        options = {}
        for name in state.generic:
            item = find_item(settings.stable_config_dir, category, name, GENERIC)
            options[name] = read_description(item.path) if item else ""
        selected = _ask(prompter.multiselect(
            f"Select generic {category}",
            options,
            initial=state.current_generic,
            required=False,
        ))

        items_to_add, items_to_remove = diff_selection(state.current_generic, selected or [])
        if not items_to_add and not items_to_remove:
            prompter.info(f"{category.capitalize()}: no changes")
            continue

        added = add_generic_items(category, items_to_add, project_root, settings, active_tools)
        removed = remove_generic_items(category, items_to_remove, project_root, settings, active_tools)
        result.items[category] = (added, removed)

        changes = []
        if added:
            changes.append(f"added: {', '.join(added)}")
        if removed:
            changes.append(f"removed: {', '.join(removed)}")
        prompter.success(f"{category.capitalize()}: {' | '.join(changes)}")

    prompter.outro("Done")
    return result
