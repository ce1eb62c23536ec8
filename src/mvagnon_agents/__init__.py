#!/usr/bin/env python3
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "typer",
#     "rich",
#     "platformdirs",
#     "readchar",
#     "pyyaml",
# ]
# ///
"""
mvagnon-agents - install shared AI coding assistant rules, skills and agents

Usage:
    mvagnon-agents <target-path>
    mvagnon-agents upgrade
    mvagnon-agents manage

Or install globally:
    uv tool install --from . mvagnon-agents
    mvagnon-agents ../my-project
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.align import Align
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree
from typer.core import TyperGroup

from .config import Settings, get_package_version, read_stable_version
from .conflicts import ConflictResolver
from .errors import AgentsError, SetupCancelled
from .installer import ToolSummary, run_install
from .manage import run_manage
from .mirror import sync_stable_mirror
from .prompts import Prompter, console, err_console, is_cancel, print_usage_error
from .selection import Selection
from .tools import (
    ARCHITECTURES,
    CATEGORIES,
    GITIGNORE_MODES,
    LINK_MODES,
    NO_ARCHITECTURE,
    TECHNOLOGIES,
    TOOL_CONFIG,
)
from .upgrade import run_upgrade

BANNER = """
 █████╗  ██████╗ ███████╗███╗   ██╗████████╗███████╗
██╔══██╗██╔════╝ ██╔════╝████╗  ██║╚══██╔══╝██╔════╝
███████║██║  ███╗█████╗  ██╔██╗ ██║   ██║   ███████╗
██╔══██║██║   ██║██╔══╝  ██║╚██╗██║   ██║   ╚════██║
██║  ██║╚██████╔╝███████╗██║ ╚████║   ██║   ███████║
╚═╝  ╚═╝ ╚═════╝ ╚══════╝╚═╝  ╚═══╝   ╚═╝   ╚══════╝
"""

TAGLINE = "mvagnon agents - shared rules, skills and agents for AI coding tools"

COMMANDS = ("init", "upgrade", "manage", "version")
GLOBAL_OPTIONS = ("--debug",)


class StepTracker:
    """Track and render hierarchical steps as a tree.
    Supports live auto-refresh via an attached refresh callback.
    """
    SYMBOLS = {
        "done": "[green]●[/green]",
        "pending": "[green dim]○[/green dim]",
        "running": "[cyan]○[/cyan]",
        "skipped": "[yellow]○[/yellow]",
    }

    def __init__(self, title: str):
        self.title = title
        self.steps = []  # list of dicts: {key, label, status, detail}
        self._refresh_cb = None

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def start(self, key: str, detail: str = ""):
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, status="done", detail=detail)

    def skip(self, key: str, detail: str = ""):
        self._update(key, status="skipped", detail=detail)

    def _update(self, key: str, status: str, detail: str):
        for s in self.steps:
            if s["key"] == key:
                s["status"] = status
                if detail:
                    s["detail"] = detail
                self._maybe_refresh()
                return

        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})
        self._maybe_refresh()

    def _maybe_refresh(self):
        if self._refresh_cb:
            self._refresh_cb()

    def render(self):
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            label = step["label"]
            detail_text = step["detail"].strip() if step["detail"] else ""
            symbol = self.SYMBOLS.get(step["status"], " ")

            if step["status"] == "pending":
                line = f"{symbol} [bright_black]{label}{f' ({detail_text})' if detail_text else ''}[/bright_black]"
            elif detail_text:
                line = f"{symbol} [white]{label}[/white] [bright_black]({detail_text})[/bright_black]"
            else:
                line = f"{symbol} [white]{label}[/white]"
            tree.add(line)
        return tree


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="mvagnon-agents",
    help="Install shared AI coding assistant configuration into a project",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def show_banner():
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip().split('\n')
    colors = ["bright_blue", "blue", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        color = colors[i % len(colors)]
        styled_banner.append(line + "\n", style=color)

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=debug)],
        force=True,
    )


@app.callback()
def callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Show diagnostic logging on standard error"),
):
    """Show banner when no subcommand is provided."""
    configure_logging(debug)
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'mvagnon-agents --help' for usage information[/dim]"))
        console.print()


def load_settings() -> Settings:
    try:
        return Settings.from_environment()
    except AgentsError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def resolve_target_path(target: Optional[str]) -> Path:
    """Validate the bootstrap target. Usage errors exit 1 before anything is written."""
    if not target:
        print_usage_error([
            "Usage: mvagnon-agents <target-path>",
            "Example: mvagnon-agents ../my-project",
        ])
        raise typer.Exit(1)

    target_path = Path(target).expanduser().resolve()
    if not target_path.exists():
        print_usage_error([f"Error: Directory not found: {target_path}"])
        raise typer.Exit(1)
    if not target_path.is_dir():
        print_usage_error([f"Error: Path must be a directory: {target_path}"])
        raise typer.Exit(1)
    return target_path


def _check_choices(values: List[str], allowed, flag: str) -> None:
    invalid = [v for v in values if v not in allowed]
    if invalid:
        print_usage_error([
            f"Error: Invalid value for {flag}: {', '.join(invalid)}",
            f"Choose from: {', '.join(allowed)}",
        ])
        raise typer.Exit(1)


def _answer(value):
    if is_cancel(value):
        raise SetupCancelled("init")
    return value


def gather_selection(
    prompter: Prompter,
    interactive: bool,
    tools: List[str],
    techs: List[str],
    arch: Optional[str],
    categories: List[str],
    mode: Optional[str],
    gitignore_mode: Optional[str],
) -> Selection:
    """Ask for everything not given on the command line. Defaults apply when not interactive."""
    if not tools:
        if interactive:
            tools = _answer(prompter.multiselect(
                "Select target tools",
                {key: f"{tool.label} - {tool.hint}" for key, tool in TOOL_CONFIG.items()},
                required=True,
            ))
        else:
            tools = list(TOOL_CONFIG)

    if not techs and interactive:
        techs = _answer(prompter.multiselect("Select technologies", TECHNOLOGIES, required=False))

    if not arch:
        if interactive:
            arch = _answer(prompter.select("Select custom architecture", ARCHITECTURES, NO_ARCHITECTURE))
        else:
            arch = NO_ARCHITECTURE

    if not categories:
        if interactive:
            categories = _answer(prompter.multiselect(
                "Select categories to install",
                {c: c.capitalize() for c in CATEGORIES},
                initial=CATEGORIES,
                required=True,
            ))
        else:
            categories = list(CATEGORIES)

    if not mode:
        mode = _answer(prompter.select("Select link mode", LINK_MODES, "symlink")) if interactive else "symlink"

    # Symlinks cannot be committed portably, so they are always ignored
    if mode == "symlink":
        gitignore_mode = "add"
    elif not gitignore_mode:
        gitignore_mode = _answer(prompter.select("Gitignore handling?", GITIGNORE_MODES, "add")) if interactive else "add"

    return Selection(
        tools=tuple(tools),
        techs=frozenset(techs),
        arch=arch,
        link_mode=mode,
        categories=tuple(c for c in CATEGORIES if c in categories),
        gitignore_mode=gitignore_mode,
    )


def render_tool_summary(summary: ToolSummary, selection: Selection) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")

    for category in CATEGORIES:
        if category in summary.counts:
            table.add_row(category.capitalize(), f"{summary.counts[category]} {summary.mode}")
    for dest in summary.root_files:
        table.add_row(dest, summary.mode)
    for dest in summary.config_files:
        table.add_row(dest, "copied")
    action = "exceptions added" if selection.gitignore_mode == "exceptions" else "entries added"
    table.add_row(".gitignore", action)

    return Panel(table, title=f"[bold cyan]{summary.tool.label} Setup[/bold cyan]", border_style="cyan", padding=(1, 2))


@app.command()
def init(
    target: str = typer.Argument(None, help="Project directory to install into"),
    tool: List[str] = typer.Option(None, "--tool", help=f"Target tool (repeatable): {', '.join(TOOL_CONFIG)}"),
    tech: List[str] = typer.Option(None, "--tech", help=f"Technology (repeatable): {', '.join(TECHNOLOGIES)}"),
    arch: str = typer.Option(None, "--arch", help=f"Architecture: {', '.join(ARCHITECTURES)}"),
    category: List[str] = typer.Option(None, "--category", help=f"Category to install (repeatable): {', '.join(CATEGORIES)}"),
    mode: str = typer.Option(None, "--mode", help="Link mode: symlink or copy"),
    gitignore: str = typer.Option(None, "--gitignore", help="Gitignore handling in copy mode: add or exceptions"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Accept defaults for anything not given and never overwrite existing files"),
):
    """
    Install rules, skills and agents into a project.

    This command will:
    1. Sync the bundled catalog to the shared stable mirror
    2. Let you choose tools, technologies, architecture, categories and link mode
    3. Stage project-sensitive items once under .mvagnon/agents and link them from each tool
    4. Copy tool config files and update .gitignore

    Examples:
        mvagnon-agents ../my-project
        mvagnon-agents init . --tool claudecode --tech react --mode copy
        mvagnon-agents init ../api --tool opencode --arch hexagonal --yes
    """
    show_banner()

    target_path = resolve_target_path(target)
    tools = list(tool or [])
    techs = list(tech or [])
    categories = list(category or [])
    _check_choices(tools, list(TOOL_CONFIG), "--tool")
    _check_choices(techs, list(TECHNOLOGIES), "--tech")
    _check_choices([arch] if arch else [], list(ARCHITECTURES), "--arch")
    _check_choices(categories, list(CATEGORIES), "--category")
    _check_choices([mode] if mode else [], list(LINK_MODES), "--mode")
    _check_choices([gitignore] if gitignore else [], list(GITIGNORE_MODES), "--gitignore")

    settings = load_settings()
    prompter = Prompter()
    interactive = sys.stdin.isatty() and not yes

    with console.status("[cyan]Syncing stable mirror[/cyan]"):
        report = sync_stable_mirror(settings, version=get_package_version())
    prompter.success(f"Stable mirror {report.summary()}")

    prompter.intro(f"mvagnon agents → {target_path}")

    spinner = prompter.spinner()
    try:
        selection = gather_selection(prompter, interactive, tools, techs, arch, categories, mode, gitignore)
        spinner.start("Copying files" if selection.copy_all else "Creating symlinks")
        resolver = ConflictResolver(prompter, spinner=spinner, assume_no=not interactive)
        summaries = run_install(target_path, selection, settings, resolver, spinner=spinner)
    except SetupCancelled:
        spinner.stop()
        prompter.cancel("Setup cancelled")
        raise typer.Exit(0)
    spinner.stop("Setup complete")

    for summary in summaries:
        console.print(render_tool_summary(summary, selection))

    prompter.note(
        "\n".join([
            f"1. Edit the project-sensitive copies in [cyan]{settings.intermediate_dir.as_posix()}/[/cyan]",
            "2. Add skills, agents, or MCP servers based on your needs",
            "3. Run [cyan]mvagnon-agents manage[/cyan] to add or remove tools later",
            "4. Run [cyan]mvagnon-agents upgrade[/cyan] to pull catalog updates",
        ]),
        "Next Steps",
    )
    prompter.outro("Done")


@app.command()
def upgrade(
    project: Path = typer.Option(None, "--project", help="Project to reconcile (defaults to the current directory)"),
):
    """Sync the stable mirror and update generic copies in the current project."""
    show_banner()
    settings = load_settings()
    project_root = (project or Path.cwd()).resolve()

    tracker = StepTracker("Upgrade")
    tracker.add("mirror", "Sync stable mirror")
    tracker.add("reconcile", "Update project copies")
    tracker.add("links", "Prune dangling links")

    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        result = run_upgrade(project_root, settings, version=get_package_version(), tracker=tracker)

    console.print(tracker.render())

    sections = [("Stable mirror", result.mirror)]
    if result.local is not None:
        sections.append(("Project copies", result.local))
    for title, report in sections:
        lines = []
        for label, names in (("added", report.added), ("updated", report.updated), ("removed", report.removed)):
            if names:
                lines.append(f"[cyan]{label}[/cyan]: {', '.join(names)}")
        if lines:
            console.print(Panel("\n".join(lines), title=title, border_style="cyan", padding=(1, 2)))

    if result.pruned:
        console.print(Panel("\n".join(result.pruned), title="Removed links", border_style="yellow", padding=(1, 2)))

    console.print("\n[bold green]Upgrade complete.[/bold green]")


@app.command()
def manage(
    project: Path = typer.Option(None, "--project", help="Project to manage (defaults to the current directory)"),
):
    """Add or remove tools and generic items in a bootstrapped project."""
    show_banner()
    settings = load_settings()
    project_root = (project or Path.cwd()).resolve()
    prompter = Prompter()

    sync_stable_mirror(settings, version=get_package_version())
    try:
        run_manage(project_root, settings, prompter)
    except SetupCancelled:
        prompter.cancel("Manage cancelled")
        raise typer.Exit(0)
    except AgentsError as e:
        print_usage_error([f"Error: {e}"])
        raise typer.Exit(1)


@app.command()
def version():
    """Display version and path information."""
    import platform

    show_banner()
    settings = load_settings()

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_column("Key", style="cyan", justify="right")
    info_table.add_column("Value", style="white")

    info_table.add_row("CLI Version", get_package_version())
    info_table.add_row("Stable Mirror", read_stable_version(settings) or "not synced")
    info_table.add_row("Mirror Path", str(settings.stable_config_dir))
    info_table.add_row("Catalog", str(settings.catalog_dir))
    info_table.add_row("", "")
    info_table.add_row("Python", platform.python_version())
    info_table.add_row("Platform", platform.system())
    info_table.add_row("Architecture", platform.machine())

    panel = Panel(
        info_table,
        title="[bold cyan]mvagnon-agents Information[/bold cyan]",
        border_style="cyan",
        padding=(1, 2)
    )

    console.print(panel)
    console.print()


def route_target_path(argv: List[str]) -> List[str]:
    """Turn ``<target-path>`` into ``init <target-path>``; a bare call becomes ``init``.

    ``init`` is inserted right after the global options, so ``init`` options may
    come before or after the target path.
    """
    start = 0
    while start < len(argv) and argv[start] in GLOBAL_OPTIONS:
        start += 1
    if start < len(argv) and argv[start] in COMMANDS:
        return argv
    rest = argv[start:]
    if ("--help" in rest or "-h" in rest) and all(arg.startswith("-") for arg in rest):
        return argv
    return argv[:start] + ["init"] + rest


def main():
    sys.argv[1:] = route_target_path(sys.argv[1:])
    app()


if __name__ == "__main__":
    main()
