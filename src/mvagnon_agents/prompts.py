"""Interactive prompts built on readchar and rich.

Every prompt returns ``CANCELLED`` instead of raising when the user presses
Esc or Ctrl+C, so callers decide how to abort.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


class _Cancelled:
    """Sentinel returned by a prompt the user aborted."""

    def __repr__(self):
        return "CANCELLED"

    def __bool__(self):
        return False


CANCELLED = _Cancelled()


def is_cancel(value) -> bool:
    return value is CANCELLED


def get_key():
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP or key == readchar.key.CTRL_P:
        return 'up'
    if key == readchar.key.DOWN or key == readchar.key.CTRL_N:
        return 'down'

    if key == readchar.key.ENTER:
        return 'enter'

    if key == readchar.key.SPACE:
        return 'space'

    if key == readchar.key.ESC:
        return 'escape'

    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


class Spinner:
    """Start/stop/relabel wrapper around a rich status line."""

    def __init__(self, output: Console = console):
        self._console = output
        self._status = None
        self._message = ""

    @property
    def active(self) -> bool:
        return self._status is not None

    def start(self, message: str):
        self._message = message
        if self._status is None:
            self._status = self._console.status(f"[cyan]{message}[/cyan]")
            self._status.start()
        else:
            self._status.update(f"[cyan]{message}[/cyan]")

    def message(self, message: str):
        self._message = message
        if self._status is not None:
            self._status.update(f"[cyan]{message}[/cyan]")

    def stop(self, message: str = ""):
        if self._status is not None:
            self._status.stop()
            self._status = None
        if message:
            self._console.print(f"[green]✓[/green] {message}")

    @contextmanager
    def paused(self):
        """Stop the spinner while prompting, then resume with the same label."""
        was_active = self.active
        if was_active:
            self._status.stop()
            self._status = None
        try:
            yield
        finally:
            if was_active:
                self.start(self._message)


class Prompter:
    """The prompt provider used by the install, manage and conflict flows."""

    def __init__(self, output: Console = console):
        self.console = output

    # --- framing -------------------------------------------------------

    def intro(self, title: str):
        self.console.print()
        self.console.print(Panel(f"[bold]{title}[/bold]", border_style="cyan", padding=(0, 2)))

    def outro(self, message: str):
        self.console.print(f"\n[bold green]{message}[/bold green]")

    def cancel(self, message: str):
        self.console.print(f"\n[yellow]{message}[/yellow]")

    def note(self, body: str, title: str = ""):
        self.console.print(Panel(body, title=f"[bold]{title}[/bold]" if title else None, border_style="cyan", padding=(1, 2)))

    def info(self, message: str):
        self.console.print(f"[cyan]●[/cyan] {message}")

    def success(self, message: str):
        self.console.print(f"[green]✓[/green] {message}")

    def warn(self, message: str):
        self.console.print(f"[yellow]![/yellow] {message}")

    def spinner(self) -> Spinner:
        return Spinner(self.console)

    # --- questions -----------------------------------------------------

    def select(self, message: str, options: Dict[str, str], initial: Optional[str] = None):
        """
        Single choice with arrow keys.

        Args:
            message: Text to show above the options
            options: Dict with keys as option values and values as descriptions
            initial: Option key to start on

        Returns:
            Selected key, or ``CANCELLED``
        """
        option_keys = list(options.keys())
        selected_index = option_keys.index(initial) if initial in option_keys else 0

        def create_selection_panel():
            table = Table.grid(padding=(0, 2))
            table.add_column(style="cyan", justify="left", width=3)
            table.add_column(style="white", justify="left")

            for i, key in enumerate(option_keys):
                marker = "▶" if i == selected_index else " "
                table.add_row(marker, f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")

            table.add_row("", "")
            table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")
            return Panel(table, title=f"[bold]{message}[/bold]", border_style="cyan", padding=(1, 2))

        self.console.print()
        with Live(create_selection_panel(), console=self.console, transient=True, auto_refresh=False) as live:
            while True:
                try:
                    key = get_key()
                except KeyboardInterrupt:
                    return CANCELLED
                if key == 'up':
                    selected_index = (selected_index - 1) % len(option_keys)
                elif key == 'down':
                    selected_index = (selected_index + 1) % len(option_keys)
                elif key == 'enter':
                    break
                elif key == 'escape':
                    return CANCELLED
                live.update(create_selection_panel(), refresh=True)

        choice = option_keys[selected_index]
        self.console.print(f"[cyan]{message}[/cyan] {choice}")
        return choice

    def multiselect(self, message: str, options: Dict[str, str], initial: Iterable[str] = (), required: bool = False):
        """Toggle list. Space toggles, ``a`` toggles all, Enter confirms.

        Returns the chosen keys in option order, or ``CANCELLED``.
        """
        option_keys = list(options.keys())
        chosen = {k for k in initial if k in options}
        cursor = 0
        hint = ""

        def create_selection_panel():
            table = Table.grid(padding=(0, 2))
            table.add_column(style="cyan", justify="left", width=3)
            table.add_column(style="white", justify="left")

            for i, key in enumerate(option_keys):
                pointer = "▶" if i == cursor else " "
                box = "[green]◼[/green]" if key in chosen else "◻"
                desc = f" [dim]({options[key]})[/dim]" if options[key] and options[key] != key else ""
                table.add_row(pointer, f"{box} [cyan]{key}[/cyan]{desc}")

            table.add_row("", "")
            table.add_row("", "[dim]↑/↓ navigate, Space toggle, a toggle all, Enter confirm, Esc cancel[/dim]")
            if hint:
                table.add_row("", f"[yellow]{hint}[/yellow]")
            return Panel(table, title=f"[bold]{message}[/bold]", border_style="cyan", padding=(1, 2))

        self.console.print()
        with Live(create_selection_panel(), console=self.console, transient=True, auto_refresh=False) as live:
            while True:
                try:
                    key = get_key()
                except KeyboardInterrupt:
                    return CANCELLED
                hint = ""
                if key == 'up':
                    cursor = (cursor - 1) % len(option_keys)
                elif key == 'down':
                    cursor = (cursor + 1) % len(option_keys)
                elif key == 'space':
                    current = option_keys[cursor]
                    chosen.symmetric_difference_update({current})
                elif key == 'a':
                    chosen = set() if len(chosen) == len(option_keys) else set(option_keys)
                elif key == 'enter':
                    if required and not chosen:
                        hint = "Select at least one option"
                    else:
                        break
                elif key == 'escape':
                    return CANCELLED
                live.update(create_selection_panel(), refresh=True)

        result = [k for k in option_keys if k in chosen]
        self.console.print(f"[cyan]{message}[/cyan] {', '.join(result) or '(none)'}")
        return result

    def confirm(self, message: str, default: bool = False):
        """Yes/no question. Enter keeps the default."""
        suffix = "(Y/n)" if default else "(y/N)"
        self.console.print(f"[cyan]?[/cyan] {message} [dim]{suffix}[/dim] ", end="")
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                self.console.print()
                return CANCELLED
            if key == 'escape':
                self.console.print()
                return CANCELLED
            if key == 'enter':
                answer = default
                break
            if key in ("y", "Y"):
                answer = True
                break
            if key in ("n", "N"):
                answer = False
                break
        self.console.print("yes" if answer else "no")
        return answer


def print_usage_error(lines: List[str]) -> None:
    for line in lines:
        err_console.print(line, highlight=False)
