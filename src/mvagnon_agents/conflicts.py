"""Batch overwrite confirmations for project-local files.

Conflicts are collected during an install pass and asked about together once
the pass is done, so questions never interleave with progress output. All
answers are gathered before any file is overwritten.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .errors import SetupCancelled
from .fsops import copy_path
from .prompts import Spinner, is_cancel

logger = logging.getLogger(__name__)


@dataclass
class Conflict:
    dest: Path
    label: str
    apply: Callable[[], None]
    overwrite: Optional[bool] = None


class ConflictResolver:
    """Collect conflicts once per destination and resolve them in one batch."""

    def __init__(self, prompter=None, spinner: Optional[Spinner] = None, assume_no: bool = False):
        self.prompter = prompter
        self.spinner = spinner
        self.assume_no = assume_no
        self._pending: Dict[Path, Conflict] = {}

    def add(self, dest: Path, label: str, apply: Callable[[], None]) -> bool:
        """Record a conflict. Returns False if ``dest`` was already recorded."""
        if dest in self._pending:
            return False
        self._pending[dest] = Conflict(dest, label, apply)
        logger.debug("Conflict recorded for %s", dest)
        return True

    def add_copy(self, source: Path, dest: Path, label: str) -> bool:
        return self.add(dest, label, lambda: copy_path(source, dest))

    @property
    def pending(self) -> List[Conflict]:
        return list(self._pending.values())

    def _ask_all(self) -> None:
        for conflict in self._pending.values():
            if self.assume_no or self.prompter is None:
                conflict.overwrite = False
                continue
            answer = self.prompter.confirm(f"{conflict.label} already exists. Overwrite?", default=False)
            if is_cancel(answer):
                raise SetupCancelled(conflict.label)
            conflict.overwrite = bool(answer)

    def resolve(self) -> List[Conflict]:
        """Ask every pending question, then apply the overwrites.

        Returns the resolved conflicts. Raises ``SetupCancelled`` if a question
        is cancelled; files written before that point stay on disk.
        """
        if not self._pending:
            return []

        if self.spinner is not None:
            with self.spinner.paused():
                self._ask_all()
        else:
            self._ask_all()

        resolved = self.pending
        for conflict in resolved:
            if conflict.overwrite:
                conflict.apply()
                logger.debug("Overwrote %s", conflict.dest)
        self._pending.clear()
        return resolved
