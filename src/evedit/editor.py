"""Structural editor for one event command list."""

from __future__ import annotations

import json
import logging
from typing import Callable, Sequence

from evedit._builders import build_indented, build_inserted, build_updated
from evedit._clipboard import CLIPBOARD, ClipboardMixin, CommandClipboard
from evedit._disable import DisableMixin
from evedit._fold import FoldMixin
from evedit._move import MoveMixin
from evedit._search import FindOptions, SearchMixin
from evedit._selection import SelectionMixin
from evedit._structure import expand_indices, is_terminal_index, resolve_group_range
from evedit._substitute import SubstituteMixin
from evedit.display import describe
from evedit.history import History
from evedit.model import Command, dump_commands, placeholder

logger = logging.getLogger(__name__)


def _with_terminal(commands: Sequence[Command]) -> list[Command]:
    result = list(commands)
    if not result or not result[-1].is_terminal:
        result.append(placeholder(0))
    return result


class CommandEditor(
    SelectionMixin,
    FoldMixin,
    ClipboardMixin,
    MoveMixin,
    DisableMixin,
    SubstituteMixin,
    SearchMixin,
):
    """Selection, folding and structure-preserving edits over a command list.

    Every mutation builds a new list and hands it to ``_commit``; nothing
    edits ``commands`` in place. The last command is always the terminal
    sentinel.
    """

    def __init__(
        self,
        commands: Sequence[Command],
        *,
        render: Callable[[Command], str] | None = None,
        clipboard: CommandClipboard | None = None,
        history_size: int = 100,
        read_only: bool = False,
    ) -> None:
        self.history = History(_with_terminal(commands), capacity=history_size)
        self.render: Callable[[Command], str] = render or describe
        self.clipboard: CommandClipboard = clipboard or CLIPBOARD
        self.read_only: bool = read_only
        self.selected: set[int] = set()
        self.last_clicked: int | None = None
        self.status_msg: str = ""
        # Fold state
        self._folds: set[int] = set()
        # Drag state
        self._drag_range: tuple[int, int] | None = None
        self._drop_target: int | None = None
        # Search state
        self._search_query: str = ""
        self._search_options: FindOptions = FindOptions()
        self._search_matches: list[tuple[int, int, int]] = []  # (row, start, end)
        self._search_match_by_row: dict[int, list[tuple[int, int, int]]] = {}
        self._current_match: int = -1  # Index in _search_matches

    # -- State -------------------------------------------------------------

    @property
    def commands(self) -> list[Command]:
        return self.history.current

    @property
    def folded(self) -> set[int]:
        return set(self._folds)

    def _check_readonly(self) -> bool:
        """Check if read-only and set status. Returns True if read-only."""
        if self.read_only:
            self.status_msg = "[readonly]"
        return self.read_only

    def _commit(self, new_commands: list[Command]) -> None:
        self.history.commit(new_commands)
        self._prune_folds()
        self._clamp_selection()
        # match rows are stale once the list changed
        self._reset_matches()

    def _after_history_jump(self) -> None:
        self._folds = set()
        self._clamp_selection()
        self.cancel_drag()
        self._reset_matches()

    def undo(self) -> None:
        if self._check_readonly():
            return
        if self.history.undo() is None:
            self.status_msg = "nothing to undo"
            return
        self._after_history_jump()
        self.status_msg = "undone"

    def redo(self) -> None:
        if self._check_readonly():
            return
        if self.history.redo() is None:
            self.status_msg = "nothing to redo"
            return
        self._after_history_jump()
        self.status_msg = "redone"

    # -- Content -----------------------------------------------------------

    def set_commands(self, commands: Sequence[Command]) -> None:
        """Replace the whole list and forget history, selection and folds."""
        capacity = self.history.capacity
        self.history = History(_with_terminal(commands), capacity=capacity)
        self.selected = set()
        self.last_clicked = None
        self._folds = set()
        self.cancel_drag()
        self.clear_search()

    def to_data(self) -> list[dict]:
        return dump_commands(self.commands)

    def get_content(self) -> str:
        return json.dumps(self.to_data(), indent=2, ensure_ascii=False)

    # -- Structural edits --------------------------------------------------

    def indent_selected(self, delta: int) -> None:
        """Shift the group-expanded selection by *delta* levels."""
        if self._check_readonly():
            return
        indices = expand_indices(self.commands, self.selected)
        if not indices:
            return
        new_commands = build_indented(self.commands, indices, delta)
        if new_commands == self.commands:
            logger.info("Edit noop: indent delta=%d at floor", delta)
            return
        logger.info("Edit: indent count=%d delta=%d", len(indices), delta)
        self._commit(new_commands)

    def insert_command(
        self,
        code: int,
        parameters: list | None = None,
        extra: Sequence[Command] | None = None,
    ) -> int | None:
        """Insert *code* (with its skeleton) above the primary selection.

        Without a selection the command goes just above the terminal.
        Returns the row of the new command.
        """
        if self._check_readonly():
            return None
        commands = self.commands
        primary = self.primary_index
        insert_at = primary if primary is not None else len(commands) - 1
        new_commands = build_inserted(commands, insert_at, code, parameters, extra)
        added = len(new_commands) - len(commands)
        logger.info("Edit: insert code=%d at=%d rows=%d", code, insert_at, added)
        self._adjust_fold_indices(insert_at, added)
        self._commit(new_commands)
        self.selected = {insert_at}
        self.last_clicked = insert_at
        return insert_at

    def update_command(
        self,
        index: int,
        parameters: list,
        extra: Sequence[Command] | None = None,
    ) -> bool:
        """Replace the parameters at *index* and patch the affected branches."""
        if self._check_readonly():
            return False
        commands = self.commands
        if index < 0 or index >= len(commands) or is_terminal_index(commands, index):
            self.status_msg = "nothing to update"
            return False
        _start, old_end = resolve_group_range(commands, index)
        new_commands = build_updated(commands, index, parameters, extra)
        delta = len(new_commands) - len(commands)
        if delta:
            self._folds = {f + delta if f > old_end else f for f in self._folds}
        logger.info(
            "Edit: update code=%d at=%d delta=%d", commands[index].code, index, delta
        )
        self._commit(new_commands)
        self.selected = {index}
        self.last_clicked = index
        return True
