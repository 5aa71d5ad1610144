"""Selection mixin for CommandEditor."""

from __future__ import annotations

from evedit._structure import (
    SIMPLE_CHILD_CODES,
    move_group_range,
    resolve_group_range,
)
from evedit.model import DisabledCommand


class SelectionMixin:
    """Cursor/anchor selection over command rows."""

    @property
    def primary_index(self) -> int | None:
        """Lowest selected row, the default insertion/paste anchor."""
        return min(self.selected) if self.selected else None

    def _disabled_block_indices(self, index: int) -> set[int]:
        """Rows disabled together with *index* (just *index* otherwise)."""
        cmd = self.commands[index]
        if not isinstance(cmd, DisabledCommand) or cmd.block_id is None:
            return {index}
        block_id = cmd.block_id
        return {
            i
            for i, c in enumerate(self.commands)
            if isinstance(c, DisabledCommand) and c.block_id == block_id
        }

    def click(self, index: int, *, shift: bool = False, toggle: bool = False) -> None:
        """Apply click semantics to row *index*.

        shift extends from the last clicked row, toggle (ctrl/cmd) flips the
        row in or out of the selection.
        """
        if index < 0 or index >= len(self.commands):
            return
        if shift and self.last_clicked is not None:
            lo, hi = sorted((self.last_clicked, index))
            self.selected = self.selected | set(range(lo, hi + 1))
            return
        rows = self._disabled_block_indices(index)
        if toggle:
            if index in self.selected:
                self.selected = self.selected - rows
            else:
                self.selected = self.selected | rows
        else:
            self.selected = rows
        self.last_clicked = index

    def select_range(self, start: int, end: int) -> None:
        last = len(self.commands) - 1
        start = max(0, min(start, last))
        end = max(0, min(end, last))
        self.selected = set(range(start, end + 1))
        self.last_clicked = start

    def select_all(self) -> None:
        # terminal sentinel stays out
        self.selected = set(range(len(self.commands) - 1))
        self.last_clicked = 0 if self.selected else None

    def clear_selection(self) -> None:
        self.selected = set()
        self.last_clicked = None

    def _clamp_selection(self) -> None:
        n = len(self.commands)
        self.selected = {i for i in self.selected if 0 <= i < n}
        if self.last_clicked is not None and self.last_clicked >= n:
            self.last_clicked = n - 1 if n else None

    def group_highlight(self) -> tuple[int, int] | None:
        """Group range to highlight when exactly one row is selected."""
        if len(self.selected) != 1:
            return None
        index = next(iter(self.selected))
        if self.commands[index].code in SIMPLE_CHILD_CODES:
            return move_group_range(self.commands, index)
        return resolve_group_range(self.commands, index)
