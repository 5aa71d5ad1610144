"""Drag and keyboard move mixin for CommandEditor."""

from __future__ import annotations

import logging
from typing import Sequence

from evedit._structure import (
    group_ranges,
    is_draggable,
    is_terminal_index,
    is_valid_drop_target,
    move_group_range,
    resolve_group_range,
)
from evedit.model import Command, clone

logger = logging.getLogger(__name__)


def _splice(items: list, moving: list[int], insert_at: int) -> list:
    """Move the rows at *moving* so they start at *insert_at* of the rest."""
    moving_set = set(moving)
    picked = [items[i] for i in moving]
    rest = [x for i, x in enumerate(items) if i not in moving_set]
    return rest[:insert_at] + picked + rest[insert_at:]


def _rebase(
    commands: list[Command], start: int, count: int, delta: int
) -> list[Command]:
    if not delta:
        return commands
    out = commands[:]
    for i in range(start, start + count):
        out[i] = clone(out[i], delta)
    return out


def complete_move(
    commands: Sequence[Command], drag_range: tuple[int, int], target: int
) -> tuple[list[Command], int] | None:
    """Drop the group *drag_range* in front of row *target*.

    The moved commands take the indent of whatever command sits at the drop
    point once the group is lifted out. Returns ``(new_commands,
    insert_at)`` or None for rejected and no-op drops.
    """
    start, end = drag_range
    if not is_valid_drop_target(commands, target, start, end):
        return None
    if start <= target <= end + 1:
        return None
    if is_terminal_index(commands, end):
        return None
    count = end - start + 1
    insert_at = target - count if target > end else target
    moved = _splice(list(commands), list(range(start, end + 1)), insert_at)
    after = insert_at + count
    anchor_indent = moved[after].indent if after < len(moved) else 0
    delta = anchor_indent - commands[start].indent
    return _rebase(moved, insert_at, count, delta), insert_at


class MoveMixin:
    """Reordering of whole structural groups."""

    # -- Pointer drag ------------------------------------------------------

    def begin_drag(self, index: int) -> bool:
        """Lock the group at *index* as the drag payload."""
        if self.read_only or not is_draggable(self.commands, index):
            return False
        self._drag_range = resolve_group_range(self.commands, index)
        self._drop_target = None
        self.selected = {index}
        self.last_clicked = index
        return True

    @property
    def drag_range(self) -> tuple[int, int] | None:
        return self._drag_range

    @property
    def drop_target(self) -> int | None:
        return self._drop_target

    def drag_over(self, target: int) -> None:
        if self._drag_range is not None:
            self._drop_target = target

    def cancel_drag(self) -> None:
        self._drag_range = None
        self._drop_target = None

    def drop(self, target: int | None = None) -> bool:
        """Finish the gesture; returns True when a move was committed."""
        drag_range = self._drag_range
        if target is None:
            target = self._drop_target
        self.cancel_drag()
        if drag_range is None or target is None:
            return False
        if self._check_readonly():
            return False
        result = complete_move(self.commands, drag_range, target)
        if result is None:
            logger.info("Edit noop: drag range=%s target=%d", drag_range, target)
            return False
        new_commands, insert_at = result
        start, end = drag_range
        count = end - start + 1
        logger.info("Edit OK: drag range=%s target=%d", drag_range, target)
        order = _splice(
            list(range(len(self.commands))), list(range(start, end + 1)), insert_at
        )
        self._remap_folds(order)
        self._commit(new_commands)
        self.select_range(insert_at, insert_at + count - 1)
        return True

    # -- Keyboard move -----------------------------------------------------

    def _moving_indices(self) -> list[int]:
        commands = self.commands
        result = []
        for start, end in group_ranges(commands, self.selected):
            result.extend(
                i for i in range(start, end + 1) if not is_terminal_index(commands, i)
            )
        return result

    @property
    def can_move_up(self) -> bool:
        moving = self._moving_indices()
        return bool(moving) and moving[0] > 0

    @property
    def can_move_down(self) -> bool:
        moving = self._moving_indices()
        return bool(moving) and moving[-1] < len(self.commands) - 2

    def move_selected(self, direction: str) -> bool:
        """Move the selection past the neighbouring group ("up" or "down")."""
        if self._check_readonly():
            return False
        commands = self.commands
        moving = self._moving_indices()
        if not moving:
            return False
        if direction == "up":
            if moving[0] <= 0:
                logger.info("Edit noop: move_selected direction=up boundary")
                return False
            past = move_group_range(commands, moving[0] - 1)
            insert_at = past[0]
        else:
            if moving[-1] >= len(commands) - 2:
                logger.info("Edit noop: move_selected direction=down boundary")
                return False
            past = move_group_range(commands, moving[-1] + 1)
            insert_at = past[1] - len(moving) + 1
        delta = commands[past[0]].indent - commands[moving[0]].indent
        order = _splice(list(range(len(commands))), moving, insert_at)
        new_commands = _rebase(
            [commands[i] for i in order], insert_at, len(moving), delta
        )
        logger.info(
            "Edit OK: move_selected direction=%s count=%d", direction, len(moving)
        )
        self._remap_folds(order)
        self._commit(new_commands)
        self.select_range(insert_at, insert_at + len(moving) - 1)
        return True
