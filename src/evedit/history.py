"""Snapshot undo/redo for command lists."""

from __future__ import annotations

from evedit.model import Command


class History:
    """Two bounded stacks of whole command-list snapshots.

    Snapshots are the list objects themselves: every editing operation
    builds a new list, so nothing stored here is mutated afterwards.
    """

    def __init__(self, commands: list[Command], capacity: int = 100) -> None:
        self.capacity = max(1, capacity)
        self.current: list[Command] = commands
        self.undo_stack: list[list[Command]] = []
        self.redo_stack: list[list[Command]] = []

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def commit(self, commands: list[Command]) -> None:
        self.undo_stack.append(self.current)
        if len(self.undo_stack) > self.capacity:
            self.undo_stack.pop(0)
        # Clear redo stack on new edit
        if self.redo_stack:
            self.redo_stack.clear()
        self.current = commands

    def undo(self) -> list[Command] | None:
        if not self.undo_stack:
            return None
        self.redo_stack.append(self.current)
        if len(self.redo_stack) > self.capacity:
            self.redo_stack.pop(0)
        self.current = self.undo_stack.pop()
        return self.current

    def redo(self) -> list[Command] | None:
        if not self.redo_stack:
            return None
        self.undo_stack.append(self.current)
        if len(self.undo_stack) > self.capacity:
            self.undo_stack.pop(0)
        self.current = self.redo_stack.pop()
        return self.current

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()
