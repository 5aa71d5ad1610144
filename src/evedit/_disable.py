"""Disable/enable (comment out) mixin for CommandEditor."""

from __future__ import annotations

import logging
import uuid

from evedit._structure import group_ranges, is_terminal_index
from evedit.model import DisabledCommand

logger = logging.getLogger(__name__)


def new_block_id() -> str:
    return uuid.uuid4().hex[:12]


class DisableMixin:
    """Reversible commenting-out of whole structural groups."""

    def _selection_all_disabled(self) -> bool:
        rows = [i for i in self.selected if not is_terminal_index(self.commands, i)]
        return bool(rows) and all(
            isinstance(self.commands[i], DisabledCommand) for i in rows
        )

    def toggle_disable(self) -> None:
        """Enable when every selected row is disabled, otherwise disable."""
        if self._check_readonly():
            return
        if not self.selected:
            return
        if self._selection_all_disabled():
            self.enable_selected()
        else:
            self.disable_selected()

    def disable_selected(self) -> None:
        if self._check_readonly():
            return
        commands = self.commands
        new_commands = commands[:]
        count = 0
        for start, end in group_ranges(commands, self.selected):
            block_id = new_block_id()
            for i in range(start, end + 1):
                cmd = commands[i]
                if is_terminal_index(commands, i) or isinstance(cmd, DisabledCommand):
                    continue
                new_commands[i] = DisabledCommand.wrap(cmd, block_id)
                count += 1
        if not count:
            logger.info("Edit noop: disable nothing to wrap")
            return
        logger.info("Edit: disable count=%d", count)
        self._commit(new_commands)
        self.status_msg = f"{count} commands disabled"

    def enable_selected(self) -> None:
        """Restore every command sharing a block id with the selection."""
        if self._check_readonly():
            return
        commands = self.commands
        block_ids: set[str] = set()
        singles: set[int] = set()
        for i in self.selected:
            if i >= len(commands):
                continue
            cmd = commands[i]
            if not isinstance(cmd, DisabledCommand):
                continue
            if cmd.block_id is None:
                singles.add(i)
            else:
                block_ids.add(cmd.block_id)
        new_commands = commands[:]
        restored = []
        for i, cmd in enumerate(commands):
            if not isinstance(cmd, DisabledCommand):
                continue
            if i in singles or (cmd.block_id is not None and cmd.block_id in block_ids):
                new_commands[i] = cmd.restore()
                restored.append(i)
        if not restored:
            return
        logger.info("Edit: enable count=%d blocks=%d", len(restored), len(block_ids))
        self._commit(new_commands)
        self.selected = set(restored)
        self.last_clicked = restored[0]
        self.status_msg = f"{len(restored)} commands enabled"
