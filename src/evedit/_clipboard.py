"""Clipboard mixin for CommandEditor and the shared command clipboard."""

from __future__ import annotations

import copy
import json
import logging

import pyperclip

from evedit._structure import expand_indices, group_ranges, is_terminal_index
from evedit.model import Command, clone

logger = logging.getLogger(__name__)

# Marks clipboard text written by this editor
CLIPBOARD_MARKER = "EVEDIT_EVENT_COMMANDS"


class PyperclipBackend:
    """System clipboard access through pyperclip."""

    def copy(self, text: str) -> None:
        pyperclip.copy(text)

    def paste(self) -> str:
        return pyperclip.paste()


def encode_clipboard_text(commands: list[Command]) -> str:
    payload = {
        "_type": CLIPBOARD_MARKER,
        "commands": [cmd.to_dict() for cmd in commands],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def parse_clipboard_text(text: str) -> list[Command] | None:
    """Commands from tagged clipboard text, None for anything foreign."""
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    if (
        not isinstance(parsed, dict)
        or parsed.get("_type") != CLIPBOARD_MARKER
        or not isinstance(parsed.get("commands"), list)
    ):
        return None
    return [Command.from_dict(c) for c in parsed["commands"] if isinstance(c, dict)]


class CommandClipboard:
    """Internal command clipboard mirrored to the platform text clipboard.

    One instance is shared by every editor in the process; the latest copy
    wins. The internal value stays authoritative when the platform
    clipboard cannot be written or read.
    """

    def __init__(self, backend=None) -> None:
        self.backend = backend if backend is not None else PyperclipBackend()
        self._commands: list[Command] = []

    @property
    def has_content(self) -> bool:
        return bool(self._commands)

    def set(self, commands: list[Command]) -> None:
        self._commands = copy.deepcopy(commands)
        try:
            self.backend.copy(encode_clipboard_text(self._commands))
        except pyperclip.PyperclipException as e:
            logger.debug("system clipboard write failed: %s", e)

    def get(self) -> list[Command]:
        """Tagged system clipboard content if present, else the internal copy."""
        try:
            text = self.backend.paste()
        except pyperclip.PyperclipException as e:
            logger.debug("system clipboard read failed: %s", e)
            text = ""
        parsed = parse_clipboard_text(text)
        if parsed:
            self._commands = parsed
        return copy.deepcopy(self._commands)


CLIPBOARD = CommandClipboard()


class ClipboardMixin:
    """Copy/cut/paste/delete of whole structural groups."""

    def copy_selected(self) -> int:
        """Copy the group-expanded selection; returns the copied row count."""
        if not self.selected:
            return 0
        copied = []
        for start, end in group_ranges(self.commands, self.selected):
            for i in range(start, end + 1):
                if not is_terminal_index(self.commands, i):
                    copied.append(clone(self.commands[i]))
        if not copied:
            return 0
        self.clipboard.set(copied)
        self.status_msg = f"{len(copied)} commands copied"
        return len(copied)

    def cut_selected(self) -> None:
        if self._check_readonly():
            return
        if self.copy_selected():
            self.delete_selected()

    def paste(self) -> None:
        if self._check_readonly():
            return
        source = self.clipboard.get()
        if not source:
            self.status_msg = "clipboard is empty"
            return
        commands = self.commands
        primary = self.primary_index
        insert_at = primary if primary is not None else len(commands) - 1
        base_indent = commands[insert_at].indent if insert_at < len(commands) else 0
        delta = base_indent - min(c.indent for c in source)
        pasted = [clone(c, delta) for c in source]
        logger.info(
            "Edit: paste count=%d at=%d delta=%d", len(pasted), insert_at, delta
        )
        self._adjust_fold_indices(insert_at, len(pasted))
        self._commit(commands[:insert_at] + pasted + commands[insert_at:])
        self.select_range(insert_at, insert_at + len(pasted) - 1)
        self.status_msg = f"{len(pasted)} commands pasted"

    def delete_selected(self) -> None:
        if self._check_readonly():
            return
        if not self.selected:
            return
        commands = self.commands
        to_remove = set(expand_indices(commands, self.selected))
        if not to_remove:
            logger.info("Edit noop: delete only terminal selected")
            return
        new_commands = [c for i, c in enumerate(commands) if i not in to_remove]
        logger.info("Edit: delete count=%d", len(to_remove))
        first = min(to_remove)
        self._folds = {
            f - sum(1 for r in to_remove if r < f)
            for f in self._folds
            if f not in to_remove
        }
        self._commit(new_commands)
        keep = min(first, len(new_commands) - 1)
        self.selected = {keep}
        self.last_clicked = keep
        self.status_msg = f"{len(to_remove)} commands deleted"
