"""Modal event command list editor widget."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Sequence

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widget import Widget

from evedit._builders import branch_extras, continuation_lines
from evedit._clipboard import CommandClipboard
from evedit._search import FindOptions
from evedit._structure import (
    CONTINUATION_CODES,
    NO_ARGUMENT_CODES,
    is_terminal_index,
    resolve_group_range,
)
from evedit.editor import CommandEditor
from evedit.model import Command

# :i / :u words naming the branches a block should have
BRANCH_FLAGS = {"else": 411, "escape": 602, "lose": 603}
_BRANCHED_CODES = (111, 301)

# :set words -> (FindOptions field, value)
SET_OPTIONS = {
    "ic": ("case_sensitive", False),
    "noic": ("case_sensitive", True),
    "ww": ("whole_word", True),
    "noww": ("whole_word", False),
    "re": ("regex", True),
    "nore": ("regex", False),
}

FOLD_PREVIEW_WIDTH = 30


class EditorMode(Enum):
    NORMAL = auto()
    COMMAND = auto()
    SEARCH = auto()


def split_json_args(text: str) -> tuple[list | None, list[str]]:
    """Split ``[json params] word word`` into the parameter list and words.

    Raises ValueError for malformed JSON.
    """
    text = text.strip()
    params = None
    if text.startswith("["):
        params, end = json.JSONDecoder().raw_decode(text)
        text = text[end:]
    return params, text.split()


def extras_for(code: int, words: Sequence[str]) -> list[Command] | None:
    """Extra commands implied by the trailing words of :i / :u.

    Branch words (else, escape, lose) select block branches; for a
    multi-line command the remaining text, split on ``|``, becomes its
    continuation lines.
    """
    flags = [w for w in words if w in BRANCH_FLAGS]
    text = " ".join(w for w in words if w not in BRANCH_FLAGS)
    if code in CONTINUATION_CODES and text:
        return continuation_lines(code, text.split("|"))
    if code in _BRANCHED_CODES:
        return branch_extras(BRANCH_FLAGS[f] for f in flags)
    return None


class CommandListEditor(Widget, can_focus=True):
    """A modal event command list editor Textual widget.

    Supported commands:
      NORMAL: j k  gg G  ctrl+f ctrl+b  space V  y x d p  > <  #
              J K  za zM zR  u ctrl+r  n N  o  / :
      COMMAND: :w :q :q! :wq  :i CODE [params] [else|escape|lose|text]
               :u [params] [...]  :s/a/b/  :%s/a/b/  :noh  :N
               :set ic|noic ww|noww re|nore
      SEARCH: /pattern  (\\c ignore case, \\C match case)
    """

    DEFAULT_CSS = """
    CommandListEditor {
        height: 1fr;
        background: $surface;
        padding: 0 1;
    }
    """

    # -- Messages ----------------------------------------------------------

    @dataclass
    class FileSaveRequested(Message):
        content: str
        file_path: str  # empty string means save to current file
        quit_after: bool = False

    @dataclass
    class Quit(Message):
        pass

    @dataclass
    class ForceQuit(Message):
        pass

    # -- Init --------------------------------------------------------------

    def __init__(
        self,
        commands: Sequence[Command] = (),
        *,
        read_only: bool = False,
        history_size: int = 100,
        clipboard: CommandClipboard | None = None,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.editor = CommandEditor(
            commands,
            clipboard=clipboard,
            history_size=history_size,
            read_only=read_only,
        )
        self.cursor_row: int = 0
        self._mode: EditorMode = EditorMode.NORMAL
        self.command_buffer: str = ""
        self.pending: str = ""
        self._search_buffer: str = ""
        self.find_options: FindOptions = FindOptions()
        self._scroll_top: int = 0  # position in the visible row list
        # Command history
        self._command_history: list[str] = []
        self._command_history_idx: int = -1
        self._command_history_max: int = 50
        # Pointer state
        self._press_row: int | None = None
        self.editor.click(0)

    # -- Editor state proxies ----------------------------------------------

    @property
    def read_only(self) -> bool:
        return self.editor.read_only

    @read_only.setter
    def read_only(self, value: bool) -> None:
        self.editor.read_only = value

    @property
    def status_msg(self) -> str:
        return self.editor.status_msg

    @status_msg.setter
    def status_msg(self, value: str) -> None:
        self.editor.status_msg = value

    @property
    def commands(self) -> list[Command]:
        return self.editor.commands

    # -- Public API --------------------------------------------------------

    def get_content(self) -> str:
        return self.editor.get_content()

    def set_commands(self, commands: Sequence[Command]) -> None:
        self.editor.set_commands(commands)
        self.cursor_row = 0
        self._scroll_top = 0
        self.editor.click(0)
        self.refresh()

    # -- Cursor helpers ----------------------------------------------------

    def _visible_height(self) -> int:
        return max(1, self.content_region.height - 2)

    def _follow_selection(self) -> None:
        primary = self.editor.primary_index
        if primary is not None:
            self.cursor_row = primary

    def _clamp_cursor(self) -> None:
        n = len(self.editor.commands)
        self.cursor_row = max(0, min(self.cursor_row, n - 1))
        # a cursor inside a fold snaps to the fold header
        if self.cursor_row in self.editor.hidden_indices():
            for header in sorted(self.editor.folded):
                start, end = resolve_group_range(self.editor.commands, header)
                if start < self.cursor_row <= end:
                    self.cursor_row = header
                    break

    def _move_cursor(self, step: int, extend: bool = False) -> None:
        visible = self.editor.visible_indices()
        pos = visible.index(self.cursor_row) if self.cursor_row in visible else 0
        pos = max(0, min(pos + step, len(visible) - 1))
        self.cursor_row = visible[pos]
        self.editor.click(self.cursor_row, shift=extend)

    def _jump_to(self, row: int) -> None:
        row = max(0, min(row, len(self.editor.commands) - 1))
        self.editor._unfold_for_indices([row])
        self.cursor_row = row
        self.editor.click(row)

    def _ensure_cursor_visible(self, visible: list[int]) -> None:
        if self.editor.drag_range is not None:
            return
        vh = self._visible_height()
        pos = visible.index(self.cursor_row) if self.cursor_row in visible else 0
        if pos < self._scroll_top:
            self._scroll_top = pos
        elif pos >= self._scroll_top + vh:
            self._scroll_top = pos - vh + 1
        self._scroll_top = max(0, min(self._scroll_top, max(0, len(visible) - 1)))

    # =====================================================================
    # Rendering
    # =====================================================================

    _MODE_STYLE = {
        EditorMode.NORMAL: "bold white on dark_green",
        EditorMode.COMMAND: "bold white on dark_red",
        EditorMode.SEARCH: "bold white on dark_magenta",
    }

    def _row_style(self, index: int, state: dict) -> str:
        cmd = self.editor.commands[index]
        styles = []
        if cmd.is_disabled:
            styles.append("dim italic green")
        elif cmd.is_terminal:
            styles.append("dim")
        highlight = state["highlight"]
        drag = state["drag"]
        if drag and drag[0] <= index <= drag[1]:
            styles.append("on grey23")
        elif index in self.editor.selected:
            styles.append("on dark_blue")
        elif highlight and highlight[0] <= index <= highlight[1]:
            styles.append("on grey15")
        if index == state["current_match"]:
            styles.append("bold underline yellow")
        elif index in state["matches"]:
            styles.append("underline yellow")
        if index == state["drop"]:
            styles.append("overline bold")
        return " ".join(styles)

    def _render_state(self) -> dict:
        editor = self.editor
        return {
            "highlight": editor.group_highlight(),
            "drag": editor.drag_range,
            "drop": editor.drop_target,
            "matches": set(editor.search_matches),
            "current_match": editor.current_match_row,
        }

    def _fold_badge(self, index: int, hidden: int) -> str:
        """`` [+N] first hidden row`` shown after a folded header."""
        preview = self.editor.render(self.editor.commands[index + 1]).strip()
        if len(preview) > FOLD_PREVIEW_WIDTH:
            preview = preview[: FOLD_PREVIEW_WIDTH - 1] + "…"
        return f" [+{hidden}] {preview}" if preview else f" [+{hidden}]"

    def _render_row(self, index: int, state: dict, folded: dict[int, int]) -> Text:
        cmd = self.editor.commands[index]
        pad = "  " * cmd.indent
        line = Text(pad + (self.editor.render(cmd) or "◆"))
        line.stylize(self._row_style(index, state))
        for start, end, is_current in self.editor.match_spans(index):
            if end > start:
                style = "black on yellow" if is_current else "black on dark_goldenrod"
                line.stylize(style, len(pad) + start, len(pad) + end)
        if index in folded:
            line.append(self._fold_badge(index, folded[index]), style="dim italic")
        return line

    def render(self) -> Text:
        width = self.content_region.width
        height = self.content_region.height
        if height < 3 or width < 10:
            return Text("(too small)")

        editor = self.editor
        commands = editor.commands
        visible = editor.visible_indices()
        self._ensure_cursor_visible(visible)
        content_height = height - 2
        ln_width = max(3, len(str(len(commands))))
        state = self._render_state()
        folded = editor.folded_counts()

        result = Text()
        rows_used = 0
        for index in visible[self._scroll_top : self._scroll_top + content_height]:
            gutter_style = "bold yellow" if index == self.cursor_row else "dim"
            result.append(f"{index + 1:>{ln_width}} ", style=gutter_style)
            result.append(self._render_row(index, state, folded))
            result.append("\n")
            rows_used += 1

        # Fill remaining rows with ~
        if rows_used < content_height:
            tilde_line = f"{'~':>{ln_width}} \n"
            while rows_used < content_height:
                result.append(tilde_line, style="dim blue")
                rows_used += 1

        # status bar
        mode = self._mode
        mode_label = f" {mode.name} "
        result.append(mode_label, style=self._MODE_STYLE[mode])
        read_only = self.read_only
        if read_only:
            result.append(" RO ", style="bold white on grey37")
        if self.pending:
            result.append(f"  {self.pending}", style="bold yellow")
        status_msg = self.status_msg
        pos = (
            f" Row {self.cursor_row + 1}/{len(commands)},"
            f" Sel {len(editor.selected)} "
        )
        ro_len = 4 if read_only else 0
        spacer_len = max(
            0, width - len(mode_label) - ro_len - len(pos) - len(status_msg) - 4
        )
        result.append(f"  {status_msg}")
        if spacer_len:
            result.append(" " * spacer_len)
        result.append(pos, style="bold")

        if mode == EditorMode.COMMAND:
            result.append(f"\n:{self.command_buffer}", style="bold yellow")
            result.append(" ", style="reverse")
        elif mode == EditorMode.SEARCH:
            result.append(f"\n/{self._search_buffer}", style="bold magenta")
            result.append(" ", style="reverse")
        else:
            result.append("\n")
        return result

    # =====================================================================
    # Key handling
    # =====================================================================

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()

        if self._mode == EditorMode.NORMAL:
            self._handle_normal(event)
        elif self._mode == EditorMode.COMMAND:
            self._handle_command(event)
        elif self._mode == EditorMode.SEARCH:
            self._handle_search(event)

        self._clamp_cursor()
        self.refresh()

    # -- NORMAL ------------------------------------------------------------

    def _handle_normal(self, event: events.Key) -> None:
        key = event.key
        char = event.character or ""
        editor = self.editor

        if self.pending:
            self._handle_pending(char, key)
            return

        if key == "escape":
            editor.cancel_drag()
            self.status_msg = ""
            return

        # -- Navigation
        if char == "j" or key == "down":
            self._move_cursor(1)
        elif char == "k" or key == "up":
            self._move_cursor(-1)
        elif key == "shift+down":
            self._move_cursor(1, extend=True)
        elif key == "shift+up":
            self._move_cursor(-1, extend=True)
        elif key in ("ctrl+f", "pagedown"):
            self._move_cursor(self._visible_height())
        elif key in ("ctrl+b", "pageup"):
            self._move_cursor(-self._visible_height())
        elif char == "G":
            self._jump_to(len(editor.commands) - 1)
        elif char in ("g", "z"):
            self.pending = char
        # -- Selection
        elif key == "space" or char == " ":
            editor.click(self.cursor_row, toggle=True)
        elif char == "V":
            editor.select_all()
            self.status_msg = f"{len(editor.selected)} selected"
        # -- Editing
        elif char == "y":
            editor.copy_selected()
        elif char == "x":
            editor.cut_selected()
            self._follow_selection()
        elif char == "d":
            editor.delete_selected()
            self._follow_selection()
        elif char == "p":
            editor.paste()
            self._follow_selection()
        elif char == ">":
            editor.indent_selected(1)
        elif char == "<":
            editor.indent_selected(-1)
        elif char == "#":
            editor.toggle_disable()
            self._follow_selection()
        elif char == "J":
            editor.move_selected("down")
            self._follow_selection()
        elif char == "K":
            editor.move_selected("up")
            self._follow_selection()
        elif char == "u":
            editor.undo()
            self._follow_selection()
        elif key == "ctrl+r":
            editor.redo()
            self._follow_selection()
        elif char == "o":
            if not self._check_readonly():
                self._mode = EditorMode.COMMAND
                self.command_buffer = "i "
        # -- Search
        elif char == "n":
            editor.find_next()
            self._follow_selection()
        elif char == "N":
            editor.find_prev()
            self._follow_selection()
        elif char == "/":
            self._mode = EditorMode.SEARCH
            self._search_buffer = ""
        elif char == ":":
            self._mode = EditorMode.COMMAND
            self.command_buffer = ""

    def _handle_pending(self, char: str, key: str) -> None:
        combo = self.pending + char
        self.pending = ""
        editor = self.editor
        if combo == "gg":
            self._jump_to(0)
        elif combo == "za":
            header, _end = resolve_group_range(editor.commands, self.cursor_row)
            editor.toggle_fold(header)
            if editor.is_folded(header):
                self.cursor_row = header
        elif combo == "zM":
            editor.fold_all()
            self.status_msg = f"{len(editor.folded)} folds"
        elif combo == "zR":
            editor.unfold_all()

    def _check_readonly(self) -> bool:
        return self.editor._check_readonly()

    # -- SEARCH ------------------------------------------------------------

    def _handle_search(self, event: events.Key) -> None:
        key = event.key
        char = event.character

        if key == "escape":
            self._mode = EditorMode.NORMAL
            self._search_buffer = ""
            self.status_msg = ""
            return

        if key == "enter":
            if self._search_buffer:
                self.editor.find(*self._search_request(self._search_buffer))
                self._follow_selection()
            self._mode = EditorMode.NORMAL
            return

        if key == "backspace":
            if self._search_buffer:
                self._search_buffer = self._search_buffer[:-1]
            else:
                self._mode = EditorMode.NORMAL
            return

        if char and char.isprintable():
            self._search_buffer += char

    def _search_request(self, buffer: str) -> tuple[str, FindOptions]:
        """Query and options for ``/``; a trailing ``\\c`` / ``\\C`` sets case."""
        if buffer.endswith("\\c"):
            return buffer[:-2], replace(self.find_options, case_sensitive=False)
        if buffer.endswith("\\C"):
            return buffer[:-2], replace(self.find_options, case_sensitive=True)
        return buffer, self.find_options

    # -- COMMAND -----------------------------------------------------------

    def _handle_command(self, event: events.Key) -> None:
        key = event.key
        char = event.character

        if key == "escape":
            self._mode = EditorMode.NORMAL
            self.command_buffer = ""
            self._command_history_idx = -1
            self.status_msg = ""
            return

        if key == "enter":
            cmd = self.command_buffer.strip()
            if cmd:
                self._add_to_command_history(cmd)
            self._exec_command(cmd)
            if self._mode == EditorMode.COMMAND:
                self._mode = EditorMode.NORMAL
            self.command_buffer = ""
            self._command_history_idx = -1
            return

        if key == "backspace":
            if self.command_buffer:
                self.command_buffer = self.command_buffer[:-1]
                self._command_history_idx = -1
            else:
                self._mode = EditorMode.NORMAL
                self._command_history_idx = -1
            return

        # History navigation
        if key == "up":
            self._command_history_prev()
            return
        if key == "down":
            self._command_history_next()
            return

        if char and char.isprintable():
            self.command_buffer += char
            self._command_history_idx = -1

    def _add_to_command_history(self, cmd: str) -> None:
        """Add command to history, avoiding duplicates."""
        if cmd in self._command_history:
            self._command_history.remove(cmd)
        self._command_history.insert(0, cmd)
        if len(self._command_history) > self._command_history_max:
            self._command_history.pop()

    def _command_history_prev(self) -> None:
        if not self._command_history:
            return
        if self._command_history_idx < len(self._command_history) - 1:
            self._command_history_idx += 1
            self.command_buffer = self._command_history[self._command_history_idx]

    def _command_history_next(self) -> None:
        if self._command_history_idx > 0:
            self._command_history_idx -= 1
            self.command_buffer = self._command_history[self._command_history_idx]
        elif self._command_history_idx == 0:
            self._command_history_idx = -1
            self.command_buffer = ""

    def _exec_command(self, cmd: str) -> None:
        stripped = cmd.strip()
        editor = self.editor

        # :N → jump to row N
        if stripped.isdigit():
            self._jump_to(int(stripped) - 1)
            return

        # :s/old/new/flags (current match), :%s/old/new/flags (all)
        if re.match(r"^%?s[^\w\s]", stripped):
            editor._execute_substitute(stripped)
            self._follow_selection()
            return

        parts = stripped.split(None, 1)
        verb = parts[0] if parts else ""
        arg = parts[1] if len(parts) > 1 else ""

        force = verb.endswith("!")
        if force:
            verb = verb[:-1]

        if verb == "w":
            if self._check_readonly():
                return
            self.post_message(
                self.FileSaveRequested(content=self.get_content(), file_path=arg)
            )
        elif verb == "q":
            if force:
                self.post_message(self.ForceQuit())
            else:
                self.post_message(self.Quit())
        elif verb in ("wq", "x"):
            if self.read_only:
                self.post_message(self.Quit())
                return
            self.post_message(
                self.FileSaveRequested(
                    content=self.get_content(), file_path=arg, quit_after=True
                )
            )
        elif verb == "i":
            self._exec_insert(arg)
        elif verb == "u":
            self._exec_update(arg)
        elif verb == "noh":
            editor.clear_search()
            self.status_msg = ""
        elif verb == "set":
            self._exec_set(arg)
        else:
            self.status_msg = f"unknown command: :{cmd}"

    def _exec_set(self, arg: str) -> None:
        """:set ic noww ... toggles the options used by ``/``."""
        changes = {}
        for word in arg.split():
            option = SET_OPTIONS.get(word)
            if option is None:
                self.status_msg = f"unknown option: {word}"
                return
            field, value = option
            changes[field] = value
        self.find_options = replace(self.find_options, **changes)
        self.status_msg = self._options_label()

    def _options_label(self) -> str:
        opts = self.find_options
        return "  ".join(
            [
                "noic" if opts.case_sensitive else "ic",
                "ww" if opts.whole_word else "noww",
                "re" if opts.regex else "nore",
            ]
        )

    def _exec_insert(self, arg: str) -> None:
        if self._check_readonly():
            return
        code_str, _, rest = arg.strip().partition(" ")
        if not code_str.isdigit():
            self.status_msg = "Usage: :i CODE [params] [else|escape|lose]"
            return
        code = int(code_str)
        try:
            params, words = split_json_args(rest)
        except ValueError as e:
            self.status_msg = f"bad parameters: {e}"
            return
        if code in NO_ARGUMENT_CODES:
            params = []
        row = self.editor.insert_command(code, params, extras_for(code, words))
        if row is not None:
            self.cursor_row = row
            self.status_msg = f"inserted {code}"

    def _exec_update(self, arg: str) -> None:
        if self._check_readonly():
            return
        editor = self.editor
        index = self.cursor_row
        if is_terminal_index(editor.commands, index):
            self.status_msg = "nothing to update"
            return
        cmd = editor.commands[index]
        try:
            params, words = split_json_args(arg)
        except ValueError as e:
            self.status_msg = f"bad parameters: {e}"
            return
        if params is None:
            params = cmd.parameters
        if editor.update_command(index, params, extras_for(cmd.code, words)):
            self.status_msg = f"updated {cmd.code}"

    # =====================================================================
    # Mouse handling
    # =====================================================================

    def _content_y(self, event: events.MouseEvent) -> int:
        return event.screen_y - self.content_region.y

    def _row_at(self, y: int) -> int | None:
        visible = self.editor.visible_indices()
        pos = self._scroll_top + y
        if y < 0 or y >= self._visible_height() or pos >= len(visible):
            return None
        return visible[pos]

    def _drop_index_at(self, y: int) -> int | None:
        """Insertion index for a drop at content row *y*, None off the list.

        Above the dragged group the drop lands before the hovered row; below
        it the drop lands after the hovered row (or folded block).
        """
        editor = self.editor
        if y < 0 or y >= self._visible_height() or editor.drag_range is None:
            return None
        visible = editor.visible_indices()
        pos = self._scroll_top + y
        if pos >= len(visible):
            return len(editor.commands) - 1
        row = visible[pos]
        if is_terminal_index(editor.commands, row):
            return row
        start, end = editor.drag_range
        if start <= row <= end:
            return start
        if row < start:
            return row
        return visible[pos + 1] if pos + 1 < len(visible) else row + 1

    def _autoscroll(self, y: int) -> None:
        visible_count = len(self.editor.visible_indices())
        vh = self._visible_height()
        if y <= 0 and self._scroll_top > 0:
            self._scroll_top -= 1
        elif y >= vh - 1 and self._scroll_top + vh < visible_count:
            self._scroll_top += 1

    def press_row(self, y: int, *, shift: bool = False, ctrl: bool = False) -> None:
        row = self._row_at(y)
        if row is None:
            return
        self.editor.click(row, shift=shift, toggle=ctrl)
        self.cursor_row = row
        # modifier clicks only edit the selection
        self._press_row = None if shift or ctrl else row

    def drag_to(self, y: int) -> None:
        editor = self.editor
        if self._press_row is None:
            return
        if editor.drag_range is None:
            if self._row_at(y) == self._press_row:
                return
            if not editor.begin_drag(self._press_row):
                self._press_row = None
                return
        self._autoscroll(y)
        editor.drag_over(self._drop_index_at(y))

    def release_row(self, y: int) -> bool:
        """Finish a press; returns True when a drag moved commands."""
        self._press_row = None
        editor = self.editor
        if editor.drag_range is None:
            return False
        target = self._drop_index_at(y)
        if target is None:
            editor.cancel_drag()
            return False
        moved = editor.drop(target)
        if moved:
            self._follow_selection()
        return moved

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self.press_row(
            self._content_y(event), shift=event.shift, ctrl=event.ctrl or event.meta
        )
        if self._press_row is not None:
            self.capture_mouse()
        self.refresh()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self._press_row is None:
            return
        self.drag_to(self._content_y(event))
        self.refresh()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if self._press_row is None and self.editor.drag_range is None:
            return
        self.release_mouse()
        self.release_row(self._content_y(event))
        self.refresh()
