"""Terminal application for editing event command lists."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from textual.app import App, ComposeResult
from textual.widgets import Header, Static

from evedit.model import load_commands
from evedit.widget import CommandListEditor

# Data directory path
_DATA_DIR = Path(__file__).parent / "data"


def _load_data(filename: str) -> str:
    """Load content from data directory."""
    return (_DATA_DIR / filename).read_text(encoding="utf-8")


def merge_document(document: object, content: str) -> str:
    """Serialized *content* placed back into the document it came from.

    An event page object keeps its other keys and gets the new ``list``.
    """
    commands = json.loads(content)
    if isinstance(document, dict):
        merged = dict(document)
        merged["list"] = commands
        return json.dumps(merged, indent=2, ensure_ascii=False)
    return content


class EventEditorApp(App):
    """TUI app that wraps the CommandListEditor widget."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #editor {
        height: 1fr;
        border: solid $accent;
    }
    #help-bar {
        height: auto;
        max-height: 5;
        padding: 0 1;
        color: $text-muted;
        background: $surface;
        border-top: solid $accent 50%;
    }
    """

    TITLE = "Event Command Editor"
    BINDINGS = []
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        file_path: str = "",
        document: object = None,
        read_only: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.file_path = file_path
        self.document = document if document is not None else []
        self.read_only = read_only

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield CommandListEditor(
            load_commands(self.document),
            read_only=self.read_only,
            id="editor",
        )
        yield Static(
            "[b]Move:[/b] j k  gg G  ^F ^B  [b]Select:[/b] space  shift+j/k  V"
            "  [b]Fold:[/b] za zM zR\n"
            "[b]Edit:[/b] y x d p  > <  #[dim]disable[/]  J K[dim]move[/]"
            "  u ^R  o[dim]insert[/]\n"
            "[b]Cmd :[/b] :w  :q  :wq  :i CODE [dim]\\[params] \\[else|escape|lose][/]"
            "  :u  :%s/a/b/  /[dim]find[/] n N",
            id="help-bar",
        )

    def on_mount(self) -> None:
        self._update_title()
        self.query_one("#editor").focus()

    def _update_title(self) -> None:
        ro = " [RO]" if self.read_only else ""
        if self.file_path:
            self.sub_title = self.file_path + ro
        else:
            self.sub_title = "[sample]" + ro

    # -- Event handlers ----------------------------------------------------

    def on_command_list_editor_quit(self, event: CommandListEditor.Quit) -> None:
        self.exit()

    def on_command_list_editor_force_quit(
        self, event: CommandListEditor.ForceQuit
    ) -> None:
        self.exit()

    def on_command_list_editor_file_save_requested(
        self, event: CommandListEditor.FileSaveRequested
    ) -> None:
        target = event.file_path or self.file_path
        if not target:
            self.notify("No file name, use :w <file>", severity="warning")
            return

        try:
            path = Path(target)
            path.parent.mkdir(parents=True, exist_ok=True)
            content = merge_document(self.document, event.content)
            path.write_text(content, encoding="utf-8")
            self.file_path = str(path)
            self._update_title()
            self.notify(f"Saved: {self.file_path}", severity="information")
            if event.quit_after:
                self.exit()
        except OSError as exc:
            self.notify(f"Save failed: {exc}", severity="error", timeout=6)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="evedit",
        description="Event command list editor in Textual",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="",
        help="JSON command list or event page to open",
    )
    parser.add_argument(
        "-R", "--read-only",
        action="store_true",
        default=False,
        help="open in read-only mode",
    )
    args = parser.parse_args()

    file_path: str = args.file
    raw = _load_data("sample.json")
    if file_path:
        path = Path(file_path)
        try:
            # New file starts as an empty command list
            raw = path.read_text(encoding="utf-8") if path.exists() else "[]"
        except OSError as exc:
            print(f"evedit: {exc}", file=sys.stderr)
            sys.exit(1)

    try:
        document = json.loads(raw)
        load_commands(document)
    except (ValueError, TypeError) as exc:
        print(f"evedit: {exc}", file=sys.stderr)
        sys.exit(1)

    app = EventEditorApp(
        file_path=file_path,
        document=document,
        read_only=args.read_only,
    )
    app.run()


if __name__ == "__main__":
    main()
