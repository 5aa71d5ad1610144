"""Shared helpers for the editor tests."""

import pytest

from evedit._clipboard import CommandClipboard
from evedit.editor import CommandEditor
from evedit.model import Command


class FakeBackend:
    """In-memory stand-in for the platform text clipboard."""

    def __init__(self):
        self.text = ""

    def copy(self, text):
        self.text = text

    def paste(self):
        return self.text


def rows_to_commands(rows):
    return [Command(code, indent, list(params)) for code, indent, params in rows]


def make_editor(rows, **kwargs):
    kwargs.setdefault("clipboard", CommandClipboard(FakeBackend()))
    return CommandEditor(rows_to_commands(rows), **kwargs)


@pytest.fixture
def clipboard():
    return CommandClipboard(FakeBackend())
