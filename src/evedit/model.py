"""Event command records and their persisted shape."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field, replace

TERMINAL_CODE = 0
COMMENT_CODE = 108

# Comment parameter prefix marking a disabled command.
DISABLED_PREFIX = "__EVEDIT_DISABLED__"


@dataclass(frozen=True)
class Command:
    """One event command: operation code, indent level and opaque parameters."""

    code: int
    indent: int = 0
    parameters: list = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.code == TERMINAL_CODE

    @property
    def is_disabled(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "indent": self.indent,
            "parameters": copy.deepcopy(self.parameters),
        }

    @staticmethod
    def from_dict(data: dict) -> Command:
        """Build a command from its persisted dict.

        Comment commands carrying a disabled payload come back as
        ``DisabledCommand``.
        """
        code = int(data.get("code", TERMINAL_CODE))
        indent = int(data.get("indent") or 0)
        params = copy.deepcopy(data.get("parameters") or [])
        if code == COMMENT_CODE and len(params) == 1:
            payload = DisabledPayload.decode(params[0])
            if payload is not None:
                return DisabledCommand(indent=indent, payload=payload)
        return Command(code, indent, params)


@dataclass(frozen=True)
class DisabledPayload:
    """The original command hidden inside a disabled comment."""

    block_id: str | None
    code: int
    indent: int
    parameters: list = field(default_factory=list)

    def encode(self) -> str:
        data: dict = {}
        if self.block_id is not None:
            data["blockId"] = self.block_id
        data["code"] = self.code
        data["indent"] = self.indent
        data["parameters"] = self.parameters
        return DISABLED_PREFIX + json.dumps(data, ensure_ascii=False)

    @staticmethod
    def decode(value: object) -> DisabledPayload | None:
        if not isinstance(value, str) or not value.startswith(DISABLED_PREFIX):
            return None
        try:
            data = json.loads(value[len(DISABLED_PREFIX) :])
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict) or "code" not in data:
            return None
        block_id = data.get("blockId")
        return DisabledPayload(
            block_id=str(block_id) if block_id is not None else None,
            code=int(data["code"]),
            indent=int(data.get("indent") or 0),
            parameters=list(data.get("parameters") or []),
        )

    def restore(self) -> Command:
        return Command(self.code, self.indent, copy.deepcopy(self.parameters))


class DisabledCommand(Command):
    """A command commented out by the disable toggle.

    Persisted as a plain comment whose single parameter is the encoded
    payload, so files written by other tools stay readable.
    """

    def __init__(self, indent: int, payload: DisabledPayload) -> None:
        super().__init__(COMMENT_CODE, indent, [payload.encode()])
        object.__setattr__(self, "_payload", payload)

    def __reduce__(self):
        return (DisabledCommand, (self.indent, self.payload))

    def __deepcopy__(self, memo):
        payload = replace(
            self.payload, parameters=copy.deepcopy(self.payload.parameters, memo)
        )
        return DisabledCommand(self.indent, payload)

    @property
    def payload(self) -> DisabledPayload:
        return self._payload  # type: ignore[attr-defined]

    @property
    def is_disabled(self) -> bool:
        return True

    @property
    def block_id(self) -> str | None:
        return self.payload.block_id

    def restore(self) -> Command:
        return self.payload.restore()

    @staticmethod
    def wrap(command: Command, block_id: str | None) -> DisabledCommand:
        payload = DisabledPayload(
            block_id=block_id,
            code=command.code,
            indent=command.indent,
            parameters=copy.deepcopy(command.parameters),
        )
        return DisabledCommand(command.indent, payload)


def clone(command: Command, indent_delta: int = 0) -> Command:
    """Deep copy *command*, shifting its indent (never below 0)."""
    indent = max(0, command.indent + indent_delta)
    if isinstance(command, DisabledCommand):
        p = command.payload
        payload = replace(
            p,
            indent=max(0, p.indent + indent_delta),
            parameters=copy.deepcopy(p.parameters),
        )
        return DisabledCommand(indent, payload)
    return Command(command.code, indent, copy.deepcopy(command.parameters))


def with_parameters(command: Command, parameters: list) -> Command:
    if isinstance(command, DisabledCommand):
        payload = replace(command.payload, parameters=parameters)
        return DisabledCommand(command.indent, payload)
    return replace(command, parameters=parameters)


def effective_parameters(command: Command) -> list:
    """Parameters of the command as authored (unwrapping disabled ones)."""
    if isinstance(command, DisabledCommand):
        return command.payload.parameters
    return command.parameters


def placeholder(indent: int) -> Command:
    return Command(TERMINAL_CODE, indent, [])


def load_commands(data: object) -> list[Command]:
    """Read a command list from decoded JSON.

    Accepts a bare list of command dicts or an event page object with a
    ``list`` key. A terminal sentinel is appended when missing.
    """
    if isinstance(data, dict):
        data = data.get("list", [])
    if not isinstance(data, list):
        raise ValueError("expected a list of commands")
    commands = [Command.from_dict(item) for item in data if isinstance(item, dict)]
    if not commands or not commands[-1].is_terminal:
        commands.append(placeholder(0))
    return commands


def dump_commands(commands: list[Command]) -> list[dict]:
    return [cmd.to_dict() for cmd in commands]
