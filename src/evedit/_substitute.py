"""Substitute mixin for CommandEditor."""

from __future__ import annotations

import logging
import re

from evedit._search import FindOptions, build_pattern
from evedit.model import Command, effective_parameters, with_parameters

logger = logging.getLogger(__name__)


def replace_in_command(
    command: Command, regex: re.Pattern, replacement: str, literal: bool
) -> Command:
    """Rewrite string parameters (and strings inside list parameters)."""
    repl = (lambda _m: replacement) if literal else replacement

    def sub(value):
        if isinstance(value, str):
            return regex.sub(repl, value)
        return value

    params = []
    for p in effective_parameters(command):
        if isinstance(p, list):
            params.append([sub(item) for item in p])
        else:
            params.append(sub(p))
    if params == effective_parameters(command):
        return command
    return with_parameters(command, params)


class SubstituteMixin:
    """Replace over the current search matches."""

    def _replace_rows(self, rows: list[int], replacement: str) -> int:
        if self._check_readonly():
            return 0
        options = self._search_options
        regex = build_pattern(self._search_query, options)
        if regex is None or not rows:
            return 0
        commands = self.commands
        new_commands = commands[:]
        changed = 0
        try:
            for i in rows:
                updated = replace_in_command(
                    commands[i], regex, replacement, literal=not options.regex
                )
                if updated is not commands[i]:
                    new_commands[i] = updated
                    changed += 1
        except re.error as e:
            self.status_msg = f"invalid replacement: {e}"
            return 0
        if not changed:
            self.status_msg = f"Pattern not found: {self._search_query}"
            return 0
        logger.info("Edit: replace rows=%d", changed)
        self._commit(new_commands)
        self._execute_search()
        self.status_msg = f"{changed} substitution(s)"
        return changed

    def replace_current(self, replacement: str) -> int:
        if not self._search_matches or self._current_match < 0:
            return 0
        return self._replace_rows([self.current_match_row], replacement)

    def replace_all(self, replacement: str) -> int:
        return self._replace_rows(self.search_matches, replacement)

    def _execute_substitute(self, cmd: str) -> None:
        """Run s/old/new/flags (current match) or %s/old/new/flags (all)."""
        if self._check_readonly():
            return

        range_match = re.match(r"^(%)?s(.)(.*)$", cmd)
        if not range_match:
            self.status_msg = "invalid substitute command"
            return

        whole = range_match.group(1) == "%"
        delim = range_match.group(2)
        rest = range_match.group(3)

        parts: list[str] = []
        current: list[str] = []
        i = 0
        while i < len(rest):
            if rest[i] == "\\" and i + 1 < len(rest) and rest[i + 1] == delim:
                current.append(delim)
                i += 2
            elif rest[i] == delim:
                parts.append("".join(current))
                current = []
                i += 1
            else:
                current.append(rest[i])
                i += 1
        parts.append("".join(current))

        if len(parts) < 2:
            self.status_msg = "invalid substitute command"
            return

        pattern = parts[0]
        replacement = parts[1]
        flags_str = parts[2] if len(parts) > 2 else ""

        if not pattern:
            self.status_msg = "empty pattern"
            return

        options = FindOptions(case_sensitive="i" not in flags_str, regex=True)
        if build_pattern(pattern, options) is None:
            self.status_msg = f"invalid regex: {pattern}"
            return
        self.find(pattern, options)
        if not self._search_matches:
            return
        if whole or "g" in flags_str:
            self.replace_all(replacement)
        else:
            self.replace_current(replacement)
