"""Search mixin for CommandEditor."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from evedit.model import TERMINAL_CODE, Command, effective_parameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FindOptions:
    case_sensitive: bool = False
    whole_word: bool = False
    regex: bool = False


def build_pattern(query: str, options: FindOptions) -> re.Pattern | None:
    """Compile *query*; None for an empty query or an invalid regex."""
    if not query:
        return None
    pattern = query if options.regex else re.escape(query)
    if options.whole_word:
        pattern = rf"\b(?:{pattern})\b"
    flags = 0 if options.case_sensitive else re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        logger.debug("invalid search pattern %r: %s", query, e)
        return None


def param_strings(command: Command) -> list[str]:
    """String parameters, including strings one level inside a list."""
    result = []
    for p in effective_parameters(command):
        if isinstance(p, str):
            result.append(p)
        elif isinstance(p, list):
            result.extend(item for item in p if isinstance(item, str))
    return result


def find_occurrences(
    command: Command, display_text: str, regex: re.Pattern
) -> list[tuple[int, int]]:
    """Match spans in *display_text*.

    A command whose text shows no match but whose string parameters do
    yields one empty span, so it still counts as a single occurrence.
    """
    if command.code == TERMINAL_CODE:
        return []
    spans = [(m.start(), m.end()) for m in regex.finditer(display_text)]
    if spans:
        return spans
    if any(regex.search(s) for s in param_strings(command)):
        return [(0, 0)]
    return []


class SearchMixin:
    """Find over rendered text and raw string parameters."""

    def find(self, query: str, options: FindOptions | None = None) -> list[int]:
        """Search all commands; opens folds that hide a match."""
        self._search_query = query
        self._search_options = options or FindOptions()
        self._execute_search()
        if query and not self._search_matches:
            self.status_msg = f"Pattern not found: {query}"
        return self.search_matches

    def _execute_search(self) -> None:
        regex = build_pattern(self._search_query, self._search_options)
        self._reset_matches()
        if regex is None:
            return
        render = self.render
        for i, cmd in enumerate(self.commands):
            for start, end in find_occurrences(cmd, render(cmd), regex):
                self._search_matches.append((i, start, end))
        self._build_search_row_index()
        if not self._search_matches:
            return
        self._unfold_for_indices(self.search_matches)
        self._current_match = self._find_match_near_cursor()
        self._goto_current_match()

    def _reset_matches(self) -> None:
        self._search_matches = []
        self._search_match_by_row = {}
        self._current_match = -1

    def _build_search_row_index(self) -> None:
        """Build row-indexed lookup for search matches."""
        self._search_match_by_row = {}
        for mi, (row, start, end) in enumerate(self._search_matches):
            if row not in self._search_match_by_row:
                self._search_match_by_row[row] = []
            self._search_match_by_row[row].append((start, end, mi))

    @property
    def search_matches(self) -> list[int]:
        """Rows holding at least one match."""
        return sorted(self._search_match_by_row)

    @property
    def match_count(self) -> int:
        return len(self._search_matches)

    @property
    def current_match(self) -> int:
        """Index of the current occurrence; -1 without matches."""
        return self._current_match

    @property
    def current_match_row(self) -> int | None:
        if self._current_match < 0 or not self._search_matches:
            return None
        return self._search_matches[self._current_match][0]

    def match_spans(self, row: int) -> list[tuple[int, int, bool]]:
        """(start, end, is_current) spans of *row* in its rendered text."""
        return [
            (start, end, mi == self._current_match)
            for start, end, mi in self._search_match_by_row.get(row, [])
        ]

    def clear_search(self) -> None:
        self._search_query = ""
        self._reset_matches()

    def _find_match_near_cursor(self) -> int:
        """First match at or after the primary selection, wrapping around."""
        anchor = self.primary_index
        if anchor is None:
            return 0
        for mi, (row, _start, _end) in enumerate(self._search_matches):
            if row >= anchor:
                return mi
        return 0

    def _goto_current_match(self) -> None:
        if not self._search_matches or self._current_match < 0:
            return
        row = self._search_matches[self._current_match][0]
        self.selected = {row}
        self.last_clicked = row
        total = len(self._search_matches)
        self.status_msg = (
            f"/{self._search_query}  [{self._current_match + 1}/{total}]"
        )

    def _refresh_matches(self) -> bool:
        """Re-run the last query after an edit dropped the match list."""
        if self._search_matches or not self._search_query:
            return False
        self._execute_search()
        return bool(self._search_matches)

    def find_next(self) -> None:
        if self._refresh_matches():
            return
        if not self._search_matches:
            if self._search_query:
                self.status_msg = f"Pattern not found: {self._search_query}"
            else:
                self.status_msg = "No previous search"
            return
        self._current_match = (self._current_match + 1) % len(self._search_matches)
        self._goto_current_match()

    def find_prev(self) -> None:
        if self._refresh_matches():
            return
        if not self._search_matches:
            if self._search_query:
                self.status_msg = f"Pattern not found: {self._search_query}"
            else:
                self.status_msg = "No previous search"
            return
        self._current_match = (self._current_match - 1) % len(self._search_matches)
        self._goto_current_match()
