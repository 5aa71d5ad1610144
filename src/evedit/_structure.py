"""Block classification tables and structural range resolution.

The command list is flat; nesting is implied by indent levels plus a few
marker codes. Everything that needs to know "which rows belong together"
asks this module instead of building a tree.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from evedit.model import TERMINAL_CODE, Command

logger = logging.getLogger(__name__)

# Commands inserted directly without a parameter editor
NO_ARGUMENT_CODES = frozenset(
    {112, 113, 115, 206, 221, 222, 243, 244, 251, 351, 352, 353, 354}
)

# primary code -> code of the lines that trail it at the same indent
CONTINUATION_CODES: dict[int, int] = {
    101: 401,  # Show Text
    105: 405,  # Show Scrolling Text
    108: 408,  # Comment
    205: 505,  # Set Movement Route
    302: 605,  # Shop Processing
    355: 655,  # Script
}

# primary code -> codes closing its block at the same indent
BLOCK_END_CODES: dict[int, frozenset[int]] = {
    102: frozenset({404}),  # Show Choices
    111: frozenset({412}),  # Conditional Branch (411 Else is interior)
    112: frozenset({413}),  # Loop
    301: frozenset({604}),  # Battle Processing (601/602/603 are interior)
}

# interior/trailing code -> primary codes it can belong to
CHILD_TO_PARENT: dict[int, frozenset[int]] = {
    **{cont: frozenset({primary}) for primary, cont in CONTINUATION_CODES.items()},
    402: frozenset({102}),
    403: frozenset({102}),
    404: frozenset({102}),
    411: frozenset({111}),
    412: frozenset({111}),
    413: frozenset({112}),
    601: frozenset({301}),
    602: frozenset({301}),
    603: frozenset({301}),
    604: frozenset({301}),
}

# continuation lines can be removed or copied one at a time
SIMPLE_CHILD_CODES = frozenset(CONTINUATION_CODES.values())


def is_terminal_index(commands: Sequence[Command], index: int) -> bool:
    """True for the fixed sentinel closing every command list."""
    return index == len(commands) - 1 and commands[index].code == TERMINAL_CODE


def resolve_group_range(commands: Sequence[Command], index: int) -> tuple[int, int]:
    """Return the inclusive range of rows that belong to the group at *index*."""
    if index < 0 or index >= len(commands):
        return (index, index)
    cmd = commands[index]
    # a wrapped row is a group of its own whatever code it carries
    if cmd.is_disabled:
        return (index, index)

    parents = CHILD_TO_PARENT.get(cmd.code)
    if parents is not None:
        if cmd.code in SIMPLE_CHILD_CODES:
            return (index, index)
        for i in range(index - 1, -1, -1):
            c = commands[i]
            if c.code in parents and c.indent == cmd.indent:
                return resolve_group_range(commands, i)
        logger.debug("no parent for child code %d at %d", cmd.code, index)
        return (index, index)

    cont = CONTINUATION_CODES.get(cmd.code)
    if cont is not None:
        end = index
        for i in range(index + 1, len(commands)):
            if commands[i].code != cont:
                break
            end = i
        return (index, end)

    end_codes = BLOCK_END_CODES.get(cmd.code)
    if end_codes is not None:
        base = cmd.indent
        depth = 0
        for i in range(index + 1, len(commands)):
            c = commands[i]
            if c.indent != base:
                continue
            # same-type blocks nest at the same indent
            if c.code == cmd.code:
                depth += 1
            if c.code in end_codes:
                if depth == 0:
                    return (index, i)
                depth -= 1
        logger.debug("no end marker for code %d at %d", cmd.code, index)
        return (index, index)

    return (index, index)


def move_group_range(commands: Sequence[Command], index: int) -> tuple[int, int]:
    """Group range used when stepping over a neighbour during a move.

    Unlike ``resolve_group_range`` a continuation line climbs to its
    primary, so the whole text/script block is treated as one unit.
    """
    if index < 0 or index >= len(commands):
        return (index, index)
    cmd = commands[index]
    if cmd.is_disabled:
        return (index, index)
    if cmd.code in SIMPLE_CHILD_CODES:
        parents = CHILD_TO_PARENT[cmd.code]
        for i in range(index - 1, -1, -1):
            c = commands[i]
            if c.is_disabled:
                break
            if c.code in parents:
                return resolve_group_range(commands, i)
            if c.code != cmd.code:
                break
    return resolve_group_range(commands, index)


def group_ranges(
    commands: Sequence[Command], indices: Iterable[int]
) -> list[tuple[int, int]]:
    """Expand *indices* to whole groups and merge them into disjoint runs."""
    expanded: set[int] = set()
    for idx in indices:
        start, end = resolve_group_range(commands, idx)
        expanded.update(range(start, end + 1))
    if not expanded:
        return []
    ordered = sorted(expanded)
    ranges: list[tuple[int, int]] = []
    run_start = run_end = ordered[0]
    for i in ordered[1:]:
        if i == run_end + 1:
            run_end = i
        else:
            ranges.append((run_start, run_end))
            run_start = run_end = i
    ranges.append((run_start, run_end))
    return ranges


def expand_indices(commands: Sequence[Command], indices: Iterable[int]) -> list[int]:
    """Flattened ``group_ranges`` without the terminal sentinel."""
    result = []
    for start, end in group_ranges(commands, indices):
        for i in range(start, end + 1):
            if not is_terminal_index(commands, i):
                result.append(i)
    return result


def is_valid_drop_target(
    commands: Sequence[Command], target: int, drag_start: int, drag_end: int
) -> bool:
    """A drop can land on any row slot up to (and including) the one just
    above the terminal sentinel; nothing goes after it.

    Targets inside the dragged range are reported valid; callers treat
    them as no-op moves.
    """
    return 0 <= target < len(commands)


def is_draggable(commands: Sequence[Command], index: int) -> bool:
    if index < 0 or index >= len(commands):
        return False
    if is_terminal_index(commands, index):
        return False
    return commands[index].code not in CHILD_TO_PARENT
