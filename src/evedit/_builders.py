"""Structural templates for inserting and updating block commands.

A parameter editor hands back the finished parameter list plus an optional
list of "extra" commands. For multi-line commands the extras are the
continuation lines; for branching commands their codes say which branches
are wanted (411 else, 602 escape, 603 lose).
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from evedit._structure import (
    BLOCK_END_CODES,
    CONTINUATION_CODES,
    resolve_group_range,
)
from evedit.model import Command, clone, placeholder, with_parameters

logger = logging.getLogger(__name__)

CONDITIONAL = 111
ELSE = 411
END_CONDITIONAL = 412
LOOP = 112
REPEAT_ABOVE = 413
SHOW_CHOICES = 102
WHEN = 402
WHEN_CANCEL = 403
END_CHOICES = 404
BATTLE = 301
IF_WIN = 601
IF_ESCAPE = 602
IF_LOSE = 603
END_BATTLE = 604

CANCEL_BRANCH = -2
DEFAULT_CHOICES = ["Yes", "No"]


def _wants(extra: Sequence[Command] | None, code: int) -> bool:
    return bool(extra) and any(ec.code == code for ec in extra)


def branch_extras(codes: Iterable[int]) -> list[Command]:
    """Extras list requesting the given branch markers."""
    return [Command(code, 0, []) for code in codes]


def continuation_lines(code: int, lines: Iterable[str]) -> list[Command]:
    """Continuation commands for a multi-line primary (one per line)."""
    cont = CONTINUATION_CODES[code]
    return [Command(cont, 0, [line]) for line in lines]


def _choice_labels(parameters: list) -> list:
    if parameters and isinstance(parameters[0], list):
        return parameters[0]
    return []


def _cancel_type(parameters: list) -> int | None:
    if len(parameters) > 1 and isinstance(parameters[1], int):
        return parameters[1]
    return None


def _choice_skeleton(indent: int, parameters: list) -> list[Command]:
    out = []
    for k, label in enumerate(_choice_labels(parameters)):
        out += [Command(WHEN, indent, [k, label]), placeholder(indent + 1)]
    if _cancel_type(parameters) == CANCEL_BRANCH:
        out += [Command(WHEN_CANCEL, indent, [6, None]), placeholder(indent + 1)]
    out.append(Command(END_CHOICES, indent, []))
    return out


def _battle_skeleton(indent: int, escape: bool, lose: bool) -> list[Command]:
    out = [Command(IF_WIN, indent, []), placeholder(indent + 1)]
    if escape:
        out += [Command(IF_ESCAPE, indent, []), placeholder(indent + 1)]
    if lose:
        out += [Command(IF_LOSE, indent, []), placeholder(indent + 1)]
    out.append(Command(END_BATTLE, indent, []))
    return out


def build_inserted(
    commands: Sequence[Command],
    insert_at: int,
    code: int,
    parameters: list | None = None,
    extra: Sequence[Command] | None = None,
) -> list[Command]:
    """Insert *code* at *insert_at* together with the skeleton it needs."""
    parameters = list(parameters or [])
    indent = commands[insert_at].indent if 0 <= insert_at < len(commands) else 0

    if code == SHOW_CHOICES and not _choice_labels(parameters):
        parameters = [list(DEFAULT_CHOICES), 1, 0, 2, 0]
    new = [Command(code, indent, parameters)]

    if code == CONDITIONAL:
        new.append(placeholder(indent + 1))
        if _wants(extra, ELSE):
            new += [Command(ELSE, indent, []), placeholder(indent + 1)]
        new.append(Command(END_CONDITIONAL, indent, []))
    elif code == LOOP:
        new += [placeholder(indent + 1), Command(REPEAT_ABOVE, indent, [])]
    elif code == SHOW_CHOICES:
        new += _choice_skeleton(indent, parameters)
    elif code == BATTLE:
        escape, lose = _wants(extra, IF_ESCAPE), _wants(extra, IF_LOSE)
        if escape or lose:
            new += _battle_skeleton(indent, escape, lose)
    elif extra:
        if code in CONTINUATION_CODES:
            new += [clone(ec, indent - ec.indent) for ec in extra]
        else:
            new += [clone(ec, indent) for ec in extra]

    return list(commands[:insert_at]) + new + list(commands[insert_at:])


def build_updated(
    commands: Sequence[Command],
    index: int,
    parameters: list,
    extra: Sequence[Command] | None = None,
) -> list[Command]:
    """Replace the parameters at *index*, patching only affected branches."""
    result = list(commands)
    cmd = result[index]
    if cmd.is_disabled:
        result[index] = with_parameters(cmd, list(parameters))
        return result
    result[index] = Command(cmd.code, cmd.indent, list(parameters))

    if cmd.code == CONDITIONAL:
        if extra is not None:
            _update_conditional_else(result, index, _wants(extra, ELSE))
    elif cmd.code == BATTLE:
        if extra is not None:
            _update_battle_branches(
                result, index, _wants(extra, IF_ESCAPE), _wants(extra, IF_LOSE)
            )
    elif cmd.code == SHOW_CHOICES:
        _update_choice_branches(result, index)
    elif cmd.code in CONTINUATION_CODES and extra is not None:
        _update_continuation(result, index, extra)
    return result


def _own_rows(cmds: list[Command], index: int, end: int) -> list[int]:
    """Rows in (index, end] at the header's indent that belong to this block.

    Markers of a same-code block nested at the same indent are skipped,
    using the depth count ``resolve_group_range`` uses.
    """
    head = cmds[index]
    end_codes = BLOCK_END_CODES.get(head.code, frozenset())
    depth = 0
    rows = []
    for i in range(index + 1, end + 1):
        c = cmds[i]
        if c.indent != head.indent:
            continue
        if c.code == head.code:
            depth += 1
        elif depth and c.code in end_codes:
            depth -= 1
        elif not depth:
            rows.append(i)
    return rows


def _marker(cmds: list[Command], index: int, end: int, code: int) -> int:
    return next((i for i in _own_rows(cmds, index, end) if cmds[i].code == code), -1)


def _span_end(cmds: list[Command], index: int, marker: int, end: int) -> int:
    """Row closing the branch opened at *marker*; *end* if none."""
    return next((i for i in _own_rows(cmds, index, end) if i > marker), end)


def _update_conditional_else(cmds: list[Command], index: int, want_else: bool) -> None:
    base = cmds[index].indent
    _start, end = resolve_group_range(cmds, index)
    if end == index:
        return
    else_idx = _marker(cmds, index, end - 1, ELSE)
    if want_else and else_idx < 0:
        cmds[end:end] = [Command(ELSE, base, []), placeholder(base + 1)]
        logger.info("Edit: conditional add else at=%d", end)
    elif not want_else and else_idx >= 0:
        del cmds[else_idx:end]
        logger.info("Edit: conditional drop else span=%d", end - else_idx)


def _update_battle_branches(
    cmds: list[Command], index: int, want_escape: bool, want_lose: bool
) -> None:
    base = cmds[index].indent
    _start, end = resolve_group_range(cmds, index)
    if end == index:
        if want_escape or want_lose:
            cmds[index + 1 : index + 1] = _battle_skeleton(base, want_escape, want_lose)
        return

    # lose sits further down, handle it first so escape indices stay valid
    lose_idx = _marker(cmds, index, end, IF_LOSE)
    if want_lose and lose_idx < 0:
        cmds[end:end] = [Command(IF_LOSE, base, []), placeholder(base + 1)]
        end += 2
    elif not want_lose and lose_idx >= 0:
        span_end = _span_end(cmds, index, lose_idx, end)
        del cmds[lose_idx:span_end]
        end -= span_end - lose_idx

    escape_idx = _marker(cmds, index, end, IF_ESCAPE)
    if want_escape and escape_idx < 0:
        lose_idx = _marker(cmds, index, end, IF_LOSE)
        insert_before = lose_idx if lose_idx >= 0 else end
        cmds[insert_before:insert_before] = [
            Command(IF_ESCAPE, base, []),
            placeholder(base + 1),
        ]
    elif not want_escape and escape_idx >= 0:
        span_end = _span_end(cmds, index, escape_idx, end)
        del cmds[escape_idx:span_end]


def _update_choice_branches(cmds: list[Command], index: int) -> None:
    cmd = cmds[index]
    base = cmd.indent
    _start, end = resolve_group_range(cmds, index)
    if end == index:
        return
    own = _own_rows(cmds, index, end)
    spans: list[tuple[int, int]] = []
    cancel_span: tuple[int, int] | None = None
    lead_end = end
    for k, i in enumerate(own):
        if cmds[i].code not in (WHEN, WHEN_CANCEL):
            continue
        lead_end = min(lead_end, i)
        span = (i, own[k + 1] if k + 1 < len(own) else end)
        if cmds[i].code == WHEN:
            spans.append(span)
        else:
            cancel_span = span

    interior = list(cmds[index + 1 : lead_end])
    for k, label in enumerate(_choice_labels(cmd.parameters)):
        if k < len(spans):
            s, e = spans[k]
            interior.append(Command(WHEN, base, [k, label]))
            interior += cmds[s + 1 : e]
        else:
            interior += [Command(WHEN, base, [k, label]), placeholder(base + 1)]
    if _cancel_type(cmd.parameters) == CANCEL_BRANCH:
        if cancel_span is not None:
            interior += cmds[cancel_span[0] : cancel_span[1]]
        else:
            interior += [Command(WHEN_CANCEL, base, [6, None]), placeholder(base + 1)]
    cmds[index + 1 : end] = interior


def _update_continuation(
    cmds: list[Command], index: int, extra: Sequence[Command]
) -> None:
    cmd = cmds[index]
    cont = CONTINUATION_CODES[cmd.code]
    run_end = index
    for i in range(index + 1, len(cmds)):
        if cmds[i].code != cont:
            break
        run_end = i
    cmds[index + 1 : run_end + 1] = [clone(ec, cmd.indent - ec.indent) for ec in extra]


def build_indented(
    commands: Sequence[Command], indices: Iterable[int], delta: int
) -> list[Command]:
    """Shift the indent of *indices* by *delta* (never below 0)."""
    targets = set(indices)
    return [clone(c, delta) if i in targets else c for i, c in enumerate(commands)]
