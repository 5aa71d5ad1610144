"""Human-readable one-line text for event commands.

Used by the terminal host for rows, search matching and fold previews.
Never stored.
"""

from __future__ import annotations

import json

from evedit.model import TERMINAL_CODE, Command, DisabledCommand

COMMAND_NAMES: dict[int, str] = {
    101: "Text",
    102: "Show Choices",
    103: "Input Number",
    104: "Select Item",
    105: "Scrolling Text",
    108: "Comment",
    111: "If",
    112: "Loop",
    113: "Break Loop",
    115: "Exit Event Processing",
    117: "Common Event",
    118: "Label",
    119: "Jump to Label",
    121: "Control Switches",
    122: "Control Variables",
    123: "Control Self Switch",
    124: "Control Timer",
    125: "Change Gold",
    126: "Change Items",
    127: "Change Weapons",
    128: "Change Armors",
    129: "Change Party Member",
    132: "Change Battle BGM",
    133: "Change Victory ME",
    134: "Change Save Access",
    135: "Change Menu Access",
    136: "Change Encounter",
    137: "Change Formation Access",
    138: "Change Window Color",
    139: "Change Defeat ME",
    140: "Change Vehicle BGM",
    201: "Transfer Player",
    202: "Set Vehicle Location",
    203: "Set Event Location",
    204: "Scroll Map",
    205: "Set Movement Route",
    206: "Get on/off Vehicle",
    211: "Change Transparency",
    212: "Show Animation",
    213: "Show Balloon Icon",
    214: "Erase Event",
    216: "Change Player Followers",
    217: "Gather Followers",
    221: "Fadeout Screen",
    222: "Fadein Screen",
    223: "Tint Screen",
    224: "Flash Screen",
    225: "Shake Screen",
    230: "Wait",
    231: "Show Picture",
    232: "Move Picture",
    233: "Rotate Picture",
    234: "Tint Picture",
    235: "Erase Picture",
    236: "Set Weather Effect",
    241: "Play BGM",
    242: "Fadeout BGM",
    243: "Save BGM",
    244: "Resume BGM",
    245: "Play BGS",
    246: "Fadeout BGS",
    249: "Play ME",
    250: "Play SE",
    251: "Stop SE",
    261: "Play Movie",
    281: "Change Map Name Display",
    282: "Change Tileset",
    283: "Change Battle Background",
    284: "Change Parallax",
    285: "Get Location Info",
    301: "Battle Processing",
    302: "Shop Processing",
    303: "Name Input Processing",
    311: "Change HP",
    312: "Change MP",
    313: "Change State",
    314: "Recover All",
    315: "Change EXP",
    316: "Change Level",
    317: "Change Parameter",
    318: "Change Skill",
    319: "Change Equipment",
    320: "Change Name",
    321: "Change Class",
    322: "Change Actor Images",
    323: "Change Vehicle Image",
    324: "Change Nickname",
    325: "Change Profile",
    331: "Change Enemy HP",
    332: "Change Enemy MP",
    333: "Change Enemy State",
    334: "Enemy Recover All",
    335: "Enemy Appear",
    336: "Enemy Transform",
    337: "Show Battle Animation",
    339: "Force Action",
    340: "Abort Battle",
    351: "Open Menu Screen",
    352: "Open Save Screen",
    353: "Game Over",
    354: "Return to Title Screen",
    355: "Script",
    356: "Plugin Command",
    402: "When",
    403: "When Cancel",
    404: "End",
    411: "Else",
    412: "End",
    413: "Repeat Above",
    601: "If Win",
    602: "If Escape",
    603: "If Lose",
    604: "End",
}

# continuation lines render as an indented tail of their primary
_CONTINUATION_TEXT = {401, 405, 408, 655}

_SWITCH_STATE = ("ON", "OFF")
_COMPARE = ("=", ">=", "<=", ">", "<", "!=")


def _compact(value) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _conditional(params: list) -> str:
    kind = params[0] if params else None
    try:
        if kind == 0:
            return f"Switch {params[1]:04d} is {_SWITCH_STATE[params[2]]}"
        if kind == 1:
            operand = params[3] if params[2] == 0 else f"Variable {params[3]:04d}"
            return f"Variable {params[1]:04d} {_COMPARE[params[4]]} {operand}"
        if kind == 2:
            return f"Self Switch {params[1]} is {_SWITCH_STATE[params[2]]}"
        if kind == 12:
            return f"Script: {params[1]}"
    except (IndexError, TypeError, ValueError):
        pass
    return _compact(params)


def _describe_plain(command: Command) -> str:
    code = command.code
    params = command.parameters
    if code == TERMINAL_CODE:
        return ""
    name = COMMAND_NAMES.get(code, f"@{code}")

    if code in _CONTINUATION_TEXT:
        return f": {params[0] if params else ''}"
    if code == 505:
        return f": {_compact(params[0]) if params else ''}"
    if code in (108, 355):
        return f"{name}: {params[0] if params else ''}"
    if code == 101:
        face = params[0] if params and params[0] else "None"
        return f"{name}: {face}"
    if code == 102:
        labels = params[0] if params and isinstance(params[0], list) else []
        return f"{name}: " + ", ".join(str(label) for label in labels)
    if code == 402:
        return f"{name} [{params[1] if len(params) > 1 else ''}]"
    if code == 111:
        return f"{name}: {_conditional(params)}"
    if code == 121 and all(isinstance(p, int) for p in params[:3]) and len(params) > 2:
        start, end, op = params[0], params[1], params[2]
        ids = f"#{start:04d}" if start == end else f"#{start:04d}..#{end:04d}"
        return f"{name}: {ids} = {_SWITCH_STATE[op] if op in (0, 1) else op}"
    if code == 230 and params:
        return f"{name}: {params[0]} frames"
    if code in (117, 119, 118, 356) and params:
        return f"{name}: {params[0]}"
    if code in COMMAND_NAMES and not params:
        return name
    if params:
        return f"{name}: {_compact(params)}"
    return name


def describe(command: Command) -> str:
    """Display text for *command*; disabled ones read as ``# <original>``."""
    if isinstance(command, DisabledCommand):
        return "# " + _describe_plain(command.restore())
    return _describe_plain(command)
