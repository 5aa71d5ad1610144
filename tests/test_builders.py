"""Tests for block skeletons on insert and branch patching on update."""

from conftest import make_editor, rows_to_commands

from evedit._builders import (
    branch_extras,
    build_inserted,
    build_updated,
    continuation_lines,
)
from evedit.model import Command

TERMINAL = (0, 0, [])
COND_ELSE = [
    (111, 0, [0, 1, 0]),
    (0, 1, []),
    (411, 0, []),
    (0, 1, []),
    (412, 0, []),
    TERMINAL,
]
ESCAPE_AND_LOSE = branch_extras([602, 603])
NESTED_COND = [
    (111, 0, [0, 1, 0]),
    (111, 0, [0, 2, 0]),
    (0, 1, []),
    (411, 0, []),
    (0, 1, []),
    (412, 0, []),
    (412, 0, []),
    TERMINAL,
]


def shape(commands):
    return [(c.code, c.indent) for c in commands]


class TestInsert:
    def test_conditional(self):
        result = build_inserted(rows_to_commands([TERMINAL]), 0, 111, [0, 1, 0])
        assert shape(result) == [(111, 0), (0, 1), (412, 0), (0, 0)]

    def test_conditional_with_else(self):
        result = build_inserted(
            rows_to_commands([TERMINAL]), 0, 111, [0, 1, 0], branch_extras([411])
        )
        assert shape(result) == [(111, 0), (0, 1), (411, 0), (0, 1), (412, 0), (0, 0)]

    def test_loop(self):
        result = build_inserted(rows_to_commands([TERMINAL]), 0, 112)
        assert shape(result) == [(112, 0), (0, 1), (413, 0), (0, 0)]

    def test_choices_with_cancel_branch(self):
        params = [["A", "B"], -2, 0, 2, 0]
        result = build_inserted(rows_to_commands([TERMINAL]), 0, 102, params)
        assert shape(result) == [
            (102, 0),
            (402, 0),
            (0, 1),
            (402, 0),
            (0, 1),
            (403, 0),
            (0, 1),
            (404, 0),
            (0, 0),
        ]
        assert result[1].parameters == [0, "A"]
        assert result[3].parameters == [1, "B"]
        assert result[5].parameters == [6, None]

    def test_choices_default_labels(self):
        result = build_inserted(rows_to_commands([TERMINAL]), 0, 102)
        assert result[0].parameters == [["Yes", "No"], 1, 0, 2, 0]
        assert [c.code for c in result] == [102, 402, 0, 402, 0, 404, 0]

    def test_battle_without_branches_is_single_row(self):
        result = build_inserted(
            rows_to_commands([TERMINAL]), 0, 301, [0, 1, False, False]
        )
        assert shape(result) == [(301, 0), (0, 0)]

    def test_battle_with_escape_and_lose(self):
        result = build_inserted(
            rows_to_commands([TERMINAL]),
            0,
            301,
            [0, 1, True, True],
            branch_extras([602, 603]),
        )
        assert [c.code for c in result] == [301, 601, 0, 602, 0, 603, 0, 604, 0]

    def test_text_with_lines(self):
        result = build_inserted(
            rows_to_commands([TERMINAL]),
            0,
            101,
            ["", 0, 0, 2],
            continuation_lines(101, ["Hi", "there"]),
        )
        assert shape(result) == [(101, 0), (401, 0), (401, 0), (0, 0)]
        assert result[2].parameters == ["there"]

    def test_nested_insert_takes_anchor_indent(self):
        commands = rows_to_commands(
            [(111, 0, [0, 1, 0]), (0, 1, []), (412, 0, []), TERMINAL]
        )
        result = build_inserted(commands, 1, 112)
        assert shape(result) == [
            (111, 0),
            (112, 1),
            (0, 2),
            (413, 1),
            (0, 1),
            (412, 0),
            (0, 0),
        ]

    def test_plain_command(self):
        result = build_inserted(rows_to_commands([TERMINAL]), 0, 230, [60])
        assert result == [Command(230, 0, [60]), Command(0, 0, [])]


class TestUpdateConditional:
    ROWS = [(111, 0, [0, 1, 0]), (230, 1, [1]), (412, 0, []), TERMINAL]

    def test_add_else(self):
        commands = rows_to_commands(self.ROWS)
        result = build_updated(commands, 0, [0, 2, 0], branch_extras([411]))
        assert shape(result) == [(111, 0), (230, 1), (411, 0), (0, 1), (412, 0), (0, 0)]
        assert result[0].parameters == [0, 2, 0]

    def test_remove_else_drops_its_body(self):
        commands = rows_to_commands(
            [
                (111, 0, [0, 1, 0]),
                (230, 1, [1]),
                (411, 0, []),
                (230, 1, [2]),
                (230, 1, [3]),
                (412, 0, []),
                TERMINAL,
            ]
        )
        result = build_updated(commands, 0, [0, 1, 0], [])
        assert shape(result) == [(111, 0), (230, 1), (412, 0), (0, 0)]

    def test_without_extra_keeps_structure(self):
        commands = rows_to_commands(COND_ELSE)
        result = build_updated(commands, 0, [0, 5, 1])
        assert shape(result) == shape(commands)
        assert result[0].parameters == [0, 5, 1]

    def test_inner_else_is_not_taken_for_the_outer_one(self):
        commands = rows_to_commands(NESTED_COND)
        result = build_updated(commands, 0, [0, 1, 0], [])
        assert shape(result) == shape(commands)

    def test_add_outer_else_keeps_inner_else(self):
        commands = rows_to_commands(NESTED_COND)
        result = build_updated(commands, 0, [0, 1, 0], branch_extras([411]))
        assert [c.code for c in result] == [111, 111, 0, 411, 0, 412, 411, 0, 412, 0]
        assert result[7].indent == 1

    def test_remove_outer_else_keeps_inner_block(self):
        rows = NESTED_COND[:6] + [(411, 0, []), (230, 1, [9])] + NESTED_COND[6:]
        result = build_updated(rows_to_commands(rows), 0, [0, 1, 0], [])
        assert shape(result) == shape(rows_to_commands(NESTED_COND))


class TestUpdateBattle:
    ROWS = [
        (301, 0, [0, 1, True, False]),
        (601, 0, []),
        (230, 1, [1]),
        (602, 0, []),
        (230, 1, [2]),
        (604, 0, []),
        TERMINAL,
    ]
    NESTED = [
        (301, 0, [0, 1, False, False]),
        (601, 0, []),
        (301, 0, [0, 2, False, True]),
        (601, 0, []),
        (0, 1, []),
        (603, 0, []),
        (0, 1, []),
        (604, 0, []),
        (604, 0, []),
        TERMINAL,
    ]

    def test_add_lose_before_end(self):
        commands = rows_to_commands(self.ROWS)
        result = build_updated(commands, 0, [0, 1, True, True], ESCAPE_AND_LOSE)
        assert [c.code for c in result] == [301, 601, 230, 602, 230, 603, 0, 604, 0]

    def test_remove_escape_keeps_win_body(self):
        commands = rows_to_commands(self.ROWS)
        result = build_updated(commands, 0, [0, 1, False, False], [])
        assert [c.code for c in result] == [301, 601, 230, 604, 0]
        assert result[2].parameters == [1]

    def test_add_escape_above_existing_lose(self):
        commands = rows_to_commands(
            [
                (301, 0, [0, 1, False, True]),
                (601, 0, []),
                (0, 1, []),
                (603, 0, []),
                (0, 1, []),
                (604, 0, []),
                TERMINAL,
            ]
        )
        result = build_updated(commands, 0, [0, 1, True, True], ESCAPE_AND_LOSE)
        assert [c.code for c in result] == [301, 601, 0, 602, 0, 603, 0, 604, 0]

    def test_missing_end_marker_gets_skeleton(self):
        commands = rows_to_commands([(301, 0, [0, 1, False, False]), TERMINAL])
        result = build_updated(commands, 0, [0, 1, False, True], branch_extras([603]))
        assert [c.code for c in result] == [301, 601, 0, 603, 0, 604, 0]

    def test_inner_battle_branches_are_left_alone(self):
        commands = rows_to_commands(self.NESTED)
        result = build_updated(commands, 0, [0, 1, False, False], [])
        assert shape(result) == shape(commands)

    def test_add_lose_to_outer_battle(self):
        commands = rows_to_commands(self.NESTED)
        result = build_updated(commands, 0, [0, 1, False, True], branch_extras([603]))
        assert [c.code for c in result] == [
            301,
            601,
            301,
            601,
            0,
            603,
            0,
            604,
            603,
            0,
            604,
            0,
        ]


class TestUpdateChoices:
    ROWS = [
        (102, 0, [["A", "B"], 1, 0, 2, 0]),
        (402, 0, [0, "A"]),
        (230, 1, [10]),
        (402, 0, [1, "B"]),
        (230, 1, [20]),
        (404, 0, []),
        TERMINAL,
    ]

    def test_relabel_keeps_bodies(self):
        commands = rows_to_commands(self.ROWS)
        result = build_updated(commands, 0, [["Yes", "No"], 1, 0, 2, 0])
        assert [c.code for c in result] == [102, 402, 230, 402, 230, 404, 0]
        assert result[1].parameters == [0, "Yes"]
        assert result[3].parameters == [1, "No"]
        assert result[4].parameters == [20]

    def test_add_option_and_cancel_branch(self):
        commands = rows_to_commands(self.ROWS)
        result = build_updated(commands, 0, [["A", "B", "C"], -2, 0, 2, 0])
        assert [c.code for c in result] == [
            102,
            402,
            230,
            402,
            230,
            402,
            0,
            403,
            0,
            404,
            0,
        ]
        assert result[5].parameters == [2, "C"]
        assert result[7].parameters == [6, None]

    def test_remove_option_drops_its_body(self):
        commands = rows_to_commands(self.ROWS)
        result = build_updated(commands, 0, [["A"], 0, 0, 2, 0])
        assert [c.code for c in result] == [102, 402, 230, 404, 0]
        assert result[2].parameters == [10]

    def test_cancel_branch_body_survives(self):
        commands = rows_to_commands(
            [
                (102, 0, [["A"], -2, 0, 2, 0]),
                (402, 0, [0, "A"]),
                (0, 1, []),
                (403, 0, [6, None]),
                (230, 1, [99]),
                (404, 0, []),
                TERMINAL,
            ]
        )
        result = build_updated(commands, 0, [["B"], -2, 0, 2, 0])
        assert [c.code for c in result] == [102, 402, 0, 403, 230, 404, 0]
        assert result[4].parameters == [99]

    def test_inner_choice_markers_stay_with_inner_block(self):
        commands = rows_to_commands(
            [
                (102, 0, [["A"], 0, 0, 2, 0]),
                (402, 0, [0, "A"]),
                (102, 0, [["X"], 0, 0, 2, 0]),
                (402, 0, [0, "X"]),
                (0, 1, []),
                (404, 0, []),
                (404, 0, []),
                TERMINAL,
            ]
        )
        result = build_updated(commands, 0, [["B"], 0, 0, 2, 0])
        assert [c.code for c in result] == [102, 402, 102, 402, 0, 404, 404, 0]
        assert result[1].parameters == [0, "B"]
        assert result[3].parameters == [0, "X"]


class TestUpdateContinuation:
    def test_replaces_the_run(self):
        commands = rows_to_commands(
            [
                (101, 1, ["", 0, 0, 2]),
                (401, 1, ["a"]),
                (401, 1, ["b"]),
                (230, 1, [1]),
                TERMINAL,
            ]
        )
        result = build_updated(
            commands, 0, ["Actor1", 0, 0, 2], continuation_lines(101, ["only"])
        )
        assert shape(result) == [(101, 1), (401, 1), (230, 1), (0, 0)]
        assert result[1].parameters == ["only"]
        assert result[0].parameters == ["Actor1", 0, 0, 2]

    def test_without_extra_keeps_lines(self):
        rows = [(101, 0, ["", 0, 0, 2]), (401, 0, ["a"]), TERMINAL]
        commands = rows_to_commands(rows)
        result = build_updated(commands, 0, ["Face", 1, 0, 2])
        assert [c.code for c in result] == [101, 401, 0]


class TestEditorInsertUpdate:
    def test_insert_above_selection(self):
        editor = make_editor([(230, 0, [1]), TERMINAL])
        editor.click(0)
        assert editor.insert_command(111, [0, 1, 0]) == 0
        assert [c.code for c in editor.commands] == [111, 0, 412, 230, 0]
        assert editor.selected == {0}

    def test_insert_without_selection_goes_above_terminal(self):
        editor = make_editor([(230, 0, [1]), TERMINAL])
        assert editor.insert_command(112) == 1
        assert [c.code for c in editor.commands] == [230, 112, 0, 413, 0]

    def test_insert_shifts_folds(self):
        editor = make_editor([(111, 0, [0, 1, 0]), (0, 1, []), (412, 0, []), TERMINAL])
        editor.toggle_fold(0)
        editor.click(0)
        editor.insert_command(230, [5])
        assert editor.folded == {1}

    def test_update_removes_else(self):
        editor = make_editor(COND_ELSE)
        assert editor.update_command(0, [0, 2, 0], [])
        assert [c.code for c in editor.commands] == [111, 0, 412, 0]
        editor.undo()
        assert len(editor.commands) == 6

    def test_update_terminal_refused(self):
        editor = make_editor([TERMINAL])
        assert not editor.update_command(0, [1])
        assert editor.status_msg == "nothing to update"

    def test_update_disabled_keeps_wrapper(self):
        editor = make_editor([(230, 0, [1]), TERMINAL])
        editor.click(0)
        editor.disable_selected()
        editor.update_command(0, [30])
        assert editor.commands[0].is_disabled
        assert editor.commands[0].restore() == Command(230, 0, [30])

    def test_update_keeps_later_fold(self):
        editor = make_editor(
            [
                (111, 0, [0, 1, 0]),
                (0, 1, []),
                (412, 0, []),
                (112, 0, []),
                (0, 1, []),
                (413, 0, []),
                TERMINAL,
            ]
        )
        editor.toggle_fold(3)
        editor.update_command(0, [0, 1, 0], branch_extras([411]))
        assert editor.folded == {5}
