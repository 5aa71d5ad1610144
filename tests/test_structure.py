"""Tests for block classification and group range resolution."""

from conftest import rows_to_commands

from evedit._structure import (
    CHILD_TO_PARENT,
    expand_indices,
    group_ranges,
    is_draggable,
    is_terminal_index,
    is_valid_drop_target,
    move_group_range,
    resolve_group_range,
)
from evedit.model import Command, DisabledCommand

COND = rows_to_commands([(111, 0, [0, 1, 0]), (0, 1, []), (412, 0, []), (0, 0, [])])

CHOICES = rows_to_commands(
    [
        (102, 0, [["A", "B"], 1, 0, 2, 0]),
        (402, 0, [0, "A"]),
        (230, 1, [60]),
        (0, 1, []),
        (402, 0, [1, "B"]),
        (0, 1, []),
        (404, 0, []),
        (0, 0, []),
    ]
)

TEXT = rows_to_commands(
    [(101, 0, ["", 0, 0, 2]), (401, 0, ["one"]), (401, 0, ["two"]), (0, 0, [])]
)

DISABLED_IN_COMMENT = [
    Command(108, 0, ["a"]),
    DisabledCommand.wrap(Command(408, 0, ["b"]), "blk"),
    Command(408, 0, ["c"]),
    Command(0, 0, []),
]


class TestResolveGroupRange:
    def test_block_header(self):
        assert resolve_group_range(COND, 0) == (0, 2)

    def test_end_marker_climbs_to_header(self):
        assert resolve_group_range(COND, 2) == (0, 2)

    def test_body_row_is_its_own_group(self):
        assert resolve_group_range(COND, 1) == (1, 1)

    def test_terminal(self):
        assert resolve_group_range(COND, 3) == (3, 3)

    def test_choice_markers_share_the_block(self):
        for i in (0, 1, 4, 6):
            assert resolve_group_range(CHOICES, i) == (0, 6)

    def test_marker_rows_resolve_consistently(self):
        for seq in (COND, CHOICES, TEXT):
            for i in range(len(seq)):
                start, end = resolve_group_range(seq, i)
                base = seq[start].indent
                for j in range(start, end + 1):
                    if seq[j].indent == base and seq[j].code in CHILD_TO_PARENT:
                        if seq[j].code in (401, 405, 408, 505, 605, 655):
                            continue
                        assert resolve_group_range(seq, j) == (start, end)

    def test_same_code_nested_at_same_indent(self):
        seq = rows_to_commands(
            [
                (111, 0, [0, 1, 0]),
                (111, 0, [0, 2, 0]),
                (0, 1, []),
                (412, 0, []),
                (412, 0, []),
                (0, 0, []),
            ]
        )
        assert resolve_group_range(seq, 0) == (0, 4)
        assert resolve_group_range(seq, 1) == (1, 3)

    def test_missing_end_marker_falls_back_to_single_row(self):
        seq = rows_to_commands([(111, 0, [0, 1, 0]), (0, 1, []), (0, 0, [])])
        assert resolve_group_range(seq, 0) == (0, 0)

    def test_orphan_child_falls_back_to_single_row(self):
        seq = rows_to_commands([(411, 0, []), (0, 0, [])])
        assert resolve_group_range(seq, 0) == (0, 0)

    def test_continuation_run(self):
        assert resolve_group_range(TEXT, 0) == (0, 2)

    def test_continuation_line_alone(self):
        assert resolve_group_range(TEXT, 2) == (2, 2)

    def test_out_of_range(self):
        assert resolve_group_range(COND, 10) == (10, 10)

    def test_disabled_row_stands_alone(self):
        assert resolve_group_range(DISABLED_IN_COMMENT, 1) == (1, 1)
        assert resolve_group_range(DISABLED_IN_COMMENT, 0) == (0, 0)
        assert resolve_group_range(DISABLED_IN_COMMENT, 2) == (2, 2)


class TestMoveGroupRange:
    def test_continuation_climbs_to_primary(self):
        assert move_group_range(TEXT, 2) == (0, 2)
        assert move_group_range(TEXT, 1) == (0, 2)

    def test_block_marker(self):
        assert move_group_range(COND, 2) == (0, 2)

    def test_disabled_row_is_not_a_primary(self):
        assert move_group_range(DISABLED_IN_COMMENT, 1) == (1, 1)
        assert move_group_range(DISABLED_IN_COMMENT, 2) == (2, 2)


class TestGroupRanges:
    def test_expands_and_merges(self):
        assert group_ranges(COND, {1, 0}) == [(0, 2)]

    def test_disjoint(self):
        assert group_ranges(COND, {1, 3}) == [(1, 1), (3, 3)]

    def test_empty(self):
        assert group_ranges(COND, set()) == []

    def test_child_selection_expands_to_whole_block(self):
        assert group_ranges(CHOICES, {4}) == [(0, 6)]

    def test_expand_indices_skips_terminal(self):
        assert expand_indices(COND, {0, 3}) == [0, 1, 2]
        assert expand_indices(COND, {3}) == []


class TestDragRules:
    def test_terminal_detection(self):
        assert is_terminal_index(COND, 3)
        assert not is_terminal_index(COND, 1)

    def test_drop_target_before_terminal_is_valid(self):
        assert is_valid_drop_target(COND, 3, 0, 2)
        assert is_valid_drop_target(COND, 0, 0, 2)

    def test_drop_target_after_terminal_is_invalid(self):
        assert not is_valid_drop_target(COND, 4, 0, 2)
        assert not is_valid_drop_target(COND, -1, 0, 2)

    def test_only_headers_are_draggable(self):
        assert is_draggable(COND, 0)
        assert not is_draggable(COND, 2)
        assert not is_draggable(COND, 3)
        assert not is_draggable(TEXT, 1)
        assert is_draggable(CHOICES, 2)
