"""Tests for list history reconstruction."""

from datetime import datetime, UTC

import pytest

from src.demonlist.errors import InvalidRequestError
from src.demonlist.history import (
    describe_add,
    describe_move,
    describe_remove,
    parse_history_date,
    reconstruct_list,
)
from src.demonlist.models import ChangeType, Level, ListChange, ListType


def make_level(level_id: str, placement: int) -> Level:
    return Level(
        id=level_id,
        name=level_id.upper(),
        creator="c",
        verifier="v",
        video_id="vid",
        list_type=ListType.MAIN,
        placement=placement,
    )


def change(change_type: ChangeType, level_id: str, description: str) -> ListChange:
    return ListChange(
        id=f"{change_type.value}-{level_id}",
        change_type=change_type,
        description=description,
        level_id=level_id,
        list_type=ListType.MAIN,
        created_at=datetime(2024, 5, 1, tzinfo=UTC),
    )


def names(levels: list[Level]) -> list[tuple[str, int]]:
    return [(level.id, level.placement) for level in levels]


class TestParseHistoryDate:
    """Tests for date parameter parsing."""

    def test_end_of_day_utc(self) -> None:
        cutoff = parse_history_date("2024-03-05")

        assert cutoff.tzinfo is UTC
        assert (cutoff.year, cutoff.month, cutoff.day) == (2024, 3, 5)
        assert (cutoff.hour, cutoff.minute, cutoff.second) == (23, 59, 59)

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_date(self, value: str | None) -> None:
        with pytest.raises(InvalidRequestError, match="required"):
            parse_history_date(value)

    @pytest.mark.parametrize("value", ["2024/03/05", "05-03-2024", "2024-3-5", "yesterday"])
    def test_bad_format(self, value: str) -> None:
        with pytest.raises(InvalidRequestError, match="YYYY-MM-DD"):
            parse_history_date(value)

    def test_impossible_date(self) -> None:
        with pytest.raises(InvalidRequestError, match="Invalid date value"):
            parse_history_date("2024-02-30")


class TestReconstructList:
    """Tests for undoing audit entries."""

    def test_no_changes_returns_current_order(self) -> None:
        current = [make_level("a", 1), make_level("b", 2)]

        result = reconstruct_list(current, [])

        assert names(result) == [("a", 1), ("b", 2)]

    def test_does_not_mutate_current_snapshot(self) -> None:
        current = [make_level("a", 1), make_level("b", 2)]

        reconstruct_list(current, [change(ChangeType.ADD, "a", describe_add("A", 1))])

        assert names(current) == [("a", 1), ("b", 2)]

    def test_undo_add(self) -> None:
        current = [make_level("a", 1), make_level("new", 2), make_level("b", 3)]

        result = reconstruct_list(
            current, [change(ChangeType.ADD, "new", describe_add("NEW", 2))]
        )

        assert names(result) == [("a", 1), ("b", 2)]

    def test_undo_add_of_level_no_longer_present(self) -> None:
        current = [make_level("a", 1), make_level("b", 2)]

        result = reconstruct_list(
            current, [change(ChangeType.ADD, "gone", describe_add("GONE", 1))]
        )

        assert names(result) == [("a", 1), ("b", 2)]

    def test_undo_remove_reinserts_stub(self) -> None:
        current = [make_level("a", 1), make_level("c", 2)]

        result = reconstruct_list(
            current,
            [
                change(
                    ChangeType.REMOVE,
                    "b",
                    describe_remove("Bloodbath", ListType.MAIN, 2),
                )
            ],
        )

        assert names(result) == [("a", 1), ("b", 2), ("c", 3)]
        stub = result[1]
        assert stub.name == "Bloodbath"
        assert stub.creator == "N/A"
        assert stub.records == []

    def test_undo_move_up(self) -> None:
        # b was moved from #3 to #1
        current = [make_level("b", 1), make_level("a", 2), make_level("c", 3)]

        result = reconstruct_list(
            current, [change(ChangeType.MOVE, "b", describe_move("B", 3, 1))]
        )

        assert names(result) == [("a", 1), ("c", 2), ("b", 3)]

    def test_undo_move_down(self) -> None:
        # a was moved from #1 to #3
        current = [make_level("b", 1), make_level("c", 2), make_level("a", 3)]

        result = reconstruct_list(
            current, [change(ChangeType.MOVE, "a", describe_move("A", 1, 3))]
        )

        assert names(result) == [("a", 1), ("b", 2), ("c", 3)]

    def test_undo_sequence_newest_first(self) -> None:
        # start: a b c; add d at 2 -> a d b c; remove a -> d b c
        current = [make_level("d", 1), make_level("b", 2), make_level("c", 3)]
        changes = [
            change(ChangeType.REMOVE, "a", describe_remove("A", ListType.MAIN, 1)),
            change(ChangeType.ADD, "d", describe_add("D", 2)),
        ]

        result = reconstruct_list(current, changes)

        assert names(result) == [("a", 1), ("b", 2), ("c", 3)]

    def test_unparseable_description_is_skipped(self) -> None:
        current = [make_level("a", 1)]

        result = reconstruct_list(
            current, [change(ChangeType.REMOVE, "x", "something odd happened")]
        )

        assert names(result) == [("a", 1)]

    def test_result_is_always_contiguous(self) -> None:
        current = [make_level("a", 1), make_level("b", 2)]
        changes = [
            change(ChangeType.MOVE, "a", describe_move("A", 9, 1)),
            change(ChangeType.REMOVE, "z", describe_remove("Z", ListType.MAIN, 7)),
        ]

        result = reconstruct_list(current, changes)

        assert [level.placement for level in result] == list(
            range(1, len(result) + 1)
        )
