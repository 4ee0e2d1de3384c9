from datetime import time

import pytest

from slotbook.core.exceptions import InvalidRangeException, ValidationException
from slotbook.domain.time_slot import TimeSlot, find_overlap, merge_slots, sort_slots


def slot(start: str, end: str) -> TimeSlot:
    return TimeSlot(time.fromisoformat(start), time.fromisoformat(end))


class TestConstruction:
    @pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("11:00", "10:00")])
    def test_start_must_be_before_end(self, start, end):
        with pytest.raises(InvalidRangeException) as exc_info:
            slot(start, end)

        assert exc_info.value.code == "INVALID_RANGE"
        assert isinstance(exc_info.value, ValidationException)

    def test_midnight_end_means_end_of_day(self):
        late = slot("23:00", "00:00")

        assert late.end_minutes == 24 * 60
        assert late.duration_minutes() == 60
        assert str(late) == "23:00-24:00"

    def test_starting_at_computes_end_from_duration(self):
        assert TimeSlot.starting_at(time(9, 30), 45) == slot("09:30", "10:15")

    def test_starting_at_may_end_exactly_at_midnight(self):
        assert TimeSlot.starting_at(time(23, 0), 60) == slot("23:00", "00:00")

    def test_starting_at_rejects_running_past_midnight(self):
        with pytest.raises(InvalidRangeException):
            TimeSlot.starting_at(time(23, 30), 60)

    def test_starting_at_rejects_non_positive_duration(self):
        with pytest.raises(InvalidRangeException):
            TimeSlot.starting_at(time(9, 0), 0)

    @pytest.mark.parametrize(
        "start,end",
        [
            (time(9, 0), time(9, 0, 30)),
            (time(9, 0, 15), time(10, 0)),
            (time(9, 0), time(10, 0, 0, 5)),
        ],
    )
    def test_times_must_be_whole_minutes(self, start, end):
        with pytest.raises(ValidationException) as exc_info:
            TimeSlot(start, end)

        assert exc_info.value.code == "TIME_NOT_WHOLE_MINUTE"

    def test_starting_at_rejects_seconds(self):
        with pytest.raises(ValidationException) as exc_info:
            TimeSlot.starting_at(time(10, 0, 30), 60)

        assert exc_info.value.code == "TIME_NOT_WHOLE_MINUTE"


class TestOverlap:
    def test_touching_slots_do_not_overlap(self):
        assert not slot("09:00", "10:00").overlaps(slot("10:00", "11:00"))
        assert not slot("10:00", "11:00").overlaps(slot("09:00", "10:00"))

    @pytest.mark.parametrize(
        "other",
        [("09:30", "10:30"), ("08:00", "09:01"), ("09:15", "09:45"), ("08:00", "12:00")],
    )
    def test_overlap_is_symmetric(self, other):
        base = slot("09:00", "10:00")
        candidate = slot(*other)

        assert base.overlaps(candidate)
        assert candidate.overlaps(base)

    def test_contains_includes_boundaries(self):
        outer = slot("09:00", "12:00")

        assert outer.contains(slot("09:00", "12:00"))
        assert outer.contains(slot("09:00", "10:00"))
        assert outer.contains(slot("11:00", "12:00"))
        assert not outer.contains(slot("11:30", "12:30"))

    def test_find_overlap_reports_first_clash(self):
        assert find_overlap([slot("09:00", "10:00"), slot("10:00", "11:00")]) is None
        clashing = [slot("13:00", "15:00"), slot("09:00", "10:00"), slot("14:00", "16:00")]
        assert find_overlap(clashing) == (
            slot("13:00", "15:00"),
            slot("14:00", "16:00"),
        )


class TestSubtractAndMerge:
    def test_subtract_from_middle_leaves_two_pieces(self):
        assert slot("09:00", "12:00").subtract(slot("10:00", "11:00")) == [
            slot("09:00", "10:00"),
            slot("11:00", "12:00"),
        ]

    def test_subtract_at_edges_leaves_one_piece(self):
        assert slot("09:00", "12:00").subtract(slot("09:00", "10:00")) == [slot("10:00", "12:00")]
        assert slot("09:00", "12:00").subtract(slot("11:00", "12:00")) == [slot("09:00", "11:00")]

    def test_subtract_whole_slot_leaves_nothing(self):
        assert slot("09:00", "10:00").subtract(slot("09:00", "10:00")) == []

    def test_subtract_disjoint_is_identity(self):
        assert slot("09:00", "10:00").subtract(slot("10:00", "11:00")) == [slot("09:00", "10:00")]

    def test_merge_joins_touching_and_overlapping(self):
        merged = merge_slots(
            [
                slot("11:00", "12:00"),
                slot("09:00", "10:00"),
                slot("10:00", "11:00"),
                slot("14:00", "15:00"),
            ]
        )

        assert merged == (slot("09:00", "12:00"), slot("14:00", "15:00"))

    def test_sort_orders_by_start_then_end(self):
        assert sort_slots([slot("10:00", "11:00"), slot("09:00", "10:00")]) == (
            slot("09:00", "10:00"),
            slot("10:00", "11:00"),
        )
