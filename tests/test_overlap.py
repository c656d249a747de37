"""Tests for the half-open interval overlap filter."""

from datetime import time

import pytest

from piste_booking.scheduling.overlap import (
    candidate_end_minutes,
    conflicting_ranges,
    filter_admissible,
    is_admissible,
    overlaps,
)
from piste_booking.schemas.booking_schema import TimeRange


def tr(start: str, end: str) -> TimeRange:
    sh, sm = map(int, start.split(":"))
    eh, em = map(int, end.split(":"))
    return TimeRange(start=time(sh, sm), end=time(eh, em))


class TestOverlap:
    def test_candidate_inside_existing(self):
        assert overlaps(time(9, 30), 60, tr("09:00", "10:00"))

    def test_candidate_covers_existing(self):
        assert overlaps(time(8, 0), 180, tr("09:00", "10:00"))

    def test_candidate_ending_at_existing_start(self):
        assert not overlaps(time(8, 0), 60, tr("09:00", "10:00"))

    def test_candidate_starting_at_existing_end(self):
        assert not overlaps(time(10, 0), 60, tr("09:00", "10:00"))

    @pytest.mark.parametrize("duration", [1, 20, 60, 240])
    def test_touching_boundary_is_admissible_for_any_duration(self, duration):
        assert is_admissible(time(10, 0), duration, [tr("09:00", "10:00")])

    def test_one_minute_overlap(self):
        assert overlaps(time(9, 59), 20, tr("09:00", "10:00"))

    def test_zero_duration_rejected(self):
        with pytest.raises(ValueError):
            candidate_end_minutes(time(9, 0), 0)

    def test_end_may_pass_midnight(self):
        assert candidate_end_minutes(time(23, 30), 60) == 24 * 60 + 30


class TestFilter:
    def test_sixty_minute_menu_around_existing_booking(self):
        existing = [tr("09:00", "10:00")]
        assert not is_admissible(time(9, 30), 60, existing)
        assert is_admissible(time(10, 0), 60, existing)

    def test_filter_preserves_order(self):
        candidates = [time(8, 0), time(8, 20), time(8, 40), time(9, 0), time(10, 0)]
        result = filter_admissible(candidates, 30, [tr("09:00", "10:00")])
        assert result == [time(8, 0), time(8, 20), time(10, 0)]

    def test_no_existing_keeps_everything(self):
        candidates = [time(9, 0), time(9, 20)]
        assert filter_admissible(candidates, 20, []) == candidates

    def test_filter_accepts_generator(self):
        ranges = (r for r in [tr("09:00", "09:20")])
        assert filter_admissible([time(9, 0), time(9, 20)], 20, ranges) == [time(9, 20)]

    def test_conflicting_ranges_lists_every_clash(self):
        existing = [tr("09:00", "09:20"), tr("09:40", "10:00"), tr("11:00", "11:20")]
        clashes = conflicting_ranges(time(9, 0), 60, existing)
        assert clashes == existing[:2]
