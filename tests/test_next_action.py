"""
Tests for next-action advice.

Uses the two-nap day from a 07:00 wake:
nap 1 at 09:00, nap 2 at 13:30, bedtime 19:00-19:30 (target 19:15).
"""

from datetime import timedelta

import pytest

from helpers import TZ, at
from sleeptrain.errors import ValidationError
from sleeptrain.scheduling.day_schedule import calculate_day_schedule
from sleeptrain.scheduling.next_action import calculate_next_action
from sleeptrain.types import ActionType


@pytest.fixture
def day(two_nap_schedule, wake_time):
    return calculate_day_schedule(wake_time, two_nap_schedule, TZ)


class TestAsleep:
    def test_sleeping_child_waits(self, day):
        action = calculate_next_action(at("09:30"), day, 0, True, TZ)

        assert action.action == ActionType.WAIT
        assert action.description == "Child is currently sleeping"
        assert action.notes == ["Monitor for wake signs"]

    def test_past_wake_deadline(self, day):
        action = calculate_next_action(
            at("07:40"), day, 0, True, TZ, must_wake_by=at("07:30")
        )

        assert action.action == ActionType.WAKE
        assert "Must wake by 07:30" in action.notes
        assert "10 minutes past the wake deadline" in action.notes

    def test_before_wake_deadline(self, day):
        action = calculate_next_action(
            at("07:10"), day, 0, True, TZ, must_wake_by=at("07:30")
        )
        assert action.action == ActionType.WAIT

    def test_deadline_ignored_when_awake(self, day):
        action = calculate_next_action(
            at("07:40"), day, 0, False, TZ, must_wake_by=at("07:30")
        )
        assert action.action == ActionType.WAIT
        assert action.nap_number == 1


class TestNaps:
    def test_before_window(self, day):
        action = calculate_next_action(at("08:00"), day, 0, False, TZ)

        assert action.action == ActionType.WAIT
        assert action.nap_number == 1
        assert action.minutes_until_earliest == 60
        assert action.description == "Nap 1 in 60 minutes"
        assert action.notes == ["Target put down: 09:00"]
        assert action.time_window == day.naps[0].put_down_window

    def test_partial_minute_rounds_up(self, day):
        action = calculate_next_action(at("08:59") + timedelta(seconds=30), day, 0, False, TZ)

        assert action.action == ActionType.WAIT
        assert action.minutes_until_earliest == 1

    def test_inside_window(self, day):
        action = calculate_next_action(at("09:00"), day, 0, False, TZ)

        assert action.action == ActionType.NAP
        assert action.nap_number == 1
        assert action.description == "Time for nap 1"
        assert action.minutes_until_earliest == 0

    def test_after_window_still_nap(self, day):
        action = calculate_next_action(at("09:10"), day, 0, False, TZ)

        assert action.action == ActionType.NAP
        assert any("Window closed at 09:00" in note for note in action.notes)

    def test_second_nap(self, day):
        action = calculate_next_action(at("12:00"), day, 1, False, TZ)

        assert action.action == ActionType.WAIT
        assert action.nap_number == 2
        assert action.minutes_until_earliest == 90
        assert action.description == "Nap 2 in 90 minutes"

    def test_window_notes_carried(self, day):
        action = calculate_next_action(at("13:30"), day, 1, False, TZ)

        assert action.action == ActionType.NAP
        assert "Wake window extended - nap timing compressed" in action.notes


class TestBedtime:
    def test_before_bedtime(self, day):
        action = calculate_next_action(at("18:00"), day, 2, False, TZ)

        assert action.action == ActionType.WAIT
        assert action.nap_number is None
        assert action.minutes_until_earliest == 60
        assert action.description == "Bedtime in 60 minutes"
        assert action.notes == ["Target bedtime: 19:15"]

    def test_bedtime_window(self, day):
        action = calculate_next_action(at("19:10"), day, 2, False, TZ)

        assert action.action == ActionType.BEDTIME
        assert action.description == "Time for bedtime"

    def test_more_naps_than_planned(self, day):
        action = calculate_next_action(at("19:10"), day, 3, False, TZ)
        assert action.action == ActionType.BEDTIME


def test_rejects_negative_nap_count(day):
    with pytest.raises(ValidationError):
        calculate_next_action(at("09:00"), day, -1, False, TZ)
