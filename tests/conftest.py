"""
Pytest fixtures for sleep engine tests.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sleeptrain.types import NapConfig, ScheduleTransition, ScheduleType, SleepSchedule


@pytest.fixture
def two_nap_schedule() -> SleepSchedule:
    """
    Typical two-nap schedule.

    Wake windows 120-150 / 150-210 / 210-270 minutes
    Nap 1: 08:30-09:00 start, 120 min max, end by 11:00
    Nap 2: 12:00-13:00 start, 120 min max (150 after a short nap 1), end by 15:00
    Bedtime 17:30-19:30, goal 19:00-19:30, day sleep cap 210 min
    """
    return SleepSchedule(
        type=ScheduleType.TWO_NAP,
        naps=[
            NapConfig(
                wake_window_min=120,
                wake_window_max=150,
                earliest="08:30",
                latest_start="09:00",
                max_duration=120,
                end_by="11:00",
            ),
            NapConfig(
                wake_window_min=150,
                wake_window_max=210,
                earliest="12:00",
                latest_start="13:00",
                max_duration=120,
                end_by="15:00",
            ),
        ],
        nap2_exception_duration=150,
        bedtime_wake_window_min=210,
        bedtime_wake_window_max=270,
        bedtime_earliest="17:30",
        bedtime_latest="19:30",
        bedtime_goal_start="19:00",
        bedtime_goal_end="19:30",
        wake_time_earliest="06:00",
        wake_time_latest="07:30",
        day_sleep_cap=210,
    )


@pytest.fixture
def one_nap_schedule() -> SleepSchedule:
    """
    Single-nap schedule.

    Wake windows 300-330 before the nap, 240-300 before bedtime
    Nap: 12:00-13:00 start, 150 min max
    Bedtime 18:45-19:30, goal 19:00-19:30, day sleep cap 150 min
    """
    return SleepSchedule(
        type=ScheduleType.ONE_NAP,
        naps=[
            NapConfig(
                wake_window_min=300,
                wake_window_max=330,
                earliest="12:00",
                latest_start="13:00",
                max_duration=150,
                end_by="15:00",
            )
        ],
        bedtime_wake_window_min=240,
        bedtime_wake_window_max=300,
        bedtime_earliest="18:45",
        bedtime_latest="19:30",
        bedtime_goal_start="19:00",
        bedtime_goal_end="19:30",
        wake_time_earliest="06:30",
        wake_time_latest="08:00",
        day_sleep_cap=150,
    )


@pytest.fixture
def active_transition() -> ScheduleTransition:
    """Two-to-one transition started Jan 1, 2024, nap currently at 11:45."""
    return ScheduleTransition(
        id="transition-1",
        child_id="child-1",
        from_type=ScheduleType.TWO_NAP,
        to_type=ScheduleType.ONE_NAP,
        started_at=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        current_week=3,
        current_nap_time="11:45",
    )


@pytest.fixture
def wake_time() -> datetime:
    """07:00 EST on Jan 15, 2024."""
    return datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
