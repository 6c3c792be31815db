"""
Tests for nap transition progress, push readiness and the crib 90 rule.
"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
import time_machine

from helpers import at, make_session
from sleeptrain.errors import NotFound, ValidationError
from sleeptrain.scheduling.transition import (
    DEFAULT_TRANSITION_CONFIG,
    analyze_nap_push_readiness,
    check_crib_90_compliance,
    default_transition_schedule,
    get_transition_progress,
    progress_transition,
    start_transition,
)
from sleeptrain.types import (
    ScheduleTransition,
    ScheduleType,
    SessionState,
    SessionType,
    SleepSession,
)

STARTED = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def transition(nap_time: str = "12:00", **changes) -> ScheduleTransition:
    base = ScheduleTransition(
        id="transition-1",
        from_type=ScheduleType.TWO_NAP,
        to_type=ScheduleType.ONE_NAP,
        started_at=STARTED,
        current_nap_time=nap_time,
    )
    return replace(base, **changes)


def completed_nap(put_down: datetime, sleep_minutes: int) -> SleepSession:
    return SleepSession(
        session_type=SessionType.NAP,
        state=SessionState.COMPLETED,
        put_down_at=put_down,
        asleep_at=put_down + timedelta(minutes=10),
        woke_up_at=put_down + timedelta(minutes=10 + sleep_minutes),
        out_of_crib_at=put_down + timedelta(minutes=15 + sleep_minutes),
        sleep_minutes=sleep_minutes,
    )


def recent_naps(now: datetime, sleep_minutes: list[int]) -> list[SleepSession]:
    return [
        completed_nap(now - timedelta(days=i + 1), minutes)
        for i, minutes in enumerate(sleep_minutes)
    ]


class TestProgress:
    @pytest.mark.parametrize(
        "days, week",
        [(0, 1), (3, 1), (7, 1), (8, 2), (14, 2), (15, 3), (29, 5)],
    )
    def test_current_week(self, days, week):
        progress = get_transition_progress(transition(), now=STARTED + timedelta(days=days))

        assert progress.current_week == week
        assert progress.weeks_completed == week - 1

    def test_early_weeks(self):
        progress = get_transition_progress(
            transition("11:30"), now=STARTED + timedelta(days=10)
        )

        assert progress.phase == "week1_2"
        assert progress.nap_earliest == "11:30"
        assert progress.crib_rule_minutes == 90
        assert progress.recommendations == [
            "Keep nap no earlier than 11:30am",
            "Enforce the crib 90 rule - minimum 90 minutes in crib",
            "Expect some adjustment difficulties this week",
        ]
        assert progress.next_milestone == "Complete first 2 weeks of transition"
        assert progress.next_milestone_date == STARTED + timedelta(days=14)

    def test_pushing_phase(self):
        now = STARTED + timedelta(days=20)
        progress = get_transition_progress(transition("12:00"), now=now)

        assert progress.phase == "week2_plus"
        assert progress.percent_complete == 50
        assert progress.nap_earliest == "12:00"
        assert progress.next_milestone == "Push nap time to 12:15"
        assert progress.next_milestone_date == now + timedelta(days=3)
        assert "Can push nap later every 3-7 days" in progress.recommendations

    def test_final_phase(self):
        progress = get_transition_progress(
            transition("12:30"), now=STARTED + timedelta(days=25)
        )

        assert progress.phase == "final"
        assert progress.percent_complete == 100
        assert progress.next_milestone == "Complete transition"
        assert progress.next_milestone_date is None

    def test_goal_time_in_first_weeks_is_still_early_phase(self):
        progress = get_transition_progress(transition("12:30"), now=STARTED + timedelta(days=3))
        assert progress.phase == "week1_2"

    @pytest.mark.parametrize(
        "nap_time, percent",
        [("11:00", 0), ("11:30", 0), ("11:45", 25), ("12:10", 67), ("13:00", 100)],
    )
    def test_percent_complete_clamped(self, nap_time, percent):
        progress = get_transition_progress(
            transition(nap_time), now=STARTED + timedelta(days=20)
        )
        assert progress.percent_complete == percent

    def test_expected_weeks(self):
        progress = get_transition_progress(transition(), now=STARTED)
        assert (progress.expected_weeks_min, progress.expected_weeks_max) == (4, 6)

    def test_no_active_transition(self):
        assert get_transition_progress(None, now=STARTED) is None
        done = transition(completed_at=STARTED + timedelta(days=30))
        assert get_transition_progress(done, now=STARTED + timedelta(days=31)) is None

    @time_machine.travel("2024-01-21T12:00:00Z", tick=False)
    def test_defaults_to_wall_clock(self):
        progress = get_transition_progress(transition())
        assert progress.days_in_transition == 20
        assert progress.current_week == 3


class TestPushReadiness:
    NOW = STARTED + timedelta(days=20)

    def ready_transition(self, nap_time: str = "12:00") -> ScheduleTransition:
        return transition(nap_time, updated_at=self.NOW - timedelta(days=5))

    def test_ready(self):
        naps = recent_naps(self.NOW, [95, 100, 90, 60, 70])

        result = analyze_nap_push_readiness(self.ready_transition(), naps, now=self.NOW)

        assert result.should_push is True
        assert result.suggested_nap_time == "12:15"
        assert result.reason == "Baby showing good signs of readiness"
        assert result.days_since_last_push == 5
        assert "Good nap lengths (90+ min) consistently" in result.readiness_indicators
        assert not any(i.startswith("Average nap length") for i in result.readiness_indicators)
        assert "5 days since last schedule change" in result.readiness_indicators

    def test_suggestion_capped_at_goal(self):
        naps = recent_naps(self.NOW, [95, 100, 90, 90, 90])

        result = analyze_nap_push_readiness(self.ready_transition("12:20"), naps, now=self.NOW)

        assert result.should_push is True
        assert result.suggested_nap_time == "12:30"

    def test_average_indicator_needs_good_average(self):
        naps = recent_naps(self.NOW, [95, 100, 90, 90, 90])

        result = analyze_nap_push_readiness(self.ready_transition(), naps, now=self.NOW)

        assert "Average nap length: 93 minutes" in result.readiness_indicators

    def test_never_ready_in_first_two_weeks(self):
        now = STARTED + timedelta(days=10)
        naps = recent_naps(now, [120, 120, 120, 120, 120])

        result = analyze_nap_push_readiness(transition(), naps, now=now)

        assert result.should_push is False
        assert result.reason == "Still in first 2 weeks of transition - maintain current schedule"
        assert result.suggested_nap_time == "12:00"

    def test_not_ready_at_goal(self):
        naps = recent_naps(self.NOW, [120] * 5)

        result = analyze_nap_push_readiness(self.ready_transition("12:30"), naps, now=self.NOW)

        assert result.should_push is False
        assert result.reason == "Nap time has reached goal - consider completing transition"

    def test_push_interval(self):
        naps = recent_naps(self.NOW, [120] * 5)
        recent = transition("12:00", updated_at=self.NOW - timedelta(days=2))

        result = analyze_nap_push_readiness(recent, naps, now=self.NOW)

        assert result.should_push is False
        assert result.reason == "Wait at least 3 days between pushes (2 days so far)"

    def test_too_few_good_naps(self):
        naps = recent_naps(self.NOW, [95, 100, 60, 60, 60])

        result = analyze_nap_push_readiness(self.ready_transition(), naps, now=self.NOW)

        assert result.should_push is False
        assert result.reason == "Wait for more consistent good naps before pushing later"

    def test_too_few_naps(self):
        naps = recent_naps(self.NOW, [95, 100, 120, 120])

        result = analyze_nap_push_readiness(self.ready_transition(), naps, now=self.NOW)

        assert result.should_push is False

    def test_old_and_non_nap_sessions_ignored(self):
        naps = recent_naps(self.NOW, [95, 100, 90, 60])
        old = completed_nap(self.NOW - timedelta(days=9), 120)
        night = replace(
            completed_nap(self.NOW - timedelta(days=1), 600),
            session_type=SessionType.NIGHT_SLEEP,
        )
        in_progress = replace(
            completed_nap(self.NOW - timedelta(hours=2), 120), state=SessionState.ASLEEP
        )

        result = analyze_nap_push_readiness(
            self.ready_transition(), naps + [old, night, in_progress], now=self.NOW
        )

        assert result.should_push is False

    def test_no_active_transition(self):
        assert analyze_nap_push_readiness(None, [], now=self.NOW) is None


class TestCrib90:
    def test_not_met(self):
        session = make_session("13:00", "13:20", "14:20", "14:25")

        result = check_crib_90_compliance(session)

        assert result.minutes_in_crib == 85
        assert result.compliant is False
        assert result.remaining_minutes == 5
        assert result.recommendation == "Keep in crib for 5 more minutes to meet crib 90 rule"

    def test_met(self):
        session = make_session("13:00", "13:20", "14:25", "14:30")

        result = check_crib_90_compliance(session)

        assert result.minutes_in_crib == 90
        assert result.compliant is True
        assert result.remaining_minutes == 0
        assert result.recommendation == "Crib 90 rule met!"

    def test_in_progress_uses_now(self):
        session = make_session("13:00", "13:20")

        result = check_crib_90_compliance(session, now=at("14:00"))

        assert result.minutes_in_crib == 60
        assert result.remaining_minutes == 30

    def test_no_put_down(self):
        session = SleepSession(session_type=SessionType.NAP)

        result = check_crib_90_compliance(session, now=at("14:00"))

        assert result.minutes_in_crib == 0
        assert result.remaining_minutes == 90


class TestLifecycle:
    def test_start(self):
        started = start_transition(
            ScheduleType.TWO_NAP, ScheduleType.ONE_NAP, "11:30", now=STARTED
        )

        assert started.current_week == 1
        assert started.target_weeks == 6
        assert started.started_at == STARTED
        assert started.is_active

    def test_start_rejects_open_transition(self):
        with pytest.raises(ValidationError):
            start_transition(
                ScheduleType.TWO_NAP,
                ScheduleType.ONE_NAP,
                "11:30",
                open_transition=transition(),
                now=STARTED,
            )

    def test_start_after_completed_transition(self):
        done = transition(completed_at=STARTED)
        started = start_transition(
            ScheduleType.THREE_NAP, ScheduleType.TWO_NAP, "10:00", open_transition=done, now=STARTED
        )
        assert started.from_type == ScheduleType.THREE_NAP

    @pytest.mark.parametrize(
        "from_type, to_type, nap_time",
        [
            (ScheduleType.TWO_NAP, ScheduleType.TWO_NAP, "11:30"),
            (ScheduleType.TWO_NAP, ScheduleType.TRANSITION, "11:30"),
            (ScheduleType.TWO_NAP, ScheduleType.ONE_NAP, "11h30"),
        ],
    )
    def test_start_rejects_bad_input(self, from_type, to_type, nap_time):
        with pytest.raises(ValidationError):
            start_transition(from_type, to_type, nap_time, now=STARTED)

    def test_push_nap_time(self):
        later = STARTED + timedelta(days=18)

        pushed = progress_transition(transition(), new_nap_time="12:15", now=later)

        assert pushed.current_nap_time == "12:15"
        assert pushed.updated_at == later
        assert pushed.is_active

    def test_complete(self):
        later = STARTED + timedelta(days=35)

        done = progress_transition(transition("12:30"), complete=True, now=later)

        assert done.completed_at == later
        assert not done.is_active

    def test_progress_errors(self):
        with pytest.raises(NotFound):
            progress_transition(None, new_nap_time="12:15", now=STARTED)
        with pytest.raises(ValidationError):
            progress_transition(transition(completed_at=STARTED), notes="late", now=STARTED)
        with pytest.raises(ValidationError):
            progress_transition(transition(), new_nap_time="25:00", now=STARTED)
        with pytest.raises(ValidationError):
            progress_transition(transition(), current_week=0, now=STARTED)


def test_default_transition_schedule():
    schedule = default_transition_schedule()

    assert schedule.type == ScheduleType.TRANSITION
    assert schedule.nap_count == 1
    nap = schedule.naps[0]
    assert (nap.wake_window_min, nap.wake_window_max) == (300, 330)
    assert (nap.earliest, nap.latest_start, nap.end_by) == ("11:30", "13:00", "15:00")
    assert nap.max_duration == DEFAULT_TRANSITION_CONFIG.goal.max_duration
    assert (schedule.bedtime_wake_window_min, schedule.bedtime_wake_window_max) == (240, 300)
    assert schedule.wake_time_earliest == "06:30"
    assert schedule.wake_time_latest == "08:00"
    assert schedule.day_sleep_cap == 150
