"""
Nap transition tracking (two naps down to one).

The transition runs in phases:
- Weeks 1-2: hold the single nap no earlier than 11:30 and keep the child
  in the crib at least 90 minutes ("crib 90" rule)
- Week 2+: push the nap 15 minutes later every 3-7 days once the child
  is handling it (consistently long naps)
- Goal: nap starting around 12:30, up to 150 minutes, ending by 15:00

Key principles:
- All rules are fixed constants in TransitionConfig; callers may pass a
  different config but nothing here mutates one
- Progress is derived from the start date, never stored
- Readiness is advisory; pushing the nap is the caregiver's decision
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from uuid import uuid4

from ..config import DEFAULT_SETTINGS, TrackerSettings
from ..errors import NotFound, ValidationError
from ..time_math import (
    Clock,
    duration_minutes,
    format_minutes,
    parse_time,
    parse_time_to_minutes,
    require_aware,
    round_half_up,
    utc_now,
)
from ..types import (
    NapConfig,
    ScheduleTransition,
    ScheduleType,
    SessionState,
    SessionType,
    SleepSchedule,
    SleepSession,
    TransitionPhase,
)

logger = logging.getLogger(__name__)

# Readiness: at least GOOD_NAPS_REQUIRED of the recent naps (and at least
# RECENT_NAPS_REQUIRED naps in total) must reach GOOD_NAP_MINUTES of sleep
GOOD_NAP_MINUTES = 90
GOOD_NAPS_REQUIRED = 3
RECENT_NAPS_REQUIRED = 5

# Phase boundary: weeks up to and including this one are "week1_2"
HOLD_WEEKS = 2

MAX_TRANSITION_WEEKS = 12


@dataclass(frozen=True)
class HoldRules:
    min_nap_earliest: str = "11:30"
    crib_rule_minutes: int = 90
    max_wake_window: int = 330


@dataclass(frozen=True)
class PushRules:
    min_nap_earliest: str = "12:00"
    push_interval_days_min: int = 3
    push_interval_days_max: int = 7
    push_amount_minutes: int = 15


@dataclass(frozen=True)
class GoalRules:
    nap_start: str = "12:30"
    max_duration: int = 150
    end_by: str = "15:00"
    bedtime_wake_window_min: int = 240
    bedtime_wake_window_max: int = 300


@dataclass(frozen=True)
class TransitionConfig:
    week1_2: HoldRules = field(default_factory=HoldRules)
    week2_plus: PushRules = field(default_factory=PushRules)
    goal: GoalRules = field(default_factory=GoalRules)
    temporary_max_wake_time: str = "08:00"  # Later wake allowed mid-transition
    expected_weeks_min: int = 4
    expected_weeks_max: int = 6


DEFAULT_TRANSITION_CONFIG = TransitionConfig()


@dataclass
class TransitionProgress:
    current_week: int
    phase: TransitionPhase
    percent_complete: int
    days_in_transition: int
    weeks_completed: int
    expected_weeks_min: int
    expected_weeks_max: int
    current_nap_time: str
    nap_earliest: str  # Earliest allowed nap start in this phase
    crib_rule_minutes: int  # Minimum minutes in crib per nap
    next_milestone: str
    next_milestone_date: datetime | None
    recommendations: list[str] = field(default_factory=list)


@dataclass
class NapPushRecommendation:
    should_push: bool
    current_nap_time: str
    suggested_nap_time: str
    reason: str
    days_since_last_push: int
    readiness_indicators: list[str] = field(default_factory=list)


@dataclass
class CribCompliance:
    compliant: bool
    minutes_in_crib: int
    required_minutes: int
    remaining_minutes: int
    recommendation: str


def _phase(week: int, nap_time: str, config: TransitionConfig) -> TransitionPhase:
    if week <= HOLD_WEEKS:
        return "week1_2"
    if parse_time_to_minutes(nap_time) >= parse_time_to_minutes(config.goal.nap_start):
        return "final"
    return "week2_plus"


def _percent_complete(nap_time: str, config: TransitionConfig) -> int:
    """How far the nap has moved from the week 1-2 floor toward the goal."""
    start = parse_time_to_minutes(config.week1_2.min_nap_earliest)
    goal = parse_time_to_minutes(config.goal.nap_start)
    if goal <= start:
        return 100
    progress = (parse_time_to_minutes(nap_time) - start) / (goal - start) * 100
    return min(100, max(0, round_half_up(progress)))


def _next_nap_time(current: str, config: TransitionConfig) -> str:
    pushed = parse_time_to_minutes(current) + config.week2_plus.push_amount_minutes
    return format_minutes(min(pushed, parse_time_to_minutes(config.goal.nap_start)))


def _live(transition: ScheduleTransition | None) -> ScheduleTransition | None:
    if transition is None or not transition.is_active:
        return None
    return transition


# =============================================================================
# Progress and readiness
# =============================================================================


def get_transition_progress(
    transition: ScheduleTransition | None,
    now: datetime | None = None,
    config: TransitionConfig = DEFAULT_TRANSITION_CONFIG,
    clock: Clock = utc_now,
) -> TransitionProgress | None:
    """
    Where an active transition stands today.

    The phase is "week1_2" through week 2, then "final" once the nap time
    has reached the goal start, otherwise "week2_plus".

    Returns:
        TransitionProgress, or None without an active transition
    """
    transition = _live(transition)
    if transition is None:
        return None
    now = require_aware(now, "now") if now is not None else clock()

    days = (now - transition.started_at).days
    week = max(1, math.ceil(days / 7))
    current = transition.current_nap_time
    phase = _phase(week, current, config)
    crib_rule = config.week1_2.crib_rule_minutes

    if phase == "week1_2":
        nap_earliest = config.week1_2.min_nap_earliest
        milestone = "Complete first 2 weeks of transition"
        milestone_date = transition.started_at + timedelta(days=HOLD_WEEKS * 7)
        recommendations = [
            f"Keep nap no earlier than {_am_label(nap_earliest)}",
            f"Enforce the crib {crib_rule} rule - minimum {crib_rule} minutes in crib",
            "Expect some adjustment difficulties this week",
        ]
    elif phase == "final":
        nap_earliest = config.goal.nap_start
        milestone = "Complete transition"
        milestone_date = None
        recommendations = [
            "Transition nearly complete!",
            "Maintain consistent nap timing",
            "Consider completing transition if baby is thriving",
        ]
    else:
        nap_earliest = config.week2_plus.min_nap_earliest
        milestone = f"Push nap time to {_next_nap_time(current, config)}"
        milestone_date = now + timedelta(days=config.week2_plus.push_interval_days_min)
        recommendations = [
            (
                f"Can push nap later every {config.week2_plus.push_interval_days_min}-"
                f"{config.week2_plus.push_interval_days_max} days"
            ),
            "Watch for signs baby is ready: waking happy, good nap length",
        ]

    return TransitionProgress(
        current_week=week,
        phase=phase,
        percent_complete=_percent_complete(current, config),
        days_in_transition=max(0, days),
        weeks_completed=week - 1,
        expected_weeks_min=config.expected_weeks_min,
        expected_weeks_max=config.expected_weeks_max,
        current_nap_time=current,
        nap_earliest=nap_earliest,
        crib_rule_minutes=crib_rule,
        next_milestone=milestone,
        next_milestone_date=milestone_date,
        recommendations=recommendations,
    )


def _am_label(time_str: str) -> str:
    t = parse_time(time_str)
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d}{'am' if t.hour < 12 else 'pm'}"


def analyze_nap_push_readiness(
    transition: ScheduleTransition | None,
    recent_sessions: list[SleepSession],
    now: datetime | None = None,
    config: TransitionConfig = DEFAULT_TRANSITION_CONFIG,
    settings: TrackerSettings | None = None,
    clock: Clock = utc_now,
) -> NapPushRecommendation | None:
    """
    Decide whether the nap can move later today.

    Ready only when all hold: past week 2, the nap is still before the goal
    time, at least 3 of the recent completed naps (and at least 5 naps in
    total) reached 90 minutes of sleep, and the minimum push interval has
    passed since the transition was last updated.

    Args:
        transition: The active transition
        recent_sessions: Sessions to inspect; filtered to completed naps
            in the lookback window
        now: Current instant, defaults to the clock

    Returns:
        NapPushRecommendation, or None without an active transition
    """
    transition = _live(transition)
    if transition is None:
        return None
    now = require_aware(now, "now") if now is not None else clock()
    settings = settings or DEFAULT_SETTINGS.tracker

    days = (now - transition.started_at).days
    week = max(1, math.ceil(days / 7))
    current = transition.current_nap_time
    suggested = _next_nap_time(current, config)

    cutoff = now - timedelta(days=settings.readiness_lookback_days)
    naps = [
        s
        for s in recent_sessions
        if s.session_type == SessionType.NAP
        and s.state == SessionState.COMPLETED
        and s.reference_time is not None
        and s.reference_time >= cutoff
    ]
    good_naps = [s for s in naps if (s.sleep_minutes or 0) >= GOOD_NAP_MINUTES]
    slept = [s.sleep_minutes for s in naps if s.sleep_minutes is not None]
    average = round_half_up(sum(slept) / len(slept)) if slept else 0

    last_change = transition.updated_at or transition.started_at
    days_since_push = (now - last_change).days

    indicators = []
    if len(good_naps) >= GOOD_NAPS_REQUIRED:
        indicators.append(f"Good nap lengths ({GOOD_NAP_MINUTES}+ min) consistently")
    if slept and average >= GOOD_NAP_MINUTES:
        indicators.append(f"Average nap length: {average} minutes")
    if days_since_push >= config.week2_plus.push_interval_days_min:
        indicators.append(f"{days_since_push} days since last schedule change")

    def result(should_push: bool, reason: str) -> NapPushRecommendation:
        return NapPushRecommendation(
            should_push=should_push,
            current_nap_time=current,
            suggested_nap_time=suggested if should_push else current,
            reason=reason,
            days_since_last_push=days_since_push,
            readiness_indicators=indicators,
        )

    if week <= HOLD_WEEKS:
        return result(False, "Still in first 2 weeks of transition - maintain current schedule")
    if parse_time_to_minutes(current) >= parse_time_to_minutes(config.goal.nap_start):
        return result(False, "Nap time has reached goal - consider completing transition")
    if days_since_push < config.week2_plus.push_interval_days_min:
        return result(
            False,
            f"Wait at least {config.week2_plus.push_interval_days_min} days between pushes "
            f"({days_since_push} days so far)",
        )
    if len(good_naps) < GOOD_NAPS_REQUIRED or len(naps) < RECENT_NAPS_REQUIRED:
        return result(False, "Wait for more consistent good naps before pushing later")

    logger.info("Transition %s ready to push nap to %s", transition.id, suggested)
    return result(True, "Baby showing good signs of readiness")


def check_crib_90_compliance(
    session: SleepSession,
    now: datetime | None = None,
    config: TransitionConfig = DEFAULT_TRANSITION_CONFIG,
    clock: Clock = utc_now,
) -> CribCompliance:
    """
    Check a nap against the minimum time-in-crib rule.

    A session still in progress is measured up to now.
    """
    required = config.week1_2.crib_rule_minutes
    if session.put_down_at is None:
        minutes = 0
    elif session.out_of_crib_at is not None:
        minutes = duration_minutes(session.put_down_at, session.out_of_crib_at)
    else:
        now = require_aware(now, "now") if now is not None else clock()
        minutes = duration_minutes(session.put_down_at, now)

    remaining = max(0, required - minutes)
    compliant = minutes >= required
    if compliant:
        recommendation = f"Crib {required} rule met!"
    else:
        recommendation = f"Keep in crib for {remaining} more minutes to meet crib {required} rule"
    return CribCompliance(
        compliant=compliant,
        minutes_in_crib=minutes,
        required_minutes=required,
        remaining_minutes=remaining,
        recommendation=recommendation,
    )


# =============================================================================
# Lifecycle
# =============================================================================


def start_transition(
    from_type: ScheduleType,
    to_type: ScheduleType,
    start_nap_time: str,
    open_transition: ScheduleTransition | None = None,
    target_weeks: int = 6,
    child_id: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
    clock: Clock = utc_now,
) -> ScheduleTransition:
    """
    Begin a transition in week 1.

    Raises:
        ValidationError: Another transition is still open, the types are
            not a nap-count change, or the nap time is malformed
    """
    if open_transition is not None and open_transition.is_active:
        raise ValidationError("A transition is already in progress")
    from_type = ScheduleType(from_type)
    to_type = ScheduleType(to_type)
    if ScheduleType.TRANSITION in (from_type, to_type) or from_type == to_type:
        raise ValidationError("Transition must move between two different nap schedules")
    parse_time(start_nap_time)
    if not 1 <= target_weeks <= MAX_TRANSITION_WEEKS:
        raise ValidationError(f"target_weeks must be between 1 and {MAX_TRANSITION_WEEKS}")

    now = require_aware(now, "now") if now is not None else clock()
    logger.info("Starting %s -> %s transition at %s", from_type.value, to_type.value, start_nap_time)
    return ScheduleTransition(
        id=str(uuid4()),
        child_id=child_id,
        from_type=from_type,
        to_type=to_type,
        started_at=now,
        current_week=1,
        target_weeks=target_weeks,
        current_nap_time=start_nap_time,
        notes=notes,
        updated_at=now,
    )


def progress_transition(
    transition: ScheduleTransition | None,
    new_nap_time: str | None = None,
    current_week: int | None = None,
    notes: str | None = None,
    complete: bool = False,
    now: datetime | None = None,
    clock: Clock = utc_now,
) -> ScheduleTransition:
    """
    Record a push, week change, note or completion.

    Completing the transition is the caller's cue to switch the child's
    schedule to the transition's to_type.

    Raises:
        NotFound: No transition given
        ValidationError: Transition already completed or bad values
    """
    if transition is None:
        raise NotFound("Transition")
    if not transition.is_active:
        raise ValidationError("Transition is already completed")
    if new_nap_time is not None:
        parse_time(new_nap_time)
    if current_week is not None and not 1 <= current_week <= MAX_TRANSITION_WEEKS:
        raise ValidationError(f"current_week must be between 1 and {MAX_TRANSITION_WEEKS}")

    now = require_aware(now, "now") if now is not None else clock()
    changes: dict = {"updated_at": now}
    if new_nap_time is not None:
        changes["current_nap_time"] = new_nap_time
    if current_week is not None:
        changes["current_week"] = current_week
    if notes is not None:
        changes["notes"] = notes
    if complete:
        changes["completed_at"] = now
        logger.info("Completed transition %s", transition.id)
    return replace(transition, **changes)


def default_transition_schedule(
    wake_time_earliest: str = "06:30",
    config: TransitionConfig = DEFAULT_TRANSITION_CONFIG,
) -> SleepSchedule:
    """Single-nap schedule used while a transition is running."""
    parse_time(wake_time_earliest)
    return SleepSchedule(
        type=ScheduleType.TRANSITION,
        naps=[
            NapConfig(
                wake_window_min=300,
                wake_window_max=config.week1_2.max_wake_window,
                earliest=config.week1_2.min_nap_earliest,
                latest_start="13:00",
                max_duration=config.goal.max_duration,
                end_by=config.goal.end_by,
            )
        ],
        bedtime_wake_window_min=config.goal.bedtime_wake_window_min,
        bedtime_wake_window_max=config.goal.bedtime_wake_window_max,
        bedtime_earliest="18:45",
        bedtime_latest="19:30",
        bedtime_goal_start="19:00",
        bedtime_goal_end="19:30",
        wake_time_earliest=wake_time_earliest,
        wake_time_latest=config.temporary_max_wake_time,
        day_sleep_cap=config.goal.max_duration,
    )
