"""
Sleeptrain: infant sleep-training decision engine.

Derives credit-weighted rest from logged sleep sessions, enforces the
session state machine, recommends nap and bedtime windows from a
declarative schedule, advises the next action and tracks multi-week nap
transitions. Every operation is a pure, synchronous function of its inputs.
"""

from .config import EngineSettings, SchedulingSettings, load_settings
from .errors import InvalidStateTransition, NotFound, SleepTrainError, ValidationError
from .rest import (
    add_cycle,
    apply_correction,
    apply_event,
    compute_durations,
    display_state,
    recalculate_sessions,
    recompute,
    remove_cycle,
    start_ad_hoc_session,
    start_session,
    summarize_day,
    update_cycle,
)
from .scheduling import (
    analyze_nap_push_readiness,
    calculate_adjusted_bedtime,
    calculate_day_schedule,
    calculate_next_action,
    check_crib_90_compliance,
    default_transition_schedule,
    get_transition_progress,
    progress_transition,
    start_transition,
)
from .types import (
    ActionType,
    ActualNap,
    DayScheduleRecommendation,
    NapConfig,
    NapLocation,
    NextActionRecommendation,
    ScheduleTransition,
    ScheduleType,
    SessionEvent,
    SessionState,
    SessionType,
    SleepCycle,
    SleepSchedule,
    SleepSession,
    TimeWindow,
    WakeType,
)

__all__ = [
    # Types
    "ActionType",
    "ActualNap",
    "DayScheduleRecommendation",
    "NapConfig",
    "NapLocation",
    "NextActionRecommendation",
    "ScheduleTransition",
    "ScheduleType",
    "SessionEvent",
    "SessionState",
    "SessionType",
    "SleepCycle",
    "SleepSchedule",
    "SleepSession",
    "TimeWindow",
    "WakeType",
    # Errors
    "SleepTrainError",
    "InvalidStateTransition",
    "NotFound",
    "ValidationError",
    # Settings
    "EngineSettings",
    "SchedulingSettings",
    "load_settings",
    # Sessions
    "compute_durations",
    "start_session",
    "start_ad_hoc_session",
    "apply_event",
    "apply_correction",
    "add_cycle",
    "update_cycle",
    "remove_cycle",
    "recompute",
    "recalculate_sessions",
    "display_state",
    "summarize_day",
    # Scheduling
    "calculate_day_schedule",
    "calculate_adjusted_bedtime",
    "calculate_next_action",
    "get_transition_progress",
    "analyze_nap_push_readiness",
    "check_crib_90_compliance",
    "start_transition",
    "progress_transition",
    "default_transition_schedule",
]
