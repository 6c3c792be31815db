"""
Session tracking: durations, qualified rest and the session state machine.

Modules:
- durations: Derived minute fields and qualified-rest credit
- sessions: PENDING -> ASLEEP -> AWAKE -> COMPLETED transitions and corrections
- summary: Per-day roll-up of sessions
"""

from .durations import SessionDurations, compute_durations, cycle_awake_minutes
from .sessions import (
    RecalculatedSession,
    add_cycle,
    apply_correction,
    apply_event,
    display_state,
    is_valid_transition,
    recalculate_sessions,
    recompute,
    remove_cycle,
    start_ad_hoc_session,
    start_session,
    update_cycle,
    validate_cycles,
)
from .summary import DailySleepSummary, summarize_day

__all__ = [
    "SessionDurations",
    "compute_durations",
    "cycle_awake_minutes",
    "RecalculatedSession",
    "add_cycle",
    "apply_correction",
    "apply_event",
    "display_state",
    "is_valid_transition",
    "recalculate_sessions",
    "recompute",
    "remove_cycle",
    "start_ad_hoc_session",
    "start_session",
    "update_cycle",
    "validate_cycles",
    "DailySleepSummary",
    "summarize_day",
]
