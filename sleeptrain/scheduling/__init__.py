"""
Scheduling layer.

Turns a declarative schedule into concrete windows for one day and advises
what to do next.

Modules:
- day_schedule: Nap and bedtime windows for a day, sleep-debt adjustment
- next_action: NAP / BEDTIME / WAIT / WAKE advice at an instant
- transition: Multi-week nap transition progress and readiness
- alerts: Reminder inputs for the notification subsystem
"""

from .alerts import NapCapStatus, Reminder, ReminderType, check_nap_cap, due_reminders
from .day_schedule import DayScheduleCalculator, calculate_adjusted_bedtime, calculate_day_schedule
from .next_action import calculate_next_action
from .transition import (
    DEFAULT_TRANSITION_CONFIG,
    CribCompliance,
    NapPushRecommendation,
    TransitionConfig,
    TransitionProgress,
    analyze_nap_push_readiness,
    check_crib_90_compliance,
    default_transition_schedule,
    get_transition_progress,
    progress_transition,
    start_transition,
)

__all__ = [
    "DayScheduleCalculator",
    "calculate_day_schedule",
    "calculate_adjusted_bedtime",
    "calculate_next_action",
    "TransitionConfig",
    "DEFAULT_TRANSITION_CONFIG",
    "TransitionProgress",
    "NapPushRecommendation",
    "CribCompliance",
    "get_transition_progress",
    "analyze_nap_push_readiness",
    "check_crib_90_compliance",
    "start_transition",
    "progress_transition",
    "default_transition_schedule",
    "Reminder",
    "ReminderType",
    "NapCapStatus",
    "check_nap_cap",
    "due_reminders",
]
