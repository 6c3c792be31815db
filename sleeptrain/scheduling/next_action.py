"""
Next-action advice: what the caregiver should do right now.

Given the day's schedule, how many naps are done and whether the child is
asleep, pick one of:
- WAIT: the child is asleep, or the next window has not opened yet
- NAP / BEDTIME: the window is open (or already closed; still act now)
- WAKE: the child is asleep past the wake deadline the caller supplied
"""

from datetime import datetime

from ..errors import ValidationError
from ..time_math import format_time_in_tz, minutes_between, minutes_until, require_aware
from ..types import (
    ActionType,
    DayScheduleRecommendation,
    NextActionRecommendation,
    TimeWindow,
)


def _advise(
    now: datetime,
    window: TimeWindow,
    action: ActionType,
    timezone: str,
    nap_number: int | None,
    window_notes: list[str],
) -> NextActionRecommendation:
    is_nap = action == ActionType.NAP
    if now < window.earliest:
        minutes = minutes_until(now, window.earliest)
        target = format_time_in_tz(window.recommended, timezone)
        if is_nap:
            description = f"Nap {nap_number} in {minutes} minutes"
            note = f"Target put down: {target}"
        else:
            description = f"Bedtime in {minutes} minutes"
            note = f"Target bedtime: {target}"
        return NextActionRecommendation(
            action=ActionType.WAIT,
            description=description,
            time_window=window,
            nap_number=nap_number,
            minutes_until_earliest=minutes,
            notes=[note],
        )

    notes = list(window_notes)
    if now > window.latest:
        closed = format_time_in_tz(window.latest, timezone)
        notes.append(f"Window closed at {closed} - put down as soon as possible")
    return NextActionRecommendation(
        action=action,
        description=f"Time for nap {nap_number}" if is_nap else "Time for bedtime",
        time_window=window,
        nap_number=nap_number,
        minutes_until_earliest=0,
        notes=notes,
    )


def calculate_next_action(
    now: datetime,
    day_schedule: DayScheduleRecommendation,
    completed_nap_count: int,
    is_asleep: bool,
    timezone: str,
    must_wake_by: datetime | None = None,
) -> NextActionRecommendation:
    """
    Recommend the caregiver's next action.

    Args:
        now: Current instant (timezone-aware)
        day_schedule: Today's schedule from calculate_day_schedule
        completed_nap_count: Naps already finished today
        is_asleep: Whether the child is asleep right now
        timezone: IANA timezone for user-facing clock times
        must_wake_by: Wake deadline; only consulted while asleep

    Returns:
        NextActionRecommendation
    """
    now = require_aware(now, "now")
    if completed_nap_count < 0:
        raise ValidationError("completed_nap_count cannot be negative")

    if is_asleep:
        if must_wake_by is not None:
            deadline = require_aware(must_wake_by, "must_wake_by")
            if now >= deadline:
                overdue = minutes_between(deadline, now)
                return NextActionRecommendation(
                    action=ActionType.WAKE,
                    description="Time to wake the child",
                    notes=[
                        f"Must wake by {format_time_in_tz(deadline, timezone)}",
                        f"{overdue} minutes past the wake deadline",
                    ],
                )
        return NextActionRecommendation(
            action=ActionType.WAIT,
            description="Child is currently sleeping",
            notes=["Monitor for wake signs"],
        )

    for nap in day_schedule.naps:
        if nap.nap_number > completed_nap_count:
            return _advise(
                now, nap.put_down_window, ActionType.NAP, timezone, nap.nap_number, nap.notes
            )

    return _advise(
        now,
        day_schedule.bedtime.put_down_window,
        ActionType.BEDTIME,
        timezone,
        None,
        day_schedule.bedtime.notes,
    )
