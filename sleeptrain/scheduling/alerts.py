"""
Reminder and alert inputs for the notification subsystem.

Computes which reminders are due at a given instant and the idempotency key
for each; delivery (push, email, ...) and the record of what was already
sent belong to the caller. A reminder is due during the lead-time window
that ends at its event:

    event - lead_minutes <= now < event
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..time_math import (
    add_minutes,
    format_time_12h_in_tz,
    local_date,
    minutes_between,
    minutes_until,
    parse_time_on_day,
    require_aware,
)
from ..types import (
    DayScheduleRecommendation,
    SessionState,
    SessionType,
    SleepSchedule,
    SleepSession,
)

logger = logging.getLogger(__name__)

# Wake-deadline reminders fire at both of these lead times
WAKE_DEADLINE_LEADS = (30, 15)


class ReminderType(str, Enum):
    NAP = "nap"  # Key suffixed with the nap number (nap1, nap2, ...)
    BEDTIME = "bedtime"
    WAKE_DEADLINE = "wake_deadline"  # Key suffixed with the lead time
    NAP_CAP = "nap_cap"


@dataclass
class Reminder:
    reminder_type: ReminderType
    key: str  # Idempotency key; send each key at most once
    event_time: datetime
    message: str


@dataclass
class NapCapStatus:
    exceeded: bool
    minutes_asleep: int
    cap_minutes: int

    @property
    def minutes_over(self) -> int:
        return max(0, self.minutes_asleep - self.cap_minutes)


def reminder_key(child_id: str, reminder_name: str, event_time: datetime, timezone: str) -> str:
    """Key unique per child, reminder and local calendar day."""
    return f"{child_id}-{reminder_name}-{local_date(event_time, timezone).isoformat()}"


def is_reminder_due(now: datetime, event_time: datetime, lead_minutes: int) -> bool:
    return add_minutes(event_time, -lead_minutes) <= now < event_time


def wake_deadline(schedule: SleepSchedule, day: datetime, timezone: str) -> datetime | None:
    """The schedule's must-wake-by time on the local day of `day`."""
    if not schedule.must_wake_by:
        return None
    return parse_time_on_day(schedule.must_wake_by, day, timezone)


def minutes_until_wake_deadline(
    now: datetime, schedule: SleepSchedule, timezone: str
) -> int | None:
    """Minutes left before today's wake deadline; 0 once it has passed."""
    deadline = wake_deadline(schedule, now, timezone)
    if deadline is None:
        return None
    return minutes_until(now, deadline)


def check_nap_cap(
    session: SleepSession, schedule: SleepSchedule, now: datetime
) -> NapCapStatus | None:
    """Compare a sleeping nap against the schedule's nap cap, if one is set."""
    if (
        not schedule.nap_cap_minutes
        or session.session_type != SessionType.NAP
        or session.state != SessionState.ASLEEP
        or session.asleep_at is None
    ):
        return None
    asleep = minutes_between(session.asleep_at, require_aware(now, "now"))
    return NapCapStatus(
        exceeded=asleep >= schedule.nap_cap_minutes,
        minutes_asleep=asleep,
        cap_minutes=schedule.nap_cap_minutes,
    )


def due_reminders(
    now: datetime,
    schedule: SleepSchedule,
    day_schedule: DayScheduleRecommendation,
    timezone: str,
    child_id: str,
    completed_nap_count: int = 0,
    active_session: SleepSession | None = None,
    sent_keys: frozenset[str] | set[str] = frozenset(),
) -> list[Reminder]:
    """
    List the reminders that should go out at `now`.

    Args:
        now: Current instant (timezone-aware)
        schedule: The child's schedule (lead times, deadline, nap cap)
        day_schedule: Today's recommendation from calculate_day_schedule
        timezone: IANA timezone of the child
        child_id: Used in idempotency keys
        completed_nap_count: Naps already finished today
        active_session: The session in progress, if any
        sent_keys: Keys already delivered; matching reminders are skipped

    Returns:
        Due reminders, most urgent first
    """
    now = require_aware(now, "now")
    due: list[Reminder] = []

    if active_session is not None:
        cap = check_nap_cap(active_session, schedule, now)
        if cap is not None and cap.exceeded:
            due.append(
                Reminder(
                    reminder_type=ReminderType.NAP_CAP,
                    key=f"{child_id}-nap_cap-{active_session.id}",
                    event_time=add_minutes(active_session.asleep_at, cap.cap_minutes),
                    message=(
                        f"Napping {cap.minutes_asleep} min ({cap.minutes_over} min over "
                        f"{cap.cap_minutes} min cap). Time to wake!"
                    ),
                )
            )

        deadline = wake_deadline(schedule, now, timezone)
        if (
            deadline is not None
            and active_session.session_type == SessionType.NIGHT_SLEEP
            and active_session.state == SessionState.ASLEEP
        ):
            remaining = minutes_until(now, deadline)
            # Only the tightest lead window that is open fires
            for lead in sorted(WAKE_DEADLINE_LEADS):
                if is_reminder_due(now, deadline, lead):
                    due.append(
                        Reminder(
                            reminder_type=ReminderType.WAKE_DEADLINE,
                            key=reminder_key(child_id, f"wake_deadline_{lead}", deadline, timezone),
                            event_time=deadline,
                            message=(
                                f"{remaining} minutes until "
                                f"{format_time_12h_in_tz(deadline, timezone)} wake deadline!"
                            ),
                        )
                    )
                    break
    else:
        for nap in day_schedule.naps:
            if nap.nap_number <= completed_nap_count:
                continue
            event = nap.put_down_window.recommended
            if is_reminder_due(now, event, schedule.nap_reminder_minutes):
                due.append(
                    Reminder(
                        reminder_type=ReminderType.NAP,
                        key=reminder_key(child_id, f"nap{nap.nap_number}", event, timezone),
                        event_time=event,
                        message=(
                            f"Nap {nap.nap_number} coming up at "
                            f"{format_time_12h_in_tz(event, timezone)}"
                        ),
                    )
                )
            break

        if completed_nap_count >= len(day_schedule.naps):
            event = day_schedule.bedtime.put_down_window.recommended
            if is_reminder_due(now, event, schedule.bedtime_reminder_minutes):
                due.append(
                    Reminder(
                        reminder_type=ReminderType.BEDTIME,
                        key=reminder_key(child_id, "bedtime", event, timezone),
                        event_time=event,
                        message=f"Bedtime coming up at {format_time_12h_in_tz(event, timezone)}",
                    )
                )

    fresh = [r for r in due if r.key not in sent_keys]
    if fresh:
        logger.debug("%d reminders due for child %s", len(fresh), child_id)
    return fresh
