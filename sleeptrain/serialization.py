"""
Dict conversion for the engine's types.

Wire dicts use camelCase keys and ISO-8601 instants ("2024-01-15T12:00:00Z");
schedules use the flat field names the client stores (wakeWindow1Min,
nap1Earliest, ...). Malformed input raises ValidationError.
"""

from dataclasses import fields, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .errors import ValidationError
from .time_math import parse_time, require_aware
from .types import (
    DEFAULT_NAP_CONFIG,
    NAP_COUNTS,
    ActualNap,
    NapConfig,
    NapLocation,
    ScheduleTransition,
    ScheduleType,
    SessionState,
    SessionType,
    SleepCycle,
    SleepSchedule,
    SleepSession,
    WakeType,
)

# Bedtime wake window when neither the post-last-nap nor the last nap's window is set
DEFAULT_BEDTIME_WAKE_WINDOW = (210, 270)
SINGLE_NAP_MAX_DURATION = 180


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_dict(obj: Any) -> Any:
    """Convert dataclass instances to camelCase dicts recursively."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {camel_case(f.name): to_dict(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, list | tuple):
        return [to_dict(item) for item in obj]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return format_instant(obj)
    return obj


def format_instant(instant: datetime) -> str:
    return require_aware(instant).isoformat().replace("+00:00", "Z")


def parse_instant(value: Any, name: str = "time") -> datetime:
    """Parse an ISO-8601 instant; it must carry an offset or Z."""
    if isinstance(value, datetime):
        return require_aware(value, name)
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be an ISO-8601 string")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"{name} is not a valid ISO-8601 instant: {value!r}") from exc
    return require_aware(parsed, name).astimezone(UTC)


def _optional_instant(data: dict, key: str) -> datetime | None:
    value = data.get(key)
    return parse_instant(value, key) if value is not None else None


def _enum(cls: type[Enum], value: Any, name: str):
    try:
        return cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(f"{name} must be one of: {allowed}") from exc


def _minutes(data: dict, key: str, default: int | None = None) -> int | None:
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{key} must be a non-negative integer")
    return value


def _clock(data: dict, key: str, required: bool = False) -> str | None:
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationError(f"{key} is required")
        return None
    parse_time(value)
    return value


# =============================================================================
# Schedules
# =============================================================================


def schedule_from_dict(data: dict) -> SleepSchedule:
    """
    Build a SleepSchedule from the flat client format.

    Per-nap fields are numbered (nap1Earliest, wakeWindow2Max, ...). The
    bedtime wake window is the window after the last nap, falling back to
    the last nap's own window and then to 210-270 minutes.
    """
    schedule_type = _enum(ScheduleType, data.get("type"), "type")
    nap_count = NAP_COUNTS[schedule_type]

    naps = []
    for n in range(1, nap_count + 1):
        default_max = SINGLE_NAP_MAX_DURATION if nap_count == 1 else DEFAULT_NAP_CONFIG.max_duration
        ww_min = _minutes(data, f"wakeWindow{n}Min")
        ww_max = _minutes(data, f"wakeWindow{n}Max")
        if n == 1 and (ww_min is None or ww_max is None):
            raise ValidationError("wakeWindow1Min and wakeWindow1Max are required")
        config = NapConfig(
            wake_window_min=ww_min if ww_min is not None else DEFAULT_NAP_CONFIG.wake_window_min,
            wake_window_max=ww_max if ww_max is not None else DEFAULT_NAP_CONFIG.wake_window_max,
            earliest=_clock(data, f"nap{n}Earliest"),
            latest_start=_clock(data, f"nap{n}LatestStart"),
            max_duration=_minutes(data, f"nap{n}MaxDuration", default_max),
            end_by=_clock(data, f"nap{n}EndBy"),
        )
        if config.wake_window_min > config.wake_window_max:
            raise ValidationError(f"wakeWindow{n}Min cannot exceed wakeWindow{n}Max")
        naps.append(config)

    bedtime_min = _minutes(data, f"wakeWindow{nap_count + 1}Min")
    bedtime_max = _minutes(data, f"wakeWindow{nap_count + 1}Max")
    if (bedtime_min is None or bedtime_max is None) and nap_count > 1:
        bedtime_min = _minutes(data, f"wakeWindow{nap_count}Min")
        bedtime_max = _minutes(data, f"wakeWindow{nap_count}Max")
    if bedtime_min is None or bedtime_max is None:
        bedtime_min, bedtime_max = DEFAULT_BEDTIME_WAKE_WINDOW

    day_sleep_cap = _minutes(data, "daySleepCap")
    if day_sleep_cap is None:
        raise ValidationError("daySleepCap is required")

    return SleepSchedule(
        id=data.get("id"),
        child_id=data.get("childId"),
        type=schedule_type,
        naps=naps,
        bedtime_wake_window_min=bedtime_min,
        bedtime_wake_window_max=bedtime_max,
        bedtime_earliest=_clock(data, "bedtimeEarliest", required=True),
        bedtime_latest=_clock(data, "bedtimeLatest", required=True),
        bedtime_goal_start=_clock(data, "bedtimeGoalStart"),
        bedtime_goal_end=_clock(data, "bedtimeGoalEnd"),
        wake_time_earliest=_clock(data, "wakeTimeEarliest", required=True),
        wake_time_latest=_clock(data, "wakeTimeLatest", required=True),
        must_wake_by=_clock(data, "mustWakeBy"),
        day_sleep_cap=day_sleep_cap,
        nap2_exception_duration=_minutes(data, "nap2ExceptionDuration"),
        nap_cap_minutes=_minutes(data, "napCapMinutes"),
        minimum_crib_minutes=_minutes(data, "minimumCribMinutes", 60),
        nap_reminder_minutes=_minutes(data, "napReminderMinutes", 30),
        bedtime_reminder_minutes=_minutes(data, "bedtimeReminderMinutes", 30),
        wake_deadline_reminder_minutes=_minutes(data, "wakeDeadlineReminderMinutes", 15),
    )


def schedule_to_dict(schedule: SleepSchedule) -> dict:
    data: dict[str, Any] = {
        "id": schedule.id,
        "childId": schedule.child_id,
        "type": schedule.type.value,
    }
    for n, nap in enumerate(schedule.naps, start=1):
        data[f"wakeWindow{n}Min"] = nap.wake_window_min
        data[f"wakeWindow{n}Max"] = nap.wake_window_max
        data[f"nap{n}Earliest"] = nap.earliest
        data[f"nap{n}LatestStart"] = nap.latest_start
        data[f"nap{n}MaxDuration"] = nap.max_duration
        data[f"nap{n}EndBy"] = nap.end_by
    bedtime_window = len(schedule.naps) + 1
    data[f"wakeWindow{bedtime_window}Min"] = schedule.bedtime_wake_window_min
    data[f"wakeWindow{bedtime_window}Max"] = schedule.bedtime_wake_window_max
    for name in (
        "nap2_exception_duration",
        "bedtime_earliest",
        "bedtime_latest",
        "bedtime_goal_start",
        "bedtime_goal_end",
        "wake_time_earliest",
        "wake_time_latest",
        "must_wake_by",
        "day_sleep_cap",
        "nap_cap_minutes",
        "minimum_crib_minutes",
        "nap_reminder_minutes",
        "bedtime_reminder_minutes",
        "wake_deadline_reminder_minutes",
    ):
        data[camel_case(name)] = getattr(schedule, name)
    return data


# =============================================================================
# Transitions and sessions
# =============================================================================


def transition_from_dict(data: dict) -> ScheduleTransition:
    return ScheduleTransition(
        id=data.get("id"),
        child_id=data.get("childId"),
        from_type=_enum(ScheduleType, data.get("fromType"), "fromType"),
        to_type=_enum(ScheduleType, data.get("toType"), "toType"),
        started_at=parse_instant(data.get("startedAt"), "startedAt"),
        current_week=_minutes(data, "currentWeek", 1),
        target_weeks=_minutes(data, "targetWeeks", 6),
        current_nap_time=_clock(data, "currentNapTime", required=True),
        completed_at=_optional_instant(data, "completedAt"),
        notes=data.get("notes"),
        updated_at=_optional_instant(data, "updatedAt"),
    )


def cycle_from_dict(data: dict) -> SleepCycle:
    return SleepCycle(
        id=data.get("id"),
        woke_up_at=parse_instant(data.get("wokeUpAt"), "wokeUpAt"),
        fell_back_asleep_at=_optional_instant(data, "fellBackAsleepAt"),
        wake_type=_enum(WakeType, data.get("wakeType", WakeType.QUIET.value), "wakeType"),
    )


def session_from_dict(data: dict) -> SleepSession:
    """Build a SleepSession; derived minute fields are taken as stored."""
    location = data.get("location")
    return SleepSession(
        id=data.get("id"),
        child_id=data.get("childId"),
        session_type=_enum(SessionType, data.get("sessionType"), "sessionType"),
        state=_enum(SessionState, data.get("state", SessionState.PENDING.value), "state"),
        nap_number=data.get("napNumber"),
        is_ad_hoc=bool(data.get("isAdHoc", False)),
        location=_enum(NapLocation, location, "location") if location is not None else None,
        put_down_at=_optional_instant(data, "putDownAt"),
        asleep_at=_optional_instant(data, "asleepAt"),
        woke_up_at=_optional_instant(data, "wokeUpAt"),
        out_of_crib_at=_optional_instant(data, "outOfCribAt"),
        crying_minutes=data.get("cryingMinutes"),
        notes=data.get("notes"),
        cycles=[cycle_from_dict(c) for c in data.get("cycles", [])],
        created_at=_optional_instant(data, "createdAt"),
        total_minutes=data.get("totalMinutes"),
        sleep_minutes=data.get("sleepMinutes"),
        settling_minutes=data.get("settlingMinutes"),
        post_wake_minutes=data.get("postWakeMinutes"),
        awake_crib_minutes=data.get("awakeCribMinutes"),
        qualified_rest_minutes=data.get("qualifiedRestMinutes"),
    )


def actual_nap_from_dict(data: dict) -> ActualNap:
    return ActualNap(
        asleep_at=parse_instant(data.get("asleepAt"), "asleepAt"),
        woke_up_at=parse_instant(data.get("wokeUpAt"), "wokeUpAt"),
    )
