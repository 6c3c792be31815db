"""
Data structures for sleep tracking and schedule recommendations.

Sessions and cycles carry raw timestamps plus derived minute fields.
Schedules and transitions are declarative inputs; recommendations are
ephemeral outputs and are never persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

# =============================================================================
# Enumerations
# =============================================================================


class SessionType(str, Enum):
    NAP = "NAP"
    NIGHT_SLEEP = "NIGHT_SLEEP"


class SessionState(str, Enum):
    PENDING = "PENDING"  # In crib, not yet asleep
    ASLEEP = "ASLEEP"
    AWAKE = "AWAKE"  # Woke up, still in crib
    COMPLETED = "COMPLETED"  # Out of crib (terminal)


class SessionEvent(str, Enum):
    FELL_ASLEEP = "fell_asleep"
    WOKE_UP = "woke_up"
    OUT_OF_CRIB = "out_of_crib"


class WakeType(str, Enum):
    QUIET = "QUIET"
    RESTLESS = "RESTLESS"
    CRYING = "CRYING"


class NapLocation(str, Enum):
    """Where an ad-hoc (out of crib) nap happened."""

    CAR = "CAR"
    STROLLER = "STROLLER"
    CARRIER = "CARRIER"
    SWING = "SWING"
    PLAYPEN = "PLAYPEN"
    OTHER = "OTHER"


class ScheduleType(str, Enum):
    THREE_NAP = "THREE_NAP"
    TWO_NAP = "TWO_NAP"
    ONE_NAP = "ONE_NAP"
    TRANSITION = "TRANSITION"  # Moving between nap counts (e.g. 2 -> 1)


class ActionType(str, Enum):
    NAP = "NAP"
    BEDTIME = "BEDTIME"
    WAIT = "WAIT"
    WAKE = "WAKE"


TransitionPhase = Literal[
    "week1_2",  # First two weeks: hold the nap, enforce crib rule
    "week2_plus",  # Push the nap later every few days
    "final",  # Nap time has reached the goal start
]

# Naps per day by schedule type; TRANSITION days run a single nap
NAP_COUNTS: dict[ScheduleType, int] = {
    ScheduleType.THREE_NAP: 3,
    ScheduleType.TWO_NAP: 2,
    ScheduleType.ONE_NAP: 1,
    ScheduleType.TRANSITION: 1,
}

# =============================================================================
# Sessions
# =============================================================================


@dataclass
class SleepCycle:
    """A wake-up inside a session (or a crying spell before first sleep)."""

    woke_up_at: datetime
    fell_back_asleep_at: datetime | None = None  # None while still awake
    wake_type: WakeType = WakeType.QUIET
    id: str | None = None


@dataclass
class SleepSession:
    """
    One nap or night in the crib (or an ad-hoc nap elsewhere).

    Timestamps are set in order by the state machine in rest.sessions; the
    derived minute fields are always recomputed from them and never edited
    directly.
    """

    session_type: SessionType
    state: SessionState = SessionState.PENDING
    id: str | None = None
    child_id: str | None = None
    nap_number: int | None = None  # 1-based, naps only

    is_ad_hoc: bool = False
    location: NapLocation | None = None  # Ad-hoc naps only

    put_down_at: datetime | None = None
    asleep_at: datetime | None = None
    woke_up_at: datetime | None = None
    out_of_crib_at: datetime | None = None

    crying_minutes: int | None = None  # Caregiver-reported, 0-180
    notes: str | None = None
    cycles: list[SleepCycle] = field(default_factory=list)
    created_at: datetime | None = None

    # Derived (minutes, None while unknown)
    total_minutes: int | None = None
    sleep_minutes: int | None = None
    settling_minutes: int | None = None
    post_wake_minutes: int | None = None
    awake_crib_minutes: int | None = None
    qualified_rest_minutes: int | None = None

    @property
    def is_active(self) -> bool:
        """True until the child is out of the crib."""
        return self.state != SessionState.COMPLETED

    @property
    def reference_time(self) -> datetime | None:
        """Instant used to place the session on a calendar day."""
        return self.put_down_at or self.asleep_at or self.created_at


# =============================================================================
# Schedules and transitions
# =============================================================================


@dataclass
class NapConfig:
    """Per-nap rules. Clock times are "HH:MM" in the child's timezone."""

    wake_window_min: int  # Minutes awake before this nap
    wake_window_max: int
    earliest: str | None = None  # Never put down before this clock time
    latest_start: str | None = None  # Never start after this clock time
    max_duration: int = 120
    end_by: str | None = None  # Wake by this clock time


# Used for naps a schedule does not configure explicitly
DEFAULT_NAP_CONFIG = NapConfig(wake_window_min=150, wake_window_max=210)


@dataclass
class SleepSchedule:
    """Declarative daily rules for one child."""

    type: ScheduleType
    naps: list[NapConfig]
    bedtime_wake_window_min: int
    bedtime_wake_window_max: int
    bedtime_earliest: str
    bedtime_latest: str
    wake_time_earliest: str
    wake_time_latest: str
    day_sleep_cap: int  # Total day-sleep minutes

    bedtime_goal_start: str | None = None
    bedtime_goal_end: str | None = None
    nap2_exception_duration: int | None = None  # Longer nap 2 after short nap 1
    must_wake_by: str | None = None  # Wake deadline for night sleep
    nap_cap_minutes: int | None = None  # Wake from any nap after this long

    minimum_crib_minutes: int = 60
    nap_reminder_minutes: int = 30
    bedtime_reminder_minutes: int = 30
    wake_deadline_reminder_minutes: int = 15

    id: str | None = None
    child_id: str | None = None

    @property
    def nap_count(self) -> int:
        return NAP_COUNTS[self.type]

    def nap_config(self, nap_number: int) -> NapConfig:
        """Config for a 1-based nap, falling back to DEFAULT_NAP_CONFIG."""
        if 1 <= nap_number <= len(self.naps):
            return self.naps[nap_number - 1]
        return DEFAULT_NAP_CONFIG


@dataclass
class ScheduleTransition:
    """A multi-week move between schedule types (typically 2 naps -> 1)."""

    from_type: ScheduleType
    to_type: ScheduleType
    started_at: datetime
    current_nap_time: str  # "HH:MM" target for the single nap
    current_week: int = 1
    target_weeks: int = 6
    completed_at: datetime | None = None  # None while active
    notes: str | None = None
    updated_at: datetime | None = None  # Last push or edit
    id: str | None = None
    child_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.completed_at is None


# =============================================================================
# Recommendations (ephemeral)
# =============================================================================


@dataclass
class TimeWindow:
    """A put-down window; recommended always lies inside [earliest, latest]."""

    earliest: datetime
    latest: datetime
    recommended: datetime

    def contains(self, instant: datetime) -> bool:
        return self.earliest <= instant <= self.latest


@dataclass
class NapRecommendation:
    nap_number: int
    put_down_window: TimeWindow
    max_duration: int  # Minutes
    end_by: datetime | None = None
    notes: list[str] = field(default_factory=list)


@dataclass
class BedtimeRecommendation:
    put_down_window: TimeWindow
    notes: list[str] = field(default_factory=list)


@dataclass
class DayScheduleRecommendation:
    date: str  # Local calendar day of the wake time (YYYY-MM-DD)
    wake_time: datetime
    naps: list[NapRecommendation]
    bedtime: BedtimeRecommendation
    total_day_sleep_cap: int
    warnings: list[str] = field(default_factory=list)


@dataclass
class NextActionRecommendation:
    action: ActionType
    description: str
    time_window: TimeWindow | None = None
    nap_number: int | None = None
    minutes_until_earliest: int | None = None
    notes: list[str] = field(default_factory=list)


@dataclass
class ActualNap:
    """A nap that already happened, used to adjust bedtime after the fact."""

    asleep_at: datetime
    woke_up_at: datetime
