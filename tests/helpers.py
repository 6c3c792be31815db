"""
Test helper functions for building instants and sessions.

These functions can be imported by test modules.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sleeptrain.rest.sessions import recompute
from sleeptrain.time_math import format_time_in_tz
from sleeptrain.types import SessionState, SessionType, SleepCycle, SleepSession, WakeType

TZ = "America/New_York"
DAY = "2024-01-15"


def at(hhmm: str, day: str = DAY, tz: str = TZ) -> datetime:
    """Local wall-clock time on a day, as an aware UTC datetime."""
    local = datetime.fromisoformat(f"{day}T{hhmm}").replace(tzinfo=ZoneInfo(tz))
    return local.astimezone(UTC)


def local_hhmm(instant: datetime, tz: str = TZ) -> str:
    return format_time_in_tz(instant, tz)


def cycle(woke: str, fell_back: str | None = None, wake_type: WakeType = WakeType.QUIET) -> SleepCycle:
    return SleepCycle(
        woke_up_at=at(woke),
        fell_back_asleep_at=at(fell_back) if fell_back else None,
        wake_type=wake_type,
    )


def make_session(
    put_down: str | None = None,
    asleep: str | None = None,
    woke: str | None = None,
    out: str | None = None,
    cycles: list[SleepCycle] | None = None,
    session_type: SessionType = SessionType.NAP,
    day: str = DAY,
    state: SessionState | None = None,
) -> SleepSession:
    """
    Build a session with derived fields computed.

    State defaults to whatever the supplied timestamps imply.
    """
    if state is None:
        if out:
            state = SessionState.COMPLETED
        elif woke:
            state = SessionState.AWAKE
        elif asleep:
            state = SessionState.ASLEEP
        else:
            state = SessionState.PENDING
    session = SleepSession(
        session_type=session_type,
        state=state,
        id=f"session-{put_down or asleep}",
        put_down_at=at(put_down, day) if put_down else None,
        asleep_at=at(asleep, day) if asleep else None,
        woke_up_at=at(woke, day) if woke else None,
        out_of_crib_at=at(out, day) if out else None,
        cycles=cycles or [],
    )
    return recompute(session)


def two_nap_dict(**overrides) -> dict:
    """Two-nap schedule in the flat client format; None drops a key."""
    data = {
        "type": "TWO_NAP",
        "wakeWindow1Min": 120,
        "wakeWindow1Max": 150,
        "nap1Earliest": "08:30",
        "nap1LatestStart": "09:00",
        "nap1MaxDuration": 120,
        "nap1EndBy": "11:00",
        "wakeWindow2Min": 150,
        "wakeWindow2Max": 210,
        "nap2Earliest": "12:00",
        "nap2LatestStart": "13:00",
        "nap2MaxDuration": 120,
        "nap2EndBy": "15:00",
        "nap2ExceptionDuration": 150,
        "wakeWindow3Min": 210,
        "wakeWindow3Max": 270,
        "bedtimeEarliest": "17:30",
        "bedtimeLatest": "19:30",
        "bedtimeGoalStart": "19:00",
        "bedtimeGoalEnd": "19:30",
        "wakeTimeEarliest": "06:00",
        "wakeTimeLatest": "07:30",
        "daySleepCap": 210,
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}
