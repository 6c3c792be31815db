"""
Duration and qualified-rest calculation for a single sleep session.

Qualified rest is the sleep-training credit a session earns:
- Actual sleep counts in full
- Settling (put down to asleep) and post-wake (woke to out of crib) count 50%
- Mid-sleep wake-ups count by wake type: QUIET 50%, RESTLESS and CRYING 0%
- A child who never fell asleep earns 50% of the time in the crib

Key principles:
- A cycle that starts before the session's asleep time is a pre-sleep event
  (crying while settling) and never reduces sleep
- A duration stays None until both of its endpoints are known
- Ad-hoc naps (car, stroller, ...) earn no crib credit: under 15 minutes of
  sleep counts as nothing, otherwise half the sleep counts
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from ..time_math import round_half_up, span_minutes
from ..types import SleepCycle, WakeType

# Credit for time spent awake in the crib
SETTLING_CREDIT = 0.5
POST_WAKE_CREDIT = 0.5
NO_SLEEP_CREDIT = 0.5

WAKE_TYPE_CREDIT: dict[WakeType, float] = {
    WakeType.QUIET: 0.5,  # Self-soothing still counts as crib practice
    WakeType.RESTLESS: 0.0,
    WakeType.CRYING: 0.0,
}

AD_HOC_MIN_SLEEP_MINUTES = 15
AD_HOC_SLEEP_CREDIT = 0.5


@dataclass
class SessionDurations:
    """Derived minute fields for a session (None while unknown)."""

    total_minutes: int | None = None
    sleep_minutes: int | None = None
    settling_minutes: int | None = None
    post_wake_minutes: int | None = None
    awake_crib_minutes: int | None = None
    qualified_rest_minutes: int | None = None


def _span(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return max(0.0, span_minutes(start, end))


def _rounded(value: float | None) -> int | None:
    if value is None:
        return None
    return max(0, round_half_up(value))


def mid_sleep_spans(
    cycles: Iterable[SleepCycle], asleep_at: datetime, woke_up_at: datetime
) -> Iterator[tuple[SleepCycle, float]]:
    """
    Yield (cycle, awake minutes) for cycles inside the sleep interval.

    Awake spans are clipped to [asleep_at, woke_up_at]; a cycle without a
    fell-back-asleep time runs until the session's final wake-up.
    """
    for cycle in cycles:
        if cycle.woke_up_at < asleep_at:
            continue  # Pre-sleep
        start = min(cycle.woke_up_at, woke_up_at)
        end = min(cycle.fell_back_asleep_at or woke_up_at, woke_up_at)
        yield cycle, max(0.0, span_minutes(start, end))


def cycle_awake_minutes(cycle: SleepCycle, session_woke_up_at: datetime | None = None) -> int | None:
    """Awake minutes for one cycle, or None while the child is still awake."""
    end = cycle.fell_back_asleep_at or session_woke_up_at
    return _rounded(_span(cycle.woke_up_at, end))


def compute_durations(
    put_down_at: datetime | None,
    asleep_at: datetime | None,
    woke_up_at: datetime | None,
    out_of_crib_at: datetime | None,
    cycles: Iterable[SleepCycle] = (),
    is_ad_hoc: bool = False,
) -> SessionDurations:
    """
    Compute the derived minute fields of a session.

    Intermediate values stay exact; each output is rounded half up to the
    nearest minute and clamped at zero. Awake-in-crib time is the sum of the
    rounded settling and post-wake minutes.

    Args:
        put_down_at: When the child went into the crib
        asleep_at: When the child fell asleep (None if never)
        woke_up_at: Final wake-up
        out_of_crib_at: When the child left the crib
        cycles: Wake-ups recorded during the session
        is_ad_hoc: True for naps outside the crib

    Returns:
        SessionDurations
    """
    total = _span(put_down_at, out_of_crib_at)
    settling = _span(put_down_at, asleep_at)
    post_wake = _span(woke_up_at, out_of_crib_at)

    never_slept = asleep_at is None and out_of_crib_at is not None
    if never_slept:
        settling = total
        post_wake = None

    sleep = None
    cycle_credit = 0.0
    if asleep_at is not None and woke_up_at is not None:
        sleep = max(0.0, span_minutes(asleep_at, woke_up_at))
        for cycle, awake in mid_sleep_spans(cycles, asleep_at, woke_up_at):
            sleep -= awake
            cycle_credit += awake * WAKE_TYPE_CREDIT[cycle.wake_type]
        sleep = max(0.0, sleep)

    if is_ad_hoc:
        qualified = _ad_hoc_qualified(sleep)
    elif never_slept:
        qualified = total * NO_SLEEP_CREDIT if total is not None else None
    elif sleep is None:
        qualified = None
    else:
        qualified = (
            sleep
            + (settling or 0.0) * SETTLING_CREDIT
            + (post_wake or 0.0) * POST_WAKE_CREDIT
            + cycle_credit
        )

    awake_crib_minutes = None
    if settling is not None or post_wake is not None:
        awake_crib_minutes = (_rounded(settling) or 0) + (_rounded(post_wake) or 0)

    return SessionDurations(
        total_minutes=_rounded(total),
        sleep_minutes=_rounded(sleep),
        settling_minutes=_rounded(settling),
        post_wake_minutes=_rounded(post_wake),
        awake_crib_minutes=awake_crib_minutes,
        qualified_rest_minutes=_rounded(qualified),
    )


def _ad_hoc_qualified(sleep: float | None) -> float | None:
    if sleep is None:
        return None
    if round_half_up(sleep) < AD_HOC_MIN_SLEEP_MINUTES:
        return 0.0
    return sleep * AD_HOC_SLEEP_CREDIT
