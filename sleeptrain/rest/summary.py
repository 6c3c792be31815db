"""Per-day roll-up of logged sessions."""

from dataclasses import dataclass
from datetime import date

from ..time_math import format_time_in_tz, local_date, round_half_up
from ..types import SessionType, SleepSession


@dataclass
class DailySleepSummary:
    date: str
    total_sleep_minutes: int
    nap_count: int
    nap_minutes: int
    night_sleep_minutes: int
    qualified_rest_minutes: int
    average_nap_length: int | None = None
    longest_nap: int | None = None
    shortest_nap: int | None = None
    first_nap_start: str | None = None  # "HH:MM" local
    last_nap_end: str | None = None
    bedtime: str | None = None
    wake_time: str | None = None
    crying_minutes: int | None = None  # None when nothing was reported


def summarize_day(sessions: list[SleepSession], day: date, timezone: str) -> DailySleepSummary:
    """
    Summarize the sessions that started on a local calendar day.

    Sessions are placed on a day by their put-down (or asleep) time in the
    child's timezone. Naps with no recorded sleep count toward nap_count but
    not toward the nap length statistics.
    """
    todays = [
        s
        for s in sessions
        if s.reference_time is not None and local_date(s.reference_time, timezone) == day
    ]
    todays.sort(key=lambda s: s.reference_time)

    total_sleep = nap_minutes = night_minutes = qualified = crying = 0
    nap_count = 0
    nap_lengths: list[int] = []
    first_nap_start = last_nap_end = bedtime = wake_time = None

    for session in todays:
        sleep = session.sleep_minutes or 0
        total_sleep += sleep
        qualified += session.qualified_rest_minutes or 0
        crying += session.crying_minutes or 0

        if session.session_type == SessionType.NAP:
            nap_count += 1
            nap_minutes += sleep
            if sleep > 0:
                nap_lengths.append(sleep)
            if session.put_down_at and (
                first_nap_start is None or session.put_down_at < first_nap_start
            ):
                first_nap_start = session.put_down_at
            if session.woke_up_at and (last_nap_end is None or session.woke_up_at > last_nap_end):
                last_nap_end = session.woke_up_at
        else:
            night_minutes += sleep
            if session.put_down_at:
                bedtime = session.put_down_at
            if session.woke_up_at:
                wake_time = session.woke_up_at

    def fmt(instant):
        return format_time_in_tz(instant, timezone) if instant is not None else None

    return DailySleepSummary(
        date=day.isoformat(),
        total_sleep_minutes=total_sleep,
        nap_count=nap_count,
        nap_minutes=nap_minutes,
        night_sleep_minutes=night_minutes,
        qualified_rest_minutes=qualified,
        average_nap_length=(
            round_half_up(sum(nap_lengths) / len(nap_lengths)) if nap_lengths else None
        ),
        longest_nap=max(nap_lengths) if nap_lengths else None,
        shortest_nap=min(nap_lengths) if nap_lengths else None,
        first_nap_start=fmt(first_nap_start),
        last_nap_end=fmt(last_nap_end),
        bedtime=fmt(bedtime),
        wake_time=fmt(wake_time),
        crying_minutes=crying if crying > 0 else None,
    )
