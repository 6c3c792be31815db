"""
Day schedule calculation: nap windows and bedtime for one calendar day.

For each nap N the put-down window is the intersection of:
- The wake window measured from the anchor (wake time for nap 1, the end of
  nap N-1 after that)
- The schedule's configured earliest and latest-start clock times

Key principles:
- Every bound is a clamp, never an error. A window that collapses (earliest
  after latest) becomes a single instant at earliest, so very early or very
  late wake times still produce a usable plan
- Nap 2 may run long (exception duration) after a short nap 1
- Bedtime follows the last nap's end plus the bedtime wake window, clamped
  into the schedule's bedtime range unless the wake window alone already
  runs past it, and moves earlier when the day's naps fell short (sleep debt)
- A single-nap day during an active transition targets the transition's
  nap time instead of the schedule's nap-1 rules

Clock times resolve on the local day of the wake time, so windows stay
correct across DST changes.
"""

import logging
from datetime import datetime

from ..config import DEFAULT_SETTINGS, SchedulingSettings
from ..errors import ValidationError
from ..time_math import (
    add_minutes,
    clamp,
    duration_minutes,
    get_zone,
    local_date,
    midpoint,
    parse_time_on_day,
    require_aware,
)
from ..types import (
    ActualNap,
    BedtimeRecommendation,
    DayScheduleRecommendation,
    NapRecommendation,
    ScheduleTransition,
    ScheduleType,
    SleepSchedule,
    TimeWindow,
)

logger = logging.getLogger(__name__)

# Only nap 2 may use the schedule's exception duration
EXCEPTION_NAP_NUMBER = 2

SINGLE_NAP_TYPES = (ScheduleType.ONE_NAP, ScheduleType.TRANSITION)


def recommended_point(
    earliest: datetime, latest: datetime, settings: SchedulingSettings
) -> datetime:
    """Pick the recommended instant inside [earliest, latest]."""
    if settings.recommended_point == "earliest_offset":
        return clamp(add_minutes(earliest, settings.recommended_offset_minutes), earliest, latest)
    return midpoint(earliest, latest)


class DayScheduleCalculator:
    """
    Compute nap and bedtime windows for one schedule in one timezone.

    Stateless apart from its configuration; one instance can serve any
    number of days.
    """

    def __init__(
        self,
        schedule: SleepSchedule,
        timezone: str,
        settings: SchedulingSettings | None = None,
    ):
        """
        Args:
            schedule: The child's schedule
            timezone: IANA timezone the schedule's clock times are in
            settings: Scheduling tunables (defaults to DEFAULT_SETTINGS)
        """
        get_zone(timezone)
        self.schedule = schedule
        self.timezone = timezone
        self.settings = settings or DEFAULT_SETTINGS.scheduling

    def _clock(self, time_str: str, day: datetime) -> datetime:
        return parse_time_on_day(time_str, day, self.timezone)

    def _active_transition(
        self, transition: ScheduleTransition | None
    ) -> ScheduleTransition | None:
        if transition is None or not transition.is_active:
            return None
        if self.schedule.type not in SINGLE_NAP_TYPES:
            return None
        return transition

    # -------------------------------------------------------------------------
    # Naps
    # -------------------------------------------------------------------------

    def nap(
        self,
        nap_number: int,
        anchor: datetime,
        day: datetime,
        previous_nap_short: bool = False,
        transition: ScheduleTransition | None = None,
    ) -> NapRecommendation:
        """
        Recommend one nap.

        Args:
            nap_number: 1-based nap index
            anchor: When the child woke (from the night or the previous nap)
            day: Any instant on the schedule day, used to resolve clock times
            previous_nap_short: The previous nap ran under its max duration
            transition: Active transition anchoring a single-nap day
        """
        config = self.schedule.nap_config(nap_number)
        notes: list[str] = []
        label = f"Nap {nap_number}" if self.schedule.nap_count > 1 else "Nap"

        if transition is not None:
            target = self._clock(transition.current_nap_time, day)
            tolerance = self.settings.transition_tolerance_minutes
            earliest = add_minutes(target, -tolerance)
            latest = add_minutes(target, tolerance)
            notes.append(
                f"Transition week {transition.current_week}: "
                f"targeting {transition.current_nap_time}"
            )
        else:
            earliest = add_minutes(anchor, config.wake_window_min)
            latest = add_minutes(anchor, config.wake_window_max)
            if config.earliest:
                floor = self._clock(config.earliest, day)
                if floor > earliest:
                    earliest = floor
                    notes.append(f"{label} held until {config.earliest} per schedule")

        if config.latest_start:
            latest = min(latest, self._clock(config.latest_start, day))

        if earliest > latest:
            latest = earliest
            if nap_number == 1:
                notes.append("Wake window extended - late wake time")
            else:
                notes.append("Wake window extended - nap timing compressed")
            logger.debug("Nap %d window collapsed to %s", nap_number, earliest.isoformat())

        max_duration = config.max_duration
        if (
            nap_number == EXCEPTION_NAP_NUMBER
            and previous_nap_short
            and self.schedule.nap2_exception_duration
        ):
            max_duration = self.schedule.nap2_exception_duration
            notes.append(f"Extended nap {nap_number} allowed due to short nap {nap_number - 1}")

        return NapRecommendation(
            nap_number=nap_number,
            put_down_window=TimeWindow(
                earliest=earliest,
                latest=latest,
                recommended=recommended_point(earliest, latest, self.settings),
            ),
            max_duration=max_duration,
            end_by=self._clock(config.end_by, day) if config.end_by else None,
            notes=notes,
        )

    # -------------------------------------------------------------------------
    # Bedtime
    # -------------------------------------------------------------------------

    def expected_nap_minutes(self, completed_naps: int) -> int:
        """Planned sleep for the first N naps, capped at the day-sleep cap."""
        planned = sum(
            self.schedule.nap_config(n).max_duration for n in range(1, completed_naps + 1)
        )
        return min(planned, self.schedule.day_sleep_cap)

    def bedtime(
        self,
        last_wake: datetime,
        day: datetime,
        actual_nap_minutes: int | None = None,
        expected_nap_minutes: int | None = None,
    ) -> BedtimeRecommendation:
        """
        Recommend bedtime after the day's last nap.

        Args:
            last_wake: End of the last nap (or the morning wake with no naps)
            day: Any instant on the schedule day
            actual_nap_minutes: Nap sleep that actually happened, if known
            expected_nap_minutes: Nap sleep expected for those naps
        """
        schedule = self.schedule
        notes: list[str] = []

        earliest = add_minutes(last_wake, schedule.bedtime_wake_window_min)
        latest = add_minutes(last_wake, schedule.bedtime_wake_window_max)

        floor = self._clock(schedule.bedtime_earliest, day)
        ceiling = self._clock(schedule.bedtime_latest, day)
        if ceiling < floor:
            ceiling = add_minutes(ceiling, 24 * 60)  # Latest bedtime past midnight

        if earliest < floor:
            earliest = floor
            notes.append(f"Bedtime held until {schedule.bedtime_earliest} per schedule")
        if earliest > ceiling:
            # The wake window after the last nap wins over the configured latest
            latest = earliest
            notes.append("Wake window extended - late bedtime")
            logger.debug(
                "Bedtime pushed past %s to %s", schedule.bedtime_latest, earliest.isoformat()
            )
        elif latest > ceiling:
            latest = ceiling
            notes.append(f"Bedtime capped at {schedule.bedtime_latest} per schedule")

        if actual_nap_minutes is not None and expected_nap_minutes is not None:
            shortfall = expected_nap_minutes - actual_nap_minutes
            if shortfall > self.settings.sleep_debt_threshold_minutes:
                shift = min(shortfall, self.settings.max_sleep_debt_shift_minutes)
                earliest = max(add_minutes(earliest, -shift), floor)
                latest = max(add_minutes(latest, -shift), floor)
                notes.append(f"Earlier bedtime recommended due to {shortfall} min sleep debt")
                logger.debug("Sleep debt %d min, bedtime moved %d min earlier", shortfall, shift)

        if earliest > latest:
            latest = earliest

        if schedule.bedtime_goal_start and schedule.bedtime_goal_end:
            goal_start = self._clock(schedule.bedtime_goal_start, day)
            goal_end = self._clock(schedule.bedtime_goal_end, day)
            if goal_end < goal_start:
                goal_end = add_minutes(goal_end, 24 * 60)
            recommended = clamp(midpoint(goal_start, goal_end), earliest, latest)
        else:
            recommended = recommended_point(earliest, latest, self.settings)

        return BedtimeRecommendation(
            put_down_window=TimeWindow(earliest=earliest, latest=latest, recommended=recommended),
            notes=notes,
        )

    # -------------------------------------------------------------------------
    # Whole day
    # -------------------------------------------------------------------------

    def day(
        self,
        wake_time: datetime,
        transition: ScheduleTransition | None = None,
        actual_nap_durations: list[int] | None = None,
        actual_nap_end_times: list[datetime | None] | None = None,
    ) -> DayScheduleRecommendation:
        wake_time = require_aware(wake_time, "wake_time")
        durations = list(actual_nap_durations or [])
        for duration in durations:
            if not isinstance(duration, int) or duration < 0:
                raise ValidationError("Actual nap durations must be non-negative minutes")
        end_times = [
            require_aware(t, "actual_nap_end_time") if t is not None else None
            for t in (actual_nap_end_times or [])
        ]

        active = self._active_transition(transition)
        naps: list[NapRecommendation] = []
        anchor = wake_time
        previous_short = False
        planned_total = 0

        for nap_number in range(1, self.schedule.nap_count + 1):
            index = nap_number - 1
            nap = self.nap(
                nap_number,
                anchor,
                wake_time,
                previous_nap_short=previous_short,
                transition=active,
            )
            naps.append(nap)

            actual = durations[index] if index < len(durations) else None
            planned_total += actual if actual is not None else nap.max_duration
            previous_short = actual is not None and actual < nap.max_duration

            if index < len(end_times) and end_times[index] is not None:
                anchor = end_times[index]
            else:
                slept = actual if actual is not None else nap.max_duration
                anchor = add_minutes(nap.put_down_window.recommended, slept)

        completed = durations[: self.schedule.nap_count]
        bedtime = self.bedtime(
            anchor,
            wake_time,
            actual_nap_minutes=sum(completed) if completed else None,
            expected_nap_minutes=self.expected_nap_minutes(len(completed)),
        )

        warnings = []
        if planned_total > self.schedule.day_sleep_cap:
            warnings.append(f"Day sleep may exceed {self.schedule.day_sleep_cap} min cap")

        return DayScheduleRecommendation(
            date=local_date(wake_time, self.timezone).isoformat(),
            wake_time=wake_time,
            naps=naps,
            bedtime=bedtime,
            total_day_sleep_cap=self.schedule.day_sleep_cap,
            warnings=warnings,
        )

    def adjusted_bedtime(
        self, wake_time: datetime, actual_naps: list[ActualNap]
    ) -> BedtimeRecommendation:
        wake_time = require_aware(wake_time, "wake_time")
        last_wake = wake_time
        actual_minutes = 0
        for nap in actual_naps:
            asleep = require_aware(nap.asleep_at, "asleep_at")
            woke = require_aware(nap.woke_up_at, "woke_up_at")
            if woke < asleep:
                raise ValidationError("Nap cannot end before it starts")
            actual_minutes += duration_minutes(asleep, woke)
            last_wake = max(last_wake, woke)

        if not actual_naps:
            return self.bedtime(last_wake, wake_time)
        return self.bedtime(
            last_wake,
            wake_time,
            actual_nap_minutes=actual_minutes,
            expected_nap_minutes=self.expected_nap_minutes(len(actual_naps)),
        )


def calculate_day_schedule(
    wake_time: datetime,
    schedule: SleepSchedule,
    timezone: str,
    transition: ScheduleTransition | None = None,
    actual_nap_durations: list[int] | None = None,
    actual_nap_end_times: list[datetime | None] | None = None,
    settings: SchedulingSettings | None = None,
) -> DayScheduleRecommendation:
    """
    Recommend nap windows and bedtime for the day starting at wake_time.

    Args:
        wake_time: Morning wake (timezone-aware)
        schedule: The child's schedule
        timezone: IANA timezone for the schedule's clock times
        transition: Active nap transition, if any
        actual_nap_durations: Minutes slept in naps already taken, in order
        actual_nap_end_times: When naps already taken ended, in order

    Returns:
        DayScheduleRecommendation with UTC instants

    Raises:
        ValidationError: Naive datetimes, unknown timezone or bad durations
    """
    calculator = DayScheduleCalculator(schedule, timezone, settings)
    return calculator.day(
        wake_time,
        transition=transition,
        actual_nap_durations=actual_nap_durations,
        actual_nap_end_times=actual_nap_end_times,
    )


def calculate_adjusted_bedtime(
    wake_time: datetime,
    schedule: SleepSchedule,
    timezone: str,
    actual_naps: list[ActualNap],
    settings: SchedulingSettings | None = None,
) -> BedtimeRecommendation:
    """Re-plan bedtime from the naps that actually happened today."""
    calculator = DayScheduleCalculator(schedule, timezone, settings)
    return calculator.adjusted_bedtime(wake_time, actual_naps)
