"""
Sleep session state machine.

A session only ever moves forward:

    PENDING --fell_asleep--> ASLEEP --woke_up--> AWAKE --out_of_crib--> COMPLETED

Every operation returns a new SleepSession and leaves its input untouched,
so a rejected event can never half-apply. Derived minute fields are
recomputed from the timestamps and cycles after every change.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import uuid4

from ..errors import InvalidStateTransition, NotFound, ValidationError
from ..time_math import Clock, require_aware, utc_now
from ..types import (
    NapLocation,
    SessionEvent,
    SessionState,
    SessionType,
    SleepCycle,
    SleepSession,
    WakeType,
)
from .durations import compute_durations

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[SessionState, tuple[SessionState, ...]] = {
    SessionState.PENDING: (SessionState.ASLEEP,),
    SessionState.ASLEEP: (SessionState.AWAKE,),
    SessionState.AWAKE: (SessionState.COMPLETED,),
    SessionState.COMPLETED: (),
}

EVENT_TARGETS: dict[SessionEvent, SessionState] = {
    SessionEvent.FELL_ASLEEP: SessionState.ASLEEP,
    SessionEvent.WOKE_UP: SessionState.AWAKE,
    SessionEvent.OUT_OF_CRIB: SessionState.COMPLETED,
}

EVENT_FIELDS: dict[SessionEvent, str] = {
    SessionEvent.FELL_ASLEEP: "asleep_at",
    SessionEvent.WOKE_UP: "woke_up_at",
    SessionEvent.OUT_OF_CRIB: "out_of_crib_at",
}

# Projection used by home-automation displays
DISPLAY_STATES: dict[SessionState, str] = {
    SessionState.PENDING: "In Crib",
    SessionState.ASLEEP: "Asleep",
    SessionState.AWAKE: "Awake in Crib",
    SessionState.COMPLETED: "Awake",
}

TIMESTAMP_FIELDS = ("put_down_at", "asleep_at", "woke_up_at", "out_of_crib_at")
CORRECTABLE_FIELDS = frozenset(TIMESTAMP_FIELDS) | {"crying_minutes", "notes"}
CYCLE_FIELDS = frozenset({"woke_up_at", "fell_back_asleep_at", "wake_type"})

MAX_CRYING_MINUTES = 180
MAX_NOTES_LENGTH = 500


def is_valid_transition(current: SessionState, target: SessionState) -> bool:
    return target in VALID_TRANSITIONS[current]


def display_state(session: SleepSession | None) -> str:
    """Human-facing state label; no active session reads as "Awake"."""
    if session is None:
        return DISPLAY_STATES[SessionState.COMPLETED]
    return DISPLAY_STATES[session.state]


# =============================================================================
# Validation
# =============================================================================


def _check_timestamp_order(session: SleepSession) -> None:
    previous_name = None
    previous = None
    for name in TIMESTAMP_FIELDS:
        value = getattr(session, name)
        if value is None:
            continue
        if previous is not None and value < previous:
            raise ValidationError(f"{name} cannot be before {previous_name}")
        previous_name, previous = name, value


def _check_fields(session: SleepSession) -> None:
    crying = session.crying_minutes
    if crying is not None and (
        not isinstance(crying, int) or not 0 <= crying <= MAX_CRYING_MINUTES
    ):
        raise ValidationError(f"crying_minutes must be between 0 and {MAX_CRYING_MINUTES}")
    if session.notes is not None and len(session.notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")
    if session.nap_number is not None and session.nap_number < 1:
        raise ValidationError("nap_number must be 1 or greater")


def validate_cycles(cycles: list[SleepCycle]) -> None:
    """
    Reject inverted or overlapping cycles.

    Touching endpoints are allowed. A cycle that is still open (no
    fell-back-asleep time) must be the last one.
    """
    ordered = sorted(cycles, key=lambda c: c.woke_up_at)
    previous_end = None
    for index, cycle in enumerate(ordered):
        if cycle.fell_back_asleep_at is not None and cycle.fell_back_asleep_at < cycle.woke_up_at:
            raise ValidationError("Cycle cannot fall back asleep before waking up")
        if index > 0:
            if previous_end is None:
                raise ValidationError("Only the last cycle may be missing a fell-back-asleep time")
            if cycle.woke_up_at < previous_end:
                raise ValidationError("Sleep cycles cannot overlap")
        previous_end = cycle.fell_back_asleep_at


# =============================================================================
# Operations
# =============================================================================


def recompute(session: SleepSession) -> SleepSession:
    """Return a copy with every derived field refreshed from the timestamps."""
    durations = compute_durations(
        session.put_down_at,
        session.asleep_at,
        session.woke_up_at,
        session.out_of_crib_at,
        session.cycles,
        is_ad_hoc=session.is_ad_hoc,
    )
    return replace(
        session,
        total_minutes=durations.total_minutes,
        sleep_minutes=durations.sleep_minutes,
        settling_minutes=durations.settling_minutes,
        post_wake_minutes=durations.post_wake_minutes,
        awake_crib_minutes=durations.awake_crib_minutes,
        qualified_rest_minutes=durations.qualified_rest_minutes,
    )


def start_session(
    session_type: SessionType,
    put_down_at: datetime | None = None,
    nap_number: int | None = None,
    child_id: str | None = None,
    notes: str | None = None,
    clock: Clock = utc_now,
) -> SleepSession:
    """Create a PENDING crib session at the put-down time (default: now)."""
    now = clock()
    session = SleepSession(
        session_type=SessionType(session_type),
        state=SessionState.PENDING,
        id=str(uuid4()),
        child_id=child_id,
        nap_number=nap_number,
        put_down_at=require_aware(put_down_at, "put_down_at") if put_down_at else now,
        notes=notes,
        created_at=now,
    )
    _check_fields(session)
    logger.debug("Started %s session %s", session.session_type.value, session.id)
    return recompute(session)


def start_ad_hoc_session(
    location: NapLocation,
    asleep_at: datetime,
    woke_up_at: datetime | None = None,
    nap_number: int | None = None,
    child_id: str | None = None,
    notes: str | None = None,
    clock: Clock = utc_now,
) -> SleepSession:
    """
    Log a nap taken outside the crib.

    The child is already asleep, so put-down equals asleep. When the wake
    time is known the nap is logged already COMPLETED, with out-of-crib equal
    to wake-up.
    """
    asleep_at = require_aware(asleep_at, "asleep_at")
    completed = woke_up_at is not None
    if completed:
        woke_up_at = require_aware(woke_up_at, "woke_up_at")
    session = SleepSession(
        session_type=SessionType.NAP,
        state=SessionState.COMPLETED if completed else SessionState.ASLEEP,
        id=str(uuid4()),
        child_id=child_id,
        nap_number=nap_number,
        is_ad_hoc=True,
        location=NapLocation(location),
        put_down_at=asleep_at,
        asleep_at=asleep_at,
        woke_up_at=woke_up_at,
        out_of_crib_at=woke_up_at,
        notes=notes,
        created_at=clock(),
    )
    _check_timestamp_order(session)
    _check_fields(session)
    return recompute(session)


def apply_event(
    session: SleepSession,
    event: SessionEvent,
    at: datetime | None = None,
    clock: Clock = utc_now,
) -> SleepSession:
    """
    Apply a state-changing event and return the updated session.

    Args:
        session: Current session (not modified)
        event: fell_asleep, woke_up or out_of_crib
        at: When the event happened; defaults to the clock

    Raises:
        InvalidStateTransition: Event is not legal from the current state
        ValidationError: Timestamp would precede an earlier one
    """
    event = SessionEvent(event)
    target = EVENT_TARGETS[event]
    if not is_valid_transition(session.state, target):
        logger.info(
            "Rejected %s for session %s in state %s",
            event.value,
            session.id,
            session.state.value,
        )
        raise InvalidStateTransition(session.state, target)

    instant = require_aware(at, "at") if at is not None else clock()
    updated = replace(session, state=target, **{EVENT_FIELDS[event]: instant})

    # Out-of-crib naps end the moment the child wakes
    if session.is_ad_hoc and event == SessionEvent.WOKE_UP:
        updated = replace(updated, state=SessionState.COMPLETED, out_of_crib_at=instant)

    _check_timestamp_order(updated)
    logger.debug("Session %s: %s -> %s", session.id, session.state.value, updated.state.value)
    return recompute(updated)


def apply_correction(session: SleepSession, **changes) -> SleepSession:
    """
    Edit timestamps, crying minutes or notes without changing state.

    Allowed in any state. Timestamps must still be in order afterwards.
    """
    unknown = set(changes) - CORRECTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot correct fields: {', '.join(sorted(unknown))}")
    for name in TIMESTAMP_FIELDS:
        if name in changes:
            if changes[name] is None:
                raise ValidationError(f"{name} cannot be cleared")
            changes[name] = require_aware(changes[name], name)
    updated = replace(session, **changes)
    _check_timestamp_order(updated)
    _check_fields(updated)
    return recompute(updated)


def add_cycle(
    session: SleepSession,
    woke_up_at: datetime,
    fell_back_asleep_at: datetime | None = None,
    wake_type: WakeType = WakeType.QUIET,
) -> SleepSession:
    cycle = SleepCycle(
        woke_up_at=require_aware(woke_up_at, "woke_up_at"),
        fell_back_asleep_at=(
            require_aware(fell_back_asleep_at, "fell_back_asleep_at")
            if fell_back_asleep_at is not None
            else None
        ),
        wake_type=WakeType(wake_type),
        id=str(uuid4()),
    )
    return _with_cycles(session, [*session.cycles, cycle])


def _find_cycle(session: SleepSession, cycle_id: str) -> int:
    for index, cycle in enumerate(session.cycles):
        if cycle.id == cycle_id:
            return index
    raise NotFound("Sleep cycle", cycle_id)


def update_cycle(session: SleepSession, cycle_id: str, **changes) -> SleepSession:
    """Edit one cycle's times or wake type; returns the updated session."""
    unknown = set(changes) - CYCLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update cycle fields: {', '.join(sorted(unknown))}")
    index = _find_cycle(session, cycle_id)
    if changes.get("woke_up_at") is not None:
        changes["woke_up_at"] = require_aware(changes["woke_up_at"], "woke_up_at")
    if changes.get("fell_back_asleep_at") is not None:
        changes["fell_back_asleep_at"] = require_aware(
            changes["fell_back_asleep_at"], "fell_back_asleep_at"
        )
    if "wake_type" in changes:
        changes["wake_type"] = WakeType(changes["wake_type"])
    cycles = list(session.cycles)
    cycles[index] = replace(cycles[index], **changes)
    return _with_cycles(session, cycles)


def remove_cycle(session: SleepSession, cycle_id: str) -> SleepSession:
    index = _find_cycle(session, cycle_id)
    cycles = [c for i, c in enumerate(session.cycles) if i != index]
    return _with_cycles(session, cycles)


def _with_cycles(session: SleepSession, cycles: list[SleepCycle]) -> SleepSession:
    validate_cycles(cycles)
    ordered = sorted(cycles, key=lambda c: c.woke_up_at)
    return recompute(replace(session, cycles=ordered))


@dataclass
class RecalculatedSession:
    session: SleepSession
    old_qualified_rest_minutes: int | None
    new_qualified_rest_minutes: int | None

    @property
    def changed(self) -> bool:
        return self.old_qualified_rest_minutes != self.new_qualified_rest_minutes


def recalculate_sessions(sessions: list[SleepSession]) -> list[RecalculatedSession]:
    """Recompute stored sessions, e.g. after a crediting rule change."""
    results = []
    for session in sessions:
        updated = recompute(session)
        results.append(
            RecalculatedSession(
                session=updated,
                old_qualified_rest_minutes=session.qualified_rest_minutes,
                new_qualified_rest_minutes=updated.qualified_rest_minutes,
            )
        )
    changed = sum(1 for r in results if r.changed)
    logger.info("Recalculated %d sessions (%d changed)", len(results), changed)
    return results
