"""
Run one engine calculation from a JSON request file.

Usage: sleeptrain-calc <request_file.json> [--settings settings.yaml]

The request names an "operation" plus that operation's inputs in the
camelCase wire format; the result is printed as JSON to stdout. Errors are
printed as {"error": ...} with exit code 0 so callers can always parse the
output. Only a usage error exits non-zero.
"""

import json
import logging
import sys
from collections.abc import Callable
from datetime import date
from pathlib import Path

from .config import EngineSettings, load_settings
from .errors import InvalidStateTransition, NotFound, SleepTrainError, ValidationError
from .rest.sessions import apply_event, recompute
from .rest.summary import summarize_day
from .scheduling.day_schedule import calculate_adjusted_bedtime, calculate_day_schedule
from .scheduling.next_action import calculate_next_action
from .scheduling.transition import (
    analyze_nap_push_readiness,
    check_crib_90_compliance,
    get_transition_progress,
)
from .serialization import (
    actual_nap_from_dict,
    parse_instant,
    schedule_from_dict,
    session_from_dict,
    to_dict,
    transition_from_dict,
)
from .time_math import utc_now
from .types import SessionEvent

logger = logging.getLogger(__name__)


def _optional_transition(data: dict):
    raw = data.get("transition")
    return transition_from_dict(raw) if raw else None


def _now(data: dict):
    return parse_instant(data["now"], "now") if data.get("now") else utc_now()


def _day_schedule(data: dict, settings: EngineSettings):
    end_times = data.get("actualNapEndTimes")
    return calculate_day_schedule(
        parse_instant(data["wakeTime"], "wakeTime"),
        schedule_from_dict(data["schedule"]),
        data["timezone"],
        transition=_optional_transition(data),
        actual_nap_durations=data.get("actualNapDurations"),
        actual_nap_end_times=(
            [parse_instant(t, "actualNapEndTimes") if t else None for t in end_times]
            if end_times
            else None
        ),
        settings=settings.scheduling,
    )


def run_day_schedule(data: dict, settings: EngineSettings) -> dict:
    return to_dict(_day_schedule(data, settings))


def run_adjusted_bedtime(data: dict, settings: EngineSettings) -> dict:
    bedtime = calculate_adjusted_bedtime(
        parse_instant(data["wakeTime"], "wakeTime"),
        schedule_from_dict(data["schedule"]),
        data["timezone"],
        [actual_nap_from_dict(n) for n in data.get("actualNaps", [])],
        settings=settings.scheduling,
    )
    return to_dict(bedtime)


def run_next_action(data: dict, settings: EngineSettings) -> dict:
    must_wake_by = data.get("mustWakeBy")
    action = calculate_next_action(
        _now(data),
        _day_schedule(data, settings),
        data.get("completedNapCount", 0),
        bool(data.get("isAsleep", False)),
        data["timezone"],
        must_wake_by=parse_instant(must_wake_by, "mustWakeBy") if must_wake_by else None,
    )
    return to_dict(action)


def run_transition_progress(data: dict, settings: EngineSettings) -> dict:
    progress = get_transition_progress(_optional_transition(data), now=_now(data))
    return {"progress": to_dict(progress)}


def run_nap_push_readiness(data: dict, settings: EngineSettings) -> dict:
    readiness = analyze_nap_push_readiness(
        _optional_transition(data),
        [session_from_dict(s) for s in data.get("recentSessions", [])],
        now=_now(data),
        settings=settings.tracker,
    )
    return {"readiness": to_dict(readiness)}


def run_crib_compliance(data: dict, settings: EngineSettings) -> dict:
    compliance = check_crib_90_compliance(session_from_dict(data["session"]), now=_now(data))
    return to_dict(compliance)


def run_durations(data: dict, settings: EngineSettings) -> dict:
    return to_dict(recompute(session_from_dict(data["session"])))


def run_session_event(data: dict, settings: EngineSettings) -> dict:
    at = data.get("at")
    session = apply_event(
        session_from_dict(data["session"]),
        SessionEvent(data["event"]),
        at=parse_instant(at, "at") if at else None,
    )
    return to_dict(session)


def run_daily_summary(data: dict, settings: EngineSettings) -> dict:
    try:
        day = date.fromisoformat(data["date"])
    except ValueError as exc:
        raise ValidationError(f"date must be YYYY-MM-DD: {data['date']!r}") from exc
    summary = summarize_day(
        [session_from_dict(s) for s in data.get("sessions", [])],
        day,
        data["timezone"],
    )
    return to_dict(summary)


OPERATIONS: dict[str, Callable[[dict, EngineSettings], dict]] = {
    "day_schedule": run_day_schedule,
    "adjusted_bedtime": run_adjusted_bedtime,
    "next_action": run_next_action,
    "transition_progress": run_transition_progress,
    "nap_push_readiness": run_nap_push_readiness,
    "crib_compliance": run_crib_compliance,
    "durations": run_durations,
    "session_event": run_session_event,
    "daily_summary": run_daily_summary,
}


def handle_request(data: dict, settings: EngineSettings) -> dict:
    """Dispatch a decoded request; raises on any failure."""
    operation = data.get("operation")
    handler = OPERATIONS.get(operation)
    if handler is None:
        raise ValidationError(
            f"Unknown operation {operation!r}, expected one of: {', '.join(OPERATIONS)}"
        )
    logger.debug("Running %s", operation)
    return handler(data, settings)


def error_payload(exc: Exception) -> dict:
    if isinstance(exc, InvalidStateTransition):
        return {
            "error": str(exc),
            "kind": "invalid_state_transition",
            "currentState": exc.current.value,
            "requestedState": exc.requested.value,
        }
    if isinstance(exc, NotFound):
        return {"error": str(exc), "kind": "not_found"}
    if isinstance(exc, ValidationError):
        return {"error": str(exc), "kind": "validation"}
    return {"error": str(exc)}


def main(argv: list[str] | None = None) -> None:
    args = list(sys.argv[1:] if argv is None else argv)
    settings_path = None
    if "--settings" in args:
        index = args.index("--settings")
        if index + 1 >= len(args):
            print(json.dumps({"error": "--settings needs a file path"}))
            sys.exit(1)
        settings_path = Path(args[index + 1])
        del args[index : index + 2]

    if len(args) != 1:
        print(json.dumps({"error": "Usage: sleeptrain-calc <request_file.json> [--settings FILE]"}))
        sys.exit(1)

    request_file = args[0]

    try:
        settings = load_settings(settings_path)
        settings.configure_logging()
        with open(request_file) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValidationError("Request must be a JSON object")
        print(json.dumps(handle_request(data, settings)))

    except FileNotFoundError:
        print(json.dumps({"error": f"Request file not found: {request_file}"}))
        # Exit 0 so callers can parse the JSON error
    except json.JSONDecodeError as e:
        print(json.dumps({"error": f"Invalid JSON in request file: {e}"}))
    except KeyError as e:
        print(json.dumps({"error": f"Missing required field: {e}"}))
    except SleepTrainError as e:
        logger.info("Request rejected: %s", e)
        print(json.dumps(error_payload(e)))
    except ValueError as e:
        print(json.dumps({"error": f"Invalid value: {e}"}))


if __name__ == "__main__":
    main()
