"""Engine settings loaded from YAML with environment overrides."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

import yaml

from .errors import ValidationError

SETTINGS_PATH = Path("config/sleeptrain.yaml")
ENV_PREFIX = "SLEEPTRAIN_"

RecommendedPoint = Literal["midpoint", "earliest_offset"]
RECOMMENDED_POINTS = ("midpoint", "earliest_offset")


@dataclass
class SchedulingSettings:
    """Tunables for the day schedule and next-action calculations."""

    # Where inside a put-down window the recommended instant sits
    recommended_point: RecommendedPoint = "midpoint"
    recommended_offset_minutes: int = 15  # Used by "earliest_offset"

    transition_tolerance_minutes: int = 15  # +/- around the transition nap time
    sleep_debt_threshold_minutes: int = 30  # Shortfall needed to move bedtime
    max_sleep_debt_shift_minutes: int = 60  # Most bedtime can move earlier


@dataclass
class TrackerSettings:
    readiness_lookback_days: int = 7  # Naps considered for push readiness


@dataclass
class EngineSettings:
    scheduling: SchedulingSettings = field(default_factory=SchedulingSettings)
    tracker: TrackerSettings = field(default_factory=TrackerSettings)
    log_level: str = "WARNING"

    def configure_logging(self) -> None:
        """Configure root logging for command-line use. Libraries never call this."""
        logging.basicConfig(
            level=self.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


DEFAULT_SETTINGS = EngineSettings()


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _apply_env_overrides(settings: dict[str, Any]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = key[len(ENV_PREFIX) :].lower().split("__")
        cursor = overrides
        for segment in path[:-1]:
            cursor = cursor.setdefault(segment, {})
        cursor[path[-1]] = value

    def merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
        for key, value in patch.items():
            if isinstance(value, dict):
                current = base.get(key)
                base[key] = merge(current if isinstance(current, dict) else {}, value)
            else:
                base[key] = _coerce(value)
        return base

    return merge(settings, overrides)


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _section(cls: type, raw: Any, name: str):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValidationError(f"Settings section {name!r} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValidationError(f"Unknown {name} settings: {', '.join(unknown)}")
    return cls(**raw)


def _validate(settings: EngineSettings) -> EngineSettings:
    scheduling = settings.scheduling
    if scheduling.recommended_point not in RECOMMENDED_POINTS:
        raise ValidationError(
            f"recommended_point must be one of {', '.join(RECOMMENDED_POINTS)}"
        )
    for name in (
        "recommended_offset_minutes",
        "transition_tolerance_minutes",
        "sleep_debt_threshold_minutes",
        "max_sleep_debt_shift_minutes",
    ):
        value = getattr(scheduling, name)
        if not isinstance(value, int) or value < 0:
            raise ValidationError(f"{name} must be a non-negative integer")
    lookback = settings.tracker.readiness_lookback_days
    if not isinstance(lookback, int) or lookback < 1:
        raise ValidationError("readiness_lookback_days must be a positive integer")
    if logging.getLevelName(str(settings.log_level).upper()) not in range(0, 60):
        raise ValidationError(f"Unknown log level {settings.log_level!r}")
    return settings


def load_settings(path: Path | None = None) -> EngineSettings:
    settings_path = path or SETTINGS_PATH
    raw = _read_yaml(settings_path)
    raw = _apply_env_overrides(raw)
    settings = EngineSettings(
        scheduling=_section(SchedulingSettings, raw.get("scheduling"), "scheduling"),
        tracker=_section(TrackerSettings, raw.get("tracker"), "tracker"),
        log_level=str(raw.get("log_level", "WARNING")),
    )
    return _validate(settings)
