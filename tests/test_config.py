"""
Tests for settings loading.
"""

import logging
import os

import pytest

from sleeptrain.config import DEFAULT_SETTINGS, EngineSettings, load_settings
from sleeptrain.errors import ValidationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own SLEEPTRAIN_* variables out of these tests."""
    for key in list(os.environ):
        if key.startswith("SLEEPTRAIN_"):
            monkeypatch.delenv(key)


def write_yaml(tmp_path, text):
    path = tmp_path / "sleeptrain.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "missing.yaml")

        assert settings == EngineSettings()
        assert settings.scheduling.recommended_point == "midpoint"
        assert settings.scheduling.sleep_debt_threshold_minutes == 30
        assert settings.tracker.readiness_lookback_days == 7

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_settings(write_yaml(tmp_path, "")) == DEFAULT_SETTINGS

    def test_yaml_values(self, tmp_path):
        path = write_yaml(
            tmp_path,
            "scheduling:\n"
            "  recommended_point: earliest_offset\n"
            "  recommended_offset_minutes: 10\n"
            "tracker:\n"
            "  readiness_lookback_days: 10\n"
            "log_level: info\n",
        )

        settings = load_settings(path)

        assert settings.scheduling.recommended_point == "earliest_offset"
        assert settings.scheduling.recommended_offset_minutes == 10
        assert settings.scheduling.transition_tolerance_minutes == 15
        assert settings.tracker.readiness_lookback_days == 10
        assert settings.log_level == "info"

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = write_yaml(tmp_path, "scheduling:\n  sleep_debt_threshold_minutes: 20\n")
        monkeypatch.setenv("SLEEPTRAIN_SCHEDULING__SLEEP_DEBT_THRESHOLD_MINUTES", "45")
        monkeypatch.setenv("SLEEPTRAIN_LOG_LEVEL", "DEBUG")

        settings = load_settings(path)

        assert settings.scheduling.sleep_debt_threshold_minutes == 45
        assert settings.log_level == "DEBUG"

    def test_env_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SLEEPTRAIN_TRACKER__READINESS_LOOKBACK_DAYS", "14")

        settings = load_settings(tmp_path / "missing.yaml")

        assert settings.tracker.readiness_lookback_days == 14

    @pytest.mark.parametrize(
        "text",
        [
            "scheduling:\n  recommended_point: latest\n",
            "scheduling:\n  bedtime_offset: 5\n",
            "scheduling:\n  max_sleep_debt_shift_minutes: -10\n",
            "scheduling: 12\n",
            "tracker:\n  readiness_lookback_days: 0\n",
            "log_level: chatty\n",
        ],
    )
    def test_rejects_bad_settings(self, tmp_path, text):
        with pytest.raises(ValidationError):
            load_settings(write_yaml(tmp_path, text))


def test_configure_logging(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    EngineSettings(log_level="debug").configure_logging()

    assert calls["level"] == "DEBUG"
