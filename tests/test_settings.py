"""Unit tests for settings resolution (YAML file, then environment)."""

from __future__ import annotations

import pytest

from reqpipe import settings


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / "reqpipe.yaml"
    monkeypatch.setenv("REQPIPE_SETTINGS_PATH", str(path))
    for k in ("concurrency", "CONCURRENCY", "REQPIPE_CONCURRENCY",
              "rate_limit", "RATE_LIMIT", "REQPIPE_RATE_LIMIT",
              "verify_tls", "VERIFY_TLS", "REQPIPE_VERIFY_TLS"):
        monkeypatch.delenv(k, raising=False)
    return path


def test_file_value_wins_over_environment(settings_file, monkeypatch) -> None:
    settings_file.write_text("concurrency: 12\n", encoding="utf-8")
    monkeypatch.setenv("REQPIPE_CONCURRENCY", "3")

    assert settings.get_int("concurrency", 6) == 12


def test_environment_used_when_file_missing(settings_file, monkeypatch) -> None:
    monkeypatch.setenv("REQPIPE_RATE_LIMIT", "0.5")

    assert settings.get_float("rate_limit", 0.0) == 0.5


def test_default_when_unset(settings_file) -> None:
    assert settings.get_setting("concurrency", "fallback") == "fallback"
    assert settings.get_setting("", "fallback") == "fallback"


def test_malformed_yaml_is_ignored(settings_file, caplog) -> None:
    settings_file.write_text("concurrency: [unclosed\n", encoding="utf-8")

    assert settings.get_int("concurrency", 6) == 6
    assert "ignoring unreadable settings file" in caplog.text


def test_non_mapping_file_is_ignored(settings_file) -> None:
    settings_file.write_text("- just\n- a list\n", encoding="utf-8")

    assert settings.get_setting("concurrency") is None


def test_bad_numbers_fall_back_to_default(settings_file, monkeypatch) -> None:
    monkeypatch.setenv("REQPIPE_CONCURRENCY", "many")
    monkeypatch.setenv("REQPIPE_RATE_LIMIT", "soon")

    assert settings.get_int("concurrency", 6) == 6
    assert settings.get_float("rate_limit", 0.25) == 0.25


@pytest.mark.parametrize(
    "raw,expected",
    [("true", True), ("1", True), ("yes", True), ("off", False), ("0", False), ("maybe", True)],
)
def test_get_bool_parses_env_strings(settings_file, monkeypatch, raw, expected) -> None:
    monkeypatch.setenv("REQPIPE_VERIFY_TLS", raw)

    assert settings.get_bool("verify_tls", True) is expected


def test_get_bool_accepts_yaml_booleans(settings_file) -> None:
    settings_file.write_text("verify_tls: false\n", encoding="utf-8")

    assert settings.get_bool("verify_tls", True) is False
