from __future__ import annotations

from datetime import timedelta

import pytest

from chatkeep.config import (
    CaptureConfig,
    ConfigurationError,
    MissingConfigurationError,
    env_flag,
    env_number,
    get_capture_config,
    require_env_vars,
)

_CAPTURE_VARS = (
    "CHATKEEP_AUTO_SAVE",
    "CHATKEEP_DEBOUNCE_SECONDS",
    "CHATKEEP_CACHE_MAX_ENTRIES",
    "CHATKEEP_CACHE_TTL_SECONDS",
)


@pytest.fixture
def clean_capture_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _CAPTURE_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_reports_missing_and_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("Yes", True), (" on ", True), ("0", False), ("FALSE", False), ("off", False)],
)
def test_env_flag_parses_common_spellings(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", raw)

    assert env_flag("EXAMPLE_FLAG", default=not expected) is expected


def test_env_flag_defaults_and_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_FLAG", raising=False)
    assert env_flag("EXAMPLE_FLAG", default=True) is True

    monkeypatch.setenv("EXAMPLE_FLAG", "maybe")
    with pytest.raises(ConfigurationError, match="EXAMPLE_FLAG"):
        env_flag("EXAMPLE_FLAG", default=True)


def test_env_number_parses_and_validates(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_NUMBER", "2.5")
    assert env_number("EXAMPLE_NUMBER", default=1.0, kind=float, minimum=0.0) == 2.5

    monkeypatch.setenv("EXAMPLE_NUMBER", "2.5")
    with pytest.raises(ConfigurationError, match="must be a int"):
        env_number("EXAMPLE_NUMBER", default=1, kind=int, minimum=1)

    monkeypatch.setenv("EXAMPLE_NUMBER", "0")
    with pytest.raises(ConfigurationError, match="at least 1"):
        env_number("EXAMPLE_NUMBER", default=1, kind=int, minimum=1)


def test_capture_config_defaults(clean_capture_env: pytest.MonkeyPatch) -> None:
    _ = clean_capture_env

    config = get_capture_config()

    assert config == CaptureConfig()
    assert config.auto_save is True
    assert config.debounce_seconds == 1.0
    assert config.cache_max_entries == 100
    assert config.cache_ttl == timedelta(minutes=5)


def test_capture_config_from_environment(clean_capture_env: pytest.MonkeyPatch) -> None:
    clean_capture_env.setenv("CHATKEEP_AUTO_SAVE", "no")
    clean_capture_env.setenv("CHATKEEP_DEBOUNCE_SECONDS", "0.25")
    clean_capture_env.setenv("CHATKEEP_CACHE_MAX_ENTRIES", "10")
    clean_capture_env.setenv("CHATKEEP_CACHE_TTL_SECONDS", "60")

    config = get_capture_config()

    assert config == CaptureConfig(
        auto_save=False,
        debounce_seconds=0.25,
        cache_max_entries=10,
        cache_ttl_seconds=60.0,
    )


def test_capture_config_rejects_empty_cache(clean_capture_env: pytest.MonkeyPatch) -> None:
    clean_capture_env.setenv("CHATKEEP_CACHE_MAX_ENTRIES", "0")

    with pytest.raises(ConfigurationError, match="CHATKEEP_CACHE_MAX_ENTRIES"):
        get_capture_config()
