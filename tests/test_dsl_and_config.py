from __future__ import annotations

import logging
from dataclasses import fields

import pytest
from pydantic import ValidationError

from synthetics_engine.config_loader import DEFAULT_SETTINGS_PATH, load_settings, settings_log_level
from synthetics_engine.core.errors import ErrorInfo, HookError, StepExecutionError
from synthetics_engine.core.options import RunOptions
from synthetics_engine.dsl.journey import Journey, JourneyScope
from synthetics_engine.utils import logging_utils


def test_step_indices_are_gapless_and_read_only() -> None:
    journey = Journey(name="indices")
    for name in ("a", "b", "c"):
        journey.add_step(name, lambda: None)

    assert [step.index for step in journey.steps] == [1, 2, 3]
    with pytest.raises(AttributeError):
        journey.steps[0].index = 5
    assert journey.steps[0].duration == -1


def test_journey_defaults_and_validation() -> None:
    journey = Journey(name="login")

    assert journey.id == "login"
    assert journey.status == "pending"
    with pytest.raises(ValueError):
        Journey(name="  ")


def test_scope_step_decorator_registers_in_order() -> None:
    scope = JourneyScope(journey=Journey(name="scoped"))

    @scope.step("first")
    def first() -> None:
        return None

    @scope.step("second", soft=True)
    def second() -> None:
        return None

    assert [(step.name, step.soft) for step in scope.journey.steps] == [("first", False), ("second", True)]
    assert scope.journey.steps[0].callback is first
    assert scope.logger.name == "synthetics_engine.journey"


def test_journey_matching() -> None:
    journey = Journey(name="checkout flow", tags=["payments", "smoke"])

    assert journey.is_match()
    assert journey.is_match(match="checkout*")
    assert journey.is_match(match="smoke")
    assert not journey.is_match(match="login*")
    assert journey.is_match(tags=["pay*"])
    assert not journey.is_match(match="checkout*", tags=["auth"])


def test_run_options_from_packaged_settings() -> None:
    settings = load_settings()
    options = RunOptions.from_settings(settings, network=True, journey_name=None)

    assert DEFAULT_SETTINGS_PATH.name == "settings.yaml"
    assert options.headless is True
    assert options.screenshots == "off"
    assert options.network is True
    assert options.journey_name is None
    assert "--no-sandbox" in options.chromium_args
    assert options.successful_message_limit == 100


def test_run_options_coerce_screenshot_flags() -> None:
    assert RunOptions(screenshots=True).screenshots == "on"
    assert RunOptions(screenshots=None).screenshots == "off"
    assert RunOptions(screenshots="only-on-failure").screenshots == "only-on-failure"
    with pytest.raises(ValidationError):
        RunOptions(screenshots="sometimes")


def test_load_settings_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")


def test_error_info_from_exceptions() -> None:
    try:
        raise StepExecutionError("Broken")
    except StepExecutionError as exc:
        info = ErrorInfo.from_exception(exc)

    assert info.name == "StepExecutionError"
    assert info.message == "Broken"
    assert "Broken" in info.stack

    hook_info = ErrorInfo.from_exception(HookError("before_all", KeyError("token")))
    assert hook_info.name == "KeyError"
    assert ErrorInfo.from_exception("plain text").name == "StepExecutionError"


def test_debug_environment_switch(monkeypatch) -> None:
    monkeypatch.delenv("SYNTHETICS_DEBUG", raising=False)
    monkeypatch.setenv("DEBUG", "synthetics")
    assert logging_utils.debug_enabled() is True

    monkeypatch.setenv("DEBUG", "other")
    assert logging_utils.debug_enabled() is False


def test_configure_logger_is_idempotent(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(logging_utils, "LOGGER_NAME", "synthetics_engine_test_logger")
    monkeypatch.delenv("SYNTHETICS_DEBUG", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)

    logger = logging_utils.configure_logger("WARNING", str(tmp_path))
    again = logging_utils.configure_logger("DEBUG")

    try:
        assert logger is again
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2
        assert (tmp_path / "synthetics.log").exists()
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_step_carries_only_outcome_fields() -> None:
    journey = Journey(name="fields")
    step = journey.add_step("open", lambda: None)

    names = {item.name for item in fields(step)}
    assert names == {
        "name", "_index", "callback", "soft", "only", "skip", "status", "error",
        "url", "metrics", "screenshot", "started_at", "ended_at", "timestamp",
    }
    assert step.status == "pending"


def test_settings_log_level_defaults_and_normalises() -> None:
    assert settings_log_level(load_settings()) == "INFO"
    assert settings_log_level({}) == "INFO"
    assert settings_log_level({"logging": None}) == "INFO"
    assert settings_log_level({"logging": {"level": "debug"}}) == "DEBUG"


def test_load_settings_rejects_non_mapping(tmp_path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- headless\n- network\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(path)
