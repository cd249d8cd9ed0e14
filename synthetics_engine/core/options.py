"""Resolved run options consumed by the runner, gatherer and plugins."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ScreenshotMode = Literal["on", "off", "only-on-failure"]

DEFAULT_CONSOLE_MESSAGE_LIMIT = 1000
DEFAULT_SUCCESSFUL_MESSAGE_LIMIT = 100
DEFAULT_FILMSTRIP_INTERVAL_MS = 500


class RunOptions(BaseModel):
    """Options object handed in by the CLI/config layer."""

    headless: bool = True
    screenshots: ScreenshotMode = "off"
    network: bool = False
    metrics: bool = False
    trace: bool = False
    filmstrips: bool = False
    dry_run: bool = False
    journey_name: Optional[str] = None
    match: Optional[str] = None
    tags: Optional[List[str]] = None
    pause_on_error: bool = False
    output_fd: Optional[int] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    ws_endpoint: Optional[str] = None
    output_dir: Optional[str] = None
    chromium_args: List[str] = Field(default_factory=list)
    screenshot_quality: int = Field(default=80, ge=0, le=100)
    screenshot_timeout_ms: int = Field(default=5000, ge=0)
    console_message_limit: int = Field(default=DEFAULT_CONSOLE_MESSAGE_LIMIT, ge=1)
    successful_message_limit: int = Field(default=DEFAULT_SUCCESSFUL_MESSAGE_LIMIT, ge=1)
    filmstrip_interval_ms: int = Field(default=DEFAULT_FILMSTRIP_INTERVAL_MS, ge=0)

    @field_validator("screenshots", mode="before")
    @classmethod
    def _coerce_screenshots(cls, value: Any) -> Any:
        # Older callers pass a plain boolean.
        if value is True:
            return "on"
        if value is False or value is None:
            return "off"
        return value

    @classmethod
    def from_settings(cls, settings: Dict[str, Any] | None = None, **overrides: Any) -> "RunOptions":
        """Merge YAML defaults with explicit overrides."""

        settings = settings or {}
        browser = settings.get("browser", {})
        screenshots = settings.get("screenshots", {})
        telemetry = settings.get("telemetry", {})
        values: Dict[str, Any] = {}
        if "headless" in browser:
            values["headless"] = bool(browser["headless"])
        if browser.get("chromium_args"):
            values["chromium_args"] = list(browser["chromium_args"])
        if "mode" in screenshots:
            values["screenshots"] = screenshots["mode"]
        if "quality" in screenshots:
            values["screenshot_quality"] = int(screenshots["quality"])
        if "timeout_ms" in screenshots:
            values["screenshot_timeout_ms"] = int(screenshots["timeout_ms"])
        for flag in ("network", "metrics", "trace", "filmstrips"):
            if flag in telemetry:
                values[flag] = bool(telemetry[flag])
        for key in ("console_message_limit", "successful_message_limit", "filmstrip_interval_ms"):
            if key in telemetry:
                values[key] = int(telemetry[key])
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


__all__ = ["RunOptions", "ScreenshotMode"]
