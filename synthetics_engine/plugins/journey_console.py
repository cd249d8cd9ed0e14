"""Captures log records emitted by journey code on the journey logger."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from synthetics_engine.core.options import DEFAULT_CONSOLE_MESSAGE_LIMIT
from synthetics_engine.core.types import BrowserMessage
from synthetics_engine.dsl.journey import JOURNEY_LOGGER_NAME
from synthetics_engine.utils.time_utils import get_timestamp

from .base import PluginKind, TelemetryPlugin

LEVEL_TYPES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class _JourneyLogHandler(logging.Handler):
    def __init__(self, plugin: "JourneyConsole") -> None:
        super().__init__(level=logging.DEBUG)
        self.plugin = plugin

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.plugin.record(record.getMessage(), LEVEL_TYPES.get(record.levelno, "log"))
        except Exception:  # noqa: BLE001 - logging handlers must not raise
            self.handleError(record)


class JourneyConsole(TelemetryPlugin):
    kind = PluginKind.JOURNEY_CONSOLE

    def __init__(self, driver: Any, options: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(driver, options)
        self.message_limit = int(self.options.get("console_message_limit", DEFAULT_CONSOLE_MESSAGE_LIMIT))
        self.messages: List[BrowserMessage] = []
        self.logger = logging.getLogger(JOURNEY_LOGGER_NAME)
        self._handler = _JourneyLogHandler(self)
        self._previous_level: Optional[int] = None

    def on_step(self, step: Any) -> None:
        self.current_step = step

    def record(self, text: str, message_type: str) -> None:
        if self.current_step is None:
            return
        self.messages.append(
            BrowserMessage(timestamp=get_timestamp(), text=text, type=message_type, step=self.current_step.ref())
        )
        if len(self.messages) > self.message_limit:
            del self.messages[0]

    async def start(self) -> None:
        self._previous_level = self.logger.level
        if self.logger.level == logging.NOTSET or self.logger.level > logging.DEBUG:
            self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self._handler)
        await super().start()

    async def _collect(self) -> List[BrowserMessage]:
        self.logger.removeHandler(self._handler)
        if self._previous_level is not None:
            self.logger.setLevel(self._previous_level)
        return list(self.messages)


__all__ = ["JourneyConsole"]
