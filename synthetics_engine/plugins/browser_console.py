"""Browser console and uncaught page error capture."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from synthetics_engine.core.options import DEFAULT_CONSOLE_MESSAGE_LIMIT, DEFAULT_SUCCESSFUL_MESSAGE_LIMIT
from synthetics_engine.core.types import BrowserMessage
from synthetics_engine.utils.time_utils import get_timestamp

from .base import PluginKind, TelemetryPlugin

logger = logging.getLogger(__name__)

ALLOWED_TYPES = ("error", "warning", "log")


class BrowserConsole(TelemetryPlugin):
    """Buffers console messages emitted while a step is active."""

    kind = PluginKind.BROWSER_CONSOLE

    def __init__(self, driver: Any, options: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(driver, options)
        self.message_limit = int(self.options.get("console_message_limit", DEFAULT_CONSOLE_MESSAGE_LIMIT))
        self.messages: List[BrowserMessage] = []

    def on_step(self, step: Any) -> None:
        self.current_step = step

    def _push(self, text: str, message_type: str) -> None:
        self.messages.append(
            BrowserMessage(
                timestamp=get_timestamp(),
                text=text,
                type=message_type,
                step=self.current_step.ref(),
            )
        )
        if len(self.messages) > self.message_limit:
            del self.messages[0]

    def _on_console(self, message: Any) -> None:
        if self.current_step is None:
            return
        message_type = message.type
        if message_type in ALLOWED_TYPES:
            self._push(message.text, message_type)

    def _on_web_error(self, web_error: Any) -> None:
        if self.current_step is None:
            return
        error = web_error.error
        self._push(getattr(error, "message", str(error)), "error")

    async def start(self) -> None:
        context = self.driver.context
        context.on("console", self._on_console)
        context.on("weberror", self._on_web_error)
        await super().start()
        logger.debug("started collecting console events")

    async def _collect(self) -> List[BrowserMessage]:
        context = self.driver.context
        context.remove_listener("console", self._on_console)
        context.remove_listener("weberror", self._on_web_error)
        logger.debug("stopped collecting console events")
        return list(self.messages)


def filter_browser_messages(
    messages: Optional[List[BrowserMessage]],
    status: str,
    limit: int = DEFAULT_SUCCESSFUL_MESSAGE_LIMIT,
) -> List[BrowserMessage]:
    """Trim console output for reporting based on the journey outcome.

    Failed journeys keep everything; successful ones keep at most ``limit``
    messages, preferring errors, then warnings, then logs.
    """

    messages = messages or []
    if status == "skipped":
        return []
    if status == "failed" or len(messages) <= limit:
        return list(messages)
    result = [message for message in messages if message.type == "error"]
    if len(result) >= limit:
        return result[-limit:]
    result.extend(message for message in messages if message.type == "warning")
    if len(result) >= limit:
        return result[-limit:]
    result.extend(message for message in messages if message.type == "log")
    return result[-limit:]


__all__ = ["ALLOWED_TYPES", "BrowserConsole", "filter_browser_messages"]
