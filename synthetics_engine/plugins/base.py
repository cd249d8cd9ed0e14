"""Common telemetry plugin interface."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from synthetics_engine.dsl.step import Step
    from synthetics_engine.runner.gatherer import Driver


class PluginKind(str, Enum):
    NETWORK = "network"
    TRACE = "trace"
    PERFORMANCE = "performance"
    BROWSER_CONSOLE = "browserconsole"
    JOURNEY_CONSOLE = "journeyconsole"
    ATTACHMENTS = "attachments"


class TelemetryPlugin:
    """Capture unit bound to one driver for one journey.

    Subclasses set ``kind`` and implement ``start``/``_collect``. ``stop``
    drains the plugin once; later calls return the same result.
    """

    kind: PluginKind

    def __init__(self, driver: "Driver", options: Optional[Dict[str, Any]] = None) -> None:
        self.driver = driver
        self.options = dict(options or {})
        self.current_step: Optional["Step"] = None
        self._started = False
        self._stopped = False
        self._result: Any = None

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> Any:
        if self._stopped:
            return self._result
        self._stopped = True
        self._result = await self._collect()
        return self._result

    async def _collect(self) -> Any:
        return None

    def on_step(self, step: "Step") -> None:
        """Hook for plugins that tag telemetry with the active step."""


__all__ = ["PluginKind", "TelemetryPlugin"]
