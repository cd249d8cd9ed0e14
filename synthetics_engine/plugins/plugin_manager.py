"""Registry and dispatcher for telemetry plugins bound to one driver."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, Union

from synthetics_engine.core.errors import TelemetryCaptureError
from synthetics_engine.core.types import PluginOutput

from .attachments import AttachmentsManager
from .base import PluginKind, TelemetryPlugin
from .browser_console import BrowserConsole
from .journey_console import JourneyConsole
from .network import NetworkManager
from .performance import PerformanceManager
from .tracing import Tracing

logger = logging.getLogger(__name__)

PLUGIN_TYPES: Dict[PluginKind, Type[TelemetryPlugin]] = {
    PluginKind.NETWORK: NetworkManager,
    PluginKind.TRACE: Tracing,
    PluginKind.PERFORMANCE: PerformanceManager,
    PluginKind.BROWSER_CONSOLE: BrowserConsole,
    PluginKind.JOURNEY_CONSOLE: JourneyConsole,
    PluginKind.ATTACHMENTS: AttachmentsManager,
}

KindLike = Union[PluginKind, str]


class PluginManager:
    """Owns plugin start/stop/output for a single journey.

    Telemetry is best effort: a failing plugin is logged and contributes
    nothing, and never stops the other plugins or the journey.
    """

    def __init__(self, driver: Any) -> None:
        self.driver = driver
        self._plugins: Dict[PluginKind, TelemetryPlugin] = {}
        self.errors: List[TelemetryCaptureError] = []

    @staticmethod
    def _resolve(kind: KindLike) -> Optional[PluginKind]:
        try:
            return PluginKind(kind)
        except ValueError:
            return None

    def _capture_failure(self, kind: PluginKind, phase: str, exc: BaseException) -> None:
        error = TelemetryCaptureError(f"{kind.value} plugin failed to {phase}: {exc}")
        error.__cause__ = exc
        self.errors.append(error)
        logger.warning("%s", error, exc_info=exc)

    def register(self, kind: KindLike, options: Optional[Dict[str, Any]] = None) -> Optional[TelemetryPlugin]:
        resolved = self._resolve(kind)
        if resolved is None:
            logger.warning("ignoring unknown plugin type %r", kind)
            return None
        instance = PLUGIN_TYPES[resolved](self.driver, options)
        self._plugins[resolved] = instance
        return instance

    def register_all(self, options: Optional[Dict[str, Any]] = None) -> None:
        for kind in PLUGIN_TYPES:
            self.register(kind, options)

    def unregister_all(self) -> None:
        self._plugins.clear()

    def get(self, kind: KindLike) -> Optional[TelemetryPlugin]:
        resolved = self._resolve(kind)
        return self._plugins.get(resolved) if resolved is not None else None

    def registered(self) -> List[PluginKind]:
        return list(self._plugins)

    async def start(self, kind: KindLike) -> Optional[TelemetryPlugin]:
        plugin = self.get(kind)
        if plugin is None:
            return None
        try:
            await plugin.start()
        except Exception as exc:  # noqa: BLE001 - telemetry must not fail the journey
            self._capture_failure(plugin.kind, "start", exc)
        return plugin

    async def stop(self, kind: KindLike) -> Any:
        plugin = self.get(kind)
        if plugin is None:
            return {}
        try:
            return await plugin.stop()
        except Exception as exc:  # noqa: BLE001 - telemetry must not fail the journey
            self._capture_failure(plugin.kind, "stop", exc)
            return {}

    def on_step(self, step: Any) -> None:
        for plugin in self._plugins.values():
            try:
                plugin.on_step(step)
            except Exception as exc:  # noqa: BLE001 - telemetry must not fail the journey
                self._capture_failure(plugin.kind, "tag step", exc)

    async def output(self) -> PluginOutput:
        """Drain every registered plugin once and merge the contributions."""

        data: Dict[str, Any] = {}
        for kind, plugin in self._plugins.items():
            try:
                result = await plugin.stop()
            except Exception as exc:  # noqa: BLE001 - telemetry must not fail the journey
                self._capture_failure(kind, "stop", exc)
                continue
            if kind is PluginKind.NETWORK:
                data["networkinfo"] = result
            elif kind is PluginKind.BROWSER_CONSOLE:
                data["browserconsole"] = result
            elif kind is PluginKind.JOURNEY_CONSOLE:
                data["journeyconsole"] = result
            elif kind is PluginKind.ATTACHMENTS:
                data["attachments"] = result
            elif kind is PluginKind.TRACE:
                data.update(result or {})
        return PluginOutput(**data)


__all__ = ["PLUGIN_TYPES", "PluginManager"]
