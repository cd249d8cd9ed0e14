from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from .base import PluginKind, TelemetryPlugin

logger = logging.getLogger(__name__)

SUPPORTED_METRICS = frozenset(
    {
        "Timestamp",
        "Documents",
        "Frames",
        "JSEventListeners",
        "Nodes",
        "LayoutCount",
        "RecalcStyleCount",
        "LayoutDuration",
        "RecalcStyleDuration",
        "ScriptDuration",
        "TaskDuration",
        "JSHeapUsedSize",
        "JSHeapTotalSize",
    }
)


class PerformanceManager(TelemetryPlugin):
    """Polls browser performance counters on demand, one snapshot per step."""

    kind = PluginKind.PERFORMANCE

    async def start(self) -> None:
        await self.driver.client.send("Performance.enable")
        await super().start()

    async def _collect(self) -> None:
        await self.driver.client.send("Performance.disable")
        return None

    async def get_metrics(self) -> Dict[str, float]:
        response = await self.driver.client.send("Performance.getMetrics")
        return self.build_metrics(response.get("metrics") or [])

    @staticmethod
    def build_metrics(metrics: Iterable[Dict[str, Any]]) -> Dict[str, float]:
        return {
            metric["name"]: metric["value"]
            for metric in metrics
            if isinstance(metric, dict) and metric.get("name") in SUPPORTED_METRICS and "value" in metric
        }


__all__ = ["PerformanceManager", "SUPPORTED_METRICS"]
