"""Category-restricted browser tracing for filmstrips and performance marks.

https://chromedevtools.github.io/devtools-protocol/tot/Tracing/
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from synthetics_engine.core.options import DEFAULT_FILMSTRIP_INTERVAL_MS
from synthetics_engine.trace.metrics import SCREENSHOT_CATEGORY, USER_TIMING_CATEGORY, Filmstrips
from synthetics_engine.trace.models import parse_trace_events
from synthetics_engine.trace.processor import TraceProcessor

from .base import PluginKind, TelemetryPlugin

logger = logging.getLogger(__name__)

PERFORMANCE_CATEGORIES = [
    "__metadata",
    USER_TIMING_CATEGORY,
    "loading",
    "navigation",
    "rail",
    "devtools.timeline",
    "disabled-by-default-devtools.timeline",
]


def included_categories(*, filmstrips: bool, trace: bool) -> List[str]:
    categories: List[str] = []
    if filmstrips:
        categories.append(SCREENSHOT_CATEGORY)
    if trace:
        categories.extend(PERFORMANCE_CATEGORIES)
    return categories


class Tracing(TelemetryPlugin):
    """Records trace events between ``start`` and ``stop``.

    Trace data arrives as ``Tracing.dataCollected`` chunks after the
    recording is ended; the chunks are concatenated until the single
    ``Tracing.tracingComplete`` signal.
    """

    kind = PluginKind.TRACE

    def __init__(self, driver: Any, options: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(driver, options)
        self.filmstrips = bool(self.options.get("filmstrips"))
        self.trace = bool(self.options.get("trace"))
        self.interval_ms = int(self.options.get("filmstrip_interval_ms", DEFAULT_FILMSTRIP_INTERVAL_MS))
        self._events: List[Dict[str, Any]] = []

    def _on_data_collected(self, event: Dict[str, Any]) -> None:
        chunk = event.get("value")
        if isinstance(chunk, list):
            self._events.extend(chunk)

    async def start(self) -> None:
        client = self.driver.client
        client.on("Tracing.dataCollected", self._on_data_collected)
        await client.send(
            "Tracing.start",
            {
                "transferMode": "ReportEvents",
                "traceConfig": {
                    "includedCategories": included_categories(filmstrips=self.filmstrips, trace=self.trace),
                },
            },
        )
        await super().start()
        logger.debug("tracing started (filmstrips=%s, trace=%s)", self.filmstrips, self.trace)

    async def _collect(self) -> Dict[str, Any]:
        client = self.driver.client
        completed: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _on_complete(_event: Any = None) -> None:
            if not completed.done():
                completed.set_result(None)

        client.once("Tracing.tracingComplete", _on_complete)
        try:
            await asyncio.gather(client.send("Tracing.end"), completed)
        finally:
            client.remove_listener("Tracing.tracingComplete", _on_complete)
            client.remove_listener("Tracing.dataCollected", self._on_data_collected)
        logger.debug("tracing stopped with %d events", len(self._events))

        output: Dict[str, Any] = {}
        if self.filmstrips:
            output["filmstrips"] = Filmstrips.compute(parse_trace_events(self._events), self.interval_ms)
        if self.trace:
            computed = TraceProcessor.compute_trace(self._events)
            output["traces"] = computed["traces"]
            output["metrics"] = computed["metrics"]
        return output


__all__ = ["PERFORMANCE_CATEGORIES", "Tracing", "included_categories"]
