"""Network waterfall capture over the CDP Network domain."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from synthetics_engine.core.types import NetworkInfo

from .base import PluginKind, TelemetryPlugin

logger = logging.getLogger(__name__)


def _phase(start: Any, end: Any) -> float:
    if not isinstance(start, (int, float)) or not isinstance(end, (int, float)) or start < 0 or end < 0:
        return -1
    return round(end - start, 3)


def compute_timings(record: NetworkInfo) -> Dict[str, float]:
    """HAR-style phase durations in milliseconds; ``-1`` marks an unknown phase."""

    timing = (record.response or {}).get("timing") or {}
    total = round((record.end - record.start) * 1000, 3) if record.end else -1
    if not timing:
        return {"blocked": -1, "dns": -1, "connect": -1, "ssl": -1, "send": -1, "wait": -1, "receive": -1, "total": total}
    first_activity = next(
        (
            timing[key]
            for key in ("dnsStart", "connectStart", "sendStart")
            if isinstance(timing.get(key), (int, float)) and timing[key] >= 0
        ),
        -1,
    )
    receive = -1.0
    request_time = timing.get("requestTime")
    headers_end = timing.get("receiveHeadersEnd")
    if not isinstance(headers_end, (int, float)):
        headers_end = -1
    if record.end and isinstance(request_time, (int, float)) and headers_end >= 0:
        receive = round((record.end - request_time) * 1000 - headers_end, 3)
    return {
        "blocked": round(first_activity, 3) if first_activity >= 0 else -1,
        "dns": _phase(timing.get("dnsStart"), timing.get("dnsEnd")),
        "connect": _phase(timing.get("connectStart"), timing.get("connectEnd")),
        "ssl": _phase(timing.get("sslStart"), timing.get("sslEnd")),
        "send": _phase(timing.get("sendStart"), timing.get("sendEnd")),
        "wait": _phase(timing.get("sendEnd"), headers_end),
        "receive": receive,
        "total": total,
    }


class NetworkManager(TelemetryPlugin):
    """Reconstructs one record per protocol request id.

    Protocol event order is not guaranteed for every request type, so
    responses and terminal events for unknown ids are ignored. Records that
    never see a terminal event keep ``end == 0``.
    """

    kind = PluginKind.NETWORK

    EVENTS = (
        "Network.requestWillBeSent",
        "Network.responseReceived",
        "Network.loadingFinished",
        "Network.loadingFailed",
    )

    def __init__(self, driver: Any, options: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(driver, options)
        self._records: Dict[str, NetworkInfo] = {}
        self._redirects = 0
        self._handlers = {
            "Network.requestWillBeSent": self._on_request_will_be_sent,
            "Network.responseReceived": self._on_response_received,
            "Network.loadingFinished": self._on_loading_finished,
            "Network.loadingFailed": self._on_loading_failed,
        }

    async def start(self) -> None:
        client = self.driver.client
        await client.send("Network.enable")
        for event, handler in self._handlers.items():
            client.on(event, handler)
        await super().start()
        logger.debug("network capture started")

    def on_step(self, step: Any) -> None:
        self.current_step = step

    def _on_request_will_be_sent(self, event: Dict[str, Any]) -> None:
        request_id = event.get("requestId")
        request = event.get("request") or {}
        if not request_id:
            return
        redirect_response = event.get("redirectResponse")
        previous = self._records.get(request_id)
        if previous is not None and redirect_response:
            # each redirect hop becomes its own record, in the order it happened
            self._records.pop(request_id)
            previous.response = redirect_response
            previous.status = int(redirect_response.get("status") or 0)
            previous.mime_type = redirect_response.get("mimeType")
            previous.end = float(event.get("timestamp") or 0)
            self._redirects += 1
            self._records[f"{request_id}:redirect:{self._redirects}"] = previous
        resource_type = event.get("type")
        wall_time = event.get("wallTime")
        self._records[request_id] = NetworkInfo(
            request_id=str(request_id),
            url=str(request.get("url", "")),
            method=str(request.get("method", "GET")),
            type=resource_type,
            request=dict(request),
            is_navigation_request=request_id == event.get("loaderId") and resource_type == "Document",
            start=float(event.get("timestamp") or 0),
            timestamp=int(wall_time * 1_000_000) if isinstance(wall_time, (int, float)) else None,
            step=self.current_step.ref() if self.current_step is not None else None,
        )

    def _on_response_received(self, event: Dict[str, Any]) -> None:
        record = self._records.get(event.get("requestId"))
        if record is None:
            return
        response = event.get("response") or {}
        record.response = response
        record.status = int(response.get("status") or 0)
        record.mime_type = response.get("mimeType")
        request_headers = response.get("requestHeaders")
        if isinstance(request_headers, dict):
            record.request["headers"] = {**(record.request.get("headers") or {}), **request_headers}

    def _on_loading_finished(self, event: Dict[str, Any]) -> None:
        record = self._records.get(event.get("requestId"))
        if record is None:
            return
        record.end = float(event.get("timestamp") or 0)

    def _on_loading_failed(self, event: Dict[str, Any]) -> None:
        record = self._records.get(event.get("requestId"))
        if record is None:
            return
        record.end = float(event.get("timestamp") or 0)
        record.error_text = event.get("errorText")

    async def _collect(self) -> List[NetworkInfo]:
        client = self.driver.client
        for event, handler in self._handlers.items():
            try:
                client.remove_listener(event, handler)
            except Exception:  # noqa: BLE001 - session may already be gone
                logger.debug("could not detach %s listener", event, exc_info=True)
        return self.records()

    def records(self) -> List[NetworkInfo]:
        """Snapshot of the waterfall in insertion order; internal state is untouched."""

        return [
            record.model_copy(update={"timings": compute_timings(record)}, deep=True)
            for record in self._records.values()
        ]


__all__ = ["NetworkManager", "compute_timings"]
