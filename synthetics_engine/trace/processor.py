"""Turns a raw trace-event array into tab-level traces and metrics."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Set

from synthetics_engine.core.types import TraceOutput

from .metrics import CumulativeLayoutShift, ExperienceMetrics, UserTimings
from .models import TraceEvent, TraceOfTab, parse_trace_events

logger = logging.getLogger(__name__)

ACCEPTABLE_NAVIGATION_URL_REGEX = re.compile(r"^(file|https?):")
MAIN_THREAD_NAME = "CrRendererMain"


class TraceProcessor:
    """Locates the inspected tab in a trace and derives metrics from it.

    The time origin is the last navigation start of interest, so metrics
    describe the most recent navigation of the journey.
    """

    @staticmethod
    def _find_main_frame(events: List[TraceEvent]) -> tuple[Optional[str], Optional[int]]:
        for event in events:
            if event.name == "TracingStartedInBrowser":
                frames = event.data.get("frames") or []
                for frame in frames:
                    if isinstance(frame, dict) and not frame.get("parent") and frame.get("frame"):
                        return frame["frame"], frame.get("processId", event.pid)
            elif event.name == "TracingStartedInPage":
                page = event.data.get("page")
                if isinstance(page, str):
                    return page, event.pid
        return None, None

    @staticmethod
    def _renderer_pids(events: List[TraceEvent], frame_id: Optional[str], pid: Optional[int]) -> Set[int]:
        pids: Set[int] = {pid} if pid is not None else set()
        if frame_id is None:
            return pids
        # cross-process navigations move the main frame to a new renderer
        for event in events:
            if event.name == "FrameCommittedInBrowser" and event.data.get("frame") == frame_id:
                process_id = event.data.get("processId")
                if isinstance(process_id, int):
                    pids.add(process_id)
        return pids

    @staticmethod
    def _is_navigation_start_of_interest(event: TraceEvent) -> bool:
        if event.name != "navigationStart":
            return False
        url = event.data.get("documentLoaderURL")
        return not url or bool(ACCEPTABLE_NAVIGATION_URL_REGEX.match(str(url)))

    @classmethod
    def compute_trace_of_tab(cls, events: List[TraceEvent]) -> TraceOfTab:
        frame_id, pid = cls._find_main_frame(events)
        pids = cls._renderer_pids(events, frame_id, pid)
        process_events = [event for event in events if event.pid in pids] if pids else list(events)
        main_tids = {
            event.tid
            for event in process_events
            if event.name == "thread_name" and event.ph == "M" and event.args.get("name") == MAIN_THREAD_NAME
        }
        main_thread_events = [event for event in process_events if event.tid in main_tids] or process_events
        if frame_id is not None:
            frame_events = [event for event in process_events if event.frame == frame_id]
        else:
            frame_events = process_events

        trace = TraceOfTab(
            process_events=process_events,
            main_thread_events=main_thread_events,
            main_frame_id=frame_id,
        )
        navigation_starts = [event for event in frame_events if cls._is_navigation_start_of_interest(event)]
        if navigation_starts:
            trace.time_origin_evt = navigation_starts[-1]
        origin = trace.time_origin if trace.time_origin is not None else float("-inf")
        after_origin = [event for event in frame_events if event.ts >= origin]

        def first(name: str) -> Optional[TraceEvent]:
            return next((event for event in after_origin if event.name == name), None)

        trace.first_contentful_paint_evt = first("firstContentfulPaint")
        trace.dom_content_loaded_evt = first("domContentLoadedEventEnd")
        trace.load_evt = first("loadEventEnd")
        candidates = [event for event in after_origin if event.name == "largestContentfulPaint::Candidate"]
        if candidates:
            trace.largest_contentful_paint_evt = candidates[-1]
            last_candidate_ts = candidates[-1].ts
        else:
            last_candidate_ts = origin
        trace.lcp_invalidated = any(
            event.name == "largestContentfulPaint::Invalidate" and event.ts >= last_candidate_ts
            for event in after_origin
        )
        return trace

    @classmethod
    def compute_trace(cls, raw_events: Iterable[Any] | None) -> Dict[str, Any]:
        """Return ``{"traces": [...], "metrics": {...}}`` for a raw event array."""

        try:
            events = parse_trace_events(raw_events)
            trace = cls.compute_trace_of_tab(events)
            origin = trace.time_origin
            experience, metrics = ExperienceMetrics.compute(trace)
            traces: List[TraceOutput] = [
                *experience,
                *UserTimings.compute(trace.main_thread_events, origin),
                *CumulativeLayoutShift.shift_marks(events, origin),
            ]
            traces.sort(key=lambda output: output.start["us"])
            return {
                "traces": traces,
                "metrics": {**metrics, "cls": CumulativeLayoutShift.compute(events)},
            }
        except Exception:  # noqa: BLE001 - trace metrics are best effort
            logger.warning("failed to compute trace metrics", exc_info=True)
            return {"traces": [], "metrics": {}}


__all__ = ["ACCEPTABLE_NAVIGATION_URL_REGEX", "TraceProcessor"]
