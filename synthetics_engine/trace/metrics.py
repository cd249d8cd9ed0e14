"""Metric computations over an ordered list of trace events.

Every ``compute`` here is a pure function of its input and returns an empty
or zero result for empty or malformed input.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from synthetics_engine.core.options import DEFAULT_FILMSTRIP_INTERVAL_MS
from synthetics_engine.core.types import FilmStrip, TraceOutput

from .models import TraceEvent, TraceOfTab

USER_TIMING_CATEGORY = "blink.user_timing"
SCREENSHOT_CATEGORY = "disabled-by-default-devtools.screenshot"
# Browser-level marks that share the user timing category
NON_USER_MARKS = {"requestStart", "navigationStart", "paintNonDefaultBackgroundColor"}


def _offset(ts: float, origin: Optional[float]) -> Dict[str, float]:
    return {"us": ts - origin if origin is not None else ts}


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class UserTimings:
    @staticmethod
    def compute(events: Iterable[TraceEvent], time_origin: Optional[float] = None) -> List[TraceOutput]:
        measure_starts: Dict[str, float] = {}
        user_timings: List[TraceOutput] = []
        for event in events:
            if USER_TIMING_CATEGORY not in event.cat:
                continue
            if event.name in NON_USER_MARKS or event.args.get("frame") is not None:
                continue
            phase = event.ph.lower()
            # marks are emitted as R (legacy) or i/I (instant)
            if phase in ("r", "i"):
                user_timings.append(
                    TraceOutput(name=event.name, type="mark", start=_offset(event.ts, time_origin))
                )
            elif phase == "b":
                measure_starts[event.name] = event.ts
            elif phase == "e":
                start_ts = measure_starts.pop(event.name, None)
                if start_ts is None:
                    continue
                user_timings.append(
                    TraceOutput(
                        name=event.name,
                        type="measure",
                        start=_offset(start_ts, time_origin),
                        end=_offset(event.ts, time_origin),
                        duration={"us": event.ts - start_ts},
                    )
                )
        return user_timings


class ExperienceMetrics:
    """FCP, LCP, DOMContentLoaded and load, relative to the navigation origin."""

    METRIC_KEYS = (
        ("fcp", "first_contentful_paint_evt"),
        ("lcp", "largest_contentful_paint_evt"),
        ("dcl", "dom_content_loaded_evt"),
        ("load", "load_evt"),
    )

    @staticmethod
    def _mark_name(event: TraceEvent) -> str:
        return event.name.split("::", 1)[0]

    @classmethod
    def compute(cls, trace: TraceOfTab) -> Tuple[List[TraceOutput], Dict[str, Dict[str, float]]]:
        origin = trace.time_origin
        traces: List[TraceOutput] = []
        metrics: Dict[str, Dict[str, float]] = {}
        if trace.time_origin_evt is not None:
            traces.append(TraceOutput(name=trace.time_origin_evt.name, start=_offset(trace.time_origin_evt.ts, origin)))
        for key, attr in cls.METRIC_KEYS:
            event: Optional[TraceEvent] = getattr(trace, attr)
            if event is None:
                continue
            if key == "lcp" and trace.lcp_invalidated:
                continue
            traces.append(TraceOutput(name=cls._mark_name(event), start=_offset(event.ts, origin)))
            if origin is not None:
                metrics[key] = {"us": event.ts - origin}
        return traces, metrics


class CumulativeLayoutShift:
    """Sum of main-frame layout shift scores.

    Shifts flagged ``had_recent_input`` are excluded, except for the leading
    run of flagged events: the browser marks the first shifts after an
    emulation or viewport change as input-driven even when they are not.
    The leading run ends at the first unflagged shift of the whole trace.
    """

    @staticmethod
    def _shift_events(events: Iterable[TraceEvent]) -> List[TraceEvent]:
        return [
            event
            for event in events
            if event.name == "LayoutShift"
            and event.data.get("is_main_frame")
            and _number(event.data.get("score")) is not None
        ]

    @classmethod
    def _counted(cls, events: Iterable[TraceEvent]) -> List[TraceEvent]:
        counted: List[TraceEvent] = []
        in_leading_run = True
        for event in cls._shift_events(events):
            if event.data.get("had_recent_input"):
                if not in_leading_run:
                    continue
            else:
                in_leading_run = False
            counted.append(event)
        return counted

    @classmethod
    def compute(cls, events: Iterable[TraceEvent]) -> float:
        return sum(float(event.data["score"]) for event in cls._counted(events))

    @classmethod
    def shift_marks(cls, events: Iterable[TraceEvent], time_origin: Optional[float] = None) -> List[TraceOutput]:
        return [
            TraceOutput(
                name="layoutShift",
                start=_offset(event.ts, time_origin),
                score=float(event.data["score"]),
            )
            for event in cls._counted(events)
        ]


class Filmstrips:
    """Screenshot frames from the trace, throttled to roughly two per second."""

    @staticmethod
    def _screenshot_events(events: Iterable[TraceEvent]) -> List[TraceEvent]:
        candidates = [
            event
            for event in events
            if event.name == "Screenshot"
            and event.has_category(SCREENSHOT_CATEGORY)
            and isinstance(event.args.get("snapshot"), str)
            and event.args["snapshot"]
        ]
        return sorted(candidates, key=lambda event: event.ts)

    @classmethod
    def filter_excessive_screenshots(
        cls,
        events: Iterable[TraceEvent],
        interval_ms: int = DEFAULT_FILMSTRIP_INTERVAL_MS,
    ) -> List[TraceEvent]:
        screenshots = cls._screenshot_events(events)
        threshold = interval_ms * 1000
        kept: List[TraceEvent] = []
        last_kept_ts = float("-inf")
        next_index = 0
        for event in screenshots:
            # sorted by ts, so the first later frame only moves forward
            while next_index < len(screenshots) and screenshots[next_index].ts <= event.ts:
                next_index += 1
            if next_index < len(screenshots):
                until_next = screenshots[next_index].ts - event.ts
            else:
                until_next = float("inf")
            # keep rapid changes only when the next frame is far enough away
            if event.ts - last_kept_ts >= threshold or until_next >= threshold:
                kept.append(event)
                last_kept_ts = event.ts
        return kept

    @classmethod
    def compute(
        cls,
        events: Iterable[TraceEvent],
        interval_ms: int = DEFAULT_FILMSTRIP_INTERVAL_MS,
    ) -> List[FilmStrip]:
        return [
            FilmStrip(blob=event.args["snapshot"], mime="image/jpeg", start={"us": event.ts})
            for event in cls.filter_excessive_screenshots(events, interval_ms)
        ]


__all__ = [
    "CumulativeLayoutShift",
    "ExperienceMetrics",
    "Filmstrips",
    "NON_USER_MARKS",
    "SCREENSHOT_CATEGORY",
    "USER_TIMING_CATEGORY",
    "UserTimings",
]
