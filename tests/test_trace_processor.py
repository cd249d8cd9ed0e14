from __future__ import annotations

import pytest

from synthetics_engine.trace.metrics import USER_TIMING_CATEGORY
from synthetics_engine.trace.models import parse_trace_events
from synthetics_engine.trace.processor import TraceProcessor
from tests.fakes import trace_event

FRAME = "MAIN"


def _tab_events() -> list[dict]:
    return [
        trace_event(
            "TracingStartedInBrowser",
            0,
            cat="disabled-by-default-devtools.timeline",
            pid=7,
            data={"frames": [{"frame": FRAME, "processId": 10}, {"frame": "CHILD", "parent": FRAME, "processId": 11}]},
        ),
        {"name": "thread_name", "cat": "__metadata", "ph": "M", "ts": 0, "pid": 10, "tid": 1, "args": {"name": "CrRendererMain"}},
        trace_event("navigationStart", 1_000, cat="blink.user_timing", ph="R", pid=10, frame=FRAME,
                    data={"documentLoaderURL": "https://example.com/"}),
        trace_event("firstContentfulPaint", 1_500, cat="loading", ph="R", pid=10, frame=FRAME),
        trace_event("largestContentfulPaint::Candidate", 1_700, cat="loading", ph="R", pid=10, data={"frame": FRAME}),
        trace_event("largestContentfulPaint::Candidate", 2_100, cat="loading", ph="R", pid=10, data={"frame": FRAME}),
        trace_event("domContentLoadedEventEnd", 1_800, cat="blink.user_timing", ph="R", pid=10, frame=FRAME),
        trace_event("loadEventEnd", 3_000, cat="blink.user_timing", ph="R", pid=10, frame=FRAME),
        trace_event("checkout-ready", 2_500, cat=USER_TIMING_CATEGORY, ph="R", pid=10),
        trace_event("LayoutShift", 2_600, cat="loading", pid=10, data={"score": 0.2, "is_main_frame": True}),
        trace_event("firstContentfulPaint", 900, cat="loading", ph="R", pid=11, frame="CHILD"),
    ]


def test_compute_trace_of_tab_locates_navigation_and_paints() -> None:
    trace = TraceProcessor.compute_trace_of_tab(parse_trace_events(_tab_events()))

    assert trace.main_frame_id == FRAME
    assert trace.time_origin == 1_000
    assert trace.first_contentful_paint_evt.ts == 1_500
    assert trace.largest_contentful_paint_evt.ts == 2_100
    assert trace.lcp_invalidated is False
    assert trace.dom_content_loaded_evt.ts == 1_800
    assert trace.load_evt.ts == 3_000
    assert all(event.pid == 10 for event in trace.process_events)


def test_compute_trace_reports_metrics_relative_to_navigation() -> None:
    result = TraceProcessor.compute_trace(_tab_events())

    metrics = result["metrics"]
    assert metrics["fcp"] == {"us": 500}
    assert metrics["lcp"] == {"us": 1_100}
    assert metrics["dcl"] == {"us": 800}
    assert metrics["load"] == {"us": 2_000}
    assert metrics["cls"] == pytest.approx(0.2)

    names = [trace.name for trace in result["traces"]]
    assert names[0] == "navigationStart"
    assert "largestContentfulPaint" in names
    assert "checkout-ready" in names
    assert "layoutShift" in names
    starts = [trace.start["us"] for trace in result["traces"]]
    assert starts == sorted(starts)


def test_invalidated_lcp_is_omitted() -> None:
    events = _tab_events() + [
        trace_event("largestContentfulPaint::Invalidate", 2_200, cat="loading", ph="R", pid=10, data={"frame": FRAME}),
    ]

    result = TraceProcessor.compute_trace(events)

    assert "lcp" not in result["metrics"]
    assert "largestContentfulPaint" not in [trace.name for trace in result["traces"]]


def test_last_navigation_start_is_the_time_origin() -> None:
    events = _tab_events() + [
        trace_event("navigationStart", 2_800, cat="blink.user_timing", ph="R", pid=10, frame=FRAME,
                    data={"documentLoaderURL": "https://example.com/next"}),
        trace_event("navigationStart", 2_900, cat="blink.user_timing", ph="R", pid=10, frame=FRAME,
                    data={"documentLoaderURL": "chrome-error://chromewebdata/"}),
    ]

    result = TraceProcessor.compute_trace(events)

    assert result["metrics"]["load"] == {"us": 200}
    assert "fcp" not in result["metrics"]


def test_compute_trace_tolerates_empty_and_malformed_input() -> None:
    assert TraceProcessor.compute_trace([]) == {"traces": [], "metrics": {"cls": 0}}
    assert TraceProcessor.compute_trace(None) == {"traces": [], "metrics": {"cls": 0}}
    assert TraceProcessor.compute_trace([42, {"ts": "bad"}]) == {"traces": [], "metrics": {"cls": 0}}


def test_user_timings_come_from_the_renderer_main_thread() -> None:
    events = _tab_events() + [
        trace_event("worker-mark", 2_700, cat=USER_TIMING_CATEGORY, ph="R", pid=10, tid=2),
    ]

    trace = TraceProcessor.compute_trace_of_tab(parse_trace_events(events))
    result = TraceProcessor.compute_trace(events)

    assert {event.tid for event in trace.main_thread_events} == {1}
    assert "worker-mark" in [event.name for event in trace.process_events]
    names = [output.name for output in result["traces"]]
    assert "checkout-ready" in names
    assert "worker-mark" not in names
