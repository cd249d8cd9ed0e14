"""Trace-event processing and derived metrics."""

from .metrics import CumulativeLayoutShift, ExperienceMetrics, Filmstrips, UserTimings
from .models import TraceEvent, TraceOfTab, parse_trace_events
from .processor import TraceProcessor

__all__ = [
    "CumulativeLayoutShift",
    "ExperienceMetrics",
    "Filmstrips",
    "TraceEvent",
    "TraceOfTab",
    "TraceProcessor",
    "UserTimings",
    "parse_trace_events",
]
