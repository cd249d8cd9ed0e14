"""Trace event model shared by the processor and metric computations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class TraceEvent(BaseModel):
    """Single record of the browser trace stream (Trace Event Format).

    ``ts`` is the platform monotonic clock in microseconds.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    cat: str = ""
    ph: str = ""
    ts: float
    pid: Optional[int] = None
    tid: Optional[int] = None
    args: Dict[str, Any] = Field(default_factory=dict)

    @property
    def data(self) -> Dict[str, Any]:
        data = self.args.get("data")
        return data if isinstance(data, dict) else {}

    @property
    def frame(self) -> Optional[str]:
        frame = self.args.get("frame")
        if frame is None:
            frame = self.data.get("frame")
        return frame if isinstance(frame, str) else None

    def has_category(self, category: str) -> bool:
        return category in self.cat.split(",")


@dataclass
class TraceOfTab:
    """Events of interest for the inspected tab, located once per trace."""

    process_events: List[TraceEvent] = field(default_factory=list)
    main_thread_events: List[TraceEvent] = field(default_factory=list)
    main_frame_id: Optional[str] = None
    time_origin_evt: Optional[TraceEvent] = None
    first_contentful_paint_evt: Optional[TraceEvent] = None
    largest_contentful_paint_evt: Optional[TraceEvent] = None
    lcp_invalidated: bool = False
    dom_content_loaded_evt: Optional[TraceEvent] = None
    load_evt: Optional[TraceEvent] = None

    @property
    def time_origin(self) -> Optional[float]:
        return self.time_origin_evt.ts if self.time_origin_evt else None


def parse_trace_events(raw_events: Iterable[Any] | None) -> List[TraceEvent]:
    """Validate raw trace dicts, dropping malformed entries, ordered by ``ts``."""

    events: List[TraceEvent] = []
    dropped = 0
    for raw in raw_events or []:
        if isinstance(raw, TraceEvent):
            events.append(raw)
            continue
        if not isinstance(raw, dict):
            dropped += 1
            continue
        if raw.get("args") is None:
            raw = {**raw, "args": {}}
        try:
            events.append(TraceEvent.model_validate(raw))
        except ValidationError:
            dropped += 1
    if dropped:
        logger.debug("dropped %d malformed trace events", dropped)
    # sorted() is stable, so events sharing a timestamp keep their emission order
    return sorted(events, key=lambda event: event.ts)


__all__ = ["TraceEvent", "TraceOfTab", "parse_trace_events"]
