"""Shared type declarations for telemetry and results."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

JourneyStatus = Literal["pending", "running", "succeeded", "failed", "skipped"]
StepStatus = Literal["pending", "succeeded", "failed", "skipped"]
MessageType = Literal["error", "warning", "log", "info", "debug"]


class StepRef(BaseModel):
    """Step identity attached to per-step telemetry."""

    name: str
    index: int


class NetworkInfo(BaseModel):
    """One request in the waterfall, keyed by its protocol request id."""

    request_id: str
    url: str
    method: str = "GET"
    type: Optional[str] = None
    request: Dict[str, Any] = Field(default_factory=dict)
    response: Optional[Dict[str, Any]] = None
    status: int = 0
    mime_type: Optional[str] = None
    is_navigation_request: bool = False
    start: float = 0
    end: float = 0
    timestamp: Optional[int] = None
    step: Optional[StepRef] = None
    timings: Optional[Dict[str, float]] = None
    error_text: Optional[str] = None


class BrowserMessage(BaseModel):
    timestamp: int
    text: str
    type: str
    step: Optional[StepRef] = None


class TraceOutput(BaseModel):
    """A mark or measure reconstructed from the trace stream."""

    name: str
    type: Literal["mark", "measure"] = "mark"
    start: Dict[str, float]
    end: Optional[Dict[str, float]] = None
    duration: Optional[Dict[str, float]] = None
    score: Optional[float] = None


class FilmStrip(BaseModel):
    blob: str
    mime: str = "image/jpeg"
    start: Dict[str, float]


class Screenshot(BaseModel):
    """Screenshot file persisted to the per-run cache directory."""

    step: StepRef
    timestamp: int
    data: str


class Attachment(BaseModel):
    name: str
    content_type: str
    body: bytes


class PluginOutput(BaseModel):
    """Aggregated telemetry drained from every registered plugin."""

    model_config = ConfigDict(extra="forbid")

    networkinfo: Optional[List[NetworkInfo]] = None
    browserconsole: Optional[List[BrowserMessage]] = None
    journeyconsole: Optional[List[BrowserMessage]] = None
    attachments: Optional[List[Attachment]] = None
    filmstrips: Optional[List[FilmStrip]] = None
    traces: Optional[List[TraceOutput]] = None
    metrics: Optional[Dict[str, Any]] = None


__all__ = [
    "Attachment",
    "BrowserMessage",
    "FilmStrip",
    "JourneyStatus",
    "MessageType",
    "NetworkInfo",
    "PluginOutput",
    "Screenshot",
    "StepRef",
    "StepStatus",
    "TraceOutput",
]
