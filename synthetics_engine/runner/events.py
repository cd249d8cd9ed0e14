"""Lifecycle events emitted by the runner and their payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from synthetics_engine.core.errors import ErrorInfo
from synthetics_engine.core.types import (
    Attachment,
    BrowserMessage,
    FilmStrip,
    JourneyStatus,
    NetworkInfo,
    Screenshot,
    StepStatus,
    TraceOutput,
)


class RunnerEvent(str, Enum):
    START = "start"
    JOURNEY_REGISTER = "journey:register"
    JOURNEY_START = "journey:start"
    STEP_START = "step:start"
    STEP_END = "step:end"
    JOURNEY_END = "journey:end"
    END = "end"


class JourneyInfo(BaseModel):
    name: str
    id: str
    tags: List[str] = Field(default_factory=list)


class StepInfo(BaseModel):
    name: str
    index: int
    soft: bool = False
    only: bool = False


class StartPayload(BaseModel):
    num_journeys: int


class JourneyRegisterPayload(BaseModel):
    journey: JourneyInfo


class JourneyStartPayload(BaseModel):
    journey: JourneyInfo
    timestamp: int
    params: Dict[str, Any] = Field(default_factory=dict)


class StepStartPayload(BaseModel):
    journey: JourneyInfo
    step: StepInfo
    timestamp: int


class StepEndPayload(BaseModel):
    journey: JourneyInfo
    step: StepInfo
    timestamp: int
    start: float
    end: float
    status: StepStatus
    error: Optional[ErrorInfo] = None
    screenshot: Optional[str] = None
    metrics: Optional[Dict[str, float]] = None
    url: Optional[str] = None

    @property
    def duration(self) -> float:
        return max(self.end - self.start, 0.0)


class JourneyEndPayload(BaseModel):
    journey: JourneyInfo
    timestamp: int
    start: float
    end: float
    status: JourneyStatus
    error: Optional[ErrorInfo] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    networkinfo: Optional[List[NetworkInfo]] = None
    browserconsole: Optional[List[BrowserMessage]] = None
    journeyconsole: Optional[List[BrowserMessage]] = None
    filmstrips: Optional[List[FilmStrip]] = None
    traces: Optional[List[TraceOutput]] = None
    metrics: Optional[Dict[str, Any]] = None
    screenshots: Optional[List[Screenshot]] = None
    attachments: Optional[List[Attachment]] = None


class EndPayload(BaseModel):
    num_journeys: int = 0
    hook_error: Optional[ErrorInfo] = None


Subscriber = Callable[[RunnerEvent, BaseModel], None]


__all__ = [
    "EndPayload",
    "JourneyEndPayload",
    "JourneyInfo",
    "JourneyRegisterPayload",
    "JourneyStartPayload",
    "RunnerEvent",
    "StartPayload",
    "StepEndPayload",
    "StepInfo",
    "StepStartPayload",
    "Subscriber",
]
