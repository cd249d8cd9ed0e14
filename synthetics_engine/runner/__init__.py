"""Journey runner, browser gatherer and lifecycle events."""

from .events import (
    EndPayload,
    JourneyEndPayload,
    JourneyInfo,
    JourneyRegisterPayload,
    JourneyStartPayload,
    RunnerEvent,
    StartPayload,
    StepEndPayload,
    StepInfo,
    StepStartPayload,
)
from .gatherer import Driver, Gatherer
from .runner import JourneyResult, RunResult, Runner, run_sync

__all__ = [
	"Driver",
	"EndPayload",
	"Gatherer",
	"JourneyEndPayload",
	"JourneyInfo",
	"JourneyRegisterPayload",
	"JourneyResult",
	"JourneyStartPayload",
	"RunResult",
	"Runner",
	"RunnerEvent",
	"StartPayload",
	"StepEndPayload",
	"StepInfo",
	"StepStartPayload",
	"run_sync",
]
