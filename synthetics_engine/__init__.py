"""Synthetic-monitoring engine: journeys, telemetry plugins and trace metrics."""

from .core import RunOptions
from .core.errors import DriverFatalError, HookError, StepExecutionError, SyntheticsError, TelemetryCaptureError
from .dsl import Journey, JourneyScope, Step
from .runner import Gatherer, RunResult, Runner, RunnerEvent, run_sync

__all__ = [
	"DriverFatalError",
	"Gatherer",
	"HookError",
	"Journey",
	"JourneyScope",
	"RunOptions",
	"RunResult",
	"Runner",
	"RunnerEvent",
	"Step",
	"StepExecutionError",
	"SyntheticsError",
	"TelemetryCaptureError",
	"run_sync",
]
