"""Core primitives: errors, options and telemetry types."""

from .errors import (
    DriverFatalError,
    ErrorInfo,
    HookError,
    StepExecutionError,
    SyntheticsError,
    TelemetryCaptureError,
)
from .options import RunOptions
from .types import PluginOutput

__all__ = [
	"DriverFatalError",
	"ErrorInfo",
	"HookError",
	"PluginOutput",
	"RunOptions",
	"StepExecutionError",
	"SyntheticsError",
	"TelemetryCaptureError",
]
