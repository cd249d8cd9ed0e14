"""Custom exception hierarchy for the engine."""

from __future__ import annotations

import traceback
from typing import Any, Optional

from pydantic import BaseModel

INTERRUPT_EXIT_CODE = 130


class SyntheticsError(RuntimeError):
    """Base exception for engine-specific failures."""


class StepExecutionError(SyntheticsError):
    """Failure raised by a step body; also the name reported for non-exception failures."""


class HookError(SyntheticsError):
    """Raised when a before/after hook fails."""

    def __init__(self, phase: str, cause: BaseException) -> None:
        super().__init__(f"{phase} hook failed: {cause}")
        self.phase = phase
        self.__cause__ = cause


class TelemetryCaptureError(SyntheticsError):
    """Raised when a telemetry plugin fails to start, stop or collect."""


class DriverFatalError(SyntheticsError):
    """Raised when the browser session cannot be launched or attached."""


class ErrorInfo(BaseModel):
    """Serializable error shape carried on lifecycle events."""

    name: str
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, error: Any) -> "ErrorInfo":
        if isinstance(error, HookError) and error.__cause__ is not None:
            error = error.__cause__
        if not isinstance(error, BaseException):
            return cls(name=StepExecutionError.__name__, message=str(error))
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return cls(name=type(error).__name__, message=str(error), stack=stack or None)


__all__ = [
    "DriverFatalError",
    "ErrorInfo",
    "HookError",
    "INTERRUPT_EXIT_CODE",
    "StepExecutionError",
    "SyntheticsError",
    "TelemetryCaptureError",
]
