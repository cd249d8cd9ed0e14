from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from synthetics_engine.core.types import StepRef, StepStatus

StepCallback = Callable[[], Any]


@dataclass(eq=False)
class Step:
    """One unit of journey work with its own pass/fail/skip outcome.

    ``soft`` steps do not cause later steps to be skipped when they fail.
    ``only`` steps run even after an earlier failure, and when any step in the
    journey is ``only`` every other step is skipped.
    """

    name: str
    _index: int
    callback: StepCallback
    soft: bool = False
    only: bool = False
    skip: bool = False
    status: StepStatus = "pending"
    error: Optional[BaseException] = None
    url: Optional[str] = None
    metrics: Optional[Dict[str, float]] = None
    screenshot: Optional[str] = None
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    timestamp: Optional[int] = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def duration(self) -> float:
        if self.started_at is None or self.ended_at is None:
            return -1
        return max(self.ended_at - self.started_at, 0.0)

    def ref(self) -> StepRef:
        return StepRef(name=self.name, index=self._index)


__all__ = ["Step", "StepCallback"]
