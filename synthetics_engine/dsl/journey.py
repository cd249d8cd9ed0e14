"""Journey registration model and the scope handed to journey bodies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, Iterable, List, Optional

from synthetics_engine.core.types import JourneyStatus

from .step import Step, StepCallback

HookCallback = Callable[..., Any]
JourneyCallback = Callable[["JourneyScope"], Any]

JOURNEY_LOGGER_NAME = "synthetics_engine.journey"


@dataclass
class JourneyHooks:
    before: List[HookCallback] = field(default_factory=list)
    after: List[HookCallback] = field(default_factory=list)


@dataclass(eq=False)
class Journey:
    """A named, ordered collection of steps with lifecycle hooks."""

    name: str
    callback: Optional[JourneyCallback] = None
    id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    only: bool = False
    skip: bool = False
    steps: List[Step] = field(default_factory=list)
    hooks: JourneyHooks = field(default_factory=JourneyHooks)
    status: JourneyStatus = "pending"
    error: Optional[BaseException] = None
    started_at: Optional[float] = None
    ended_at: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("journey name cannot be empty")
        self.id = self.id or self.name

    def add_step(
        self,
        name: str,
        callback: StepCallback,
        *,
        soft: bool = False,
        only: bool = False,
        skip: bool = False,
    ) -> Step:
        step = Step(name=name, _index=len(self.steps) + 1, callback=callback, soft=soft, only=only, skip=skip)
        self.steps.append(step)
        return step

    def before(self, callback: HookCallback) -> HookCallback:
        self.hooks.before.append(callback)
        return callback

    def after(self, callback: HookCallback) -> HookCallback:
        self.hooks.after.append(callback)
        return callback

    def is_match(self, match: Optional[str] = None, tags: Optional[Iterable[str]] = None) -> bool:
        """Match by tag patterns first, then by name or tag against ``match``."""

        if tags:
            return self.tags_match(tags)
        if match:
            return fnmatchcase(self.name, match) or self.tags_match([match])
        return True

    def tags_match(self, patterns: Iterable[str]) -> bool:
        candidates = self.tags or ["*"]
        return any(fnmatchcase(tag, pattern) for pattern in patterns for tag in candidates)

    def reset_state(self) -> None:
        self.status = "pending"
        self.error = None
        self.started_at = None
        self.ended_at = None


@dataclass
class JourneyScope:
    """Everything the journey body can touch while it registers its steps."""

    journey: Journey
    page: Any = None
    context: Any = None
    browser: Any = None
    client: Any = None
    params: Dict[str, Any] = field(default_factory=dict)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(JOURNEY_LOGGER_NAME))

    def step(
        self,
        name: str,
        *,
        soft: bool = False,
        only: bool = False,
        skip: bool = False,
    ) -> Callable[[StepCallback], StepCallback]:
        """Decorator registering the wrapped callable as the next step."""

        def decorator(callback: StepCallback) -> StepCallback:
            self.journey.add_step(name, callback, soft=soft, only=only, skip=skip)
            return callback

        return decorator


__all__ = [
    "HookCallback",
    "JOURNEY_LOGGER_NAME",
    "Journey",
    "JourneyCallback",
    "JourneyHooks",
    "JourneyScope",
]
