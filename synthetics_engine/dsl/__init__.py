"""Journey authoring model."""

from .journey import JOURNEY_LOGGER_NAME, Journey, JourneyHooks, JourneyScope
from .step import Step

__all__ = ["JOURNEY_LOGGER_NAME", "Journey", "JourneyHooks", "JourneyScope", "Step"]
