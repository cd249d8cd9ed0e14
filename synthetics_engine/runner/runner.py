"""Journey/step state machine and lifecycle event stream."""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from synthetics_engine.config_loader import load_settings, settings_log_level
from synthetics_engine.core.errors import ErrorInfo, HookError, SyntheticsError
from synthetics_engine.core.options import RunOptions
from synthetics_engine.core.types import JourneyStatus
from synthetics_engine.dsl.journey import HookCallback, Journey, JourneyCallback, JourneyScope
from synthetics_engine.dsl.step import Step
from synthetics_engine.plugins.base import PluginKind
from synthetics_engine.plugins.browser_console import filter_browser_messages
from synthetics_engine.plugins.plugin_manager import PluginManager
from synthetics_engine.utils.logging_utils import configure_logger
from synthetics_engine.utils.time_utils import get_timestamp, monotonic_seconds

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
    Subscriber,
)
from .gatherer import Driver, Gatherer

logger = logging.getLogger(__name__)

PauseFn = Callable[[], Awaitable[Any]]


class JourneyResult(BaseModel):
    name: str
    id: str
    status: JourneyStatus
    error: Optional[ErrorInfo] = None
    steps: List[StepEndPayload] = Field(default_factory=list)


class RunResult(BaseModel):
    journeys: Dict[str, JourneyResult] = Field(default_factory=dict)
    hook_error: Optional[ErrorInfo] = None

    def __getitem__(self, name: str) -> JourneyResult:
        return self.journeys[name]

    def __len__(self) -> int:
        return len(self.journeys)


async def wait_for_enter() -> None:
    """Block until a line arrives on stdin without stalling the event loop."""

    await asyncio.to_thread(sys.stdin.readline)


async def _maybe_await(callback: Callable[..., Any], *args: Any) -> Any:
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _journey_info(journey: Journey) -> JourneyInfo:
    return JourneyInfo(name=journey.name, id=journey.id or journey.name, tags=list(journey.tags))


def _step_info(step: Step) -> StepInfo:
    return StepInfo(name=step.name, index=step.index, soft=step.soft, only=step.only)


class Runner:
    """Runs registered journeys sequentially and notifies subscribers.

    Subscribers are called synchronously in subscription order. They observe
    the run and cannot influence it: an exception raised by a subscriber is
    logged and otherwise ignored.
    """

    def __init__(self, *, pause_fn: Optional[PauseFn] = None) -> None:
        self.journeys: List[Journey] = []
        self.hooks: Dict[str, List[HookCallback]] = {"before_all": [], "after_all": []}
        self.current_journey: Optional[Journey] = None
        self.hook_error: Optional[BaseException] = None
        self.active = False
        self._subscribers: List[Subscriber] = []
        self._pause = pause_fn or wait_for_enter

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def add_journey(self, journey: Journey) -> Journey:
        if any(existing.name == journey.name for existing in self.journeys):
            raise SyntheticsError(f"journey '{journey.name}' is already registered")
        self.journeys.append(journey)
        return journey

    def journey(
        self,
        name: str,
        *,
        id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        only: bool = False,
        skip: bool = False,
    ) -> Callable[[JourneyCallback], JourneyCallback]:
        """Decorator registering the wrapped callable as a journey body."""

        def decorator(callback: JourneyCallback) -> JourneyCallback:
            self.add_journey(Journey(name=name, callback=callback, id=id, tags=list(tags or []), only=only, skip=skip))
            return callback

        return decorator

    def before_all(self, callback: HookCallback) -> HookCallback:
        self.hooks["before_all"].append(callback)
        return callback

    def after_all(self, callback: HookCallback) -> HookCallback:
        self.hooks["after_all"].append(callback)
        return callback

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------
    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Add ``subscriber`` and return a callable that removes it again."""

        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, event: RunnerEvent, payload: BaseModel) -> None:
        logger.debug("emit> %s", event.value)
        for subscriber in list(self._subscribers):
            try:
                subscriber(event, payload)
            except Exception:  # noqa: BLE001 - reporters never affect the run
                logger.exception("subscriber failed while handling %s", event.value)

    # ------------------------------------------------------------------
    # Selection and hooks
    # ------------------------------------------------------------------
    def resolve_journeys(self, options: RunOptions) -> List[Journey]:
        """Apply skip/only/name/match/tags filters once for the whole run."""

        selected = [journey for journey in self.journeys if not journey.skip]
        if any(journey.only for journey in selected):
            selected = [journey for journey in selected if journey.only]
        if options.journey_name:
            selected = [journey for journey in selected if journey.name == options.journey_name]
        if options.match or options.tags:
            selected = [journey for journey in selected if journey.is_match(options.match, options.tags)]
        return selected

    async def run_hooks(self, callbacks: List[HookCallback], phase: str) -> List[HookError]:
        """Run every hook of one phase concurrently and collect the failures."""

        if not callbacks:
            return []
        logger.debug("running %s hooks", phase)
        outcomes = await asyncio.gather(
            *(_maybe_await(callback) for callback in callbacks),
            return_exceptions=True,
        )
        errors: List[HookError] = []
        for outcome in outcomes:
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                logger.warning("%s hook failed: %s", phase, outcome)
                errors.append(HookError(phase, outcome))
        return errors

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    async def run_step(self, step: Step, driver: Driver, plugin_manager: PluginManager, options: RunOptions) -> None:
        logger.debug("start step (%s)", step.name)
        plugin_manager.on_step(step)
        try:
            await _maybe_await(step.callback)
            await driver.page.wait_for_load_state("load")
            step.url = driver.page.url
            step.status = "succeeded"
        except Exception as exc:
            logger.debug("step (%s) failed: %s", step.name, exc)
            step.status = "failed"
            step.error = exc
        if options.metrics:
            step.metrics = await self._step_metrics(plugin_manager)
        attachments = plugin_manager.get(PluginKind.ATTACHMENTS)
        if attachments is not None:
            path = await attachments.record_screenshot(step)
            step.screenshot = str(path) if path is not None else None
        logger.debug("end step (%s)", step.name)

    @staticmethod
    async def _step_metrics(plugin_manager: PluginManager) -> Optional[Dict[str, float]]:
        performance = plugin_manager.get(PluginKind.PERFORMANCE)
        if performance is None:
            return None
        try:
            return await performance.get_metrics()
        except Exception:  # noqa: BLE001 - metrics are best effort
            logger.warning("failed to read performance metrics", exc_info=True)
            return None

    async def run_steps(
        self,
        journey: Journey,
        driver: Driver,
        plugin_manager: PluginManager,
        options: RunOptions,
    ) -> List[StepEndPayload]:
        results: List[StepEndPayload] = []
        info = _journey_info(journey)
        has_only = any(step.only for step in journey.steps)
        skip_rest = False
        for step in journey.steps:
            step.started_at = monotonic_seconds()
            step.timestamp = get_timestamp()
            self.emit(
                RunnerEvent.STEP_START,
                StepStartPayload(journey=info, step=_step_info(step), timestamp=step.timestamp),
            )
            if step.skip or (has_only and not step.only) or (skip_rest and not step.only):
                step.status = "skipped"
            else:
                await self.run_step(step, driver, plugin_manager, options)
                if step.status == "failed" and not step.soft:
                    skip_rest = True
            step.ended_at = monotonic_seconds()
            payload = StepEndPayload(
                journey=info,
                step=_step_info(step),
                timestamp=step.timestamp,
                start=step.started_at,
                end=step.ended_at,
                status=step.status,
                error=ErrorInfo.from_exception(step.error) if step.error is not None else None,
                screenshot=step.screenshot,
                metrics=step.metrics,
                url=step.url,
            )
            self.emit(RunnerEvent.STEP_END, payload)
            results.append(payload)
            if options.pause_on_error and step.status == "failed":
                logger.info("paused after failing step (%s), waiting for input", step.name)
                await self._pause()
        return results

    # ------------------------------------------------------------------
    # Journeys
    # ------------------------------------------------------------------
    async def run_journey(self, journey: Journey, options: RunOptions) -> JourneyResult:
        logger.debug("start journey (%s)", journey.name)
        journey.reset_state()
        self.current_journey = journey
        info = _journey_info(journey)
        driver = await Gatherer.setup_driver(options)
        step_results: List[StepEndPayload] = []
        try:
            plugin_manager = await Gatherer.begin_recording(driver, options)
            journey.status = "running"
            journey.started_at = monotonic_seconds()
            timestamp = get_timestamp()
            self.emit(
                RunnerEvent.JOURNEY_START,
                JourneyStartPayload(journey=info, timestamp=timestamp, params=options.params),
            )
            error = await self._register_steps(journey, driver, options)
            if error is None:
                before_errors = await self.run_hooks(journey.hooks.before, "before")
                error = before_errors[0] if before_errors else None
            if error is None:
                step_results = await self.run_steps(journey, driver, plugin_manager, options)
                failed = next((step for step in journey.steps if step.status == "failed"), None)
                error = failed.error if failed is not None else None
            else:
                for step in journey.steps:
                    step.status = "skipped"
            after_errors = await self.run_hooks(journey.hooks.after, "after")
            if error is None and after_errors:
                error = after_errors[0]
            journey.status = "failed" if error is not None else "succeeded"
            journey.error = error
            payload = await self._journey_end_payload(journey, info, timestamp, plugin_manager, options)
        finally:
            await Gatherer.dispose(driver)
        self.emit(RunnerEvent.JOURNEY_END, payload)
        logger.debug("end journey (%s): %s", journey.name, journey.status)
        return JourneyResult(
            name=journey.name,
            id=info.id,
            status=journey.status,
            error=payload.error,
            steps=step_results,
        )

    async def _register_steps(self, journey: Journey, driver: Driver, options: RunOptions) -> Optional[BaseException]:
        """Run the journey body so it can declare its steps."""

        journey.steps.clear()
        if journey.callback is None:
            return None
        scope = JourneyScope(
            journey=journey,
            page=driver.page,
            context=driver.context,
            browser=driver.browser,
            client=driver.client,
            params=dict(options.params),
        )
        try:
            await _maybe_await(journey.callback, scope)
        except Exception as exc:
            logger.warning("journey (%s) failed while registering steps: %s", journey.name, exc)
            return exc
        return None

    async def _journey_end_payload(
        self,
        journey: Journey,
        info: JourneyInfo,
        timestamp: int,
        plugin_manager: PluginManager,
        options: RunOptions,
    ) -> JourneyEndPayload:
        output = await plugin_manager.output()
        screenshots = None
        attachments = plugin_manager.get(PluginKind.ATTACHMENTS)
        if attachments is not None:
            keep = options.screenshots == "on" or (
                options.screenshots == "only-on-failure" and journey.status == "failed"
            )
            if keep:
                screenshots = await attachments.collect_screenshots()
            await attachments.clear()
        journey.ended_at = monotonic_seconds()
        return JourneyEndPayload(
            journey=info,
            timestamp=timestamp,
            start=journey.started_at or journey.ended_at,
            end=journey.ended_at,
            status=journey.status,
            error=ErrorInfo.from_exception(journey.error) if journey.error is not None else None,
            params=options.params,
            networkinfo=output.networkinfo,
            browserconsole=filter_browser_messages(
                output.browserconsole,
                journey.status,
                options.successful_message_limit,
            ),
            journeyconsole=output.journeyconsole,
            filmstrips=output.filmstrips,
            traces=output.traces,
            metrics=output.metrics,
            screenshots=screenshots,
            attachments=output.attachments if screenshots is not None else None,
        )

    def _report_hook_failure(self, journey: Journey, options: RunOptions) -> JourneyResult:
        """Report ``journey`` as failed with the global setup error without running it."""

        journey.reset_state()
        info = _journey_info(journey)
        timestamp = get_timestamp()
        start = monotonic_seconds()
        self.emit(
            RunnerEvent.JOURNEY_START,
            JourneyStartPayload(journey=info, timestamp=timestamp, params=options.params),
        )
        journey.status = "failed"
        journey.error = self.hook_error
        error = ErrorInfo.from_exception(self.hook_error)
        self.emit(
            RunnerEvent.JOURNEY_END,
            JourneyEndPayload(
                journey=info,
                timestamp=timestamp,
                start=start,
                end=monotonic_seconds(),
                status="failed",
                error=error,
                params=options.params,
            ),
        )
        return JourneyResult(name=journey.name, id=info.id, status="failed", error=error)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    async def run(self, options: Optional[RunOptions] = None) -> RunResult:
        options = options or RunOptions()
        if self.active:
            raise SyntheticsError("runner is already running")
        self.active = True
        result = RunResult()
        try:
            journeys = self.resolve_journeys(options)
            logger.debug("run %d journeys", len(journeys))
            self.emit(RunnerEvent.START, StartPayload(num_journeys=len(journeys)))
            for journey in journeys:
                self.emit(RunnerEvent.JOURNEY_REGISTER, JourneyRegisterPayload(journey=_journey_info(journey)))
            if options.dry_run:
                self.emit(RunnerEvent.END, EndPayload(num_journeys=len(journeys)))
                return result

            Gatherer.install_interrupt_handler()
            before_errors = await self.run_hooks(self.hooks["before_all"], "before_all")
            if before_errors:
                self.hook_error = before_errors[0]
            for journey in journeys:
                if self.hook_error is not None:
                    journey_result = self._report_hook_failure(journey, options)
                else:
                    journey_result = await self.run_journey(journey, options)
                result.journeys[journey.name] = journey_result
            after_errors = await self.run_hooks(self.hooks["after_all"], "after_all")
            if after_errors and self.hook_error is None:
                self.hook_error = after_errors[0]
            if self.hook_error is not None:
                result.hook_error = ErrorInfo.from_exception(self.hook_error)
            self.emit(RunnerEvent.END, EndPayload(num_journeys=len(journeys), hook_error=result.hook_error))
            return result
        finally:
            self.reset()

    def reset(self) -> None:
        """Clear journeys, hooks and per-run state; subscribers are kept."""

        logger.debug("reset")
        self.journeys = []
        self.hooks = {"before_all": [], "after_all": []}
        self.current_journey = None
        self.hook_error = None
        self.active = False
        Gatherer.reset()


def run_sync(runner: Runner, options: Optional[RunOptions] = None) -> RunResult:
    """Run ``runner`` to completion from synchronous code.

    Without explicit options the defaults come from ``config/settings.yaml``.
    """

    settings = load_settings() if options is None else {}
    configure_logger(settings_log_level(settings))
    if options is None:
        options = RunOptions.from_settings(settings)
    return asyncio.run(runner.run(options))


__all__ = ["JourneyResult", "PauseFn", "RunResult", "Runner", "run_sync", "wait_for_enter"]
