"""Browser driver acquisition, telemetry bootstrap and interrupt teardown."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional

from playwright.async_api import async_playwright

from synthetics_engine.core.errors import INTERRUPT_EXIT_CODE, DriverFatalError
from synthetics_engine.core.options import RunOptions
from synthetics_engine.plugins.base import PluginKind
from synthetics_engine.plugins.plugin_manager import PluginManager

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Driver:
    """Holds the Playwright session objects for one journey run."""

    playwright: Any
    browser: Any
    context: Any
    page: Any
    client: Any
    closed: bool = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.page.close()
        finally:
            try:
                await self.context.close()
            finally:
                try:
                    await self.browser.close()
                finally:
                    await self.playwright.stop()


class Gatherer:
    """Sets up the browser capabilities the runner needs for each journey."""

    active_driver: Optional[Driver] = None
    _interrupt_loop: Optional[asyncio.AbstractEventLoop] = None
    _interrupting = False

    @classmethod
    async def setup_driver(cls, options: RunOptions) -> Driver:
        logger.debug("launching chromium (headless=%s)", options.headless)
        playwright = None
        try:
            playwright = await async_playwright().start()
            if options.ws_endpoint:
                browser = await playwright.chromium.connect_over_cdp(options.ws_endpoint)
            else:
                browser = await playwright.chromium.launch(
                    headless=options.headless,
                    args=list(options.chromium_args),
                )
            context = await browser.new_context()
            page = await context.new_page()
            client = await context.new_cdp_session(page)
        except Exception as exc:
            if playwright is not None:
                await _quietly(playwright.stop)
            raise DriverFatalError(f"failed to launch browser session: {exc}") from exc
        driver = Driver(playwright=playwright, browser=browser, context=context, page=page, client=client)
        cls.active_driver = driver
        return driver

    @staticmethod
    async def begin_recording(driver: Driver, options: RunOptions) -> PluginManager:
        """Register and start the plugins requested by ``options``."""

        logger.debug("started recording")
        plugin_options = options.model_dump()
        manager = PluginManager(driver)
        manager.register(PluginKind.BROWSER_CONSOLE, plugin_options)
        manager.register(PluginKind.JOURNEY_CONSOLE, plugin_options)
        manager.register(PluginKind.ATTACHMENTS, plugin_options)
        if options.network:
            manager.register(PluginKind.NETWORK, plugin_options)
        if options.trace or options.filmstrips:
            manager.register(PluginKind.TRACE, plugin_options)
        if options.metrics:
            manager.register(PluginKind.PERFORMANCE, plugin_options)
        for kind in manager.registered():
            await manager.start(kind)
        return manager

    @classmethod
    async def dispose(cls, driver: Optional[Driver]) -> None:
        if driver is None:
            return
        if cls.active_driver is driver:
            cls.active_driver = None
        logger.debug("closing browser")
        await driver.close()

    @classmethod
    def install_interrupt_handler(
        cls,
        loop: asyncio.AbstractEventLoop | None = None,
        *,
        exit_fn: Callable[[int], Any] = sys.exit,
    ) -> bool:
        """Install the process-wide SIGINT/SIGTERM teardown once per event loop.

        Loop signal handlers go away when the loop closes, so a later run on a
        new loop installs them again. Returns False when ``loop`` already has them.
        """

        loop = loop or asyncio.get_running_loop()
        if cls._interrupt_loop is loop:
            return False

        def _on_signal() -> None:
            loop.create_task(cls.handle_interrupt(exit_fn=exit_fn))

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, _on_signal)
            except (NotImplementedError, RuntimeError):
                try:
                    signal.signal(signum, lambda *_: loop.call_soon_threadsafe(_on_signal))
                except ValueError:
                    logger.debug("cannot install %s handler outside the main thread", signum)
                    return False
        cls._interrupt_loop = loop
        return True

    @classmethod
    async def handle_interrupt(cls, *, exit_fn: Callable[[int], Any] = sys.exit) -> None:
        """Release the active browser at most once, then exit with the interrupt status."""

        if cls._interrupting:
            return
        cls._interrupting = True
        driver = cls.active_driver
        if driver is not None:
            logger.warning("interrupted, closing the active browser")
            await _quietly(lambda: cls.dispose(driver))
        exit_fn(INTERRUPT_EXIT_CODE)

    @classmethod
    def reset(cls) -> None:
        cls.active_driver = None
        cls._interrupting = False


async def _quietly(close: Callable[[], Any]) -> None:
    try:
        await close()
    except Exception:  # noqa: BLE001 - teardown continues past a broken session
        logger.debug("browser teardown raised", exc_info=True)


__all__ = ["Driver", "Gatherer"]
