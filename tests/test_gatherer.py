from __future__ import annotations

import asyncio
import signal

import pytest

from synthetics_engine.core.errors import INTERRUPT_EXIT_CODE, DriverFatalError
from synthetics_engine.core.options import RunOptions
from synthetics_engine.plugins.base import PluginKind
from synthetics_engine.runner import gatherer as gatherer_module
from synthetics_engine.runner.gatherer import Gatherer
from tests.fakes import FakeBrowser, FakeContext, FakePage, FakePlaywright, make_driver


@pytest.fixture(autouse=True)
def _reset_gatherer():
    Gatherer.reset()
    yield
    Gatherer.reset()


class _FakeChromium:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.launch_kwargs = None
        self.page = FakePage()

    async def launch(self, **kwargs):
        if self.fail:
            raise RuntimeError("executable doesn't exist")
        self.launch_kwargs = kwargs
        return _LaunchedBrowser(self.page)


class _LaunchedBrowser(FakeBrowser):
    def __init__(self, page: FakePage) -> None:
        super().__init__()
        self.page = page

    async def new_context(self):
        return _LaunchedContext(self.page)


class _LaunchedContext(FakeContext):
    async def new_page(self):
        return self.pages[0]

    async def new_cdp_session(self, page):
        return {"session_for": page}


class _FakePlaywrightManager:
    def __init__(self, chromium: _FakeChromium) -> None:
        self.playwright = FakePlaywright()
        self.playwright.chromium = chromium

    async def start(self):
        return self.playwright


@pytest.mark.asyncio
async def test_setup_driver_launches_and_tracks_driver(monkeypatch) -> None:
    chromium = _FakeChromium()
    manager = _FakePlaywrightManager(chromium)
    monkeypatch.setattr(gatherer_module, "async_playwright", lambda: manager)

    driver = await Gatherer.setup_driver(RunOptions(headless=False, chromium_args=["--no-sandbox"]))

    assert chromium.launch_kwargs == {"headless": False, "args": ["--no-sandbox"]}
    assert driver.page is chromium.page
    assert driver.client == {"session_for": chromium.page}
    assert Gatherer.active_driver is driver


@pytest.mark.asyncio
async def test_setup_driver_failure_is_fatal_and_stops_playwright(monkeypatch) -> None:
    manager = _FakePlaywrightManager(_FakeChromium(fail=True))
    monkeypatch.setattr(gatherer_module, "async_playwright", lambda: manager)

    with pytest.raises(DriverFatalError):
        await Gatherer.setup_driver(RunOptions())

    assert manager.playwright.stopped is True
    assert Gatherer.active_driver is None


@pytest.mark.asyncio
async def test_dispose_releases_everything_once() -> None:
    driver = make_driver()
    Gatherer.active_driver = driver

    await Gatherer.dispose(driver)
    await Gatherer.dispose(driver)

    assert driver.closed is True
    assert driver.page.closed and driver.context.closed and driver.browser.closed
    assert driver.playwright.stopped is True
    assert Gatherer.active_driver is None


@pytest.mark.asyncio
async def test_begin_recording_registers_plugins_from_flags(tmp_path) -> None:
    driver = make_driver()

    manager = await Gatherer.begin_recording(driver, RunOptions(output_dir=str(tmp_path)))
    assert set(manager.registered()) == {
        PluginKind.BROWSER_CONSOLE,
        PluginKind.JOURNEY_CONSOLE,
        PluginKind.ATTACHMENTS,
    }
    await manager.output()

    driver = make_driver()
    options = RunOptions(output_dir=str(tmp_path), network=True, metrics=True, filmstrips=True)
    manager = await Gatherer.begin_recording(driver, options)
    assert {PluginKind.NETWORK, PluginKind.PERFORMANCE, PluginKind.TRACE} <= set(manager.registered())
    assert driver.client.methods() == ["Network.enable", "Tracing.start", "Performance.enable"]
    await manager.get(PluginKind.JOURNEY_CONSOLE).stop()


@pytest.mark.asyncio
async def test_interrupt_disposes_active_driver_once() -> None:
    driver = make_driver()
    Gatherer.active_driver = driver
    exits: list[int] = []

    await Gatherer.handle_interrupt(exit_fn=exits.append)
    await Gatherer.handle_interrupt(exit_fn=exits.append)

    assert driver.closed is True
    assert exits == [INTERRUPT_EXIT_CODE]


@pytest.mark.asyncio
async def test_interrupt_without_active_driver_still_exits() -> None:
    exits: list[int] = []

    await Gatherer.handle_interrupt(exit_fn=exits.append)

    assert exits == [130]


class _FakeLoop:
    def __init__(self) -> None:
        self.handlers = {}
        self.tasks = []

    def add_signal_handler(self, signum, callback):
        self.handlers[signum] = callback

    def create_task(self, coro):
        self.tasks.append(coro)
        coro.close()


def test_interrupt_handler_is_installed_once(monkeypatch) -> None:
    monkeypatch.setattr(Gatherer, "_interrupt_loop", None)
    loop = _FakeLoop()

    assert Gatherer.install_interrupt_handler(loop) is True
    assert Gatherer.install_interrupt_handler(loop) is False
    assert set(loop.handlers) == {signal.SIGINT, signal.SIGTERM}

    loop.handlers[signal.SIGINT]()
    assert len(loop.tasks) == 1


def test_interrupt_handler_is_reinstalled_on_a_new_loop(monkeypatch) -> None:
    monkeypatch.setattr(Gatherer, "_interrupt_loop", None)
    first, second = _FakeLoop(), _FakeLoop()

    assert Gatherer.install_interrupt_handler(first) is True
    assert Gatherer.install_interrupt_handler(second) is True
    assert set(second.handlers) == {signal.SIGINT, signal.SIGTERM}


def test_every_asyncio_run_gets_signal_teardown(monkeypatch) -> None:
    monkeypatch.setattr(Gatherer, "_interrupt_loop", None)

    async def install_and_check() -> bool:
        loop = asyncio.get_running_loop()
        Gatherer.install_interrupt_handler()
        registered = loop.remove_signal_handler(signal.SIGTERM)
        loop.remove_signal_handler(signal.SIGINT)
        return registered

    assert asyncio.run(install_and_check()) is True
    assert asyncio.run(install_and_check()) is True
