from __future__ import annotations

import pytest

from synthetics_engine.plugins.tracing import PERFORMANCE_CATEGORIES, Tracing, included_categories
from synthetics_engine.trace.metrics import SCREENSHOT_CATEGORY
from tests.fakes import FakeCDPSession, make_driver, trace_event


def _deliver(chunks: list[list[dict]]):
    def respond(session: FakeCDPSession, params):
        for chunk in chunks:
            session.emit("Tracing.dataCollected", {"value": chunk})
        session.emit("Tracing.tracingComplete", {})
        return {}

    return respond


def test_included_categories_per_capability() -> None:
    assert included_categories(filmstrips=True, trace=False) == [SCREENSHOT_CATEGORY]
    assert included_categories(filmstrips=False, trace=True) == PERFORMANCE_CATEGORIES
    both = included_categories(filmstrips=True, trace=True)
    assert both[0] == SCREENSHOT_CATEGORY
    assert set(PERFORMANCE_CATEGORIES) <= set(both)


@pytest.mark.asyncio
async def test_filmstrips_from_chunked_trace_data() -> None:
    paint = trace_event("Screenshot", 1_000, cat=SCREENSHOT_CATEGORY, ph="O", snapshot="base64-frame")
    later = trace_event("Screenshot", 900_000, cat=SCREENSHOT_CATEGORY, ph="O", snapshot="base64-later")
    driver = make_driver(responses={"Tracing.end": _deliver([[paint], [later]])})
    tracing = Tracing(driver, {"filmstrips": True})

    await tracing.start()
    output = await tracing.stop()

    method, params = driver.client.sent[0]
    assert method == "Tracing.start"
    assert params["traceConfig"]["includedCategories"] == [SCREENSHOT_CATEGORY]
    assert [frame.blob for frame in output["filmstrips"]] == ["base64-frame", "base64-later"]
    assert "traces" not in output
    assert driver.client.listeners["Tracing.dataCollected"] == []


@pytest.mark.asyncio
async def test_trace_output_contains_metrics() -> None:
    events = [
        trace_event("navigationStart", 100, cat="blink.user_timing", ph="R", data={"documentLoaderURL": ""}),
        trace_event("firstContentfulPaint", 400, cat="loading", ph="R"),
        trace_event("LayoutShift", 500, cat="loading", data={"score": 0.05, "is_main_frame": True}),
    ]
    driver = make_driver(responses={"Tracing.end": _deliver([events])})
    tracing = Tracing(driver, {"trace": True})

    await tracing.start()
    output = await tracing.stop()

    assert "filmstrips" not in output
    assert output["metrics"]["fcp"] == {"us": 300}
    assert output["metrics"]["cls"] == pytest.approx(0.05)
    assert [trace.name for trace in output["traces"]] == ["navigationStart", "firstContentfulPaint", "layoutShift"]


@pytest.mark.asyncio
async def test_stop_is_idempotent() -> None:
    driver = make_driver(responses={"Tracing.end": _deliver([[]])})
    tracing = Tracing(driver, {"filmstrips": True})

    await tracing.start()
    first = await tracing.stop()
    second = await tracing.stop()

    assert first is second
    assert driver.client.methods().count("Tracing.end") == 1
    assert first["filmstrips"] == []


@pytest.mark.asyncio
async def test_failed_tracing_end_detaches_listeners() -> None:
    driver = make_driver(responses={"Tracing.end": RuntimeError("Target closed")})
    tracing = Tracing(driver, {"trace": True})

    await tracing.start()
    with pytest.raises(RuntimeError):
        await tracing.stop()

    assert driver.client.once_listeners.get("Tracing.tracingComplete") == []
    assert driver.client.listeners.get("Tracing.dataCollected") == []
