"""Per-step screenshot capture backed by a per-run cache directory."""

from __future__ import annotations

import asyncio
import base64
import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from synthetics_engine.core.types import Attachment, Screenshot
from synthetics_engine.utils.file_ops import read_json, write_json
from synthetics_engine.utils.time_utils import get_timestamp

from .base import PluginKind, TelemetryPlugin

logger = logging.getLogger(__name__)


class AttachmentsManager(TelemetryPlugin):
    """Writes one JSON file per captured screenshot and keeps the image bytes.

    Screenshot files live in the cache directory only for the duration of
    one journey; the runner reads them back and clears the directory.
    """

    kind = PluginKind.ATTACHMENTS

    def __init__(self, driver: Any, options: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(driver, options)
        output_dir = self.options.get("output_dir")
        if output_dir:
            self.screenshot_dir = Path(output_dir) / "screenshots"
        else:
            self.screenshot_dir = Path(tempfile.gettempdir()) / f"synthetics-{uuid.uuid4().hex}" / "screenshots"
        self.mode = self.options.get("screenshots", "off")
        self.quality = int(self.options.get("screenshot_quality", 80))
        self.timeout_ms = int(self.options.get("screenshot_timeout_ms", 5000))
        self.attachments: List[Attachment] = []

    async def start(self) -> None:
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        await super().start()
        logger.debug("started collecting attachments in %s", self.screenshot_dir)

    async def _collect(self) -> List[Attachment]:
        logger.debug("stopped collecting attachments")
        return list(self.attachments)

    def _active_page(self) -> Any:
        # popups and new tabs: the last opened page has the current state
        pages = list(getattr(self.driver.context, "pages", None) or [])
        return pages[-1] if pages else self.driver.page

    async def record_screenshot(self, step: Any) -> Optional[Path]:
        """Capture the active page for ``step``; failures are logged, never raised."""

        page = self._active_page()
        if page is None:
            return None
        if step.url is None:
            try:
                step.url = page.url
            except Exception:  # noqa: BLE001 - page may be closed
                logger.debug("could not read page url for %s", step.name, exc_info=True)
        if self.mode == "off":
            return None
        try:
            buffer = await page.screenshot(type="jpeg", quality=self.quality, timeout=self.timeout_ms)
            screenshot = Screenshot(
                step=step.ref(),
                timestamp=get_timestamp(),
                data=base64.b64encode(buffer).decode("ascii"),
            )
            path = self.screenshot_dir / f"{uuid.uuid4().hex}.json"
            await asyncio.to_thread(write_json, path, screenshot.model_dump(mode="json"))
        except Exception:  # noqa: BLE001 - screenshots are best effort
            logger.warning("failed to capture screenshot for (%s)", step.name, exc_info=True)
            return None
        self.attachments.append(Attachment(name=step.name, content_type="image/jpeg", body=buffer))
        logger.debug("captured screenshot for (%s)", step.name)
        return path

    async def collect_screenshots(self) -> List[Screenshot]:
        return await asyncio.to_thread(self._read_screenshots)

    def _read_screenshots(self) -> List[Screenshot]:
        if not self.screenshot_dir.exists():
            return []
        screenshots: List[Screenshot] = []
        for path in self.screenshot_dir.glob("*.json"):
            try:
                screenshots.append(Screenshot.model_validate(read_json(path)))
            except (OSError, ValueError, ValidationError):
                logger.warning("skipping unreadable screenshot file %s", path, exc_info=True)
        return sorted(screenshots, key=lambda shot: (shot.timestamp, shot.step.index))

    async def clear(self) -> None:
        target = self.screenshot_dir.parent if self.options.get("output_dir") is None else self.screenshot_dir
        await asyncio.to_thread(shutil.rmtree, target, True)


__all__ = ["AttachmentsManager"]
