"""
Shared Browser
==============

Chromium startup is expensive, so one instance is launched lazily and shared
by every request for the lifetime of the process. Requests isolate themselves
with their own browser contexts.
"""

import asyncio
from typing import Any, Optional

from playwright.async_api import async_playwright, Browser, Playwright

from render_service.config.logging import get_logger
from render_service.config.settings import Settings, get_settings
from render_service.core.exceptions import RenderFailed

logger = get_logger(__name__)


class BrowserManager:
    """Owns the process-wide browser and its single pending launch."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._launch: Optional["asyncio.Future[Browser]"] = None
        self.logger: Any = logger.bind(component="browser_manager")

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def get_browser(self) -> Browser:
        """
        Return the shared browser, launching it on first use.

        Concurrent first callers all await the same launch. A failed launch
        is forgotten so the next caller starts a fresh one.
        """
        if self._launch is None:
            self._launch = asyncio.ensure_future(self._start())
        launch = self._launch
        try:
            return await asyncio.shield(launch)
        except Exception:
            if self._launch is launch:
                self._launch = None
            raise

    async def _start(self) -> Browser:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=self.settings.chromium_args,
            )
        except Exception as e:
            self.logger.error("Failed to launch browser", error=str(e))
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
            raise RenderFailed(f"Browser launch failed: {e}") from e

        self.logger.info("Browser launched", headless=self.settings.playwright_headless)
        return self._browser

    async def close(self) -> None:
        """Close the browser and stop Playwright if they were started."""
        launch, self._launch = self._launch, None
        if launch is not None and not launch.done():
            launch.cancel()

        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser closed")


_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the process-wide browser manager."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager()
    return _browser_manager


async def close_browser_manager() -> None:
    """Close the process-wide browser, if one was launched."""
    global _browser_manager
    if _browser_manager is not None:
        await _browser_manager.close()
        _browser_manager = None
