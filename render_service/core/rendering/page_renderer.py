"""
Page Renderer
=============

Playwright-based capture of a template's frame element. Each render gets its
own browser context, receives the request payload through page globals, and
waits for the template to declare itself ready before the screenshot.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import BrowserContext, Error as PlaywrightError, Page

from render_service.config.logging import get_logger
from render_service.config.settings import Settings, get_settings
from render_service.core.cleanup import release_quietly
from render_service.core.exceptions import RenderFailed, TemplateNotFound
from render_service.core.normalize import normalize_number
from render_service.core.rendering.browser import BrowserManager, get_browser_manager
from render_service.core.rendering.readiness import ReadinessTimeout, poll_until

logger = get_logger(__name__)

READY_FLAG = "__RENDER_READY__"

INIT_SCRIPT_TEMPLATE = """
(function (payload) {
  window.RENDER_DATA = payload.data;
  window.RENDER_ASSETS = payload.assets;
  window.RENDER_OPTIONS = payload.options;
  window.__RENDER_READY__ = false;
})(%s);
"""

FONTS_READY_SCRIPT = """
async () => {
  if (document.fonts && document.fonts.ready) {
    await document.fonts.ready;
  }
}
"""

READY_CHECK_SCRIPT = f"() => window.{READY_FLAG} === true"


def build_init_script(data: Any, assets: Any, options: Any) -> str:
    """Script that exposes the request payload before any template code runs."""
    payload = json.dumps({"data": data, "assets": assets, "options": options})
    # keep "</script>" and friends inert if the script is ever inlined
    payload = payload.replace("<", "\\u003c")
    return INIT_SCRIPT_TEMPLATE % payload


def build_hide_style(selector: str) -> str:
    return f"{selector} {{ display: none !important; visibility: hidden !important; }}"


class PageRenderer:
    """Renders templates to PNG on the shared browser."""

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.browser_manager = browser_manager or get_browser_manager()
        self.logger: Any = logger.bind(component="page_renderer")

    def resolve_template(self, template: str) -> Path:
        """
        Resolve a template name to its entry document.

        Raises:
            TemplateNotFound: If the entry document does not exist or the
                name points outside the templates root
        """
        root = self.settings.templates_root.resolve()
        try:
            entry = (root / template / self.settings.entry_document).resolve()
        except (OSError, ValueError):
            raise TemplateNotFound(str(root / template)) from None
        if root not in entry.parents or not entry.is_file():
            raise TemplateNotFound(str(entry))
        return entry

    async def render_frame(
        self,
        template: str,
        width: int,
        height: int,
        transparent: bool = False,
        data: Optional[Dict[str, Any]] = None,
        assets: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
        hide_background_layer: bool = False,
    ) -> bytes:
        """
        Render a template and capture its frame element.

        Args:
            template: Template name under the templates root
            width: Viewport width in CSS pixels
            height: Viewport height in CSS pixels
            transparent: Omit the default page background in the capture
            data: Exposed to the page as ``window.RENDER_DATA``
            assets: Exposed to the page as ``window.RENDER_ASSETS``
            options: Exposed to the page as ``window.RENDER_OPTIONS``
            hide_background_layer: Force-hide background layer elements

        Returns:
            PNG bytes of the capture element

        Raises:
            TemplateNotFound: If the template has no entry document
            RenderFailed: On browser errors, readiness timeout or capture failure
        """
        data = data if data is not None else {}
        assets = assets if assets is not None else {}
        options = options if options is not None else {}

        entry = self.resolve_template(template)
        scale = normalize_number(
            options.get("deviceScaleFactor"), self.settings.default_device_scale_factor
        )
        log = self.logger.bind(template=template, width=width, height=height, scale=scale)
        log.info(
            "Rendering template", transparent=transparent, hide_background=hide_background_layer
        )

        browser = await self.browser_manager.get_browser()

        context: Optional[BrowserContext] = None
        page: Optional[Page] = None
        try:
            context = await browser.new_context(
                viewport={"width": width, "height": height},
                device_scale_factor=scale,
            )
            page = await context.new_page()
            page.set_default_timeout(self.settings.playwright_timeout)

            await page.add_init_script(script=build_init_script(data, assets, options))
            await page.goto(entry.as_uri(), wait_until="domcontentloaded")

            if hide_background_layer:
                await page.add_style_tag(
                    content=build_hide_style(self.settings.background_layer_selector)
                )

            await self._wait_for_fonts(page, log)
            await self._wait_for_ready(page)

            png = await page.locator(self.settings.capture_selector).screenshot(
                type="png", omit_background=transparent
            )
            log.info("Template rendered", png_size=len(png))
            return png

        except ReadinessTimeout as e:
            log.error("Template never signalled readiness", timeout=e.timeout)
            raise RenderFailed(
                f"Template did not set {READY_FLAG} within {self.settings.ready_timeout_ms}ms"
            ) from e
        except PlaywrightError as e:
            log.error("Template render failed", error=str(e))
            raise RenderFailed(f"Render failed: {e}") from e
        finally:
            if page is not None:
                await release_quietly("page", page.close)
            if context is not None:
                await release_quietly("context", context.close)

    async def _wait_for_fonts(self, page: Page, log: Any) -> None:
        try:
            await page.evaluate(FONTS_READY_SCRIPT)
        except PlaywrightError as e:
            log.debug("Font readiness unavailable", error=str(e))

    async def _wait_for_ready(self, page: Page) -> None:
        async def is_ready() -> bool:
            return await page.evaluate(READY_CHECK_SCRIPT)

        await poll_until(
            is_ready,
            timeout=self.settings.ready_timeout_ms / 1000,
            interval=self.settings.ready_poll_interval_ms / 1000,
        )


_page_renderer: Optional[PageRenderer] = None


def get_page_renderer() -> PageRenderer:
    """Get the process-wide page renderer."""
    global _page_renderer
    if _page_renderer is None:
        _page_renderer = PageRenderer()
    return _page_renderer
