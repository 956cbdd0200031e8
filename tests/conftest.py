"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit, integration and e2e tests:
test settings, an on-disk template tree, PNG fixtures and fake collaborators.
"""

import io
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from PIL import Image

from render_service.config.settings import Settings
from render_service.core.rendering.browser import BrowserManager
from render_service.core.rendering.page_renderer import PageRenderer

CARD_TEMPLATE = """<!doctype html>
<html>
  <head>
    <style>
      html, body { margin: 0; background: transparent; }
      #frame { width: 100vw; height: 100vh; position: relative; }
      .bg { position: absolute; inset: 0; background: #123456; }
      .title { position: absolute; top: 10px; left: 10px; color: #ff0000; font: 32px sans-serif; }
    </style>
  </head>
  <body>
    <div id="frame">
      <div class="bg" data-layer="background"></div>
      <div class="title" id="title"></div>
    </div>
    <script>
      document.getElementById("title").textContent = (window.RENDER_DATA || {}).title || "";
      window.__RENDER_READY__ = true;
    </script>
  </body>
</html>
"""

NEVER_READY_TEMPLATE = """<!doctype html>
<html><body><div id="frame">waiting</div></body></html>
"""


def make_png(width: int, height: int, color=(255, 0, 0, 128)) -> bytes:
    """Encode a solid RGBA PNG."""
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Data root with a ``card`` and a ``never_ready`` template."""
    root = tmp_path / "data"
    for name, html in (("card", CARD_TEMPLATE), ("never_ready", NEVER_READY_TEMPLATE)):
        template_dir = root / "templates" / name
        template_dir.mkdir(parents=True)
        (template_dir / "index.html").write_text(html, encoding="utf-8")
    return root


@pytest.fixture
def work_root(tmp_path: Path) -> Path:
    """Parent directory for per-request temp dirs, so leaks are observable."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(data_root: Path, work_root: Path) -> Settings:
    """Test-specific settings."""
    return Settings(
        environment="testing",
        debug=True,
        data_root=data_root,
        temp_path=work_root,
        default_width=400,
        default_height=300,
        ready_timeout_ms=300,
        ready_poll_interval_ms=10,
        playwright_timeout=5000,
        composition_timeout_ms=60000,
        log_level="DEBUG",
    )


@pytest.fixture(autouse=True)
def override_settings(test_settings: Settings) -> Generator[Settings, None, None]:
    """Make ``get_settings()`` return the test settings."""
    with patch("render_service.config.settings.settings", test_settings):
        yield test_settings


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def mock_page() -> MagicMock:
    """Playwright page double whose template is ready immediately."""
    page = MagicMock()
    page.add_init_script = AsyncMock()
    page.goto = AsyncMock()
    page.add_style_tag = AsyncMock()
    page.evaluate = AsyncMock(return_value=True)
    page.close = AsyncMock()
    locator = MagicMock()
    locator.screenshot = AsyncMock(return_value=make_png(4, 4))
    page.locator.return_value = locator
    return page


@pytest.fixture
def mock_context(mock_page: MagicMock) -> MagicMock:
    context = MagicMock()
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context: MagicMock) -> MagicMock:
    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=mock_context)
    return browser


@pytest.fixture
def mock_browser_manager(mock_browser: MagicMock) -> MagicMock:
    manager = MagicMock(spec=BrowserManager)
    manager.get_browser = AsyncMock(return_value=mock_browser)
    return manager


@pytest.fixture
def page_renderer(mock_browser_manager: MagicMock, test_settings: Settings) -> PageRenderer:
    """Page renderer wired to mocked Playwright objects."""
    return PageRenderer(mock_browser_manager, test_settings)


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file paths."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
        elif "e2e" in path:
            item.add_marker(pytest.mark.e2e)
