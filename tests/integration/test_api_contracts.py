"""
Integration Tests for API Contracts
===================================

HTTP contract tests for the render endpoints. The browser and ffmpeg are
replaced through FastAPI dependency overrides and patches; routing, request
validation, error mapping and temp-dir handling are real.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from render_service.api.main import create_app
from render_service.config.settings import get_settings
from render_service.core.exceptions import (
    ProcessExitError,
    ProcessTimeoutError,
    RenderFailed,
)
from render_service.core.rendering.page_renderer import PageRenderer, get_page_renderer
from render_service.core.rendering.video_composer import VideoComposer, get_video_composer


@pytest.fixture
def png_bytes(png_factory):
    return png_factory(400, 300)


@pytest.fixture
def fake_renderer(png_bytes):
    renderer = MagicMock(spec=PageRenderer)
    renderer.render_frame = AsyncMock(return_value=png_bytes)
    return renderer


@pytest.fixture
def app(fake_renderer, test_settings):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_page_renderer] = lambda: fake_renderer
    app.dependency_overrides[get_video_composer] = lambda: VideoComposer(
        fake_renderer, test_settings
    )
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def ffmpeg():
    async def fake_run(command, args, timeout_ms):
        with open(args[-1], "wb") as output:
            output.write(b"\x00\x00\x00\x18ftypisom")
        return MagicMock(stdout="", stderr="")

    with patch(
        "render_service.core.rendering.video_composer.run_process",
        AsyncMock(side_effect=fake_run),
    ) as mock_run:
        yield mock_run


class TestGeneralEndpoints:
    def test_health(self, client, test_settings):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"ok": True, "dataRoot": str(test_settings.data_root)}

    def test_root_lists_endpoints(self, client):
        data = client.get("/").json()
        assert data["endpoints"]["render_png"] == "POST /render/png"
        assert data["endpoints"]["render_video"] == "POST /render/video"

    def test_every_response_has_request_id(self, client):
        first = client.get("/health").headers["X-Request-ID"]
        second = client.post("/render/png", json={}).headers["X-Request-ID"]
        assert first and second and first != second

    def test_request_id_is_bound_to_the_logging_context(self, client):
        with patch("render_service.api.main.bind_request_context") as bind:
            response = client.get("/health")

        bind.assert_called_once_with(
            request_id=response.headers["X-Request-ID"], method="GET", path="/health"
        )

    def test_unknown_route(self, client):
        response = client.get("/render/gif")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "404"


class TestRenderPng:
    def test_renders_png(self, client, fake_renderer, png_bytes):
        response = client.post(
            "/render/png",
            json={
                "template": "card",
                "width": 400,
                "height": 300,
                "transparent": True,
                "data": {"title": "Hello"},
                "options": {"deviceScaleFactor": 1},
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "image/png"
        assert response.content == png_bytes
        fake_renderer.render_frame.assert_awaited_once_with(
            "card",
            400,
            300,
            transparent=True,
            data={"title": "Hello"},
            assets={},
            options={"deviceScaleFactor": 1},
        )

    def test_dimensions_fall_back_to_defaults(self, client, fake_renderer, test_settings):
        client.post("/render/png", json={"template": "card", "width": "wide", "height": -5})

        args = fake_renderer.render_frame.call_args.args
        assert args[1:] == (test_settings.default_width, test_settings.default_height)
        assert fake_renderer.render_frame.call_args.kwargs["transparent"] is False

    def test_transparent_requires_literal_true(self, client, fake_renderer):
        client.post("/render/png", json={"template": "card", "transparent": "yes"})
        assert fake_renderer.render_frame.call_args.kwargs["transparent"] is False

    @pytest.mark.parametrize("body", [{}, {"template": ""}, {"template": None, "width": 10}])
    def test_missing_template_is_400(self, client, fake_renderer, body):
        response = client.post("/render/png", json=body)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert "template" in response.json()["message"]
        fake_renderer.render_frame.assert_not_awaited()

    def test_missing_template_file_is_404(self, app, client, test_settings):
        browser_manager = MagicMock()
        browser_manager.get_browser = AsyncMock()
        app.dependency_overrides[get_page_renderer] = lambda: PageRenderer(
            browser_manager, test_settings
        )

        response = client.post("/render/png", json={"template": "missing"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["error"] == "TEMPLATE_NOT_FOUND"
        assert body["detail"].endswith("missing/index.html")
        assert body["request_id"] == response.headers["X-Request-ID"]
        browser_manager.get_browser.assert_not_awaited()

    def test_render_failure_is_500(self, client, fake_renderer):
        fake_renderer.render_frame.side_effect = RenderFailed("Template did not become ready")

        response = client.post("/render/png", json={"template": "card"})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "RENDER_FAILED"
        assert response.json()["message"] == "Template did not become ready"

    def test_malformed_json_is_400(self, client):
        response = client.post(
            "/render/png",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_non_object_data_is_400(self, client, fake_renderer):
        response = client.post("/render/png", json={"template": "card", "data": [1, 2]})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        fake_renderer.render_frame.assert_not_awaited()

    def test_oversized_body_is_413(self, fake_renderer, test_settings):
        test_settings.max_body_bytes = 64
        app = create_app()
        app.dependency_overrides[get_page_renderer] = lambda: fake_renderer

        with TestClient(app) as client:
            response = client.post(
                "/render/png", json={"template": "card", "data": {"x": "y" * 100}}
            )

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error"] == "PAYLOAD_TOO_LARGE"
        fake_renderer.render_frame.assert_not_awaited()

    def test_oversized_chunked_body_is_413(self, fake_renderer, test_settings):
        test_settings.max_body_bytes = 64
        app = create_app()
        app.dependency_overrides[get_page_renderer] = lambda: fake_renderer
        body = json.dumps({"template": "card", "data": {"x": "y" * 100}}).encode()

        with TestClient(app) as client:
            response = client.post(
                "/render/png",
                content=iter([body[:32], body[32:]]),
                headers={"content-type": "application/json"},
            )

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error"] == "PAYLOAD_TOO_LARGE"
        fake_renderer.render_frame.assert_not_awaited()

    def test_chunked_body_within_limit_is_rendered(self, client, fake_renderer, png_bytes):
        body = json.dumps({"template": "card", "width": 400, "height": 300}).encode()

        response = client.post(
            "/render/png",
            content=iter([body[:10], body[10:]]),
            headers={"content-type": "application/json"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.content == png_bytes
        fake_renderer.render_frame.assert_awaited_once()


class TestRenderVideo:
    def test_renders_video(self, client, fake_renderer, ffmpeg, work_root):
        response = client.post(
            "/render/video",
            json={
                "template": "card",
                "width": 400,
                "height": 300,
                "assets": {"backgroundVideo": "file:///bg.mp4"},
                "options": {"fps": 24, "durationSec": 2},
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "video/mp4"
        assert response.content.startswith(b"\x00\x00\x00\x18ftyp")

        render_kwargs = fake_renderer.render_frame.call_args.kwargs
        assert render_kwargs["transparent"] is True
        assert render_kwargs["hide_background_layer"] is True

        args = ffmpeg.call_args.args[1]
        assert args[args.index("-r") + 1] == "24"
        assert args[args.index("-t") + 1] == "2"
        assert list(work_root.iterdir()) == []

    @pytest.mark.parametrize(
        "body",
        [
            {"assets": {"backgroundVideo": "file:///bg.mp4"}},
            {"template": "card"},
            {"template": "card", "assets": {"backgroundVideo": "https://cdn.example.com/bg.mp4"}},
            {"template": "card", "assets": {"backgroundVideo": "/bg.mp4"}},
        ],
    )
    def test_invalid_requests_are_400_without_temp_dir(
        self, client, fake_renderer, ffmpeg, work_root, body
    ):
        response = client.post("/render/video", json=body)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"
        fake_renderer.render_frame.assert_not_awaited()
        ffmpeg.assert_not_awaited()
        assert list(work_root.iterdir()) == []

    @pytest.mark.parametrize(
        "failure",
        [
            ProcessExitError("ffmpeg", 1, "moov atom not found"),
            ProcessTimeoutError("ffmpeg", 180000),
        ],
    )
    def test_composition_failure_is_500(self, client, ffmpeg, work_root, failure):
        ffmpeg.side_effect = failure

        response = client.post(
            "/render/video",
            json={"template": "card", "assets": {"backgroundVideo": "file:///bg.mp4"}},
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "COMPOSITION_FAILED"
        assert list(work_root.iterdir()) == []

    def test_overlay_failure_is_500(self, client, fake_renderer, ffmpeg, work_root):
        fake_renderer.render_frame.side_effect = RenderFailed("capture failed")

        response = client.post(
            "/render/video",
            json={"template": "card", "assets": {"backgroundVideo": "file:///bg.mp4"}},
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "RENDER_FAILED"
        ffmpeg.assert_not_awaited()
        assert list(work_root.iterdir()) == []
