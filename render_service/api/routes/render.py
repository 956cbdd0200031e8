"""
Render Routes
=============

FastAPI routes for PNG and video rendering. Failures are raised as
``RenderServiceError`` subclasses and turned into JSON error bodies by the
application's exception handlers.
"""

from typing import Tuple, Union

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from render_service.config.logging import get_logger
from render_service.config.settings import Settings, get_settings
from render_service.core.exceptions import InvalidRequestError
from render_service.core.normalize import normalize_flag, normalize_int
from render_service.core.rendering.page_renderer import PageRenderer, get_page_renderer
from render_service.core.rendering.video_composer import VideoComposer, get_video_composer
from render_service.models.schemas import RenderPngRequest, RenderVideoRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/render", tags=["Rendering"])


def _dimensions(
    request: Union[RenderPngRequest, RenderVideoRequest], settings: Settings
) -> Tuple[int, int]:
    return (
        normalize_int(request.width, settings.default_width),
        normalize_int(request.height, settings.default_height),
    )


@router.post("/png", response_class=Response)
async def render_png(
    request: RenderPngRequest,
    settings: Settings = Depends(get_settings),
    renderer: PageRenderer = Depends(get_page_renderer),
) -> Response:
    """Render a template's frame element to PNG."""
    if not request.template:
        raise InvalidRequestError("template is required")

    width, height = _dimensions(request, settings)
    logger.info("PNG render requested", template=request.template, width=width, height=height)

    png = await renderer.render_frame(
        request.template,
        width,
        height,
        transparent=normalize_flag(request.transparent),
        data=request.data,
        assets=request.assets,
        options=request.options,
    )
    return Response(content=png, media_type="image/png")


@router.post("/video", response_class=Response)
async def render_video(
    request: RenderVideoRequest,
    settings: Settings = Depends(get_settings),
    composer: VideoComposer = Depends(get_video_composer),
) -> Response:
    """Composite a transparent template render over a looping background video."""
    if not request.template:
        raise InvalidRequestError("template is required")

    width, height = _dimensions(request, settings)
    logger.info("Video render requested", template=request.template, width=width, height=height)

    video = await composer.compose_video(
        request.template,
        width,
        height,
        data=request.data,
        assets=request.assets,
        options=request.options,
    )
    return Response(content=video, media_type="video/mp4")
