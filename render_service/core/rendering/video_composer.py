"""
Video Composer
==============

Composites a transparent render of a template over a looping background clip.
The page renderer produces the overlay once; ffmpeg does the per-frame work.
"""

import io
import tempfile
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from PIL import Image

from render_service.config.logging import get_logger
from render_service.config.settings import Settings, get_settings
from render_service.core.cleanup import remove_tree_quietly
from render_service.core.exceptions import (
    CompositionFailed,
    InvalidRequestError,
    ProcessExitError,
    ProcessTimeoutError,
)
from render_service.core.normalize import normalize_flag, normalize_int, normalize_number
from render_service.core.process_runner import run_process
from render_service.core.rendering.filter_graph import FilterGraph, cover_and_overlay
from render_service.core.rendering.page_renderer import PageRenderer, get_page_renderer

logger = get_logger(__name__)

LOCAL_FILE_PREFIX = "file://"
OUTPUT_LABEL = "vout"


class VideoStage(str, Enum):
    """Stages of a video request."""

    VALIDATING = "validating"
    RENDERING_OVERLAY = "rendering_overlay"
    COMPOSING = "composing"
    DONE = "done"
    FAILED = "failed"


def is_local_file_reference(locator: Any) -> bool:
    return isinstance(locator, str) and locator.startswith(LOCAL_FILE_PREFIX)


def file_uri_to_path(uri: str) -> Path:
    """Translate a ``file://`` URI to a filesystem path."""
    parsed = urlparse(uri)
    path = unquote(parsed.path)
    # file://relative/x.mp4 puts the first segment in netloc
    if parsed.netloc and parsed.netloc != "localhost":
        path = f"/{parsed.netloc}{path}"
    return Path(path)


def format_seconds(value: float) -> str:
    """Plain decimal seconds for ffmpeg's time parser, microsecond precision."""
    return f"{value:.6f}".rstrip("0").rstrip(".")


def build_ffmpeg_args(
    background: Path,
    overlay: Path,
    output: Path,
    graph: FilterGraph,
    fps: int,
    duration_sec: float,
    include_audio: bool,
) -> List[str]:
    """Argument list for compositing ``overlay`` onto a looped ``background``."""
    args = [
        "-y",
        "-hide_banner",
        "-loglevel", "error",
        "-stream_loop", "-1",
        "-i", str(background),
        "-loop", "1",
        "-framerate", str(fps),
        "-i", str(overlay),
        "-filter_complex", graph.serialize(),
        "-map", f"[{OUTPUT_LABEL}]",
    ]

    if include_audio:
        args += ["-map", "0:a?", "-c:a", "aac"]
    else:
        args += ["-an"]

    args += [
        "-t", format_seconds(duration_sec),
        "-r", str(fps),
        "-c:v", "libx264",
        "-pix_fmt", "yuv420p",
        "-movflags", "+faststart",
        str(output),
    ]
    return args


class VideoComposer:
    """Builds MP4 clips from a template overlay and a background video."""

    def __init__(
        self,
        page_renderer: Optional[PageRenderer] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.page_renderer = page_renderer or get_page_renderer()
        self.logger: Any = logger.bind(component="video_composer")

    async def compose_video(
        self,
        template: Optional[str],
        width: int,
        height: int,
        data: Optional[Dict[str, Any]] = None,
        assets: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """
        Render the template overlay and composite it onto the background video.

        Args:
            template: Template name under the templates root
            width: Output width in pixels
            height: Output height in pixels
            data: Template data payload
            assets: Template assets; ``backgroundVideo`` must be a file:// URI
            options: ``fps``, ``durationSec``, ``includeAudio`` and
                ``deviceScaleFactor`` are honoured

        Returns:
            MP4 bytes

        Raises:
            InvalidRequestError: If the template or background video is missing
                or the background is not a local file
            TemplateNotFound: If the template has no entry document
            RenderFailed: If the overlay render fails
            CompositionFailed: If ffmpeg fails or times out
            ProcessSpawnError: If ffmpeg cannot be started
        """
        data = data if data is not None else {}
        assets = assets if assets is not None else {}
        options = options if options is not None else {}

        stage = VideoStage.VALIDATING
        log = self.logger.bind(template=template, width=width, height=height)

        if not template:
            raise InvalidRequestError("template is required")
        background_uri = assets.get("backgroundVideo")
        if not background_uri:
            raise InvalidRequestError("assets.backgroundVideo is required")
        if not is_local_file_reference(background_uri):
            raise InvalidRequestError(
                f"assets.backgroundVideo must be a {LOCAL_FILE_PREFIX} reference",
                detail=str(background_uri),
            )

        fps = normalize_int(options.get("fps"), self.settings.default_fps)
        duration_sec = normalize_number(
            options.get("durationSec"), self.settings.default_duration_sec
        )
        include_audio = normalize_flag(options.get("includeAudio"))
        log = log.bind(fps=fps, duration_sec=duration_sec, include_audio=include_audio)

        temp_parent = str(self.settings.temp_path) if self.settings.temp_path else None
        work_dir = Path(tempfile.mkdtemp(prefix="render-video-", dir=temp_parent))
        request_id = uuid.uuid4().hex
        log = log.bind(request_id=request_id)

        try:
            stage = self._advance(log, VideoStage.RENDERING_OVERLAY)
            overlay_png = await self.page_renderer.render_frame(
                template,
                width,
                height,
                transparent=True,
                data=data,
                assets=assets,
                options=options,
                hide_background_layer=True,
            )
            overlay_path = work_dir / f"overlay-{request_id}.png"
            overlay_path.write_bytes(overlay_png)

            stage = self._advance(log, VideoStage.COMPOSING)
            output_path = work_dir / f"output-{request_id}.mp4"
            graph = cover_and_overlay(
                width,
                height,
                scale_overlay=self._overlay_size(overlay_png) != (width, height),
                output=OUTPUT_LABEL,
            )
            args = build_ffmpeg_args(
                file_uri_to_path(background_uri),
                overlay_path,
                output_path,
                graph,
                fps,
                duration_sec,
                include_audio,
            )

            try:
                await run_process(
                    self.settings.ffmpeg_path, args, self.settings.composition_timeout_ms
                )
            except (ProcessExitError, ProcessTimeoutError) as e:
                raise CompositionFailed(f"Video composition failed: {e.message}") from e

            video = output_path.read_bytes()
            stage = self._advance(log, VideoStage.DONE, video_size=len(video))
            return video

        except Exception as e:
            log.error(
                "Video request failed",
                stage=VideoStage.FAILED.value,
                failed_during=stage.value,
                error=str(e),
            )
            raise
        finally:
            remove_tree_quietly(work_dir)

    def _advance(self, log: Any, stage: VideoStage, **fields: Any) -> VideoStage:
        log.info("Video request stage", stage=stage.value, **fields)
        return stage

    @staticmethod
    def _overlay_size(png: bytes) -> tuple:
        with Image.open(io.BytesIO(png)) as image:
            return image.size


_video_composer: Optional[VideoComposer] = None


def get_video_composer() -> VideoComposer:
    """Get the process-wide video composer."""
    global _video_composer
    if _video_composer is None:
        _video_composer = VideoComposer()
    return _video_composer
