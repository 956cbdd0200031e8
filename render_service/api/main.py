"""
FastAPI Application
==================

Main FastAPI application: lifespan management of the shared browser, request
ID and body-size middleware, and the mapping from pipeline errors to JSON
error responses.
"""

from contextlib import asynccontextmanager
import uuid
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
import uvicorn

from render_service import __version__
from render_service.config.settings import get_settings
from render_service.config.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
)
from render_service.core.exceptions import RenderServiceError
from render_service.core.rendering.browser import close_browser_manager
from render_service.api.routes.health import router as health_router
from render_service.api.routes.render import router as render_router
from render_service.models.schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "Starting render service",
        port=settings.port,
        data_root=str(settings.data_root),
        environment=settings.environment,
    )

    try:
        yield
    finally:
        logger.info("Shutting down render service")
        try:
            await close_browser_manager()
        except Exception as e:
            logger.error("Error closing browser", error=str(e))


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: Optional[Any] = None,
) -> JSONResponse:
    error_response = ErrorResponse(
        error=error_code,
        message=message,
        detail=detail,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))


async def render_service_exception_handler(
    request: Request, exc: RenderServiceError
) -> JSONResponse:
    """Map pipeline failures to their status code and error code."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        error_code=exc.error_code,
        status_code=exc.status_code,
        error_message=exc.message,
    )
    return _error_response(request, exc.status_code, exc.error_code, exc.message, exc.detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies are client errors, reported as 400 rather than 422."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    logger.warning("Invalid request body", errors=errors)
    return _error_response(request, 400, "VALIDATION_ERROR", "Invalid request body", errors)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom HTTP exception handler with structured error response."""
    return _error_response(request, exc.status_code, str(exc.status_code), str(exc.detail))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """General exception handler for unexpected errors."""
    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=getattr(request.state, "request_id", None),
        exc_info=True,
    )
    return _error_response(request, 500, "INTERNAL_ERROR", str(exc))


def create_app() -> FastAPI:
    """
    Application factory function for creating the FastAPI app instance.

    Returns:
        FastAPI application instance
    """
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Render HTML templates to PNG stills and composited MP4 clips",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):  # type: ignore
        """Reject bodies larger than the configured limit."""
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            body_size = int(content_length)
        else:
            # chunked uploads carry no length up front
            body_size = len(await request.body())
        if body_size > settings.max_body_bytes:
            return _error_response(
                request,
                413,
                "PAYLOAD_TOO_LARGE",
                f"Request body exceeds {settings.max_body_bytes} bytes",
            )
        return await call_next(request)

    # Registered last so it runs first and every response gets an ID
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_context(request_id=request_id, method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(RenderServiceError, render_service_exception_handler)  # type: ignore
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router)
    app.include_router(render_router)

    @app.get("/", tags=["General"])
    async def root() -> dict[str, Any]:
        """Root endpoint with basic API information."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "health_check": "/health",
            "endpoints": {
                "render_png": "POST /render/png",
                "render_video": "POST /render/video",
            },
        }

    return app


app = create_app()


def run_server() -> None:
    """Run the service with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "render_service.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
