"""
Service Exceptions
==================

Every failure the rendering pipeline can surface carries a machine-readable
error code and the HTTP status the API layer answers with.
"""

from typing import Any, Optional


class RenderServiceError(Exception):
    """Base class for all rendering pipeline failures."""

    error_code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidRequestError(RenderServiceError):
    """A required request field is missing or malformed."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class TemplateNotFound(RenderServiceError):
    """The template's entry document does not exist."""

    error_code = "TEMPLATE_NOT_FOUND"
    status_code = 404

    def __init__(self, path: str):
        super().__init__(f"Template entry document not found: {path}", detail=path)
        self.path = path


class RenderFailed(RenderServiceError):
    """Readiness timeout, capture failure or browser engine error."""

    error_code = "RENDER_FAILED"


class CompositionFailed(RenderServiceError):
    """ffmpeg exited non-zero or exceeded its time bound."""

    error_code = "COMPOSITION_FAILED"


class ProcessRunnerError(RenderServiceError):
    error_code = "PROCESS_FAILED"


class ProcessSpawnError(ProcessRunnerError):
    """The external binary could not be started."""

    error_code = "PROCESS_SPAWN_FAILED"


class ProcessTimeoutError(ProcessRunnerError):
    """The external process was killed after exceeding its bound."""

    error_code = "PROCESS_TIMEOUT"

    def __init__(self, command: str, timeout_ms: int):
        super().__init__(
            f"{command} timed out after {timeout_ms}ms", detail={"timeout_ms": timeout_ms}
        )
        self.command = command
        self.timeout_ms = timeout_ms


class ProcessExitError(ProcessRunnerError):
    """The external process exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, output: str):
        super().__init__(
            f"{command} exited with code {returncode}: {output}",
            detail={"returncode": returncode},
        )
        self.command = command
        self.returncode = returncode
        self.output = output
