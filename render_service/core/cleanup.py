"""
Best-effort Release
===================

Helpers for releasing resources on cleanup paths. A failure here is logged and
dropped so it never masks the primary error or fails a finished response.
"""

import shutil
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

from render_service.config.logging import get_logger

logger = get_logger(__name__)


async def release_quietly(resource: str, release: Callable[[], Awaitable[Any]]) -> None:
    """Await ``release()`` and log instead of raising on failure."""
    try:
        await release()
    except Exception as e:
        logger.warning("Failed to release resource", resource=resource, error=str(e))


def remove_tree_quietly(path: Union[str, Path]) -> None:
    """Recursively delete ``path``, logging instead of raising on failure."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except Exception as e:
        logger.warning("Failed to remove temporary directory", path=str(path), error=str(e))
