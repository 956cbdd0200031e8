"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter, Depends

from render_service.config.settings import Settings, get_settings
from render_service.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthStatus:
    """Liveness check reporting the configured data root."""
    return HealthStatus(ok=True, data_root=str(settings.data_root))
