"""
Pydantic Models and Schemas
===========================

API request and response models. Numeric request fields are accepted as-is
and normalized by the handlers; ``data``, ``assets`` and ``options`` stay
opaque to the service and are handed to the template untouched.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RenderRequestBase(BaseModel):
    """Fields shared by PNG and video render requests."""

    model_config = ConfigDict(extra="ignore")

    template: Optional[str] = Field(None, description="Template name under the templates root")
    width: Any = Field(None, description="Viewport width in CSS pixels")
    height: Any = Field(None, description="Viewport height in CSS pixels")
    data: Dict[str, Any] = Field(default_factory=dict, description="Exposed as RENDER_DATA")
    assets: Dict[str, Any] = Field(default_factory=dict, description="Exposed as RENDER_ASSETS")
    options: Dict[str, Any] = Field(default_factory=dict, description="Exposed as RENDER_OPTIONS")


class RenderPngRequest(RenderRequestBase):
    """Request model for PNG rendering."""

    transparent: Any = Field(False, description="Omit the page background")


class RenderVideoRequest(RenderRequestBase):
    """Request model for video composition. ``assets.backgroundVideo`` is required."""


class HealthStatus(BaseModel):
    """Health check status."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = Field(..., description="Service is up")
    data_root: str = Field(..., alias="dataRoot", description="Configured data root")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[Any] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
