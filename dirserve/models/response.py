"""API response models."""

from typing import Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    detail: str = Field(..., description="Error details")
    path: Optional[str] = Field(None, description="Request path")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    data_dir: str = Field(..., description="Served data root")
    data_dir_readable: bool = Field(..., description="Whether the data root can be listed")
