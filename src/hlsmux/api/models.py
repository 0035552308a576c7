"""Pydantic models for API responses."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Response for a processed upload."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    stream_url: str = Field(..., alias="streamUrl")
    job_id: str = Field(..., alias="jobId")


class VideoEntry(BaseModel):
    """One completed job in the listing."""

    name: str
    url: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    version: str
    uptime_seconds: float
