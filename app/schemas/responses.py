"""
Response schemas for the clipping and subtitle APIs.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.services.progress_store import ProgressRecord


class ErrorResponse(BaseModel):
    """Body of every non-2xx JSON response."""

    error: str
    details: Optional[list] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the external tools are available")
    tools: dict[str, bool] = Field(..., description="Availability of each external tool")
    download_dir: str = Field(..., description="Resolved download directory")


class VideoFormatResponse(BaseModel):
    format_id: str
    quality: str
    resolution: str
    ext: str


class VideoInfoResponse(BaseModel):
    """Response for GET /api/video-info."""

    title: str
    duration: float
    duration_string: str
    thumbnail: Optional[str] = None
    uploader: Optional[str] = None
    formats: list[VideoFormatResponse] = []


class ClipJobResponse(BaseModel):
    """Response after queueing a clip job."""

    success: bool = True
    download_id: str
    filename: str
    download_url: str


class SubtitleTrackResponse(BaseModel):
    type: Literal["manual", "auto"]
    name: str
    url: str


class SubtitleListingResponse(BaseModel):
    """Response for GET /api/subtitles."""

    video_id: Optional[str] = None
    title: Optional[str] = None
    available_subtitles: dict[str, SubtitleTrackResponse] = {}


class ProgressMessage(BaseModel):
    """Message pushed over /ws/progress."""

    type: Literal["progress"] = "progress"
    download_id: str
    data: ProgressRecord
