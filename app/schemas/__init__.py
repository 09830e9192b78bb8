"""
Pydantic schemas for request/response models.
"""

from app.schemas.requests import ClipRequest, SubtitleDownloadRequest
from app.schemas.responses import (
    ClipJobResponse,
    ErrorResponse,
    HealthResponse,
    ProgressMessage,
    ReadinessResponse,
    SubtitleListingResponse,
    SubtitleTrackResponse,
    VideoFormatResponse,
    VideoInfoResponse,
)

__all__ = [
    "ClipRequest",
    "SubtitleDownloadRequest",
    "ClipJobResponse",
    "ErrorResponse",
    "HealthResponse",
    "ProgressMessage",
    "ReadinessResponse",
    "SubtitleListingResponse",
    "SubtitleTrackResponse",
    "VideoFormatResponse",
    "VideoInfoResponse",
]
