"""
Request schemas for the clipping and subtitle APIs.
"""

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl

from app.services.timecodes import TIMECODE_PATTERN

SubtitleFormat = Literal["srt", "vtt", "txt"]

LANGUAGE_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]{0,31}$"


class ClipRequest(BaseModel):
    """Request body for POST /api/download."""

    url: HttpUrl = Field(..., description="Video page URL")
    start_time: str = Field(
        ..., pattern=TIMECODE_PATTERN, description="Clip start as M:SS or H:MM:SS"
    )
    end_time: str = Field(
        ..., pattern=TIMECODE_PATTERN, description="Clip end as M:SS or H:MM:SS"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
                "start_time": "0:10",
                "end_time": "0:40",
            }
        }


class SubtitleDownloadRequest(BaseModel):
    """Request body for POST /api/download-subtitle."""

    url: HttpUrl = Field(..., description="Video page URL")
    lang: str = Field(default="en", pattern=LANGUAGE_PATTERN, description="Subtitle language code")
    format: SubtitleFormat = Field(default="srt", description="Output format")
