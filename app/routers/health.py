"""
Health check endpoints for the clipper service.
"""

import os
import shutil

from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.schemas.responses import HealthResponse, ReadinessResponse

router = APIRouter()

VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint.
    
    Returns 200 if the service is running.
    """
    return HealthResponse(
        status="healthy",
        version=VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(settings: Settings = Depends(get_settings)):
    """
    Readiness check endpoint.

    Reports whether yt-dlp and ffmpeg are on PATH and the download
    directory exists.
    """
    tools = {
        "yt-dlp": shutil.which(settings.ytdlp_path) is not None,
        "ffmpeg": shutil.which(settings.ffmpeg_path) is not None,
    }
    download_dir = settings.download_directory

    return ReadinessResponse(
        ready=all(tools.values()) and os.path.isdir(download_dir),
        tools=tools,
        download_dir=download_dir,
    )
