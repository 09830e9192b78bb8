"""
Subtitle API Router - Lists tracks and returns subtitle files.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import HttpUrl
from fastapi.responses import FileResponse

from app.schemas.requests import SubtitleDownloadRequest
from app.schemas.responses import (
    ErrorResponse,
    SubtitleListingResponse,
    SubtitleTrackResponse,
)
from app.services.process_runner import ExternalToolError
from app.services.subtitle_service import (
    SubtitleNotAvailableError,
    SubtitleService,
    get_subtitle_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Subtitles"])


@router.get(
    "/subtitles",
    response_model=SubtitleListingResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_subtitles(
    url: Optional[HttpUrl] = None,
    service: SubtitleService = Depends(get_subtitle_service),
) -> SubtitleListingResponse:
    """List manual subtitles and automatic captions available for a video."""
    if not url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="URL is required",
        )

    try:
        listing = await service.list_subtitles(str(url))
    except ExternalToolError as e:
        logger.warning(f"Failed to list subtitles: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error fetching subtitles: {e}",
        )

    return SubtitleListingResponse(
        video_id=listing.video_id,
        title=listing.title,
        available_subtitles={
            lang: SubtitleTrackResponse(type=track.type, name=track.name, url=track.url)
            for lang, track in listing.available_subtitles.items()
        },
    )


@router.post(
    "/download-subtitle",
    response_class=FileResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def download_subtitle(
    request: SubtitleDownloadRequest,
    service: SubtitleService = Depends(get_subtitle_service),
) -> FileResponse:
    """
    Download a subtitle track as srt, vtt or plain text.

    The file is named after the video title and language.
    """
    try:
        artifact = await service.download_subtitle(request)
    except SubtitleNotAvailableError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ExternalToolError as e:
        logger.error(f"Subtitle download failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error downloading subtitle: {e}",
        )
    except Exception as e:
        logger.exception(f"Unexpected error downloading subtitle: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error downloading subtitle",
        )

    return FileResponse(
        artifact.path,
        media_type=artifact.media_type,
        filename=artifact.download_name,
    )
