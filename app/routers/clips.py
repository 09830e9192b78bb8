"""
Clip API Router - Video info, clip job submission, progress polling and
artifact download.
"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import HttpUrl
from fastapi.responses import FileResponse

from app.config import Settings, get_settings
from app.schemas.requests import ClipRequest
from app.schemas.responses import (
    ClipJobResponse,
    ErrorResponse,
    VideoFormatResponse,
    VideoInfoResponse,
)
from app.services.clip_orchestrator import (
    ClipOrchestrator,
    ClipRequestError,
    get_clip_orchestrator,
)
from app.services.media_downloader import MediaDownloaderService, get_media_downloader
from app.services.process_runner import ExternalToolError
from app.services.progress_store import ProgressRecord, ProgressStore, get_progress_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Clips"])


@router.get(
    "/video-info",
    response_model=VideoInfoResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_video_info(
    url: Optional[HttpUrl] = None,
    downloader: MediaDownloaderService = Depends(get_media_downloader),
) -> VideoInfoResponse:
    """
    Get title, duration, thumbnail, uploader and up to 10 combined formats.
    """
    if not url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="URL is required",
        )

    try:
        info = await downloader.get_video_info(str(url))
    except ExternalToolError as e:
        logger.warning(f"Failed to fetch video info: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error fetching video info: {e}",
        )

    return VideoInfoResponse(
        title=info.title,
        duration=info.duration,
        duration_string=info.duration_string,
        thumbnail=info.thumbnail,
        uploader=info.uploader,
        formats=[
            VideoFormatResponse(
                format_id=f.format_id,
                quality=f.quality,
                resolution=f.resolution,
                ext=f.ext,
            )
            for f in info.formats
        ],
    )


@router.post(
    "/download",
    response_model=ClipJobResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def submit_clip(
    request: ClipRequest,
    background_tasks: BackgroundTasks,
    orchestrator: ClipOrchestrator = Depends(get_clip_orchestrator),
) -> ClipJobResponse:
    """
    Queue a clip job.

    The job runs in the background. Poll GET /api/progress/{download_id} or
    connect to /ws/progress?id={download_id} for updates.
    """
    try:
        job = orchestrator.submit(request)
    except ClipRequestError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception as e:
        logger.exception(f"Unexpected error submitting clip job: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error processing video: {e}",
        )

    # Schedule background processing
    background_tasks.add_task(orchestrator.run, job)

    return ClipJobResponse(
        success=True,
        download_id=job.download_id,
        filename=job.filename,
        download_url=job.download_url,
    )


@router.get(
    "/progress/{download_id}",
    response_model=ProgressRecord,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
)
async def get_progress(
    download_id: str,
    store: ProgressStore = Depends(get_progress_store),
) -> ProgressRecord:
    """Get the current progress record of a job."""
    record = store.get(download_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Download not found",
        )
    return record


@router.get(
    "/download-file/{filename}",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse}},
)
async def download_file(
    filename: str,
    settings: Settings = Depends(get_settings),
) -> FileResponse:
    """Stream a finished clip as an attachment."""
    # Only bare names inside the download directory
    if os.path.basename(filename) != filename or filename.startswith("."):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    file_path = os.path.join(settings.download_directory, filename)
    if not os.path.isfile(file_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    return FileResponse(file_path, media_type="video/mp4", filename=filename)
