"""
Clip Orchestrator - Runs the download -> cut -> cleanup pipeline for one clip.

1. Validation and id allocation happen synchronously in submit(); nothing is
   created for a rejected request.
2. run() executes the stages in order as a background task and reports every
   transition through the ProgressStore and ProgressBroadcaster.

Progress ranges:
    downloading   0-50   (yt-dlp percentage * 0.5)
    processing   50-99   (50 after download, 60 while cutting)
    completed     100
    error           0    (terminal; the message carries the failure)

Failures never escape run(): they are written to the job's record.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from app.config import Settings, get_settings
from app.schemas.requests import ClipRequest
from app.services.file_sweeper import sweep_download_directory
from app.services.job_ids import JobIdGenerator, get_job_id_generator
from app.services.media_downloader import MediaDownloaderService
from app.services.process_runner import ProgressScale
from app.services.progress_broadcaster import ProgressBroadcaster, get_progress_broadcaster
from app.services.progress_store import (
    JobStatus,
    ProgressRecord,
    ProgressStore,
    get_progress_store,
)
from app.services.timecodes import format_seconds, parse_timecode
from app.services.video_trimmer import VideoTrimmerService

logger = logging.getLogger(__name__)

# yt-dlp's 0-100% fills the first half of the job
DOWNLOAD_SCALE = ProgressScale(factor=0.5, ceiling=50, label="Downloading")


class ClipRequestError(ValueError):
    """Raised when a clip request is rejected before a job is created."""
    pass


@dataclass(frozen=True)
class ClipWindow:
    """Validated time range of a clip, in seconds."""

    start_seconds: int
    end_seconds: int

    @property
    def duration(self) -> int:
        return self.end_seconds - self.start_seconds


@dataclass
class ClipJob:
    """Everything the pipeline needs to process one accepted request."""

    download_id: str
    url: str
    window: ClipWindow
    output_path: str
    temp_path: str

    @property
    def filename(self) -> str:
        return f"{self.download_id}.mp4"

    @property
    def download_url(self) -> str:
        return f"/api/download-file/{self.filename}"


class ClipOrchestrator:
    """
    Owns the lifecycle of clip jobs.

    The store and broadcaster are process-wide; downloader, trimmer and id
    generator can be swapped out for tests.
    """

    def __init__(
        self,
        store: Optional[ProgressStore] = None,
        broadcaster: Optional[ProgressBroadcaster] = None,
        downloader: Optional[MediaDownloaderService] = None,
        trimmer: Optional[VideoTrimmerService] = None,
        id_generator: Optional[JobIdGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or get_progress_store()
        self.broadcaster = broadcaster or get_progress_broadcaster()
        self.downloader = downloader or MediaDownloaderService(settings=self.settings)
        self.trimmer = trimmer or VideoTrimmerService(settings=self.settings)
        self.id_generator = id_generator or get_job_id_generator()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def validate(self, request: ClipRequest) -> ClipWindow:
        """
        Check the time range of a request.

        Raises:
            ClipRequestError: If a time is malformed, start is not before end,
                or the clip is longer than the configured maximum
        """
        try:
            start_seconds = parse_timecode(request.start_time)
            end_seconds = parse_timecode(request.end_time)
        except ValueError as e:
            raise ClipRequestError(str(e)) from e

        if start_seconds >= end_seconds:
            raise ClipRequestError("Start time must be before end time")

        if end_seconds - start_seconds > self.settings.max_clip_duration_seconds:
            minutes = self.settings.max_clip_duration_seconds // 60
            raise ClipRequestError(f"Clip duration cannot exceed {minutes} minutes")

        return ClipWindow(start_seconds=start_seconds, end_seconds=end_seconds)

    def submit(self, request: ClipRequest) -> ClipJob:
        """
        Validate a request, allocate its id and record the initial state.

        The caller is responsible for scheduling run(job).
        """
        window = self.validate(request)

        download_id = self.id_generator.clip_id()
        directory = self.settings.download_directory
        job = ClipJob(
            download_id=download_id,
            url=str(request.url),
            window=window,
            output_path=os.path.join(directory, f"{download_id}.mp4"),
            temp_path=os.path.join(directory, f"{download_id}_temp.mkv"),
        )

        self.store.set(
            download_id,
            ProgressRecord(
                status=JobStatus.DOWNLOADING,
                progress=0,
                message="Starting download...",
            ),
        )

        logger.info(
            f"Job {download_id} accepted: {job.url[:100]} "
            f"[{request.start_time} - {request.end_time}, {window.duration}s]"
        )
        return job

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _update(self, job_id: str, record: ProgressRecord) -> None:
        self.store.set(job_id, record)
        self.broadcaster.publish(job_id)

    def _on_download_progress(self, job_id: str, progress: int, message: str) -> None:
        current = self.store.get(job_id)
        if current is not None:
            if current.status != JobStatus.DOWNLOADING:
                return
            # yt-dlp restarts at 0% for the audio stream
            progress = max(progress, current.progress)

        self._update(
            job_id,
            ProgressRecord(status=JobStatus.DOWNLOADING, progress=progress, message=message),
        )

    async def run(self, job: ClipJob) -> None:
        """Execute the pipeline for an accepted job. Never raises."""
        job_id = job.download_id
        os.makedirs(os.path.dirname(job.output_path), exist_ok=True)

        try:
            # Stage A: download
            await self.downloader.download(
                job.url,
                job.temp_path,
                sink=lambda progress, message: self._on_download_progress(job_id, progress, message),
                scale=DOWNLOAD_SCALE,
            )
            self._update(
                job_id,
                ProgressRecord(status=JobStatus.PROCESSING, progress=50, message="Processing video..."),
            )
            logger.info(f"Job {job_id}: download complete")

            # Stage B: cut
            self._update(
                job_id,
                ProgressRecord(status=JobStatus.PROCESSING, progress=60, message="Cutting video..."),
            )
            await self.trimmer.cut(
                job.temp_path,
                job.output_path,
                format_seconds(job.window.start_seconds),
                job.window.duration,
            )

        except Exception as e:
            logger.error(f"Job {job_id} failed: {e}")
            self._update(
                job_id,
                ProgressRecord(status=JobStatus.ERROR, progress=0, message=str(e) or type(e).__name__),
            )
            return

        self._remove_temp_file(job.temp_path)

        self._update(
            job_id,
            ProgressRecord(
                status=JobStatus.COMPLETED,
                progress=100,
                message="Done!",
                filename=job.filename,
                download_url=job.download_url,
            ),
        )
        logger.info(f"Job {job_id} completed: {job.output_path}")

        try:
            await sweep_download_directory(self.settings)
        except Exception as e:
            logger.warning(f"Cleanup after job {job_id} failed: {e}")

    def _remove_temp_file(self, path: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            logger.debug(f"Could not remove temp file {path}: {e}")


@lru_cache()
def get_clip_orchestrator() -> ClipOrchestrator:
    """Get the process-wide clip orchestrator."""
    return ClipOrchestrator()
