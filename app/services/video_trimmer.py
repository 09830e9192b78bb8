"""
Video Trimmer Service - Cuts a time window out of a downloaded video with FFmpeg.

Tries a stream copy first (fast, no quality loss). If FFmpeg rejects it, the
cut is retried once with a full libx264/AAC re-encode.
"""

import logging
from typing import Optional

from app.config import Settings, get_settings
from app.services.process_runner import ExternalToolError, ProcessRunner

logger = logging.getLogger(__name__)


class TrimError(ExternalToolError):
    """Exception raised when both cut attempts fail."""
    pass


class VideoTrimmerService:
    """Service for cutting clips with FFmpeg."""

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.runner = runner or ProcessRunner()

    def _copy_args(self, input_path: str, output_path: str, start: str, duration: int) -> list[str]:
        return [
            "-y",
            "-ss", start,
            "-i", input_path,
            "-t", str(duration),
            "-c", "copy",
            output_path,
        ]

    def _reencode_args(self, input_path: str, output_path: str, start: str, duration: int) -> list[str]:
        return [
            "-y",
            "-ss", start,
            "-i", input_path,
            "-t", str(duration),
            "-c:v", "libx264",
            "-preset", self.settings.ffmpeg_preset,
            "-crf", str(self.settings.ffmpeg_crf),
            "-c:a", "aac",
            "-b:a", self.settings.audio_bitrate,
            output_path,
        ]

    async def cut(self, input_path: str, output_path: str, start: str, duration: int) -> None:
        """
        Cut [start, start + duration) from input_path into output_path.

        Args:
            input_path: Downloaded source video
            output_path: Clip destination
            start: Start offset as accepted by ffmpeg -ss (e.g. "01:05:30")
            duration: Clip length in seconds

        Raises:
            TrimError: If the re-encode fallback fails as well
        """
        ffmpeg = self.settings.ffmpeg_path

        try:
            await self.runner.run(ffmpeg, self._copy_args(input_path, output_path, start, duration))
            logger.info(f"Stream-copied clip {output_path} ({start} +{duration}s)")
            return
        except ExternalToolError as e:
            logger.warning(f"Stream copy failed, re-encoding: {str(e)[-200:]}")

        try:
            await self.runner.run(ffmpeg, self._reencode_args(input_path, output_path, start, duration))
        except ExternalToolError as e:
            logger.error(f"Re-encode failed: {e.stderr[-1000:] if e.stderr else e}")
            code = e.returncode if e.returncode is not None else "unknown"
            raise TrimError(
                f"FFmpeg failed with code {code}",
                returncode=e.returncode,
                stderr=e.stderr,
            ) from e

        logger.info(f"Re-encoded clip {output_path} ({start} +{duration}s)")
