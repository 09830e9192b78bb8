"""
Media Downloader Service - Drives the yt-dlp executable.

Every invocation carries the same prefix:
- --cookies <path> when the configured cookie file exists
- YT_DLP_EXTRA_ARGS, split on whitespace

followed by the call-specific arguments, "--" and, last, the URL, so a URL
starting with "-" is never read as an option.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

import yt_dlp

from app.config import Settings, get_settings
from app.services.process_runner import (
    ExternalToolError,
    ProcessRunner,
    ProgressScale,
    ProgressSink,
)
from app.services.timecodes import format_seconds

logger = logging.getLogger(__name__)


# Ranking for the quality labels shown in the UI (highest first)
QUALITY_ORDER = {
    "2160p": 5,
    "1440p": 4,
    "1080p": 3,
    "720p": 2,
    "480p": 1,
    "360p": 0,
}


@dataclass
class VideoFormat:
    """A downloadable format that carries both video and audio."""

    format_id: str
    quality: str
    resolution: str
    ext: str


@dataclass
class VideoInfo:
    """Metadata shown before a clip is requested."""

    title: str
    duration: float
    duration_string: str
    thumbnail: Optional[str] = None
    uploader: Optional[str] = None
    formats: list[VideoFormat] = field(default_factory=list)


class MediaDownloadError(ExternalToolError):
    """Exception raised when yt-dlp fails or produces unusable output."""
    pass


def extract_formats(info: dict, limit: int = 10) -> list[VideoFormat]:
    """
    Pick the combined audio+video formats from a yt-dlp info dict.

    Sorted by quality label, highest first; unknown labels sort last and
    keep their original order.
    """
    formats: list[VideoFormat] = []
    for f in info.get("formats") or []:
        if f.get("vcodec") == "none" or f.get("acodec") == "none":
            continue
        formats.append(
            VideoFormat(
                format_id=str(f.get("format_id", "")),
                quality=f.get("quality_label") or f.get("format_note") or "unknown",
                resolution=f.get("resolution") or "unknown",
                ext=f.get("ext") or "unknown",
            )
        )

    formats.sort(key=lambda fmt: QUALITY_ORDER.get(fmt.quality, -1), reverse=True)
    return formats[:limit]


class MediaDownloaderService:
    """
    Service for talking to yt-dlp.

    Features:
    - Video metadata lookup (--dump-json)
    - Streaming download with progress reporting
    - Subtitle track download
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.runner = runner or ProcessRunner()

        logger.debug(f"MediaDownloaderService initialized with yt-dlp {yt_dlp.version.__version__}")

    def _base_args(self) -> list[str]:
        args: list[str] = []
        if self.settings.has_cookies():
            args.extend(["--cookies", self.settings.cookies_file])
        args.extend(self.settings.get_ytdlp_extra_args())
        return args

    async def _run(self, args: list[str]) -> str:
        return await self.runner.run(self.settings.ytdlp_path, [*self._base_args(), *args])

    async def fetch_info(self, url: str, extra_args: Optional[list[str]] = None) -> dict:
        """
        Get the yt-dlp info dict for a URL without downloading.

        Raises:
            MediaDownloadError: If yt-dlp fails or prints something that is not JSON
        """
        args = ["--dump-json", "-q", "--no-warnings", *(extra_args or []), "--", url]
        try:
            output = await self._run(args)
        except ExternalToolError as e:
            raise MediaDownloadError(str(e), returncode=e.returncode, stderr=e.stderr) from e

        try:
            # Playlists print one object per line; the first entry is the video
            first_line = output.strip().splitlines()[0] if output.strip() else ""
            return json.loads(first_line)
        except (json.JSONDecodeError, IndexError) as e:
            raise MediaDownloadError(f"Unexpected yt-dlp output: {e}") from e

    async def get_video_info(self, url: str) -> VideoInfo:
        """Get title, duration, thumbnail and the combined formats for a URL."""
        info = await self.fetch_info(url)
        duration = info.get("duration") or 0

        return VideoInfo(
            title=info.get("title") or "Unknown",
            duration=duration,
            duration_string=format_seconds(int(duration)),
            thumbnail=info.get("thumbnail"),
            uploader=info.get("uploader"),
            formats=extract_formats(info, self.settings.max_listed_formats),
        )

    async def download(
        self,
        url: str,
        output_path: str,
        sink: ProgressSink,
        scale: ProgressScale,
        format_selector: Optional[str] = None,
    ) -> str:
        """
        Download a video to output_path, reporting progress through sink.

        Args:
            url: Video URL
            output_path: Destination path (merged into MKV)
            sink: Called with (progress, message) for each reported percentage
            scale: Maps yt-dlp's percentage onto the job's progress range
            format_selector: yt-dlp -f selector (defaults to the clip selector)

        Returns:
            Path of the downloaded file

        Raises:
            MediaDownloadError: If the download fails
        """
        args = [
            *self._base_args(),
            "-f", format_selector or self.settings.clip_format_selector,
            "--merge-output-format", "mkv",
            "-o", output_path,
            "--newline",
            "--",
            url,
        ]

        logger.info(f"Downloading {url[:100]} -> {output_path}")

        try:
            await self.runner.run_with_progress(self.settings.ytdlp_path, args, sink, scale)
        except ExternalToolError as e:
            detail = f": {e.stderr}" if e.stderr else ""
            if e.returncode is None:
                raise MediaDownloadError(str(e)) from e
            raise MediaDownloadError(
                f"Download failed with code {e.returncode}{detail}",
                returncode=e.returncode,
                stderr=e.stderr,
            ) from e

        return self._resolve_output(output_path)

    def _resolve_output(self, output_path: str) -> str:
        # yt-dlp might have added an extension
        possible_paths = [
            output_path,
            f"{output_path}.mkv",
            f"{output_path}.mp4",
            f"{output_path}.webm",
        ]
        for path in possible_paths:
            if os.path.isfile(path):
                if path != output_path:
                    os.rename(path, output_path)
                return output_path
        raise MediaDownloadError(f"Download completed but output file not found: {output_path}")

    async def write_subtitles(
        self,
        url: str,
        lang: str,
        sub_format: str,
        output_stem: str,
    ) -> None:
        """
        Ask yt-dlp to write manual or automatic subtitles next to output_stem.

        yt-dlp picks the final file name itself (usually
        <stem>.<lang>.<ext>), so callers have to probe for it.
        """
        await self._run([
            "--skip-download",
            "--write-subs",
            "--write-auto-subs",
            "--sub-langs", lang,
            "--sub-format", sub_format,
            "-o", output_stem,
            "--",
            url,
        ])


@lru_cache()
def get_media_downloader() -> MediaDownloaderService:
    """Get the process-wide downloader service."""
    return MediaDownloaderService()
