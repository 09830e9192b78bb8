"""
Subtitle Service - Lists and downloads subtitle tracks via yt-dlp.

Unlike clip jobs, subtitle downloads run inside the request: the response is
the subtitle file itself.
"""

import asyncio
import logging
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal, Optional

from app.config import Settings, get_settings
from app.schemas.requests import SubtitleDownloadRequest
from app.services.job_ids import JobIdGenerator, get_job_id_generator
from app.services.media_downloader import MediaDownloaderService

logger = logging.getLogger(__name__)

_CUE_NUMBER_RE = re.compile(r"^\d+$")
_MARKUP_TAG_RE = re.compile(r"<[^>]+>")
_UNSAFE_TITLE_CHARS_RE = re.compile(r"[^a-zA-Z0-9\s\-_]", re.ASCII)
_HEADER_PREFIXES = ("WEBVTT", "NOTE", "STYLE", "Kind:", "Language:")


@dataclass
class SubtitleTrack:
    """One available subtitle track."""

    type: Literal["manual", "auto"]
    name: str
    url: str


@dataclass
class SubtitleListing:
    video_id: Optional[str]
    title: Optional[str]
    available_subtitles: dict[str, SubtitleTrack] = field(default_factory=dict)


@dataclass
class SubtitleArtifact:
    """A subtitle file ready to be sent to the client."""

    path: str
    download_name: str
    media_type: str


class SubtitleNotAvailableError(Exception):
    """Raised when yt-dlp wrote no track for the requested language."""

    def __init__(self, lang: str):
        super().__init__(f"Subtitle not available for language: {lang}")
        self.lang = lang


def subtitle_to_text(content: str) -> str:
    """
    Convert SRT/VTT content into plain text.

    Drops cue numbers, timing lines, headers and markup tags, and collapses
    lines that repeat the line right before them (auto captions roll text
    over from one cue to the next).
    """
    text_lines: list[str] = []

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if _CUE_NUMBER_RE.match(stripped):
            continue
        if "-->" in stripped:
            continue
        if stripped.startswith(_HEADER_PREFIXES):
            continue

        clean = _MARKUP_TAG_RE.sub("", stripped).strip()
        if not clean:
            continue
        if text_lines and text_lines[-1] == clean:
            continue
        text_lines.append(clean)

    return "\n".join(text_lines)


def safe_title(title: str) -> str:
    """Reduce a video title to characters that are safe in a download name."""
    cleaned = _UNSAFE_TITLE_CHARS_RE.sub("", title or "").strip()
    return cleaned or "video"


def candidate_filenames(stem: str, lang: str, sub_format: str) -> list[str]:
    """File names yt-dlp may have written, most specific first."""
    names = [
        f"{stem}.{lang}.{sub_format}",
        f"{stem}.{lang}.srt",
        f"{stem}.{lang}.vtt",
        f"{stem}.{sub_format}",
        f"{stem}.srt",
        f"{stem}.vtt",
    ]
    # dict.fromkeys keeps order while dropping duplicates (format == srt/vtt)
    return list(dict.fromkeys(names))


class SubtitleService:
    """Service for subtitle listing and download."""

    def __init__(
        self,
        downloader: Optional[MediaDownloaderService] = None,
        id_generator: Optional[JobIdGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.downloader = downloader or MediaDownloaderService(settings=self.settings)
        self.id_generator = id_generator or get_job_id_generator()

    async def list_subtitles(self, url: str) -> SubtitleListing:
        """
        List manual subtitles and automatic captions for a video.

        A manual track wins when both exist for the same language.
        """
        info = await self.downloader.fetch_info(
            url,
            extra_args=["--skip-download", "--write-subs", "--write-auto-subs"],
        )

        available: dict[str, SubtitleTrack] = {}
        for kind, key in (("manual", "subtitles"), ("auto", "automatic_captions")):
            for lang_code, tracks in (info.get(key) or {}).items():
                if lang_code in available:
                    continue
                first = tracks[0] if tracks else {}
                available[lang_code] = SubtitleTrack(
                    type=kind,
                    name=first.get("name") or lang_code,
                    url=first.get("url") or "",
                )

        return SubtitleListing(
            video_id=info.get("id"),
            title=info.get("title"),
            available_subtitles=available,
        )

    def find_subtitle_file(self, stem: str, lang: str, sub_format: str) -> Optional[str]:
        directory = self.settings.download_directory
        for name in candidate_filenames(stem, lang, sub_format):
            path = os.path.join(directory, name)
            if os.path.isfile(path):
                return path
        return None

    async def download_subtitle(self, request: SubtitleDownloadRequest) -> SubtitleArtifact:
        """
        Download one subtitle track, converting to plain text for format=txt.

        Raises:
            SubtitleNotAvailableError: If no track was written for the language
            ExternalToolError: If yt-dlp fails
        """
        url = str(request.url)
        lang = request.lang
        sub_format = request.format

        directory = self.settings.download_directory
        os.makedirs(directory, exist_ok=True)
        stem = self.id_generator.subtitle_id()

        info = await self.downloader.fetch_info(url)
        title = info.get("title") or "video"

        await self.downloader.write_subtitles(
            url,
            lang,
            "srt" if sub_format == "txt" else sub_format,
            os.path.join(directory, stem),
        )

        found = self.find_subtitle_file(stem, lang, sub_format)
        if found is None:
            logger.info(f"No {lang} subtitles written for {url[:100]}")
            raise SubtitleNotAvailableError(lang)

        final_path = found
        if sub_format == "txt":
            final_path = os.path.join(directory, f"{stem}.txt")
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, self._convert_to_text, found, final_path)

        download_name = f"{safe_title(title)}_{lang}.{sub_format}"
        logger.info(f"Subtitle ready: {final_path} as {download_name}")

        return SubtitleArtifact(
            path=final_path,
            download_name=download_name,
            media_type="text/plain" if sub_format == "txt" else "application/octet-stream",
        )

    def _convert_to_text(self, source_path: str, target_path: str) -> None:
        with open(source_path, encoding="utf-8", errors="replace") as f:
            content = f.read()

        with open(target_path, "w", encoding="utf-8") as f:
            f.write(subtitle_to_text(content))

        try:
            os.remove(source_path)
        except OSError as e:
            logger.debug(f"Could not remove {source_path}: {e}")


@lru_cache()
def get_subtitle_service() -> SubtitleService:
    """Get the process-wide subtitle service."""
    return SubtitleService()
