"""
Pytest configuration and fixtures.
"""

import os
import sys

import pytest

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.config import Settings
from app.services.clip_orchestrator import ClipOrchestrator
from app.services.job_ids import JobIdGenerator
from app.services.progress_broadcaster import ProgressBroadcaster
from app.services.progress_store import ProgressStore


SAMPLE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

SAMPLE_INFO = {
    "id": "dQw4w9WgXcQ",
    "title": "Sample Video",
    "duration": 212,
    "thumbnail": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hq.jpg",
    "uploader": "Sample Channel",
    "formats": [
        {"format_id": "140", "vcodec": "none", "acodec": "mp4a", "ext": "m4a", "format_note": "medium"},
        {"format_id": "18", "vcodec": "avc1", "acodec": "mp4a", "ext": "mp4", "format_note": "360p",
         "resolution": "640x360"},
        {"format_id": "137", "vcodec": "avc1", "acodec": "none", "ext": "mp4", "format_note": "1080p"},
        {"format_id": "22", "vcodec": "avc1", "acodec": "mp4a", "ext": "mp4", "format_note": "720p",
         "resolution": "1280x720"},
        {"format_id": "sb0", "vcodec": "avc1", "acodec": "mp4a", "ext": "mhtml"},
    ],
}

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
Hello <i>world</i>

2
00:00:03,000 --> 00:00:05,000
Hello world

3
00:00:05,000 --> 00:00:07,000
Second line
"""


class FakeObserver:
    """Observer that records every message it is handed."""

    def __init__(self, is_open=True):
        self.is_open = is_open
        self.messages = []

    def deliver(self, message):
        self.messages.append(message)


class FakeDownloader:
    """
    Stand-in for MediaDownloaderService.download.

    Feeds the given raw yt-dlp percentages through the scale, then writes a
    placeholder file at the output path.
    """

    def __init__(self, percentages=(25.0, 100.0), error=None):
        self.percentages = list(percentages)
        self.error = error
        self.calls = []

    async def download(self, url, output_path, sink, scale, format_selector=None):
        self.calls.append((url, output_path))
        for percent in self.percentages:
            sink(*scale.apply(percent))
        if self.error is not None:
            raise self.error
        with open(output_path, "wb") as f:
            f.write(b"downloaded")
        return output_path


class FakeTrimmer:
    """Stand-in for VideoTrimmerService.cut that copies input to output."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def cut(self, input_path, output_path, start, duration):
        self.calls.append((input_path, output_path, start, duration))
        if self.error is not None:
            raise self.error
        with open(input_path, "rb") as src, open(output_path, "wb") as dst:
            dst.write(src.read())


class FakeSubtitleDownloader:
    """Downloader double that writes the given files when asked for subtitles."""

    def __init__(self, info, files=None):
        self.info = info
        self.files = files or {}
        self.subtitle_calls = []
        self.info_calls = []

    async def fetch_info(self, url, extra_args=None):
        self.info_calls.append((url, extra_args))
        return self.info

    async def write_subtitles(self, url, lang, sub_format, output_stem):
        self.subtitle_calls.append((url, lang, sub_format, output_stem))
        for suffix, content in self.files.items():
            with open(output_stem + suffix, "w", encoding="utf-8") as f:
                f.write(content)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary download directory."""
    return Settings(
        _env_file=None,
        download_dir=str(tmp_path / "downloads"),
        static_dir=str(tmp_path / "static"),
        cookies_path=str(tmp_path / "cookies.txt"),
    )


@pytest.fixture
def store():
    return ProgressStore()


@pytest.fixture
def broadcaster(store):
    return ProgressBroadcaster(store=store)


@pytest.fixture
def id_generator():
    return JobIdGenerator()


@pytest.fixture
def observer():
    return FakeObserver()


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def trimmer():
    return FakeTrimmer()


@pytest.fixture
def orchestrator(store, broadcaster, downloader, trimmer, id_generator, settings):
    """Clip orchestrator wired to fakes and a fresh store."""
    return ClipOrchestrator(
        store=store,
        broadcaster=broadcaster,
        downloader=downloader,
        trimmer=trimmer,
        id_generator=id_generator,
        settings=settings,
    )
