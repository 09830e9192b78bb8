"""
Configuration module using Pydantic Settings for environment variable management.

Only essential environment variables are exposed. All other settings are hardcoded
for consistency and simplicity.
"""

import os
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.

    Read once at startup from the environment (and `.env`). Processing
    settings are hardcoded as properties.
    """

    # ============================================================
    # ENVIRONMENT VARIABLES (minimal set)
    # ============================================================

    # Application
    app_name: str = "clipper"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Storage
    download_dir: str = "downloads"
    static_dir: str = "static"

    # yt-dlp Configuration
    cookies_path: str = "cookies.txt"  # Netscape cookie file passed via --cookies when present
    yt_dlp_extra_args: str = ""  # Appended verbatim (whitespace split) to every yt-dlp call

    # ============================================================
    # HARDCODED SETTINGS (not configurable via env vars)
    # ============================================================

    @property
    def download_directory(self) -> str:
        return os.path.abspath(self.download_dir)

    @property
    def static_directory(self) -> str:
        return os.path.abspath(self.static_dir)

    @property
    def cookies_file(self) -> str:
        if os.path.isabs(self.cookies_path):
            return self.cookies_path
        return os.path.abspath(self.cookies_path)

    @property
    def ytdlp_path(self) -> str:
        return "yt-dlp"

    @property
    def ffmpeg_path(self) -> str:
        return "ffmpeg"

    # Clip limits
    @property
    def max_clip_duration_seconds(self) -> int:
        return 600  # 10 minutes

    @property
    def clip_format_selector(self) -> str:
        # MP4 up to 1080p with separate audio, then progressive MP4, then anything
        return (
            "bestvideo[ext=mp4][height<=1080]+bestaudio[ext=m4a]/"
            "best[ext=mp4][height<=1080]/best"
        )

    @property
    def max_listed_formats(self) -> int:
        return 10

    # Cleanup sweep
    @property
    def file_max_age_seconds(self) -> int:
        return 3600  # 1 hour

    @property
    def cleanup_interval_seconds(self) -> int:
        return 1800  # 30 minutes

    # Rendering Configuration (re-encode fallback)
    @property
    def ffmpeg_preset(self) -> str:
        return "fast"

    @property
    def ffmpeg_crf(self) -> int:
        return 18

    @property
    def audio_bitrate(self) -> str:
        return "192k"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def has_cookies(self) -> bool:
        return os.path.isfile(self.cookies_file)

    def get_ytdlp_extra_args(self) -> list[str]:
        """Parse yt-dlp extra arguments."""
        return self.yt_dlp_extra_args.split()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
