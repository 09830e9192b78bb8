"""
File sweeper - deletes old files from the download directory.

Works purely on modification time and does not look at job state, so a
temp file from a download that has been running for longer than the age
threshold can be removed too.
"""

import asyncio
import logging
import os
import time
from typing import Optional

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


def sweep_expired_files(directory: str, max_age_seconds: float, now: Optional[float] = None) -> list[str]:
    """
    Delete regular files in directory older than max_age_seconds.

    Files that cannot be inspected or removed are skipped.

    Returns:
        Names of the deleted files
    """
    now = time.time() if now is None else now
    removed: list[str] = []

    try:
        entries = os.listdir(directory)
    except OSError as e:
        logger.debug(f"Cleanup skipped, cannot list {directory}: {e}")
        return removed

    for name in entries:
        path = os.path.join(directory, name)
        try:
            if not os.path.isfile(path):
                continue
            if now - os.path.getmtime(path) > max_age_seconds:
                os.remove(path)
                removed.append(name)
                logger.info(f"Cleaned up: {name}")
        except OSError as e:
            logger.debug(f"Could not clean up {name}: {e}")

    return removed


async def sweep_download_directory(settings: Optional[Settings] = None) -> list[str]:
    """Run one sweep of the download directory off the event loop."""
    settings = settings or get_settings()
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(
        None,
        sweep_expired_files,
        settings.download_directory,
        settings.file_max_age_seconds,
    )


async def run_periodic_sweep(settings: Optional[Settings] = None) -> None:
    """Sweep forever at the configured interval. Cancel the task to stop."""
    settings = settings or get_settings()
    logger.info(
        f"Cleanup sweep every {settings.cleanup_interval_seconds}s "
        f"(max age {settings.file_max_age_seconds}s)"
    )
    while True:
        await asyncio.sleep(settings.cleanup_interval_seconds)
        try:
            await sweep_download_directory(settings)
        except Exception:
            logger.exception("Periodic cleanup failed")
