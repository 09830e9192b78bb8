"""
Process Runner - Executes external tools (yt-dlp, ffmpeg) as OS processes.

Two modes:
1. run(): collect all output and return it once the process exits
2. run_with_progress(): scan output line by line for a percentage and report
   it to a sink while the process is still running

Commands are always passed as argument vectors. shell=True is never used, since
at least one argument (the media URL) comes straight from the client.

Blocking pipe reads happen in the default thread pool (run_in_executor) so
the event loop keeps serving requests while a tool runs.
"""

import asyncio
import logging
import math
import re
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

# Matches "45.3%" in lines such as "[download]  45.3% of ~ 12.34MiB at ..."
PROGRESS_PATTERN = re.compile(r"(\d+\.?\d*)%")

# sink(progress, message)
ProgressSink = Callable[[int, str], None]


class ExternalToolError(Exception):
    """Raised when an external tool cannot be started or exits non-zero."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


@dataclass(frozen=True)
class ProgressScale:
    """Maps a tool's 0-100 percentage onto a slice of the job's progress."""

    factor: float = 1.0
    ceiling: int = 100
    label: str = "Working"

    def apply(self, percent: float) -> tuple[int, str]:
        percent = max(0.0, min(percent, 100.0))
        progress = min(math.floor(percent * self.factor), self.ceiling)
        return progress, f"{self.label}... {percent:.1f}%"


def parse_progress_percent(line: str) -> Optional[float]:
    """Extract the first percentage from a line of tool output, if any."""
    match = PROGRESS_PATTERN.search(line)
    if not match:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


class ProcessRunner:
    """Runs external tools without blocking the event loop."""

    async def run(self, command: str, args: Sequence[str]) -> str:
        """
        Run a tool to completion.

        Args:
            command: Executable name or path
            args: Argument vector (never joined into a shell string)

        Returns:
            Decoded standard output

        Raises:
            ExternalToolError: If the tool cannot start or exits non-zero
        """
        cmd = [command, *args]
        logger.debug(f"Running: {cmd}")

        # Use run_in_executor for Windows compatibility
        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(cmd, capture_output=True, shell=False)
            )
        except OSError as e:
            raise ExternalToolError(f"Failed to start {command}: {e}") from e

        stdout = result.stdout.decode("utf-8", errors="replace") if result.stdout else ""
        stderr = result.stderr.decode("utf-8", errors="replace") if result.stderr else ""

        if result.returncode != 0:
            message = stderr.strip() or f"{command} exited with code {result.returncode}"
            logger.warning(f"{command} failed with code {result.returncode}: {message[-500:]}")
            raise ExternalToolError(message, returncode=result.returncode, stderr=stderr)

        return stdout

    async def run_with_progress(
        self,
        command: str,
        args: Sequence[str],
        sink: ProgressSink,
        scale: ProgressScale = ProgressScale(),
    ) -> None:
        """
        Run a tool and report percentages found in its output.

        Standard error is merged into standard output and read one line at a
        time. Only the last non-progress line is kept, for the failure message.

        Args:
            command: Executable name or path
            args: Argument vector
            sink: Called on the event loop with (progress, message)
            scale: How a raw percentage maps onto the reported progress

        Raises:
            ExternalToolError: If the tool cannot start or exits non-zero
        """
        cmd = [command, *args]
        logger.debug(f"Streaming: {cmd}")

        loop = asyncio.get_event_loop()

        def do_stream() -> tuple[int, str]:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                shell=False,
            )
            last_line = ""
            with proc:
                for raw_line in proc.stdout:
                    line = raw_line.strip()
                    if not line:
                        continue
                    percent = parse_progress_percent(line)
                    if percent is None:
                        last_line = line
                        continue
                    progress, message = scale.apply(percent)
                    loop.call_soon_threadsafe(sink, progress, message)
            return proc.returncode, last_line

        try:
            returncode, last_line = await loop.run_in_executor(None, do_stream)
        except OSError as e:
            raise ExternalToolError(f"Failed to start {command}: {e}") from e

        if returncode != 0:
            message = f"{command} exited with code {returncode}"
            logger.warning(f"{message}: {last_line[:300]}")
            raise ExternalToolError(message, returncode=returncode, stderr=last_line)
