"""
Job id generation.

Ids combine a timestamp with a random suffix. The generator also remembers
every id it has handed out and draws again on a collision, so two calls in
the same process never return the same id.
"""

import secrets
import threading
import time
from datetime import datetime, timezone
from functools import lru_cache


class JobIdGenerator:
    """Issues process-unique ids for clip and subtitle jobs."""

    def __init__(self):
        self._issued: set[str] = set()
        self._lock = threading.Lock()

    def _issue(self, build) -> str:
        with self._lock:
            while True:
                candidate = build()
                if candidate not in self._issued:
                    self._issued.add(candidate)
                    return candidate

    def clip_id(self) -> str:
        """clip_<YYYYMMDDHHMMSS>_<8 hex>"""
        return self._issue(
            lambda: "clip_{}_{}".format(
                datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S"),
                secrets.token_hex(4),
            )
        )

    def subtitle_id(self) -> str:
        """subtitle_<epoch ms>_<8 hex>"""
        return self._issue(
            lambda: f"subtitle_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        )

    def __len__(self) -> int:
        return len(self._issued)


@lru_cache()
def get_job_id_generator() -> JobIdGenerator:
    """Get the process-wide id generator."""
    return JobIdGenerator()
