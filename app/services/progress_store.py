"""
Progress Store - In-memory table of job id -> current progress record.

Single source of truth for job state. Only the pipeline that owns a job id
writes its record; everyone else reads. All access happens on the event loop
thread, so no locking is needed.
"""

import logging
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of a clip job."""

    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ProgressRecord(BaseModel):
    """Snapshot of one job's progress."""

    status: JobStatus
    progress: int = Field(..., ge=0, le=100)
    message: str
    filename: Optional[str] = None
    download_url: Optional[str] = None


class ProgressStore:
    """Job id -> ProgressRecord, last writer wins."""

    def __init__(self):
        self._records: dict[str, ProgressRecord] = {}

    def set(self, job_id: str, record: ProgressRecord) -> None:
        self._records[job_id] = record
        logger.debug(f"Job {job_id}: {record.status.value} - {record.progress}% {record.message}")

    def get(self, job_id: str) -> Optional[ProgressRecord]:
        return self._records.get(job_id)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._records

    def __len__(self) -> int:
        return len(self._records)


@lru_cache()
def get_progress_store() -> ProgressStore:
    """Get the process-wide progress store."""
    return ProgressStore()
