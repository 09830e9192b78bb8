"""
Progress Broadcaster - Pushes progress records to attached observers.

Observers (WebSocket connections) attach to a single job id. publish() reads
the job's current record from the ProgressStore and hands it to every
attached observer that is still open. Delivery is fire-and-forget: observers
that attach after a transition do not get it replayed and should poll
/api/progress/{id} to catch up.
"""

import logging
from functools import lru_cache
from typing import Optional, Protocol

from app.schemas.responses import ProgressMessage
from app.services.progress_store import ProgressStore, get_progress_store

logger = logging.getLogger(__name__)


class ProgressObserver(Protocol):
    """Anything that can receive progress messages."""

    @property
    def is_open(self) -> bool:
        ...

    def deliver(self, message: dict) -> None:
        """Queue a message for sending. Must not block."""
        ...


class ProgressBroadcaster:
    """Job id -> set of attached observers."""

    def __init__(self, store: Optional[ProgressStore] = None):
        self.store = store or get_progress_store()
        self._observers: dict[str, set[ProgressObserver]] = {}

    def attach(self, job_id: str, observer: ProgressObserver) -> None:
        self._observers.setdefault(job_id, set()).add(observer)
        logger.debug(f"Observer attached to {job_id} ({self.observer_count(job_id)} total)")

    def detach(self, job_id: str, observer: ProgressObserver) -> None:
        observers = self._observers.get(job_id)
        if not observers:
            return
        observers.discard(observer)
        if not observers:
            del self._observers[job_id]
        logger.debug(f"Observer detached from {job_id}")

    def observer_count(self, job_id: str) -> int:
        return len(self._observers.get(job_id, ()))

    def publish(self, job_id: str) -> None:
        """Send the job's current record to every open observer."""
        record = self.store.get(job_id)
        if record is None:
            return

        observers = self._observers.get(job_id)
        if not observers:
            return

        message = ProgressMessage(download_id=job_id, data=record).model_dump(
            mode="json", exclude_none=True
        )

        # Copy: an observer may detach while we iterate
        for observer in list(observers):
            if not observer.is_open:
                continue
            try:
                observer.deliver(message)
            except Exception as e:
                logger.warning(f"Failed to deliver progress for {job_id}: {e}")


@lru_cache()
def get_progress_broadcaster() -> ProgressBroadcaster:
    """Get the process-wide progress broadcaster."""
    return ProgressBroadcaster()
