"""Job -> request correlation table.

Job execution lines usually carry no request id of their own, only the
["ActiveJob", class, job_id] tags. The table remembers which request enqueued
each job so those lines can be attributed back to the originating request,
including jobs enqueued from inside other jobs.

One table per monitoring session; construct it at session start and pass it
to the parser and monitor. ``reset()`` starts a fresh session.
"""

import logging
import threading
from collections import OrderedDict

logger = logging.getLogger(__name__)


class CorrelationTable:
    """Thread-safe job_id -> request_id map.

    ``max_size=0`` keeps every mapping for the life of the table (one entry per
    job ever seen). A positive ``max_size`` evicts the least recently
    registered or looked-up job once the limit is exceeded.
    """

    def __init__(self, max_size: int = 0):
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        self._max_size = max_size
        self._jobs: OrderedDict[str, str] = OrderedDict()
        self._lock = threading.Lock()

    def register(self, job_id: str | None, request_id: str | None):
        """Map job_id to request_id. Last writer wins; absent ids are ignored."""
        if not job_id or not request_id:
            return
        with self._lock:
            self._jobs[job_id] = request_id
            self._jobs.move_to_end(job_id)
            if self._max_size and len(self._jobs) > self._max_size:
                evicted, _ = self._jobs.popitem(last=False)
                logger.debug("Correlation table full, evicted job %s", evicted)

    def lookup(self, job_id: str | None) -> str | None:
        if not job_id:
            return None
        with self._lock:
            request_id = self._jobs.get(job_id)
            if request_id is not None and self._max_size:
                self._jobs.move_to_end(job_id)
            return request_id

    def reset(self):
        with self._lock:
            self._jobs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id) -> bool:
        with self._lock:
            return job_id in self._jobs
