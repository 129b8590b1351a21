"""Monitor: tails a LogFile in a background thread and keeps recent requests in memory.

Each batch of new lines is parsed and grouped on its own. Entries whose
request has not been seen yet wait as orphan requests and are moved onto the
matching request once it shows up in a later batch.
"""

import logging
import threading
from dataclasses import replace

from logbench.collection import Collection
from logbench.models import Request
from logbench.parser import LineParser

logger = logging.getLogger(__name__)

MAX_REQUESTS = 1000
RETRY_INTERVAL = 1.0


class Monitor:
    def __init__(self, log_file, parser: LineParser, poll_interval: float = 0.5, on_requests=None):
        self._log_file = log_file
        self._parser = parser
        self._poll_interval = poll_interval
        self._on_requests = on_requests
        self._requests: list[Request] = []
        self._orphans: list[Request] = []
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._batch_count = 0

    # -- lifecycle --------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self):
        if self.running:
            return
        # Fresh event per run so a previous, still-finishing loop stays stopped
        self._stop_event = threading.Event()
        if hasattr(self._log_file, "start_watching"):
            self._log_file.start_watching()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="logbench-monitor", daemon=True,
        )
        self._thread.start()
        logger.info("Monitor started")

    def stop(self):
        """Ask the loop to finish. Returns immediately; safe to call when not running."""
        if self._stop_event.is_set() or self._thread is None:
            return
        self._stop_event.set()
        if hasattr(self._log_file, "wake"):
            self._log_file.wake()
        logger.info("Monitor stop requested")

    def join(self, timeout: float | None = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self, stop_event: threading.Event):
        try:
            while not stop_event.is_set():
                try:
                    lines = self._log_file.wait_for_lines(self._poll_interval)
                    if lines and not stop_event.is_set():
                        self.process_lines(lines)
                except Exception:
                    logger.warning("Monitor iteration failed, retrying in %.0fs",
                                   RETRY_INTERVAL, exc_info=True)
                    stop_event.wait(RETRY_INTERVAL)
        finally:
            if stop_event is self._stop_event and hasattr(self._log_file, "stop_watching"):
                self._log_file.stop_watching()
            logger.info("Monitor stopped after %d batch(es)", self._batch_count)

    # -- batch processing -------------------------------------------------

    def process_lines(self, lines: list[str]) -> Collection:
        """Parse one batch, merge it into the long-lived state and return it."""
        collection = Collection.from_lines(lines, self._parser)
        new_requests = collection.requests
        with self._lock:
            self._batch_count += 1
            self._add_requests(new_requests)
            self._add_orphans(collection.orphan_requests, fresh=new_requests)
        logger.debug("Batch %d: %d line(s), %d request(s), %d orphan(s) pending",
                     self._batch_count, len(lines), len(new_requests), len(self._orphans))
        if new_requests and self._on_requests is not None:
            self._on_requests(new_requests)
        return collection

    def _add_requests(self, new_requests: list[Request]):
        if not new_requests:
            return
        self._requests.extend(new_requests)
        if len(self._requests) > MAX_REQUESTS:
            del self._requests[:-MAX_REQUESTS]

    def _add_orphans(self, orphans: list[Request], fresh=()):
        self._orphans.extend(orphans)
        if not self._orphans:
            return

        fresh_ids = {id(r) for r in fresh}
        index_by_id: dict[str, int] = {}
        for i, request in enumerate(self._requests):
            index_by_id.setdefault(request.request_id, i)

        pending = []
        for orphan in self._orphans:
            i = index_by_id.get(orphan.request_id)
            if i is None:
                pending.append(orphan)
                continue
            current = self._requests[i]
            if id(current) in fresh_ids:
                current.add_related_logs(orphan.related_entries)
                continue
            # Requests handed out earlier are never mutated, only replaced
            merged = replace(current, related_entries=list(current.related_entries))
            merged.add_related_logs(orphan.related_entries)
            self._requests[i] = merged
        self._orphans = pending

    # -- snapshots --------------------------------------------------------

    @property
    def requests(self) -> list[Request]:
        with self._lock:
            return list(self._requests)

    @property
    def orphan_requests(self) -> list[Request]:
        with self._lock:
            return list(self._orphans)

    def collection(self) -> Collection:
        with self._lock:
            return Collection(self._requests + self._orphans)

    @property
    def batch_count(self) -> int:
        return self._batch_count

    def reset(self):
        """Forget all requests, orphans and job mappings (new session)."""
        with self._lock:
            self._requests.clear()
            self._orphans.clear()
        self._parser.correlation.reset()
