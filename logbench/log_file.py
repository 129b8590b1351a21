"""LogFile: an append-only log file read incrementally from a checkpoint.

Wakes up on watchdog file-system events and falls back to polling, so it
keeps working on file systems that do not deliver events.
"""

import logging
import os
import threading

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from logbench.collection import Collection
from logbench.parser import LineParser

logger = logging.getLogger(__name__)


class LogFile(FileSystemEventHandler):
    def __init__(self, path: str, from_end: bool = False):
        super().__init__()
        self.path = os.path.abspath(path)
        self._from_end = from_end
        self._offset: int | None = None     # None until the file is first seen
        self._inode: int | None = None
        self._partial = b""
        self._changed = threading.Event()
        self._observer = None
        self._lock = threading.Lock()

    # -- one-shot reading -------------------------------------------------

    def read_all_lines(self) -> list[str]:
        """Every non-empty line currently in the file, ignoring the checkpoint."""
        with open(self.path, "rb") as f:
            data = f.read()
        return _decode_lines(data.split(b"\n"))

    def requests(self, parser: LineParser | None = None) -> Collection:
        return Collection.from_lines(self.read_all_lines(), parser)

    # -- incremental reading ----------------------------------------------

    def _start_offset(self, stat: os.stat_result) -> int:
        if self._offset is None:
            return stat.st_size if self._from_end else 0
        if self._inode is not None and stat.st_ino != self._inode:
            logger.info("File rotated (inode changed): %s", self.path)
            self._partial = b""
            return 0
        if stat.st_size < self._offset:
            logger.info("File truncated: %s", self.path)
            self._partial = b""
            return 0
        return self._offset

    def read_new_lines(self) -> list[str]:
        """Complete lines appended since the last call. A missing file yields nothing."""
        with self._lock:
            try:
                stat = os.stat(self.path)
            except FileNotFoundError:
                logger.debug("File not found: %s", self.path)
                if self._offset is None:
                    # Whatever appears later was written after we started
                    self._offset = 0
                return []

            offset = self._start_offset(stat)
            with open(self.path, "rb") as f:
                f.seek(offset)
                data = f.read()
                self._offset = f.tell()
            self._inode = stat.st_ino

            if not data:
                return []

            data = self._partial + data
            chunks = data.split(b"\n")
            # Last chunk is empty when data ends with a newline, else a partial line
            self._partial = chunks.pop()
            return _decode_lines(chunks)

    def wait_for_lines(self, timeout: float) -> list[str]:
        """Return new lines, blocking up to ``timeout`` seconds for a change if there are none."""
        lines = self.read_new_lines()
        if lines:
            return lines
        self._changed.wait(timeout)
        self._changed.clear()
        return self.read_new_lines()

    def wake(self):
        """Release any thread blocked in wait_for_lines."""
        self._changed.set()

    # -- watchdog ---------------------------------------------------------

    def start_watching(self):
        if self._observer is not None:
            return
        directory = os.path.dirname(self.path)
        if not os.path.isdir(directory):
            logger.warning("Directory %s does not exist, polling only", directory)
            return
        observer = Observer()
        observer.schedule(self, directory, recursive=False)
        observer.start()
        self._observer = observer
        logger.debug("Watching directory: %s", directory)

    def stop_watching(self):
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)

    def _is_ours(self, path) -> bool:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        return bool(path) and os.path.abspath(path) == self.path

    def on_modified(self, event):
        if not event.is_directory and self._is_ours(event.src_path):
            self._changed.set()

    def on_created(self, event):
        if not event.is_directory and self._is_ours(event.src_path):
            logger.info("Watched file created: %s", self.path)
            self._changed.set()

    def on_moved(self, event):
        if not event.is_directory and (
            self._is_ours(event.src_path) or self._is_ours(getattr(event, "dest_path", ""))
        ):
            self._changed.set()


def _decode_lines(chunks: list[bytes]) -> list[str]:
    lines = []
    for chunk in chunks:
        line = chunk.decode("utf-8", errors="ignore").strip()
        if line:
            lines.append(line)
    return lines
