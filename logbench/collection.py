"""Collection: an ordered, filterable view over parsed requests."""

from typing import Iterable, Iterator

from logbench.models import Request
from logbench.parser import LineParser, group_by_request


def normalize_input(lines) -> list:
    """Accept a single line or arbitrarily nested lists of lines."""
    if lines is None:
        return []
    if isinstance(lines, (str, bytes)):
        return [lines]
    flat = []
    for item in lines:
        flat.extend(normalize_input(item))
    return flat


class Collection:
    """Requests (and orphan requests) in grouping order.

    Every filter/sort returns a new Collection holding only non-orphan
    requests; the receiving collection is never modified.
    """

    def __init__(self, entries: Iterable[Request] = ()):
        self._entries: list[Request] = list(entries)

    @classmethod
    def from_lines(cls, lines, parser: LineParser | None = None) -> "Collection":
        parser = parser if parser is not None else LineParser()
        entries = parser.parse_lines(normalize_input(lines))
        return cls(group_by_request(entries))

    @property
    def entries(self) -> list[Request]:
        return list(self._entries)

    @property
    def requests(self) -> list[Request]:
        return [r for r in self._entries if not r.orphan]

    @property
    def orphan_requests(self) -> list[Request]:
        return [r for r in self._entries if r.orphan]

    def __iter__(self) -> Iterator[Request]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def filter_by_method(self, method: str) -> "Collection":
        method = method.upper()
        return Collection(r for r in self.requests if r.method == method)

    def filter_by_path(self, path_pattern: str) -> "Collection":
        return Collection(r for r in self.requests if isinstance(r.path, str) and path_pattern in r.path)

    def filter_by_status(self, status_range) -> "Collection":
        """Keep requests whose status is in ``status_range`` (e.g. ``range(400, 500)``)."""
        return Collection(
            r for r in self.requests
            if isinstance(r.status, int) and r.status in status_range
        )

    def slow_requests(self, threshold_ms: float = 1000) -> "Collection":
        return Collection(
            r for r in self.requests
            if r.duration is not None and r.duration > threshold_ms
        )

    def sort_by_duration(self) -> "Collection":
        """Slowest first."""
        return Collection(sorted(self.requests, key=lambda r: -(r.duration or 0)))

    def sort_by_timestamp(self) -> "Collection":
        return Collection(sorted(self.requests, key=lambda r: r.timestamp))
