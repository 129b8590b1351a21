"""Classified log entries.

Every parsed line becomes either an ``Entry`` (tagged with its ``EntryType``)
or, for HTTP request summary lines, a ``Request`` that collects the entries
logged while the request was handled.
"""

import json
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import cached_property
from typing import Any

from logbench.ansi import strip_ansi_codes


class EntryType(str, Enum):
    HTTP_REQUEST = "http_request"
    SQL_QUERY = "sql_query"
    CACHE_QUERY = "cache_query"
    SQL_CALL_LINE = "sql_call_line"
    JOB_ENQUEUE = "job_enqueue"
    OTHER = "other"


_QUERY_DURATION_RE = re.compile(r"\((\d+(?:\.\d+)?)ms\)")
_JOB_ID_RE = re.compile(r"Job ID: ([^)]+)")
# Seconds fraction of any length; padded or cut to microseconds before parsing
_FRACTION_RE = re.compile(r"(\d{2}:\d{2}:\d{2})[.,](\d+)")
_COMPACT_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")

# Checked in order; the first keyword found decides the statement kind.
_OPERATIONS = (
    ("SELECT", "select"),
    ("INSERT", "insert"),
    ("UPDATE", "update"),
    ("DELETE", "delete"),
    ("TRANSACTION", "transaction"),
    ("BEGIN", "transaction"),
    ("COMMIT", "transaction"),
    ("ROLLBACK", "transaction"),
    ("SAVEPOINT", "transaction"),
)


def normalize_message(message: Any) -> str:
    """Messages may be strings, token lists, null, or scalars; always return a str."""
    if message is None:
        return ""
    if isinstance(message, str):
        return message
    if isinstance(message, list):
        return " ".join(normalize_message(m) for m in message)
    if isinstance(message, bool):
        return "true" if message else "false"
    return str(message)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp. Falls back to the current time when absent or invalid.

    Naive timestamps are treated as UTC so that every entry sorts on the same axis.
    """
    if not isinstance(value, str) or not value.strip():
        return datetime.now(timezone.utc)
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6]:0<6}", text, count=1)
    text = _COMPACT_OFFSET_RE.sub(r"\1:\2", text)
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        return datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def extract_request_id(data: dict) -> str | None:
    request_id = data.get("request_id")
    if not request_id:
        payload = data.get("payload")
        if isinstance(payload, dict):
            request_id = payload.get("request_id")
    return str(request_id) if request_id else None


def extract_job_id(message: Any) -> str | None:
    """'Enqueued EmailJob (Job ID: abc-123) to Async(default)' -> 'abc-123'."""
    match = _JOB_ID_RE.search(normalize_message(message))
    return match.group(1) if match else None


def parse_params(params: Any) -> Any:
    """Decode request params. A JSON string that fails to decode is kept as-is."""
    if params is None:
        return None
    if isinstance(params, dict):
        return params
    if isinstance(params, str):
        try:
            return json.loads(params)
        except json.JSONDecodeError:
            return params
    return None


def to_duration(value: Any) -> float | None:
    """Milliseconds as a float; numeric strings are accepted, anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    return duration if math.isfinite(duration) else None


def to_status(value: Any) -> int | None:
    """HTTP status as an int (200, 200.0 and "200" all give 200); anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        status = float(value)
    except (TypeError, ValueError):
        return None
    return int(status) if status.is_integer() else None


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass(frozen=True)
class Query:
    """SQL or cache access details attached to sql_query/cache_query entries."""

    cached: bool
    operation: str | None
    duration_ms: float | None

    @property
    def hit(self) -> bool:
        return self.cached

    @classmethod
    def from_message(cls, content: str, cached: bool) -> "Query":
        plain = strip_ansi_codes(content)
        match = _QUERY_DURATION_RE.search(plain)
        operation = next((kind for keyword, kind in _OPERATIONS if keyword in plain), None)
        return cls(
            cached=cached,
            operation=operation,
            duration_ms=float(match.group(1)) if match else None,
        )


@dataclass(frozen=True)
class Entry:
    type: EntryType
    timestamp: datetime
    content: str
    request_id: str | None = None
    data: dict = field(default_factory=dict, repr=False, compare=False)
    query: Query | None = None      # sql_query / cache_query only
    job_id: str | None = None       # job_enqueue only

    @classmethod
    def from_data(cls, data: dict, entry_type: EntryType = EntryType.OTHER) -> "Entry":
        content = normalize_message(data.get("message"))
        query = None
        job_id = None
        if entry_type in (EntryType.SQL_QUERY, EntryType.CACHE_QUERY):
            query = Query.from_message(content, cached=entry_type is EntryType.CACHE_QUERY)
        elif entry_type is EntryType.JOB_ENQUEUE:
            job_id = extract_job_id(content)
        return cls(
            type=entry_type,
            timestamp=parse_timestamp(data.get("timestamp")),
            content=content,
            request_id=extract_request_id(data),
            data=data,
            query=query,
            job_id=job_id,
        )

    @property
    def http_request(self) -> bool:
        return False

    @property
    def related_log(self) -> bool:
        return True

    @property
    def tags(self):
        return self.data.get("tags")

    @property
    def duration_ms(self) -> float | None:
        return self.query.duration_ms if self.query else None


_DERIVED = (
    "queries",
    "cache_operations",
    "sql_queries",
    "query_count",
    "cached_query_count",
    "total_query_time",
)


@dataclass(eq=False)
class Request:
    """One HTTP request/response cycle and the entries logged while handling it.

    Fields come from the top level of the line (lograge) or from its
    ``payload`` (semantic_logger). ``orphan`` requests are shells created for a
    request id whose summary line has not been seen; they only hold entries.
    """

    request_id: str | None
    timestamp: datetime
    content: str = ""
    method: str | None = None
    path: str | None = None
    status: int | None = None
    duration: float | None = None
    controller: str | None = None
    action: str | None = None
    params: Any = None
    data: dict = field(default_factory=dict, repr=False)
    orphan: bool = False
    related_entries: list[Entry] = field(default_factory=list, repr=False)

    @classmethod
    def from_data(cls, data: dict) -> "Request":
        payload = data.get("payload")
        source = payload if isinstance(payload, dict) else data
        duration = data.get("duration_ms")
        if duration is None:
            duration = source.get("duration")
        return cls(
            request_id=extract_request_id(data),
            timestamp=parse_timestamp(data.get("timestamp")),
            content=normalize_message(data.get("message")),
            method=_text(source.get("method")),
            path=_text(source.get("path")),
            status=to_status(source.get("status")),
            duration=to_duration(duration),
            controller=source.get("controller"),
            action=source.get("action"),
            params=parse_params(source.get("params")),
            data=data,
        )

    @classmethod
    def new_orphan(cls, request_id: str) -> "Request":
        return cls(
            request_id=request_id,
            timestamp=parse_timestamp(None),
            data={"request_id": request_id},
            orphan=True,
        )

    @property
    def type(self) -> EntryType:
        return EntryType.HTTP_REQUEST

    @property
    def http_request(self) -> bool:
        return True

    @property
    def related_log(self) -> bool:
        return False

    def add_related_log(self, entry):
        if entry.related_log:
            self.related_entries.append(entry)
            self._clear_derived()

    def add_related_logs(self, entries):
        for entry in entries:
            self.add_related_log(entry)

    def _clear_derived(self):
        for name in _DERIVED:
            self.__dict__.pop(name, None)

    @cached_property
    def queries(self) -> list[Entry]:
        return [e for e in self.related_entries if e.query is not None]

    @cached_property
    def cache_operations(self) -> list[Entry]:
        return [e for e in self.queries if e.query.cached]

    @cached_property
    def sql_queries(self) -> list[Entry]:
        return [e for e in self.queries if not e.query.cached]

    @cached_property
    def query_count(self) -> int:
        return len(self.queries)

    @cached_property
    def cached_query_count(self) -> int:
        return len(self.cache_operations)

    @cached_property
    def total_query_time(self) -> float:
        return sum(e.query.duration_ms or 0.0 for e in self.queries)

    def _status_between(self, low: int, high: int | None) -> bool:
        if not isinstance(self.status, int) or isinstance(self.status, bool):
            return False
        return self.status >= low and (high is None or self.status < high)

    @property
    def success(self) -> bool:
        return self._status_between(200, 300)

    @property
    def client_error(self) -> bool:
        return self._status_between(400, 500)

    @property
    def server_error(self) -> bool:
        return self._status_between(500, None)
