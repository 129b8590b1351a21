"""Line parser: raw log line -> classified Entry/Request, plus request grouping.

Parsing steps per line:
  1. Drop undecodable bytes, trim whitespace
  2. semantic_logger only: convert human-readable lines to JSON
  3. Decode JSON; anything that is not a JSON object is dropped
  4. Classify and build the Entry (or Request)
  5. Job enqueues: record job_id -> request_id in the correlation table
  6. Job execution lines: attach the request id of the enqueuing request and
     prefix the content with a colored [JobClass#job_id] marker
"""

import json
import logging
import re
from dataclasses import replace
from typing import Iterable

from logbench import semantic
from logbench.correlation import CorrelationTable
from logbench.job_prefix import build_job_prefix, extract_job_info, has_job_prefix
from logbench.models import Entry, EntryType, Request, normalize_message

logger = logging.getLogger(__name__)

SQL_KEYWORDS = (
    "SELECT", "INSERT", "UPDATE", "DELETE", "TRANSACTION",
    "BEGIN", "COMMIT", "ROLLBACK", "SAVEPOINT",
)
CALL_STACK_MARKER = "↳"
JOB_ENQUEUE_RE = re.compile(r"Enqueued .+ \(Job ID: .+\)")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _present(value) -> bool:
    return value is not None and value is not False


def _has_request_fields(source: dict) -> bool:
    return all(_present(source.get(key)) for key in ("method", "path", "status"))


def lograge_request(data: dict) -> bool:
    return _has_request_fields(data)


def semantic_logger_request(data: dict) -> bool:
    payload = data.get("payload")
    if not isinstance(payload, dict):
        return False
    return _has_request_fields(payload)


def http_request(data: dict) -> bool:
    return lograge_request(data) or semantic_logger_request(data)


def cache_message(data: dict) -> bool:
    return "CACHE" in normalize_message(data.get("message"))


def sql_message(data: dict) -> bool:
    message = normalize_message(data.get("message"))
    return any(keyword in message for keyword in SQL_KEYWORDS)


def call_stack_message(data: dict) -> bool:
    return CALL_STACK_MARKER in normalize_message(data.get("message"))


def job_enqueue_message(data: dict) -> bool:
    return JOB_ENQUEUE_RE.search(normalize_message(data.get("message"))) is not None


def determine_type(data: dict) -> EntryType:
    """First match wins."""
    if http_request(data):
        return EntryType.HTTP_REQUEST
    if cache_message(data):
        return EntryType.CACHE_QUERY
    if sql_message(data):
        return EntryType.SQL_QUERY
    if call_stack_message(data):
        return EntryType.SQL_CALL_LINE
    if job_enqueue_message(data):
        return EntryType.JOB_ENQUEUE
    return EntryType.OTHER


def build_entry(data: dict) -> Entry | Request:
    entry_type = determine_type(data)
    if entry_type is EntryType.HTTP_REQUEST:
        return Request.from_data(data)
    return Entry.from_data(data, entry_type)


def sanitize(raw_line) -> str:
    """Decode to str dropping invalid/undefined byte sequences, then trim."""
    if isinstance(raw_line, bytes):
        text = raw_line.decode("utf-8", errors="ignore")
    else:
        text = str(raw_line).encode("utf-8", errors="ignore").decode("utf-8", errors="ignore")
    return text.strip()


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class LineParser:
    """Parses lines for one monitoring session, sharing its correlation table."""

    def __init__(self, correlation: CorrelationTable | None = None, logger_type: str = "lograge"):
        self.correlation = correlation if correlation is not None else CorrelationTable()
        self.logger_type = logger_type

    def parse_line(self, raw_line) -> Entry | Request | None:
        line = sanitize(raw_line)
        if not line:
            return None

        if self.logger_type == "semantic_logger" and semantic.is_human_readable(line):
            converted = semantic.convert(line)
            if converted:
                line = converted

        try:
            data = json.loads(line)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug("Failed to parse line as JSON: %s", e)
            return None
        if not isinstance(data, dict):
            return None

        entry = build_entry(data)
        self._register_job_enqueue(entry)
        return self._enrich_job_entry(entry)

    def parse_lines(self, lines: Iterable) -> list[Entry | Request]:
        entries = []
        for line in lines:
            entry = self.parse_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def _register_job_enqueue(self, entry):
        if entry.type is not EntryType.JOB_ENQUEUE:
            return

        request_id = entry.request_id
        if not request_id:
            parent = extract_job_info(entry.tags)
            if parent:
                request_id = self.correlation.lookup(parent[0])

        if request_id:
            self.correlation.register(entry.job_id, request_id)
        else:
            logger.debug("Job %s enqueued outside any known request", entry.job_id)

    def _enrich_job_entry(self, entry):
        """Second construction phase for lines logged from inside a job."""
        if isinstance(entry, Request):
            return entry
        job_info = extract_job_info(entry.tags)
        if not job_info:
            return entry
        job_id, job_class = job_info

        changes = {}
        if not has_job_prefix(entry.content):
            changes["content"] = f"{build_job_prefix(job_class, job_id)} {entry.content}"
        if not entry.request_id:
            request_id = self.correlation.lookup(job_id)
            if request_id:
                changes["request_id"] = request_id

        return replace(entry, **changes) if changes else entry


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def group_by_request(entries: Iterable[Entry | Request]) -> list[Request]:
    """Attach each batch entry to the request with the same request id.

    Entries without a request id are dropped. A request id whose request line
    is not in the batch gets an orphan Request to hold its entries.
    Returned in ascending timestamp order.
    """
    grouped: dict[str, list] = {}
    for entry in entries:
        if not entry.request_id:
            continue
        grouped.setdefault(entry.request_id, []).append(entry)

    requests = []
    for request_id, group in grouped.items():
        request = next((e for e in group if isinstance(e, Request)), None)
        if request is None:
            request = Request.new_orphan(request_id)
        request.add_related_logs(e for e in group if not isinstance(e, Request))
        requests.append(request)

    requests.sort(key=lambda r: r.timestamp)
    return requests
