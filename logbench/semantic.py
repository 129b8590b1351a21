"""Converts human-readable SemanticLogger lines into the JSON shape the parser expects.

Two shapes are recognized:

  2025-11-19 23:54:33.339411 I [1085:33304] {request_id: ...} (1.2ms) Rails -- message
  I, [2025-11-20T15:51:32.434612 #161]  INFO -- : <the line above>

The second is the first wrapped by Ruby's default Logger; the envelope is
stripped before matching. "Completed #action" summary lines become request
payloads, everything else becomes a plain {timestamp, level, name, message}.
"""

import json
import logging
import re

from logbench.ansi import strip_ansi_codes

logger = logging.getLogger(__name__)

TIMESTAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}\.\d+)")
REQUEST_ID_RE = re.compile(r"request_id:\s*([a-f0-9\-]+)")
DURATION_RE = re.compile(r"\(([0-9.]+)(ms|s)\)")
COMPLETED_DATA_RE = re.compile(r"--\s+Completed\s+#\w+\s+--\s+\{(.+)\}\s*$")
LOGGER_WRAPPER_RE = re.compile(r"^[A-Z], \[[^\]]+\]\s+[A-Z]+\s+--\s*:\s*")

HUMAN_READABLE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}\.\d+\s+.*?\s+\[.*?\]\s+.*?--\s+"
)
WRAPPED_HUMAN_READABLE_RE = re.compile(
    r"^[A-Z], \[.*?\].*?--\s*:\s*\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}\.\d+"
)

BASIC_LINE_RE = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}\.\d+)\s+"
    r"(?P<level>.*?)\s+"
    r"\[(?P<thread>.*?)\]\s+"
    r"(?P<tags>\{.*?\}\s+)?"
    r"(?P<duration>\(.*?\)\s+)?"
    r"(?P<name>.*?)\s+--\s+"
    r"(?P<message>.+)$"
)

LEVEL_MAP = {
    "T": "trace",
    "D": "debug",
    "I": "info",
    "W": "warn",
    "E": "error",
    "F": "fatal",
}


def is_human_readable(line: str) -> bool:
    return bool(HUMAN_READABLE_RE.match(line) or WRAPPED_HUMAN_READABLE_RE.match(line))


def strip_logger_wrapper(line: str) -> str:
    return LOGGER_WRAPPER_RE.sub("", line, count=1)


def extract_value_from_hash(hash_str: str, key: str) -> str | None:
    """Pull a value out of a Ruby-ish hash dump: ``key: value`` or ``"key" => value``."""
    k = re.escape(key)
    match = re.search(rf"""(?:{k}|["']{k}["'])\s*(?::|=>)\s*["']?([^"',}}\s]+)""", hash_str)
    return match.group(1) if match else None


def map_level(level: str) -> str:
    return LEVEL_MAP.get(level, level.lower())


def convert(line: str) -> str | None:
    """Return a JSON line for a human-readable line, or None if it cannot be converted."""
    try:
        line = strip_logger_wrapper(line)
        if "Completed #" in line:
            return _convert_completed_request(line)
        return _convert_basic_line(line)
    except (ValueError, TypeError, re.error) as e:
        logger.debug("Failed to convert SemanticLogger line: %s", e)
        return None


def _extract_request_id(text: str) -> str | None:
    match = REQUEST_ID_RE.search(text)
    return match.group(1) if match else None


def _extract_duration(line: str) -> float | None:
    match = DURATION_RE.search(strip_ansi_codes(line))
    if not match:
        return None
    value = float(match.group(1))
    return value * 1000.0 if match.group(2) == "s" else value


def _convert_basic_line(line: str) -> str | None:
    m = BASIC_LINE_RE.match(line)
    if not m:
        return None

    data = {
        "timestamp": m.group("timestamp"),
        "level": map_level(strip_ansi_codes(m.group("level"))),
        "name": strip_ansi_codes(m.group("name")),
        "message": strip_ansi_codes(m.group("message")),
    }

    tags = m.group("tags")
    if tags:
        request_id = _extract_request_id(tags)
        if request_id:
            data["request_id"] = request_id

    return json.dumps(data)


def _convert_completed_request(line: str) -> str | None:
    ts_match = TIMESTAMP_RE.match(line)
    if not ts_match:
        return None

    data_match = COMPLETED_DATA_RE.search(line)
    hash_str = "{" + data_match.group(1) + "}" if data_match else ""

    def field(key):
        value = extract_value_from_hash(hash_str, key) if hash_str else None
        return strip_ansi_codes(value) if value is not None else None

    method = field("method")
    path = field("path")
    status = field("status")
    if not (method and path and status):
        return None

    controller = field("controller")
    return json.dumps({
        "timestamp": ts_match.group(1),
        "level": "info",
        "name": controller or "Rails",
        "message": "Completed",
        "duration_ms": _extract_duration(line),
        "payload": {
            "method": method,
            "path": path,
            "status": int(status),
            "controller": controller,
            "action": field("action"),
            "request_id": _extract_request_id(line),
        },
    })
