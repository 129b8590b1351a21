"""Output formatters for requests: plain or colorized text and NDJSON."""

import json
from typing import Callable

from logbench.models import Request

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
CYAN = "\033[36m"
RESET = "\033[0m"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _duration(request: Request) -> str:
    if request.duration is None:
        return "-"
    return f"{request.duration:.1f}ms"


def _query_summary(request: Request) -> str:
    if not request.query_count:
        return ""
    summary = f" ({request.query_count} queries, {request.total_query_time:.1f}ms"
    if request.cached_query_count:
        summary += f", {request.cached_query_count} cached"
    return summary + ")"


def _status_color(request: Request) -> str:
    if request.server_error:
        return RED
    if request.client_error:
        return YELLOW
    if request.success:
        return GREEN
    return CYAN


def format_text(request: Request) -> str:
    ts = request.timestamp.strftime(TIMESTAMP_FORMAT)
    return (f"[{ts}] {request.method} {request.path} {request.status} "
            f"{_duration(request)}{_query_summary(request)}")


def format_color(request: Request) -> str:
    ts = request.timestamp.strftime(TIMESTAMP_FORMAT)
    color = _status_color(request)
    return (f"[{ts}] {request.method} {request.path} {color}{request.status}{RESET} "
            f"{_duration(request)}{_query_summary(request)}")


def format_related(request: Request, indent: str = "    ") -> list[str]:
    """One indented line per related entry, in log order."""
    return [f"{indent}{entry.type.value:<13} {entry.content}" for entry in request.related_entries]


def request_to_dict(request: Request) -> dict:
    return {
        "timestamp": request.timestamp.isoformat(),
        "request_id": request.request_id,
        "method": request.method,
        "path": request.path,
        "status": request.status,
        "duration": request.duration,
        "controller": request.controller,
        "action": request.action,
        "params": request.params,
        "query_count": request.query_count,
        "cached_query_count": request.cached_query_count,
        "total_query_time": request.total_query_time,
        "related": [
            {"type": e.type.value, "timestamp": e.timestamp.isoformat(), "content": e.content}
            for e in request.related_entries
        ],
    }


def format_json(request: Request) -> str:
    """One JSON object per request, on a single line (NDJSON)."""
    return json.dumps(request_to_dict(request), default=str)


def get_formatter(output_format: str = "text", color: bool = False) -> Callable[[Request], str]:
    """Factory that returns the right formatter based on args."""
    if output_format == "json":
        return format_json
    if color:
        return format_color
    return format_text
