"""Request statistics: method and status counts, durations, query totals."""

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from logbench.models import Request


@dataclass
class RequestStats:
    total_requests: int = 0
    orphan_requests: int = 0
    method_counts: dict[str, int] = field(default_factory=dict)
    status_classes: dict[str, int] = field(default_factory=dict)
    average_duration: float | None = None
    max_duration: float | None = None
    total_queries: int = 0
    cached_queries: int = 0
    total_query_time: float = 0.0


def _status_class(status) -> str:
    if isinstance(status, int) and not isinstance(status, bool) and 100 <= status < 600:
        return f"{status // 100}xx"
    return "unknown"


def compute_stats(requests: Iterable[Request]) -> RequestStats:
    """Consume requests and produce aggregated statistics. Orphans are only counted."""
    methods = Counter()
    classes = Counter()
    durations = []
    stats = RequestStats()

    for request in requests:
        if request.orphan:
            stats.orphan_requests += 1
            continue
        stats.total_requests += 1
        methods[request.method or "?"] += 1
        classes[_status_class(request.status)] += 1
        if request.duration is not None:
            durations.append(float(request.duration))
        stats.total_queries += request.query_count
        stats.cached_queries += request.cached_query_count
        stats.total_query_time += request.total_query_time

    stats.method_counts = dict(methods.most_common())
    stats.status_classes = dict(sorted(classes.items()))
    if durations:
        stats.average_duration = sum(durations) / len(durations)
        stats.max_duration = max(durations)
    return stats


def format_stats_text(stats: RequestStats) -> str:
    """Human-readable stats summary."""
    lines = [f"Total requests: {stats.total_requests}"]
    if stats.orphan_requests:
        lines.append(f"Orphan requests: {stats.orphan_requests}")
    lines.append("")

    lines.append("Methods:")
    for method, count in stats.method_counts.items():
        lines.append(f"  {method:8s} {count}")
    lines.append("")

    lines.append("Status classes:")
    for status_class, count in stats.status_classes.items():
        lines.append(f"  {status_class:8s} {count}")
    lines.append("")

    if stats.average_duration is not None:
        lines.append(f"Average duration: {stats.average_duration:.1f}ms")
        lines.append(f"Max duration:     {stats.max_duration:.1f}ms")
    else:
        lines.append("No durations recorded.")

    lines.append(f"Queries: {stats.total_queries} ({stats.cached_queries} cached, "
                 f"{stats.total_query_time:.1f}ms total)")
    return "\n".join(lines)


def format_stats_json(stats: RequestStats) -> str:
    """JSON stats output."""
    return json.dumps({
        "total_requests": stats.total_requests,
        "orphan_requests": stats.orphan_requests,
        "method_counts": stats.method_counts,
        "status_classes": stats.status_classes,
        "average_duration": stats.average_duration,
        "max_duration": stats.max_duration,
        "total_queries": stats.total_queries,
        "cached_queries": stats.cached_queries,
        "total_query_time": stats.total_query_time,
    }, indent=2)
