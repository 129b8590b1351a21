"""Tests for request statistics."""

import json

import pytest

from logbench.log_file import LogFile
from logbench.models import Request
from logbench.stats import compute_stats, format_stats_json, format_stats_text


class TestComputeStats:
    def test_empty(self):
        stats = compute_stats([])
        assert stats.total_requests == 0
        assert stats.method_counts == {}
        assert stats.average_duration is None

    def test_fixture_file(self, lograge_log, parser):
        stats = compute_stats(LogFile(lograge_log).requests(parser))
        assert stats.total_requests == 3
        assert stats.orphan_requests == 1
        assert stats.method_counts == {"GET": 2, "POST": 1}
        assert stats.status_classes == {"2xx": 1, "4xx": 1, "5xx": 1}
        assert stats.average_duration == pytest.approx((45.2 + 120.5 + 1500.0) / 3)
        assert stats.max_duration == 1500.0
        assert stats.total_queries == 3
        assert stats.cached_queries == 1
        assert stats.total_query_time == pytest.approx(3.7)

    def test_unknown_status_class(self):
        request = Request.from_data({"method": "GET", "path": "/", "status": "weird"})
        assert compute_stats([request]).status_classes == {"unknown": 1}


class TestFormatStats:
    def test_text(self, lograge_log, parser):
        text = format_stats_text(compute_stats(LogFile(lograge_log).requests(parser)))
        assert "Total requests: 3" in text
        assert "Orphan requests: 1" in text
        assert "Max duration:     1500.0ms" in text
        assert "Queries: 3 (1 cached, 3.7ms total)" in text

    def test_text_without_durations(self):
        assert "No durations recorded." in format_stats_text(compute_stats([]))

    def test_json(self, lograge_log, parser):
        data = json.loads(format_stats_json(compute_stats(LogFile(lograge_log).requests(parser))))
        assert data["total_requests"] == 3
        assert data["method_counts"]["GET"] == 2
        assert data["status_classes"]["5xx"] == 1
