"""Tests for Entry, Query and Request."""

from datetime import datetime, timedelta, timezone

from logbench.models import (
    Entry,
    EntryType,
    Query,
    Request,
    extract_job_id,
    extract_request_id,
    normalize_message,
    parse_params,
    parse_timestamp,
    to_duration,
    to_status,
)


def _sql(message, request_id="r1"):
    return Entry.from_data({"message": message, "request_id": request_id}, EntryType.SQL_QUERY)


def _cache(message, request_id="r1"):
    return Entry.from_data({"message": message, "request_id": request_id}, EntryType.CACHE_QUERY)


class TestNormalizeMessage:
    def test_values(self):
        assert normalize_message(None) == ""
        assert normalize_message("hi") == "hi"
        assert normalize_message(["a", "b", 3]) == "a b 3"
        assert normalize_message(True) == "true"
        assert normalize_message(42) == "42"


class TestParseTimestamp:
    def test_zulu(self):
        ts = parse_timestamp("2025-01-01T10:00:00.500Z")
        assert ts == datetime(2025, 1, 1, 10, 0, 0, 500000, tzinfo=timezone.utc)

    def test_offset_kept(self):
        ts = parse_timestamp("2025-01-01T10:00:00+02:00")
        assert ts.utcoffset() == timedelta(hours=2)

    def test_naive_treated_as_utc(self):
        ts = parse_timestamp("2025-11-19 23:54:33.339411")
        assert ts.tzinfo == timezone.utc

    def test_invalid_falls_back_to_now(self):
        before = datetime.now(timezone.utc)
        ts = parse_timestamp("yesterday-ish")
        assert before <= ts <= datetime.now(timezone.utc)
        assert parse_timestamp(None).tzinfo is not None

    def test_short_and_long_fractions(self):
        assert parse_timestamp("2025-01-01T10:00:00.12Z").microsecond == 120000
        assert parse_timestamp("2025-01-01T10:00:00.1234Z").microsecond == 123400
        assert parse_timestamp("2025-01-01T10:00:00.123456789Z").microsecond == 123456
        assert parse_timestamp("2025-01-01T10:00:00.5").year == 2025

    def test_compact_offset(self):
        ts = parse_timestamp("2025-01-01T10:00:00.250+0200")
        assert ts.utcoffset() == timedelta(hours=2)
        assert ts.microsecond == 250000


class TestExtractors:
    def test_request_id_top_level_then_payload(self):
        assert extract_request_id({"request_id": "a"}) == "a"
        assert extract_request_id({"payload": {"request_id": "b"}}) == "b"
        assert extract_request_id({"request_id": "", "payload": {"request_id": "c"}}) == "c"
        assert extract_request_id({}) is None

    def test_job_id(self):
        assert extract_job_id("Enqueued EmailJob (Job ID: abc-123) to Async(default)") == "abc-123"
        assert extract_job_id("nothing here") is None

    def test_parse_params(self):
        assert parse_params('{"a": 1}') == {"a": 1}
        assert parse_params("{oops") == "{oops"
        assert parse_params({"a": 1}) == {"a": 1}
        assert parse_params(None) is None
        assert parse_params(42) is None


class TestQuery:
    def test_sql(self):
        query = Query.from_message("Post Update (3.25ms)  UPDATE posts SET x = 1", cached=False)
        assert query.operation == "update"
        assert query.duration_ms == 3.25
        assert not query.hit

    def test_transaction_keywords(self):
        for statement in ("BEGIN", "COMMIT", "ROLLBACK", "SAVEPOINT active_record_1"):
            assert Query.from_message(f"TRANSACTION (0.1ms)  {statement}", False).operation == "transaction"

    def test_ansi_codes_ignored(self):
        query = Query.from_message("\x1b[1m\x1b[36mUser Load (0.4ms)\x1b[0m  \x1b[1m\x1b[34mSELECT 1\x1b[0m", False)
        assert query.duration_ms == 0.4
        assert query.operation == "select"

    def test_cache_hit(self):
        query = Query.from_message("CACHE User Load (0.0ms)  SELECT 1", cached=True)
        assert query.hit
        assert query.duration_ms == 0.0

    def test_no_duration(self):
        assert Query.from_message("SELECT 1", False).duration_ms is None


class TestCoercion:
    def test_duration(self):
        assert to_duration(12) == 12.0
        assert to_duration("12.5") == 12.5
        assert to_duration(None) is None
        assert to_duration("slow") is None
        assert to_duration(True) is None
        assert to_duration({"ms": 3}) is None
        assert to_duration("nan") is None

    def test_status(self):
        assert to_status(200) == 200
        assert to_status("404") == 404
        assert to_status(500.0) == 500
        assert to_status("OK") is None
        assert to_status(200.5) is None
        assert to_status(False) is None


class TestRequest:
    def test_from_data_duration_ms_preferred(self):
        request = Request.from_data({
            "method": "GET", "path": "/", "status": 200, "duration": 1.0, "duration_ms": 2.0,
        })
        assert request.duration == 2.0

    def test_from_data_coerces_fields(self):
        request = Request.from_data({"method": "GET", "path": 42, "status": "201", "duration": "12.5"})
        assert request.duration == 12.5
        assert request.status == 201
        assert request.path == "42"
        assert request.success

    def test_from_data_unusable_duration(self):
        request = Request.from_data({"method": "GET", "path": "/", "status": 200, "duration": "fast"})
        assert request.duration is None

    def test_new_orphan(self):
        orphan = Request.new_orphan("r9")
        assert orphan.orphan
        assert orphan.request_id == "r9"
        assert orphan.method is None
        assert orphan.related_entries == []

    def test_type_predicates(self):
        request = Request.from_data({"method": "GET", "path": "/", "status": 200})
        assert request.type is EntryType.HTTP_REQUEST
        assert request.http_request
        assert not request.related_log

    def test_add_related_log_ignores_requests(self):
        request = Request.from_data({"method": "GET", "path": "/", "status": 200})
        request.add_related_log(Request.from_data({"method": "GET", "path": "/", "status": 200}))
        assert request.related_entries == []

    def test_query_aggregates(self):
        request = Request.from_data({"method": "GET", "path": "/", "status": 200})
        request.add_related_logs([
            _sql("User Load (1.5ms)  SELECT 1"),
            _cache("CACHE User Load (0.0ms)  SELECT 1"),
            _sql("Post Create (2.5ms)  INSERT INTO posts"),
            Entry.from_data({"message": "Rendered"}, EntryType.OTHER),
        ])
        assert request.query_count == 3
        assert request.cached_query_count == 1
        assert len(request.sql_queries) == 2
        assert len(request.cache_operations) == 1
        assert request.total_query_time == 4.0

    def test_derived_values_refresh_after_append(self):
        request = Request.from_data({"method": "GET", "path": "/", "status": 200})
        assert request.query_count == 0
        request.add_related_log(_sql("User Load (1.0ms)  SELECT 1"))
        assert request.query_count == 1
        assert request.total_query_time == 1.0

    def test_status_helpers(self):
        def make(status):
            return Request.from_data({"method": "GET", "path": "/", "status": status})

        assert make(204).success
        assert make(404).client_error
        assert make(503).server_error
        assert not make(302).success
        assert not make(302).client_error
        assert make("200").success
        assert not make("teapot").success
