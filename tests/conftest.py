import json
import os

import pytest

from logbench.correlation import CorrelationTable
from logbench.parser import LineParser

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")


def json_line(**fields) -> str:
    return json.dumps(fields)


def request_line(request_id="req-1", method="GET", path="/users", status=200,
                 duration=45.2, timestamp="2025-01-01T10:00:00Z", **extra) -> str:
    return json_line(
        timestamp=timestamp, method=method, path=path, status=status,
        duration=duration, request_id=request_id, **extra,
    )


def message_line(message, request_id=None, timestamp="2025-01-01T10:00:00Z", **extra) -> str:
    fields = {"timestamp": timestamp, "message": message}
    if request_id is not None:
        fields["request_id"] = request_id
    fields.update(extra)
    return json.dumps(fields)


def job_line(message, job_class, job_id, timestamp="2025-01-01T10:00:01Z") -> str:
    return message_line(message, timestamp=timestamp, tags=["ActiveJob", job_class, job_id])


@pytest.fixture
def correlation():
    return CorrelationTable()


@pytest.fixture
def parser(correlation):
    return LineParser(correlation)


@pytest.fixture
def semantic_parser():
    return LineParser(CorrelationTable(), logger_type="semantic_logger")


@pytest.fixture
def lograge_log():
    return os.path.join(FIXTURES_DIR, "lograge.log")


@pytest.fixture
def semantic_log():
    return os.path.join(FIXTURES_DIR, "semantic.log")
