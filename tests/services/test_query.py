"""Tests for QueryService."""

import pytest

from console_logs.core.errors import ValidationError
from console_logs.core.timestamps import hours_ago
from console_logs.models import LogLevel, LogSource, ProcessStatus
from console_logs.services import ProcessLogger, ProcessService, QueryService
from tests.conftest import add_test_log, create_test_process


def run_build():
    """Record a build that prints a success line, an error and exits 1."""
    process_logger = ProcessLogger("build")
    process_logger.start("make", pid=100)
    process_logger.record_output("Build succeeded\n", LogSource.STDOUT)
    process_logger.record_output("Error: connection failed\n", LogSource.STDOUT)
    process_logger.record_exit(1)
    return process_logger.process


def test_build_scenario_entries_and_status():
    """Test a recorded build yields start, output and exit entries."""
    process = run_build()

    logs = QueryService.get_process_logs("build")

    assert [(log.level, log.message) for log in reversed(logs)] == [
        (LogLevel.INFO, "Process started: make (PID: 100)"),
        (LogLevel.INFO, "Build succeeded"),
        (LogLevel.ERROR, "Error: connection failed"),
        (LogLevel.ERROR, "Process exited with code 1"),
    ]
    stored = ProcessService.get_process(process.id)
    assert stored.status == ProcessStatus.FAILED
    assert stored.exit_code == 1


def test_search_logs_finds_message():
    """Test full-text search returns the matching line."""
    run_build()

    results = QueryService.search_logs("connection")

    assert [r.message for r in results] == ["Error: connection failed"]
    assert results[0].process_name == "build"
    assert results[0].level == LogLevel.ERROR


def test_search_logs_matches_process_name():
    """Test the indexed process name is searchable."""
    run_build()

    results = QueryService.search_logs("build")

    # Every line of the run carries the process name
    assert len(results) == 4


def test_search_logs_fts_syntax():
    """Test boolean operators and phrases."""
    process = create_test_process(name="api")
    add_test_log(process, "connection refused by upstream")
    add_test_log(process, "connection established")
    add_test_log(process, "upstream timeout")

    assert len(QueryService.search_logs("connection AND upstream")) == 1
    assert len(QueryService.search_logs("connection OR timeout")) == 3
    assert len(QueryService.search_logs('"connection established"')) == 1
    assert len(QueryService.search_logs("connection NOT refused")) == 1


def test_search_logs_filters():
    """Test process, level and since filters narrow the results."""
    api = create_test_process(name="api")
    worker = create_test_process(name="worker")
    add_test_log(api, "timeout talking to db", level=LogLevel.ERROR, age_hours=3)
    add_test_log(api, "timeout retry", level=LogLevel.WARN)
    add_test_log(worker, "timeout in job", level=LogLevel.ERROR)

    assert len(QueryService.search_logs("timeout")) == 3
    assert len(QueryService.search_logs("timeout", process_name="api")) == 2
    assert len(QueryService.search_logs("timeout", level="error")) == 2
    assert len(QueryService.search_logs("timeout", since=hours_ago(1))) == 2
    assert (
        len(
            QueryService.search_logs(
                "timeout", process_name="api", level=LogLevel.ERROR
            )
        )
        == 1
    )


def test_search_logs_newest_first_and_limit():
    """Test results are ordered newest first and limited."""
    process = create_test_process(name="api")
    entries = [add_test_log(process, f"request {i}", age_hours=5 - i) for i in range(5)]

    results = QueryService.search_logs("request", limit=2)

    assert [r.id for r in results] == [entries[4].id, entries[3].id]


@pytest.mark.parametrize("query", ["", "   "])
def test_search_logs_requires_query(query):
    """Test empty queries are rejected."""
    with pytest.raises(ValidationError):
        QueryService.search_logs(query)


def test_search_logs_malformed_query():
    """Test FTS syntax errors surface as validation errors."""
    process = create_test_process(name="api")
    add_test_log(process, "anything")

    with pytest.raises(ValidationError) as exc_info:
        QueryService.search_logs('"unterminated')

    assert "Invalid search query" in str(exc_info.value)


def test_search_logs_invalid_since():
    """Test unparsable since values are rejected."""
    with pytest.raises(ValidationError):
        QueryService.search_logs("anything", since="last tuesday")


def test_get_recent_errors():
    """Test recent errors skip old and non-error entries."""
    run_build()
    old = create_test_process(name="old")
    add_test_log(old, "ancient failure", level=LogLevel.ERROR, age_hours=5)

    errors = QueryService.get_recent_errors(hours=1)

    assert [e.message for e in errors] == [
        "Process exited with code 1",
        "Error: connection failed",
    ]
    assert len(QueryService.get_recent_errors(hours=6)) == 3
    assert QueryService.get_recent_errors(hours=6, process_name="old")[0].message == (
        "ancient failure"
    )


def test_get_recent_errors_rejects_bad_hours():
    """Test non-positive windows are rejected."""
    with pytest.raises(ValidationError):
        QueryService.get_recent_errors(hours=0)


def test_get_process_logs_defaults_to_twenty():
    """Test tails default to the latest twenty lines."""
    process = create_test_process(name="chatty")
    for i in range(25):
        add_test_log(process, f"line {i}")

    logs = QueryService.get_process_logs("chatty")

    assert len(logs) == 20
    assert logs[0].message == "line 24"


def test_get_log_summary():
    """Test summary counts over the window."""
    run_build()
    server = create_test_process(name="server")
    add_test_log(server, "old noise", age_hours=48)

    summary = QueryService.get_log_summary(hours=24)

    assert summary.total_processes == 2
    assert summary.active_processes == 1
    assert summary.total_entries == 5
    assert summary.recent_entries == 4
    assert summary.recent_errors == 2


def test_get_log_summary_empty_store():
    """Test summary of an empty store is all zeros."""
    assert QueryService.get_log_summary().to_dict() == {
        "total_processes": 0,
        "active_processes": 0,
        "total_entries": 0,
        "recent_entries": 0,
        "recent_errors": 0,
    }


def test_get_log_statistics():
    """Test statistics report totals, age bounds and disk usage."""
    process = create_test_process(name="api")
    oldest = add_test_log(process, "first", age_hours=10)
    newest = add_test_log(process, "second")

    stats = QueryService.get_log_statistics()

    assert stats.total_logs == 2
    assert stats.total_processes == 1
    assert stats.oldest_log == oldest.timestamp
    assert stats.newest_log == newest.timestamp
    assert stats.disk_usage_kb > 0


def test_get_log_statistics_empty_store():
    """Test an empty store has no age bounds."""
    stats = QueryService.get_log_statistics()

    assert stats.total_logs == 0
    assert stats.oldest_log is None
    assert stats.newest_log is None


def test_search_logs_batched_chunk_matches_siblings():
    """Test lines delivered in one chunk all match through their shared raw output."""
    process_logger = ProcessLogger("build")
    process_logger.start("make", pid=100)
    process_logger.record_output(
        "Build succeeded\nError: connection failed\n", LogSource.STDOUT
    )

    results = QueryService.search_logs("connection")

    assert sorted(r.message for r in results) == [
        "Build succeeded",
        "Error: connection failed",
    ]
    assert all("connection" in r.raw_output for r in results)


def test_get_process_logs_accepts_level_enum():
    """Test level filters accept LogLevel members as well as strings."""
    run_build()

    by_enum = QueryService.get_process_logs("build", level=LogLevel.ERROR)
    by_name = QueryService.get_process_logs("build", level="ERROR")

    assert [log.id for log in by_enum] == [log.id for log in by_name]
    assert [log.message for log in by_enum] == [
        "Process exited with code 1",
        "Error: connection failed",
    ]


@pytest.mark.parametrize("hours", ["soon", None, [1]])
def test_get_recent_errors_rejects_non_numeric_hours(hours):
    """Test non-numeric windows are validation errors."""
    with pytest.raises(ValidationError):
        QueryService.get_recent_errors(hours=hours)
