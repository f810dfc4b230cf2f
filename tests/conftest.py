"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient

from console_logs.core.config import settings
from console_logs.core.database import close_db, create_tables
from console_logs.core.timestamps import hours_ago
from console_logs.main import app
from console_logs.models import LogEntry, LogLevel, LogSource, Process
from console_logs.services import LogEntryService, ProcessService

# Set test environment
os.environ["APP_ENV"] = "test"


def create_test_process(
    name: str = "test-process",
    command: str = "echo test",
    pid: int | None = 1234,
    start_time: str | None = None,
) -> Process:
    """Helper function to create a running test process."""
    return ProcessService.create_process(
        name=name, command=command, pid=pid, start_time=start_time
    )


def add_test_log(
    process: Process,
    message: str,
    level: LogLevel = LogLevel.INFO,
    source: LogSource = LogSource.STDOUT,
    age_hours: float | None = None,
) -> LogEntry:
    """Helper function to add a log entry, optionally backdated by `age_hours`."""
    return LogEntryService.add_log_entry(
        process_id=process.id,
        level=level,
        message=message,
        raw_output=message,
        source=source,
        timestamp=hours_ago(age_hours) if age_hours is not None else None,
    )


@pytest.fixture(autouse=True, scope="function")
def clean_db(tmp_path, monkeypatch):
    """Point the store at a fresh database file for each test."""
    close_db()
    monkeypatch.setattr(settings, "env", "test")
    monkeypatch.setattr(settings, "log_dir", str(tmp_path))

    create_tables()

    yield

    # Close DB connections
    close_db()


@pytest.fixture(scope="function")
def test_client():
    """Create a test client."""
    with TestClient(app) as client:
        yield client
