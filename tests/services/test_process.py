"""Tests for ProcessService."""

import pytest

from console_logs.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from console_logs.models import ProcessStatus
from console_logs.services import ProcessService
from tests.conftest import create_test_process


def test_create_process():
    """Test creating a process starts it running."""
    process = ProcessService.create_process(name="build", command="make all", pid=42)

    assert process.id is not None
    assert process.name == "build"
    assert process.command == "make all"
    assert process.pid == 42
    assert process.status == ProcessStatus.RUNNING
    assert process.start_time.endswith("Z")
    assert process.end_time is None
    assert process.exit_code is None


def test_create_process_requires_name():
    """Test an empty name is rejected."""
    with pytest.raises(ValidationError):
        ProcessService.create_process(name="  ", command="true")


def test_get_process_not_found():
    """Test getting a non-existent process."""
    with pytest.raises(NotFoundError) as exc_info:
        ProcessService.get_process(999)

    assert "Process with id 999 not found" in str(exc_info.value)


def test_get_process_by_name_returns_latest_run():
    """Test name lookups return the most recently started run."""
    create_test_process(name="dev", start_time="2026-01-01T00:00:00.000000Z")
    latest = create_test_process(name="dev", start_time="2026-01-02T00:00:00.000000Z")

    assert ProcessService.get_process_by_name("dev").id == latest.id


def test_get_process_by_name_tie_breaks_on_id():
    """Test runs with equal start times resolve to the later insert."""
    create_test_process(name="dev", start_time="2026-01-01T00:00:00.000000Z")
    second = create_test_process(name="dev", start_time="2026-01-01T00:00:00.000000Z")

    assert ProcessService.get_process_by_name("dev").id == second.id


def test_get_process_by_name_unknown():
    """Test unknown names yield None rather than an error."""
    assert ProcessService.get_process_by_name("nope") is None


def test_list_processes_active_only():
    """Test filtering to running processes."""
    running = create_test_process(name="server")
    done = create_test_process(name="build")
    ProcessService.update_process_status(done.id, ProcessStatus.COMPLETED, exit_code=0)

    all_processes = ProcessService.list_processes()
    active = ProcessService.list_processes(active_only=True)

    assert {p.id for p in all_processes} == {running.id, done.id}
    assert [p.id for p in active] == [running.id]


def test_update_process_status_completed():
    """Test moving a running process to completed."""
    process = create_test_process()

    updated = ProcessService.update_process_status(
        process.id, ProcessStatus.COMPLETED, exit_code=0
    )

    assert updated.status == ProcessStatus.COMPLETED
    assert updated.exit_code == 0
    assert updated.end_time is not None
    assert updated.end_time >= updated.start_time


def test_update_process_status_accepts_string_status():
    """Test status values are accepted by name."""
    process = create_test_process()

    updated = ProcessService.update_process_status(process.id, "failed", exit_code=2)

    assert updated.status == ProcessStatus.FAILED
    assert updated.exit_code == 2


def test_update_process_status_rejects_unknown_status():
    """Test unknown status values are rejected."""
    process = create_test_process()

    with pytest.raises(ValidationError):
        ProcessService.update_process_status(process.id, "paused", exit_code=0)


def test_update_process_status_rejects_running_target():
    """Test a process cannot be moved back to running."""
    process = create_test_process()

    with pytest.raises(InvalidTransitionError):
        ProcessService.update_process_status(process.id, ProcessStatus.RUNNING, exit_code=0)


def test_update_process_status_requires_exit_code():
    """Test terminal states need an exit code."""
    process = create_test_process()

    with pytest.raises(ValidationError):
        ProcessService.update_process_status(process.id, ProcessStatus.COMPLETED)


def test_update_process_status_terminal_is_final():
    """Test terminal states never transition again."""
    process = create_test_process()
    ProcessService.update_process_status(process.id, ProcessStatus.FAILED, exit_code=1)

    with pytest.raises(InvalidTransitionError):
        ProcessService.update_process_status(
            process.id, ProcessStatus.COMPLETED, exit_code=0
        )

    reloaded = ProcessService.get_process(process.id)
    assert reloaded.status == ProcessStatus.FAILED
    assert reloaded.exit_code == 1


def test_update_process_status_not_found():
    """Test updating a non-existent process."""
    with pytest.raises(NotFoundError):
        ProcessService.update_process_status(999, ProcessStatus.COMPLETED, exit_code=0)


def test_create_process_normalizes_start_time():
    """Test caller start times are stored in the fixed-width UTC format."""
    process = create_test_process(start_time="2026-01-01T00:00:00Z")

    assert process.start_time == "2026-01-01T00:00:00.000000Z"
