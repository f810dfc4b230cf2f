"""Tests for CommandRunner."""

import signal
import sys

import pytest

from console_logs.models import LogLevel, LogSource, ProcessStatus
from console_logs.services import LogEntryService, ProcessService
from console_logs.services.runner import (
    NON_INTERACTIVE_ENV,
    CommandRunner,
    build_command_string,
    is_shell_command,
    might_need_tty,
    needs_shell,
)


def python_command(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def logs_for(name: str):
    return list(reversed(LogEntryService.get_process_logs(name)))


@pytest.fixture(autouse=True)
def no_auto_prune(mocker):
    """Keep runner tests independent of retention."""
    mocker.patch("console_logs.services.runner.RetentionService.auto_prune")


def test_build_command_string():
    """Test argv is rendered as one quoted command line."""
    assert build_command_string(["echo", "hello world"]) == "echo 'hello world'"
    assert build_command_string(["npm run dev && echo ok"]) == "npm run dev && echo ok"


@pytest.mark.parametrize(
    "command,expected",
    [
        ("make build", False),
        ("make && make install", True),
        ("cat log | grep error", True),
        ("echo $HOME", True),
        (". ./env.sh", True),
        ("cd app", True),
        ("python script.py", False),
    ],
)
def test_needs_shell(command, expected):
    """Test shell syntax detection."""
    assert needs_shell(command) is expected


def test_is_shell_command():
    """Test explicit shell invocations are recognized."""
    assert is_shell_command(["bash", "-c", "echo hi"]) is True
    assert is_shell_command(["bash", "script.sh"]) is False
    assert is_shell_command(["echo", "-c"]) is False


def test_might_need_tty():
    """Test interactive tool detection."""
    assert might_need_tty("bundle exec fastlane beta") is True
    assert might_need_tty("make") is False


def test_mode_selection():
    """Test shell mode, direct shell and plain execution."""
    assert CommandRunner("a", ["ls", "-la"]).mode is None
    assert CommandRunner("b", ["ls | wc -l"]).mode == "shell mode"
    assert CommandRunner("c", ["ls"], use_shell=True).mode == "shell mode"
    assert CommandRunner("d", ["sh", "-c", "ls | wc -l"]).mode == "direct shell"


def test_build_argv(monkeypatch):
    """Test argv for shell and direct modes."""
    monkeypatch.setenv("SHELL", "/bin/bash")

    assert CommandRunner("a", ["ls | wc -l"]).build_argv() == [
        "/bin/bash",
        "-c",
        "ls | wc -l",
    ]
    assert CommandRunner("b", ["ls -la /tmp"]).build_argv() == ["ls", "-la", "/tmp"]
    assert CommandRunner("c", ["ls", "-la"]).build_argv() == ["ls", "-la"]


def test_build_env_for_interactive_tools(monkeypatch):
    """Test batch-mode variables are added for interactive tools only."""
    for key in NON_INTERACTIVE_ENV:
        monkeypatch.delenv(key, raising=False)

    env = CommandRunner("a", ["bundle", "install"]).build_env()
    assert all(env[key] == value for key, value in NON_INTERACTIVE_ENV.items())

    plain = CommandRunner("b", ["make"]).build_env()
    assert not set(NON_INTERACTIVE_ENV) & set(plain)


def test_run_captures_stdout_and_stderr(capsys):
    """Test both streams are echoed and stored."""
    runner = CommandRunner(
        "script",
        python_command(
            "import sys\n"
            "print('Build succeeded')\n"
            "print('disk almost full', file=sys.stderr)"
        ),
    )

    assert runner.run() == 0

    captured = capsys.readouterr()
    assert "Build succeeded" in captured.out
    assert "disk almost full" in captured.err

    logs = logs_for("script")
    assert logs[0].message.startswith("Process started: ")
    by_message = {log.message: log for log in logs}
    assert by_message["Build succeeded"].level == LogLevel.INFO
    assert by_message["Build succeeded"].source == LogSource.STDOUT
    assert by_message["disk almost full"].level == LogLevel.ERROR
    assert by_message["disk almost full"].source == LogSource.STDERR
    assert logs[-1].message == "Process exited with code 0"

    process = ProcessService.get_process_by_name("script")
    assert process.status == ProcessStatus.COMPLETED
    assert process.exit_code == 0
    assert process.pid is not None


def test_run_returns_child_exit_code():
    """Test a failing child fails the process with its code."""
    runner = CommandRunner("failing", python_command("raise SystemExit(3)"), echo=False)

    assert runner.run() == 3

    process = ProcessService.get_process_by_name("failing")
    assert process.status == ProcessStatus.FAILED
    assert process.exit_code == 3


def test_run_shell_mode(monkeypatch):
    """Test shell syntax runs through the shell."""
    monkeypatch.setenv("SHELL", "/bin/sh")
    runner = CommandRunner("piped", ["echo first && echo second"], echo=False)

    assert runner.run() == 0

    messages = [log.message for log in logs_for("piped")]
    assert messages[0] == "Process started: echo first && echo second " + (
        f"(PID: {ProcessService.get_process_by_name('piped').pid}) [shell mode]"
    )
    assert messages[1:3] == ["first", "second"]


def test_run_spawn_error():
    """Test a missing executable is recorded as a failed process."""
    runner = CommandRunner("ghost", ["definitely-not-a-real-command-xyz"], echo=False)

    assert runner.run() == 1

    process = ProcessService.get_process_by_name("ghost")
    assert process.status == ProcessStatus.FAILED
    assert process.exit_code == -1
    assert logs_for("ghost")[0].message.startswith("Process error: ")


def test_run_signalled_child():
    """Test a child killed by a signal is reported as 128 + signal."""
    runner = CommandRunner(
        "killed",
        python_command("import os, signal\nos.kill(os.getpid(), signal.SIGTERM)"),
        echo=False,
    )

    assert runner.run() == 128 + signal.SIGTERM

    process = ProcessService.get_process_by_name("killed")
    assert process.status == ProcessStatus.FAILED
    assert process.exit_code == -1
    assert logs_for("killed")[-1].message == (
        "Process exited with code -1 (signal: SIGTERM)"
    )


def test_pending_signal_is_recorded_and_forwarded(mocker):
    """Test a queued signal is logged and passed on to the child."""
    runner = CommandRunner("server", python_command("pass"), echo=False)
    runner.process_logger.start("serve", pid=1)
    child = mocker.Mock()
    child.poll.return_value = None

    runner._on_signal(signal.SIGINT, None)
    runner._handle_pending_signals(child)

    child.send_signal.assert_called_once_with(signal.SIGINT)
    assert logs_for("server")[-1].message == "Process terminated by user (SIGINT)"
    assert ProcessService.get_process_by_name("server").status == ProcessStatus.FAILED


def test_run_auto_prunes_first():
    """Test every run applies retention before spawning."""
    from console_logs.services.runner import RetentionService

    runner = CommandRunner("quick", python_command("pass"), echo=False)
    runner.run()

    RetentionService.auto_prune.assert_called_once()
