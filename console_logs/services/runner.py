"""Command runner: spawns a wrapped command and streams its output into the log store."""

import codecs
import logging
import os
import selectors
import shlex
import signal
import subprocess
import sys
import threading

from console_logs.models import LogSource
from console_logs.services.ingestion import ProcessLogger
from console_logs.services.retention import RetentionService

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

SHELL_INVOCATIONS = {"sh", "bash", "zsh", "/bin/sh", "/bin/bash", "/bin/zsh"}

SHELL_OPERATORS = (
    "&&",
    "||",
    ";",
    "|",
    ">",
    "<",
    "$",
    "`",
    "&",
    "eval ",
    "source ",
    "cd ",
    "export ",
    "set ",
    "unset ",
    "rbenv",
    "bundle",
)

INTERACTIVE_TOOLS = (
    "fastlane",
    "bundle",
    "rake",
    "rails",
    "npm",
    "yarn",
    "pnpm",
    "pod",
    "xcodebuild",
    "vim",
    "nano",
    "emacs",
    "less",
    "more",
    "man",
    "sudo",
    "su",
)

# Nudges common interactive tools into batch mode when no TTY is attached.
NON_INTERACTIVE_ENV = {
    "CI": "true",
    "FASTLANE_DISABLE_COLORS": "true",
    "FASTLANE_SKIP_UPDATE_CHECK": "true",
    "FASTLANE_OPT_OUT_USAGE": "true",
    "BUNDLE_SILENCE_ROOT_WARNING": "1",
}

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_command_string(command: list[str]) -> str:
    """Render argv as one command line. A single argument is taken verbatim."""
    if len(command) == 1:
        return command[0]
    return shlex.join(command)


def is_shell_command(command: list[str]) -> bool:
    """Check for an explicit `sh -c ...` style invocation."""
    return len(command) >= 2 and command[0] in SHELL_INVOCATIONS and command[1] == "-c"


def needs_shell(command_string: str) -> bool:
    """Check whether the command line uses shell syntax."""
    return command_string.startswith(". ") or any(
        op in command_string for op in SHELL_OPERATORS
    )


def might_need_tty(command_string: str) -> bool:
    return any(tool in command_string for tool in INTERACTIVE_TOOLS)


class CommandRunner:
    """Runs one command under a ProcessLogger, echoing its output to the console."""

    def __init__(
        self,
        name: str,
        command: list[str],
        use_shell: bool = False,
        echo: bool = True,
    ):
        self.command = list(command)
        self.command_string = build_command_string(self.command)
        self.use_shell = use_shell
        self.echo = echo
        self.process_logger = ProcessLogger(name)
        self._pending_signals: list[int] = []

    @property
    def direct_shell(self) -> bool:
        return is_shell_command(self.command)

    @property
    def shell_mode(self) -> bool:
        return not self.direct_shell and (
            self.use_shell or needs_shell(self.command_string)
        )

    @property
    def mode(self) -> str | None:
        if self.shell_mode:
            return "shell mode"
        if self.direct_shell:
            return "direct shell"
        return None

    def build_argv(self) -> list[str]:
        if self.shell_mode:
            return [os.environ.get("SHELL", "/bin/sh"), "-c", self.command_string]
        if len(self.command) == 1:
            return shlex.split(self.command[0])
        return list(self.command)

    def build_env(self) -> dict[str, str]:
        env = dict(os.environ)
        if might_need_tty(self.command_string):
            env.update(NON_INTERACTIVE_ENV)
        return env

    def run(self) -> int:
        """Run the command to completion.

        Returns:
            The exit code to report: the child's code, 128 + signal number for
            a signalled child, or 1 when the command could not be spawned
        """
        RetentionService.auto_prune()

        try:
            child = subprocess.Popen(
                self.build_argv(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.build_env(),
            )
        except (OSError, ValueError) as e:
            logger.error(f"Failed to start {self.command_string}: {e}")
            self.process_logger.record_spawn_error(e, self.command_string)
            return 1

        self.process_logger.start(self.command_string, pid=child.pid, mode=self.mode)

        previous_handlers = self._install_signal_handlers()
        try:
            self._pump(child)
            returncode = child.wait()
        except BaseException:
            child.kill()
            child.wait()
            raise
        finally:
            self._restore_signal_handlers(previous_handlers)

        if returncode < 0:
            signal_name = signal.Signals(-returncode).name
            self.process_logger.record_exit(None, signal_name=signal_name)
            return 128 - returncode

        self.process_logger.record_exit(returncode)
        return returncode

    def _pump(self, child: subprocess.Popen) -> None:
        """Forward output chunks until both pipes close.

        Each chunk is echoed first, then committed before the next read.
        """
        streams = {
            LogSource.STDOUT: (child.stdout, sys.stdout),
            LogSource.STDERR: (child.stderr, sys.stderr),
        }
        with selectors.DefaultSelector() as selector:
            for source, (pipe, console) in streams.items():
                decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
                selector.register(pipe, selectors.EVENT_READ, (source, console, decoder))

            while selector.get_map():
                self._handle_pending_signals(child)
                for key, _ in selector.select(timeout=0.2):
                    source, console, decoder = key.data
                    data = os.read(key.fd, CHUNK_SIZE)
                    if data:
                        self._emit(decoder.decode(data), source, console)
                    else:
                        self._emit(decoder.decode(b"", final=True), source, console)
                        selector.unregister(key.fileobj)
                        key.fileobj.close()

            self._handle_pending_signals(child)

    def _emit(self, chunk: str, source: LogSource, console) -> None:
        if not chunk:
            return
        if self.echo:
            console.write(chunk)
            console.flush()
        self.process_logger.record_output(chunk, source)

    def _on_signal(self, signum, frame) -> None:
        # Only queue here: the interrupted frame may be mid-write on the store.
        self._pending_signals.append(signum)

    def _handle_pending_signals(self, child: subprocess.Popen) -> None:
        while self._pending_signals:
            signum = self._pending_signals.pop(0)
            name = signal.Signals(signum).name
            logger.info(f"Received {name}, terminating {self.command_string}")
            self.process_logger.record_signal(name)
            if child.poll() is None:
                child.send_signal(signum)

    def _install_signal_handlers(self) -> dict:
        if threading.current_thread() is not threading.main_thread():
            return {}
        return {sig: signal.signal(sig, self._on_signal) for sig in FORWARDED_SIGNALS}

    def _restore_signal_handlers(self, previous: dict) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
