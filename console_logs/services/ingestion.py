"""Ingestion path: turns process lifecycle events and output into log entries."""

import logging
import traceback

from console_logs.core.errors import ValidationError
from console_logs.models import LogEntry, LogLevel, LogSource, Process, ProcessStatus
from console_logs.services.classifier import classify, split_lines
from console_logs.services.log_entry import LogEntryService
from console_logs.services.process import ProcessService

logger = logging.getLogger(__name__)

ABNORMAL_EXIT_CODE = -1

SIGNAL_MESSAGES = {
    "SIGINT": "Process terminated by user (SIGINT)",
    "SIGTERM": "Process terminated (SIGTERM)",
}


class ProcessLogger:
    """Records one wrapped process.

    Every call writes synchronously: it returns only after its entries are
    committed.
    """

    def __init__(self, name: str):
        if not name or not name.strip():
            raise ValidationError("Process name is required")
        self.name = name
        self.process: Process | None = None

    @property
    def process_id(self) -> int | None:
        return self.process.id if self.process else None

    @property
    def is_terminal(self) -> bool:
        return self.process is not None and self.process.status.is_terminal

    def _require_started(self) -> None:
        if self.process is None:
            raise ValidationError(f"Process {self.name} has not started")

    def _add(self, level: LogLevel, message: str, raw_output: str, source: LogSource) -> LogEntry:
        return LogEntryService.add_log_entry(
            process_id=self.process.id,
            level=level,
            message=message.strip(),
            raw_output=raw_output,
            source=source,
        )

    def _finish(self, status: ProcessStatus, exit_code: int) -> None:
        if self.is_terminal:
            logger.debug(
                f"Process {self.name} ({self.process_id}) already "
                f"{self.process.status.value}, ignoring {status.value}"
            )
            return
        self.process = ProcessService.update_process_status(
            self.process.id, status, exit_code=exit_code
        )

    def start(self, command: str, pid: int | None = None, mode: str | None = None) -> Process:
        """Create the process record and log the start notice."""
        if self.process is not None:
            raise ValidationError(f"Process {self.name} already started")

        self.process = ProcessService.create_process(self.name, command, pid=pid)
        message = f"Process started: {command} (PID: {pid})"
        if mode:
            message += f" [{mode}]"
        self._add(LogLevel.INFO, message, message, LogSource.STDOUT)

        logger.info(f"Started logging process {self.name} ({self.process.id})")
        return self.process

    def record_output(self, chunk: str, source: LogSource) -> list[LogEntry]:
        """Classify and store each non-empty line of an output chunk."""
        self._require_started()

        source = LogSource(source)
        return [
            self._add(classify(line, source), line, chunk, source)
            for line in split_lines(chunk)
        ]

    def record_exit(self, exit_code: int | None, signal_name: str | None = None) -> Process:
        """Log the exit notice and move to completed or failed."""
        self._require_started()
        if exit_code is None:
            exit_code = ABNORMAL_EXIT_CODE

        message = f"Process exited with code {exit_code}"
        if signal_name:
            message += f" (signal: {signal_name})"
        level = LogLevel.INFO if exit_code == 0 else LogLevel.ERROR
        self._add(level, message, message, LogSource.STDOUT)

        status = ProcessStatus.COMPLETED if exit_code == 0 else ProcessStatus.FAILED
        self._finish(status, exit_code)
        return self.process

    def record_spawn_error(self, error: BaseException, command: str | None = None) -> Process:
        """Log a failure to launch the command and mark the process failed."""
        if self.process is None:
            self.process = ProcessService.create_process(
                self.name, command or "", pid=None
            )

        message = f"Process error: {error}"
        raw = "".join(traceback.format_exception(error)).strip() or message
        self._add(LogLevel.ERROR, message, raw, LogSource.STDERR)

        self._finish(ProcessStatus.FAILED, ABNORMAL_EXIT_CODE)
        return self.process

    def record_signal(self, signal_name: str) -> Process:
        """Log an external interrupt and mark the process failed."""
        self._require_started()

        message = SIGNAL_MESSAGES.get(signal_name, f"Process terminated ({signal_name})")
        self._add(LogLevel.INFO, message, message, LogSource.STDOUT)

        self._finish(ProcessStatus.FAILED, ABNORMAL_EXIT_CODE)
        return self.process
