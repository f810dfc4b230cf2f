"""Severity classification for captured output lines."""

import re

from console_logs.models import LogLevel, LogSource

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def classify(line: str, source: LogSource) -> LogLevel:
    """Map one line of output to a log level.

    Rules are checked in order and the first match wins:
    stderr is always an error, then "error"/"fail", "warn" and "debug"
    substrings (case-insensitive), otherwise info.
    """
    if source == LogSource.STDERR:
        return LogLevel.ERROR

    lowered = line.strip().lower()
    if "error" in lowered or "fail" in lowered:
        return LogLevel.ERROR
    if "warn" in lowered:
        return LogLevel.WARN
    if "debug" in lowered:
        return LogLevel.DEBUG
    return LogLevel.INFO


def split_lines(chunk: str) -> list[str]:
    """Split a raw output chunk into trimmed, non-empty lines."""
    return [line.strip() for line in _LINE_BREAK.split(chunk) if line.strip()]
