"""Database models."""

from .log_entry import LogEntry, LogEntryRead, LogLevel, LogSource
from .process import Process, ProcessStatus
from .session_summary import SessionSummary, SessionSummaryRead

__all__ = [
    "LogEntry",
    "LogEntryRead",
    "LogLevel",
    "LogSource",
    "Process",
    "ProcessStatus",
    "SessionSummary",
    "SessionSummaryRead",
]
