"""Log entry service: primary writes and per-process reads."""

import logging

from sqlmodel import select

from console_logs.core.database import get_session
from console_logs.core.errors import NotFoundError, ValidationError
from console_logs.core.timestamps import normalize_timestamp, utc_now
from console_logs.models import LogEntry, LogEntryRead, LogLevel, LogSource, Process
from console_logs.services.search_index import SearchIndex

logger = logging.getLogger(__name__)


def parse_level(level: str | LogLevel | None) -> LogLevel | None:
    """Coerce an optional level filter, rejecting unknown values."""
    if level is None or level == "":
        return None
    if isinstance(level, LogLevel):
        return level
    try:
        return LogLevel(str(level).lower())
    except ValueError as e:
        allowed = ", ".join(member.value for member in LogLevel)
        raise ValidationError(f"Invalid level {level!r}, expected one of: {allowed}") from e


def check_limit(limit: int) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Limit must be a positive integer, got {limit!r}") from e
    if value < 1:
        raise ValidationError(f"Limit must be a positive integer, got {limit!r}")
    return value


class LogEntryService:
    """Service for log entries."""

    @staticmethod
    def add_log_entry(
        process_id: int,
        level: LogLevel,
        message: str,
        raw_output: str,
        source: LogSource,
        timestamp: str | None = None,
    ) -> LogEntry:
        """Store a log entry and index it in the same transaction.

        A failure to index only degrades search; the entry is still committed.

        Raises:
            NotFoundError: If the process does not exist
            ValidationError: If the timestamp is not ISO-8601
        """
        timestamp = normalize_timestamp(timestamp) if timestamp else utc_now()

        with get_session() as session:
            process = session.get(Process, process_id)
            if process is None:
                raise NotFoundError(f"Process with id {process_id} not found")

            entry = LogEntry(
                process_id=process_id,
                timestamp=timestamp,
                level=LogLevel(level),
                message=message,
                raw_output=raw_output,
                source=LogSource(source),
            )
            session.add(entry)
            session.flush()

            SearchIndex.index_log_entry(session, entry, process.name)

            session.commit()
            session.refresh(entry)
            return entry

    @staticmethod
    def get_process_logs(
        process_name: str,
        limit: int = 100,
        level: str | LogLevel | None = None,
    ) -> list[LogEntryRead]:
        """Get the newest entries across every run of a named process.

        An unknown name yields an empty list.
        """
        limit = check_limit(limit)
        level = parse_level(level)

        with get_session() as session:
            statement = (
                select(LogEntry, Process.name)
                .join(Process, LogEntry.process_id == Process.id)
                .where(Process.name == process_name)
            )
            if level is not None:
                statement = statement.where(LogEntry.level == level)
            statement = statement.order_by(
                LogEntry.timestamp.desc(), LogEntry.id.desc()
            ).limit(limit)

            rows = session.execute(statement).all()
            return [LogEntryRead.from_entry(entry, name) for entry, name in rows]
