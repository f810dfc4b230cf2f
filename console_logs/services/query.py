"""Read-side query service: search, recent errors, tails and aggregates."""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from console_logs.core.config import settings
from console_logs.core.database import get_session
from console_logs.core.errors import IndexDegradedError, ValidationError
from console_logs.core.timestamps import hours_ago, normalize_timestamp
from console_logs.models import LogEntry, LogEntryRead, LogLevel, Process, ProcessStatus
from console_logs.services.log_entry import LogEntryService, check_limit, parse_level
from console_logs.services.search_index import SearchIndex

logger = logging.getLogger(__name__)

# SQLite messages for malformed MATCH expressions
QUERY_ERROR_MARKERS = ("fts5", "syntax error", "no such column", "unterminated string")


@dataclass
class LogSummary:
    """Aggregate activity counts over a time window."""

    total_processes: int
    active_processes: int
    total_entries: int
    recent_entries: int
    recent_errors: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class LogStatistics:
    """Size and age of the log store."""

    total_logs: int
    total_processes: int
    oldest_log: str | None
    newest_log: str | None
    disk_usage_kb: float

    def to_dict(self) -> dict:
        return asdict(self)


def check_hours(hours: float) -> float:
    try:
        value = float(hours)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Hours must be a positive number, got {hours!r}") from e
    if value <= 0:
        raise ValidationError(f"Hours must be a positive number, got {hours!r}")
    return value


def raise_for_fts_error(error: OperationalError, query: str) -> None:
    """Translate SQLite FTS failures into engine errors."""
    message = str(error.orig) if error.orig is not None else str(error)
    if "no such table" in message:
        raise IndexDegradedError(
            "Full-text search index is unavailable; rebuild it to restore search"
        ) from error
    if any(marker in message for marker in QUERY_ERROR_MARKERS):
        raise ValidationError(f"Invalid search query {query!r}: {message}") from error


class QueryService:
    """Service for read-only log queries."""

    @staticmethod
    def search_logs(
        query: str,
        limit: int = 50,
        process_name: str | None = None,
        level: str | LogLevel | None = None,
        since: str | None = None,
    ) -> list[LogEntryRead]:
        """Full-text search over log messages, newest first.

        The query supports FTS5 syntax (AND, OR, NOT, "quoted phrases").

        Raises:
            ValidationError: If the query or a filter is malformed
            IndexDegradedError: If the search index is missing
        """
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        limit = check_limit(limit)
        level = parse_level(level)
        since = normalize_timestamp(since) if since else None

        with get_session() as session:
            statement = (
                select(LogEntry, Process.name)
                .join(Process, LogEntry.process_id == Process.id)
                .where(LogEntry.id.in_(SearchIndex.matching_log_ids(query)))
            )
            if process_name:
                statement = statement.where(Process.name == process_name)
            if level is not None:
                statement = statement.where(LogEntry.level == level)
            if since:
                statement = statement.where(LogEntry.timestamp > since)
            statement = statement.order_by(
                LogEntry.timestamp.desc(), LogEntry.id.desc()
            ).limit(limit)

            try:
                rows = session.execute(statement).all()
            except OperationalError as e:
                raise_for_fts_error(e, query)
                raise

            return [LogEntryRead.from_entry(entry, name) for entry, name in rows]

    @staticmethod
    def get_recent_errors(
        hours: float = 1,
        limit: int = 20,
        process_name: str | None = None,
    ) -> list[LogEntryRead]:
        """Error entries from the last `hours`, newest first. Does not use the index."""
        since = hours_ago(check_hours(hours))
        limit = check_limit(limit)

        with get_session() as session:
            statement = (
                select(LogEntry, Process.name)
                .join(Process, LogEntry.process_id == Process.id)
                .where(LogEntry.level == LogLevel.ERROR)
                .where(LogEntry.timestamp > since)
            )
            if process_name:
                statement = statement.where(Process.name == process_name)
            statement = statement.order_by(
                LogEntry.timestamp.desc(), LogEntry.id.desc()
            ).limit(limit)

            rows = session.execute(statement).all()
            return [LogEntryRead.from_entry(entry, name) for entry, name in rows]

    @staticmethod
    def get_process_logs(
        process_name: str,
        limit: int = 20,
        level: str | LogLevel | None = None,
    ) -> list[LogEntryRead]:
        """Tail a named process."""
        return LogEntryService.get_process_logs(process_name, limit=limit, level=level)

    @staticmethod
    def get_log_summary(hours: float = 24) -> LogSummary:
        """Aggregate counts, each computed as its own scan."""
        since = hours_ago(check_hours(hours))

        with get_session() as session:

            def count(statement) -> int:
                return session.execute(statement).scalar() or 0

            return LogSummary(
                total_processes=count(select(func.count()).select_from(Process)),
                active_processes=count(
                    select(func.count())
                    .select_from(Process)
                    .where(Process.status == ProcessStatus.RUNNING)
                ),
                total_entries=count(select(func.count()).select_from(LogEntry)),
                recent_entries=count(
                    select(func.count())
                    .select_from(LogEntry)
                    .where(LogEntry.timestamp > since)
                ),
                recent_errors=count(
                    select(func.count())
                    .select_from(LogEntry)
                    .where(LogEntry.level == LogLevel.ERROR)
                    .where(LogEntry.timestamp > since)
                ),
            )

    @staticmethod
    def get_log_statistics() -> LogStatistics:
        """Totals, oldest/newest entry and on-disk size of the store."""
        with get_session() as session:
            total_logs, oldest, newest = session.execute(
                select(
                    func.count(LogEntry.id),
                    func.min(LogEntry.timestamp),
                    func.max(LogEntry.timestamp),
                )
            ).one()
            total_processes = session.execute(
                select(func.count()).select_from(Process)
            ).scalar()

        db_path = settings.database_path
        size_bytes = 0
        for suffix in ("", "-wal", "-shm"):
            candidate = db_path.with_name(db_path.name + suffix)
            if candidate.exists():
                size_bytes += candidate.stat().st_size

        return LogStatistics(
            total_logs=total_logs or 0,
            total_processes=total_processes or 0,
            oldest_log=oldest,
            newest_log=newest,
            disk_usage_kb=round(size_bytes / 1024, 2),
        )
