"""Retention service: pruning aged logs and rebuilding the search index."""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import delete, func, text
from sqlmodel import select

from console_logs.core.config import settings
from console_logs.core.database import FTS_TABLES, get_session
from console_logs.core.errors import IndexDegradedError, StorageError, ValidationError
from console_logs.core.timestamps import hours_ago
from console_logs.models import LogEntry, Process
from console_logs.services.search_index import SearchIndex

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    """Outcome of a prune, or of a dry run predicting one."""

    max_age_hours: float
    cutoff_time: str
    deleted_logs: int
    deleted_processes: int
    dry_run: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def check_max_age(max_age_hours) -> float:
    if max_age_hours is None:
        raise ValidationError("max_age_hours is required")
    try:
        value = float(max_age_hours)
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"max_age_hours must be a number, got {max_age_hours!r}"
        ) from e
    if value <= 0:
        raise ValidationError(f"max_age_hours must be positive, got {max_age_hours!r}")
    return value


def _has_logs_since(cutoff: str | None = None):
    """Correlated EXISTS over a process's log entries, optionally at/after cutoff."""
    statement = select(LogEntry.id).where(LogEntry.process_id == Process.id)
    if cutoff is not None:
        statement = statement.where(LogEntry.timestamp >= cutoff)
    return statement.exists()


class RetentionService:
    """Service for log retention."""

    @staticmethod
    def prune_old_logs(max_age_hours: float, dry_run: bool = False) -> PruneResult:
        """Delete log entries older than `max_age_hours` and the processes left empty.

        The delete, the log index rebuild and the orphan cleanup run in one
        transaction; any failure leaves the store untouched. A dry run only
        counts what a real prune would delete.

        Raises:
            ValidationError: If max_age_hours is missing or not positive
            StorageError: If the transaction fails
        """
        max_age_hours = check_max_age(max_age_hours)
        cutoff = hours_ago(max_age_hours)

        if dry_run:
            with get_session() as session:
                logs = session.execute(
                    select(func.count())
                    .select_from(LogEntry)
                    .where(LogEntry.timestamp < cutoff)
                ).scalar()
                processes = session.execute(
                    select(func.count())
                    .select_from(Process)
                    .where(~_has_logs_since(cutoff))
                ).scalar()

            return PruneResult(
                max_age_hours=max_age_hours,
                cutoff_time=cutoff,
                deleted_logs=logs or 0,
                deleted_processes=processes or 0,
                dry_run=True,
            )

        with get_session() as session:
            deleted_logs = session.execute(
                delete(LogEntry)
                .where(LogEntry.timestamp < cutoff)
                .execution_options(synchronize_session=False)
            ).rowcount

            SearchIndex.rebuild_log_index(session)

            deleted_processes = session.execute(
                delete(Process)
                .where(~_has_logs_since())
                .execution_options(synchronize_session=False)
            ).rowcount

            session.commit()

        logger.info(
            f"Pruned {deleted_logs} log entries and {deleted_processes} "
            f"orphaned processes older than {cutoff}"
        )
        return PruneResult(
            max_age_hours=max_age_hours,
            cutoff_time=cutoff,
            deleted_logs=deleted_logs,
            deleted_processes=deleted_processes,
        )

    @staticmethod
    def rebuild_search_index() -> dict[str, int]:
        """Recreate (if missing) and repopulate both search indexes."""
        with get_session() as session:
            for ddl in FTS_TABLES.values():
                session.execute(text(ddl))
            counts = {
                "log_entries": SearchIndex.rebuild_log_index(session),
                "session_summaries": SearchIndex.rebuild_session_index(session),
            }
            session.commit()
            return counts

    @staticmethod
    def auto_prune() -> PruneResult | None:
        """Apply the configured maximum age once. Failures are logged, not raised."""
        try:
            result = RetentionService.prune_old_logs(settings.max_age_hours)
        except (StorageError, IndexDegradedError, ValidationError) as e:
            logger.warning(f"Failed to auto-prune logs: {e}")
            return None

        if result.deleted_logs or result.deleted_processes:
            source = "configured" if settings.max_age_from_env else "default"
            logger.info(
                f"Auto-pruned {result.deleted_logs} old log entries and "
                f"{result.deleted_processes} orphaned processes "
                f"(older than {source} {result.max_age_hours:g}h)"
            )
        return result
