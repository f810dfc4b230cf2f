"""Search index synchronization service.

The FTS5 tables are a derived projection of the primary tables. Every primary
insert indexes its row in the same transaction, inside a SAVEPOINT so that an
index failure never aborts the primary write. Bulk deletes clear and rebuild
the whole projection from the primary tables.
"""

import json
import logging

from sqlalchemy import column, func, select, table, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from console_logs.core.database import LOG_SEARCH_TABLE, SESSION_SEARCH_TABLE
from console_logs.core.errors import IndexDegradedError
from console_logs.models import LogEntry, SessionSummary

logger = logging.getLogger(__name__)

log_search = table(LOG_SEARCH_TABLE, column("rowid"))
session_search = table(SESSION_SEARCH_TABLE, column("rowid"))

_INSERT_LOG = text(
    "INSERT INTO log_search (rowid, message, raw_output, process_name) "
    "VALUES (:rowid, :message, :raw_output, :process_name)"
)
_INSERT_SESSION = text(
    "INSERT INTO session_search (rowid, title, description, tags, project) "
    "VALUES (:rowid, :title, :description, :tags, :project)"
)


def _session_row(summary: SessionSummary) -> dict:
    return {
        "rowid": summary.id,
        "title": summary.title,
        "description": summary.description,
        "tags": " ".join(json.loads(summary.tags or "[]")),
        "project": summary.project,
    }


class SearchIndex:
    """Keeps the full-text projections in step with the primary tables."""

    @staticmethod
    def is_available(session: Session) -> bool:
        """Check that both FTS tables exist."""
        rows = session.execute(
            text(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name IN (:logs, :sessions)"
            ),
            {"logs": LOG_SEARCH_TABLE, "sessions": SESSION_SEARCH_TABLE},
        ).all()
        return len(rows) == 2

    @staticmethod
    def _write(session: Session, statement, params: dict, what: str) -> bool:
        try:
            with session.begin_nested():
                session.execute(statement, params)
        except SQLAlchemyError as e:
            logger.warning(
                f"Search index degraded: failed to index {what}: {e}. "
                "Search results may be incomplete until the index is rebuilt."
            )
            return False
        return True

    @staticmethod
    def index_log_entry(session: Session, entry: LogEntry, process_name: str) -> bool:
        """Index a freshly inserted log entry. Returns False if the index is degraded."""
        return SearchIndex._write(
            session,
            _INSERT_LOG,
            {
                "rowid": entry.id,
                "message": entry.message,
                "raw_output": entry.raw_output,
                "process_name": process_name,
            },
            f"log entry {entry.id}",
        )

    @staticmethod
    def index_session_summary(session: Session, summary: SessionSummary) -> bool:
        """Index a freshly inserted session summary."""
        return SearchIndex._write(
            session,
            _INSERT_SESSION,
            _session_row(summary),
            f"session summary {summary.id}",
        )

    @staticmethod
    def remove_session_summary(session: Session, summary_id: int) -> bool:
        """Drop a single session summary from the index."""
        return SearchIndex._write(
            session,
            text("DELETE FROM session_search WHERE rowid = :rowid"),
            {"rowid": summary_id},
            f"removal of session summary {summary_id}",
        )

    @staticmethod
    def rebuild_log_index(session: Session) -> int:
        """Clear the log index and repopulate it from log_entries.

        Errors propagate so the caller's transaction can roll back.

        Returns:
            Number of indexed log entries

        Raises:
            IndexDegradedError: If the rebuilt index does not cover every entry
        """
        session.execute(text("DELETE FROM log_search"))
        session.execute(
            text(
                """
                INSERT INTO log_search (rowid, message, raw_output, process_name)
                SELECT le.id, le.message, le.raw_output, p.name
                FROM log_entries le
                JOIN processes p ON le.process_id = p.id
                """
            )
        )

        indexed = session.execute(select(func.count()).select_from(log_search)).scalar()
        expected = session.execute(select(func.count()).select_from(LogEntry)).scalar()
        if indexed != expected:
            raise IndexDegradedError(
                f"Log index rebuild incomplete: {indexed} indexed, {expected} entries"
            )

        logger.info(f"Rebuilt log search index ({indexed} entries)")
        return indexed

    @staticmethod
    def rebuild_session_index(session: Session) -> int:
        """Clear the session index and repopulate it from session_summaries."""
        session.execute(text("DELETE FROM session_search"))

        summaries = session.execute(select(SessionSummary)).scalars().all()
        for summary in summaries:
            session.execute(_INSERT_SESSION, _session_row(summary))

        logger.info(f"Rebuilt session search index ({len(summaries)} summaries)")
        return len(summaries)

    @staticmethod
    def matching_log_ids(query: str):
        """Subquery of log entry ids whose indexed text matches an FTS5 query."""
        return select(log_search.c.rowid).where(
            text("log_search MATCH :query").bindparams(query=query)
        )

    @staticmethod
    def matching_session_ids(query: str):
        """Subquery of session summary ids whose indexed text matches an FTS5 query."""
        return select(session_search.c.rowid).where(
            text("session_search MATCH :query").bindparams(query=query)
        )
