"""Session summary service."""

import json
import logging

from sqlalchemy import or_
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from console_logs.core.database import get_session
from console_logs.core.errors import NotFoundError, ValidationError
from console_logs.core.timestamps import hours_ago, normalize_timestamp, utc_now
from console_logs.models import SessionSummary, SessionSummaryRead
from console_logs.services.git import GitService
from console_logs.services.log_entry import check_limit
from console_logs.services.query import check_hours, raise_for_fts_error
from console_logs.services.search_index import SearchIndex

logger = logging.getLogger(__name__)


class SessionSummaryService:
    """Service for session summaries."""

    @staticmethod
    def create_session_summary(
        title: str,
        description: str,
        tags: list[str] | None = None,
        project: str | None = None,
        llm_model: str | None = None,
        files_changed: list[str] | None = None,
        workspace_root: str | None = None,
    ) -> SessionSummaryRead:
        """Store a session summary, detecting project and files from git when omitted."""
        if not title or not title.strip():
            raise ValidationError("Title is required")
        if not description or not description.strip():
            raise ValidationError("Description is required")

        if project is None or files_changed is None:
            git_info = GitService.get_git_info(workspace_root)
            project = project or git_info.project_name
            files_changed = (
                files_changed if files_changed is not None else git_info.changed_files
            )

        with get_session() as session:
            summary = SessionSummary(
                title=title,
                description=description,
                tags=json.dumps(tags or []),
                timestamp=utc_now(),
                project=project,
                llm_model=llm_model,
                files_changed=json.dumps(files_changed),
            )
            session.add(summary)
            session.flush()

            SearchIndex.index_session_summary(session, summary)

            session.commit()
            session.refresh(summary)

            logger.info(f"Created session summary {summary.id} for project {project}")
            return SessionSummaryRead.from_summary(summary)

    @staticmethod
    def search_session_summaries(
        query: str,
        limit: int = 50,
        project: str | None = None,
        since: str | None = None,
    ) -> list[SessionSummaryRead]:
        """Full-text search over titles, descriptions, tags and projects."""
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        limit = check_limit(limit)
        since = normalize_timestamp(since) if since else None

        with get_session() as session:
            statement = select(SessionSummary).where(
                SessionSummary.id.in_(SearchIndex.matching_session_ids(query))
            )
            if project:
                statement = statement.where(SessionSummary.project == project)
            if since:
                statement = statement.where(SessionSummary.timestamp > since)
            statement = statement.order_by(
                SessionSummary.timestamp.desc(), SessionSummary.id.desc()
            ).limit(limit)

            try:
                summaries = session.execute(statement).scalars().all()
            except OperationalError as e:
                raise_for_fts_error(e, query)
                raise

            return [SessionSummaryRead.from_summary(s) for s in summaries]

    @staticmethod
    def get_session_summaries_by_project(
        project: str, limit: int = 50
    ) -> list[SessionSummaryRead]:
        limit = check_limit(limit)
        with get_session() as session:
            statement = (
                select(SessionSummary)
                .where(SessionSummary.project == project)
                .order_by(SessionSummary.timestamp.desc(), SessionSummary.id.desc())
                .limit(limit)
            )
            summaries = session.execute(statement).scalars().all()
            return [SessionSummaryRead.from_summary(s) for s in summaries]

    @staticmethod
    def get_session_summaries_by_tags(
        tags: list[str], limit: int = 50
    ) -> list[SessionSummaryRead]:
        """Summaries carrying any of the given tags."""
        if not tags:
            raise ValidationError("At least one tag is required")
        limit = check_limit(limit)

        with get_session() as session:
            # Tags are stored as a JSON array, so match the quoted value.
            statement = (
                select(SessionSummary)
                .where(
                    or_(
                        *(
                            SessionSummary.tags.contains(json.dumps(tag), autoescape=True)
                            for tag in tags
                        )
                    )
                )
                .order_by(SessionSummary.timestamp.desc(), SessionSummary.id.desc())
                .limit(limit)
            )
            summaries = session.execute(statement).scalars().all()
            return [SessionSummaryRead.from_summary(s) for s in summaries]

    @staticmethod
    def get_recent_session_summaries(
        hours: float = 24, limit: int = 50
    ) -> list[SessionSummaryRead]:
        since = hours_ago(check_hours(hours))
        limit = check_limit(limit)

        with get_session() as session:
            statement = (
                select(SessionSummary)
                .where(SessionSummary.timestamp > since)
                .order_by(SessionSummary.timestamp.desc(), SessionSummary.id.desc())
                .limit(limit)
            )
            summaries = session.execute(statement).scalars().all()
            return [SessionSummaryRead.from_summary(s) for s in summaries]

    @staticmethod
    def list_projects() -> list[str]:
        with get_session() as session:
            statement = (
                select(SessionSummary.project)
                .distinct()
                .order_by(SessionSummary.project)
            )
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def delete_session_summary(summary_id: int) -> None:
        """Delete one summary and its index row.

        Raises:
            NotFoundError: If summary not found
        """
        with get_session() as session:
            summary = session.get(SessionSummary, summary_id)
            if summary is None:
                raise NotFoundError(f"Session summary with id {summary_id} not found")

            session.delete(summary)
            session.flush()
            SearchIndex.remove_session_summary(session, summary_id)
            session.commit()
