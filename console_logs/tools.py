"""Tool functions exposed to the tool-calling layer.

Each tool is a plain function with JSON-serializable output, paired with a
pydantic model describing its arguments. `call_tool` validates arguments by
name and turns every engine error into a caller-presentable message.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from console_logs.core.errors import (
    IndexDegradedError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from console_logs.core.timestamps import parse_timestamp
from console_logs.services import (
    ProcessService,
    QueryService,
    RetentionService,
    SessionSummaryService,
)

logger = logging.getLogger(__name__)


# --- Argument models ---


class SearchLogsArgs(BaseModel):
    """Search through console logs using full-text search."""

    query: str = Field(description="Search query (supports FTS5 syntax)")
    process: str | None = Field(default=None, description="Filter by process name")
    level: str | None = Field(
        default=None, description="Filter by log level (error, warn, info, debug)"
    )
    since: str | None = Field(
        default=None, description="Only logs after this ISO-8601 timestamp"
    )
    limit: int = Field(default=50, description="Maximum number of results")


class GetRecentErrorsArgs(BaseModel):
    """Get recent error messages from all console logs."""

    hours: float = Field(default=1, description="Number of hours to look back")
    limit: int = Field(default=20, description="Maximum number of results")
    process: str | None = Field(default=None, description="Filter by process name")


class ListProcessesArgs(BaseModel):
    """List all processes that have console logs."""

    active_only: bool = Field(default=False, description="Only running processes")


class TailProcessLogsArgs(BaseModel):
    """Get the latest log entries of a specific process."""

    process: str = Field(description="Process name to tail logs for")
    lines: int = Field(default=20, description="Number of lines to return")
    level: str | None = Field(default=None, description="Filter by log level")


class GetLogSummaryArgs(BaseModel):
    """Get a summary of log activity across all processes."""

    hours: float = Field(default=24, description="Number of hours to summarize")


class PruneOldLogsArgs(BaseModel):
    """Remove old console logs. Session summaries are not affected."""

    max_age_hours: float = Field(
        description="Maximum age of logs to keep in hours (168 = 1 week)"
    )
    dry_run: bool = Field(
        default=False, description="Only report what would be deleted"
    )


class NoArgs(BaseModel):
    pass


class GetLogStatisticsArgs(NoArgs):
    """Get statistics about the log database including size and age."""


class RebuildSearchIndexArgs(NoArgs):
    """Rebuild the full-text search indexes from the stored records."""


class CreateSessionSummaryArgs(BaseModel):
    """Create a session summary that future sessions can search."""

    title: str = Field(description="Title of the session summary")
    description: str = Field(description="Detailed description (markdown)")
    tags: list[str] = Field(default_factory=list, description="Tags for the summary")
    project: str | None = Field(
        default=None, description="Project name (auto-detected when omitted)"
    )
    llm_model: str | None = Field(default=None, description="LLM model used")
    files_changed: list[str] | None = Field(
        default=None, description="Changed files (auto-detected from git when omitted)"
    )
    workspace_root: str | None = Field(
        default=None, description="Workspace root used for auto-detection"
    )


class SearchSessionSummariesArgs(BaseModel):
    """Search through session summaries."""

    query: str = Field(description="Search query")
    project: str | None = Field(default=None, description="Filter by project")
    since: str | None = Field(
        default=None, description="Only summaries after this ISO-8601 timestamp"
    )
    limit: int = Field(default=50, description="Maximum number of results")


class GetSessionSummariesByProjectArgs(BaseModel):
    """Get session summaries for a specific project."""

    project: str = Field(description="Project name")
    limit: int = Field(default=50, description="Maximum number of results")


class GetSessionSummariesByTagsArgs(BaseModel):
    """Get session summaries carrying any of the given tags."""

    tags: list[str] = Field(description="Tags to search for")
    limit: int = Field(default=50, description="Maximum number of results")


class GetRecentSessionSummariesArgs(BaseModel):
    """Get recent session summaries."""

    hours: float = Field(default=24, description="Number of hours to look back")
    limit: int = Field(default=50, description="Maximum number of results")


class ListProjectsArgs(NoArgs):
    """List all projects that have session summaries."""


# --- Tools ---


def search_logs(
    query: str,
    process: str | None = None,
    level: str | None = None,
    since: str | None = None,
    limit: int = 50,
) -> list[dict]:
    entries = QueryService.search_logs(
        query, limit=limit, process_name=process, level=level, since=since
    )
    return [entry.model_dump(mode="json") for entry in entries]


def get_recent_errors(
    hours: float = 1, limit: int = 20, process: str | None = None
) -> list[dict]:
    entries = QueryService.get_recent_errors(hours=hours, limit=limit, process_name=process)
    return [entry.model_dump(mode="json") for entry in entries]


def list_processes(active_only: bool = False) -> list[dict]:
    processes = ProcessService.list_processes(active_only=active_only)
    return [process.model_dump(mode="json") for process in processes]


def tail_process_logs(process: str, lines: int = 20, level: str | None = None) -> list[dict]:
    entries = QueryService.get_process_logs(process, limit=lines, level=level)
    return [entry.model_dump(mode="json") for entry in entries]


def get_log_summary(hours: float = 24) -> dict:
    return QueryService.get_log_summary(hours=hours).to_dict()


def prune_old_logs(max_age_hours: float, dry_run: bool = False) -> dict:
    result = RetentionService.prune_old_logs(max_age_hours, dry_run=dry_run)

    if dry_run:
        return {
            "dry_run": True,
            "max_age_hours": result.max_age_hours,
            "cutoff_time": result.cutoff_time,
            "logs_that_would_be_deleted": result.deleted_logs,
            "processes_that_would_be_deleted": result.deleted_processes,
            "message": (
                f"DRY RUN: Would delete {result.deleted_logs} log entries and "
                f"{result.deleted_processes} orphaned processes older than "
                f"{result.max_age_hours:g} hours"
            ),
        }

    return {
        "max_age_hours": result.max_age_hours,
        "cutoff_time": result.cutoff_time,
        "deleted_logs": result.deleted_logs,
        "deleted_processes": result.deleted_processes,
        "message": (
            f"Successfully deleted {result.deleted_logs} old log entries and "
            f"{result.deleted_processes} orphaned processes"
        ),
    }


def get_log_statistics() -> dict:
    stats = QueryService.get_log_statistics().to_dict()
    stats["disk_usage_mb"] = round(stats["disk_usage_kb"] / 1024, 2)

    age_info = None
    if stats["oldest_log"] and stats["newest_log"]:
        now = datetime.now(UTC)

        def age_hours(timestamp: str) -> int:
            return round((now - parse_timestamp(timestamp)).total_seconds() / 3600)

        age_info = {
            "oldest_log_age_hours": age_hours(stats["oldest_log"]),
            "newest_log_age_hours": age_hours(stats["newest_log"]),
        }
    stats["age_info"] = age_info
    return stats


def rebuild_search_index() -> dict:
    return RetentionService.rebuild_search_index()


def create_session_summary(
    title: str,
    description: str,
    tags: list[str] | None = None,
    project: str | None = None,
    llm_model: str | None = None,
    files_changed: list[str] | None = None,
    workspace_root: str | None = None,
) -> dict:
    summary = SessionSummaryService.create_session_summary(
        title=title,
        description=description,
        tags=tags,
        project=project,
        llm_model=llm_model,
        files_changed=files_changed,
        workspace_root=workspace_root,
    )
    return {
        "id": summary.id,
        "project": summary.project,
        "files_changed": len(summary.files_changed),
        "message": (
            f"Session summary created with ID: {summary.id}\n"
            f"Project: {summary.project}\n"
            f"Files changed: {len(summary.files_changed)} files"
        ),
    }


def search_session_summaries(
    query: str,
    project: str | None = None,
    since: str | None = None,
    limit: int = 50,
) -> list[dict]:
    summaries = SessionSummaryService.search_session_summaries(
        query, limit=limit, project=project, since=since
    )
    return [summary.model_dump(mode="json") for summary in summaries]


def get_session_summaries_by_project(project: str, limit: int = 50) -> list[dict]:
    summaries = SessionSummaryService.get_session_summaries_by_project(project, limit=limit)
    return [summary.model_dump(mode="json") for summary in summaries]


def get_session_summaries_by_tags(tags: list[str], limit: int = 50) -> list[dict]:
    summaries = SessionSummaryService.get_session_summaries_by_tags(tags, limit=limit)
    return [summary.model_dump(mode="json") for summary in summaries]


def get_recent_session_summaries(hours: float = 24, limit: int = 50) -> list[dict]:
    summaries = SessionSummaryService.get_recent_session_summaries(hours=hours, limit=limit)
    return [summary.model_dump(mode="json") for summary in summaries]


def list_projects() -> list[str]:
    return SessionSummaryService.list_projects()


# --- Dispatch ---


@dataclass
class Tool:
    name: str
    args_model: type[BaseModel]
    handler: Callable[..., Any]

    @property
    def description(self) -> str:
        return (self.args_model.__doc__ or "").strip()

    def input_schema(self) -> dict:
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.pop("description", None)
        return schema


TOOLS: dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool("search_logs", SearchLogsArgs, search_logs),
        Tool("get_recent_errors", GetRecentErrorsArgs, get_recent_errors),
        Tool("list_processes", ListProcessesArgs, list_processes),
        Tool("tail_process_logs", TailProcessLogsArgs, tail_process_logs),
        Tool("get_log_summary", GetLogSummaryArgs, get_log_summary),
        Tool("prune_old_logs", PruneOldLogsArgs, prune_old_logs),
        Tool("get_log_statistics", GetLogStatisticsArgs, get_log_statistics),
        Tool("rebuild_search_index", RebuildSearchIndexArgs, rebuild_search_index),
        Tool("create_session_summary", CreateSessionSummaryArgs, create_session_summary),
        Tool(
            "search_session_summaries",
            SearchSessionSummariesArgs,
            search_session_summaries,
        ),
        Tool(
            "get_session_summaries_by_project",
            GetSessionSummariesByProjectArgs,
            get_session_summaries_by_project,
        ),
        Tool(
            "get_session_summaries_by_tags",
            GetSessionSummariesByTagsArgs,
            get_session_summaries_by_tags,
        ),
        Tool(
            "get_recent_session_summaries",
            GetRecentSessionSummariesArgs,
            get_recent_session_summaries,
        ),
        Tool("list_projects", ListProjectsArgs, list_projects),
    )
}


@dataclass
class ToolResult:
    """Outcome of a tool call. Errors carry a message and an error kind."""

    content: Any
    is_error: bool = False
    error_kind: str | None = None


_ERROR_KINDS: tuple[tuple[type[Exception], str], ...] = (
    (ValidationError, "validation"),
    (NotFoundError, "not_found"),
    (IndexDegradedError, "index_degraded"),
    (StorageError, "storage"),
)


def _error(message: str, kind: str) -> ToolResult:
    return ToolResult(content=f"Error: {message}", is_error=True, error_kind=kind)


def call_tool(name: str, arguments: dict | None = None) -> ToolResult:
    """Validate arguments and run a tool by name. Never raises engine errors."""
    tool = TOOLS.get(name)
    if tool is None:
        return _error(f"Unknown tool: {name}", "not_found")

    try:
        args = tool.args_model.model_validate(arguments or {})
    except PydanticValidationError as e:
        return _error(f"Invalid arguments for {name}: {e}", "validation")

    try:
        return ToolResult(content=tool.handler(**args.model_dump()))
    except tuple(error for error, _ in _ERROR_KINDS) as e:
        kind = next(kind for error, kind in _ERROR_KINDS if isinstance(e, error))
        if kind == "storage":
            logger.error(f"Tool {name} failed: {e}")
        else:
            logger.info(f"Tool {name} rejected: {e}")
        return _error(str(e), kind)
