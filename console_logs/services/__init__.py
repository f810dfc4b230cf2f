"""Business logic services."""

from .git import GitService
from .ingestion import ProcessLogger
from .log_entry import LogEntryService
from .process import ProcessService
from .query import QueryService
from .retention import RetentionService
from .runner import CommandRunner
from .search_index import SearchIndex
from .session_summary import SessionSummaryService

__all__ = [
    "CommandRunner",
    "GitService",
    "LogEntryService",
    "ProcessLogger",
    "ProcessService",
    "QueryService",
    "RetentionService",
    "SearchIndex",
    "SessionSummaryService",
]
