"""Session summary model for searchable notes about past work sessions."""

import json

from sqlalchemy import Column, String, Text
from sqlmodel import Field, SQLModel

from console_logs.core.timestamps import utc_now


class SessionSummary(SQLModel, table=True):
    """Free-form summary of a work session."""

    __tablename__ = "session_summaries"

    id: int | None = Field(
        default=None,
        primary_key=True,
        description="Unique identifier for the summary",
    )
    title: str = Field(sa_column=Column(String, nullable=False))
    description: str = Field(
        sa_column=Column(Text, nullable=False),
        description="Markdown description of the session",
    )
    tags: str = Field(
        default="[]",
        sa_column=Column(Text, nullable=False),
        description="JSON array of tags",
    )
    timestamp: str = Field(
        default_factory=utc_now,
        sa_column=Column(String, index=True, nullable=False),
    )
    project: str = Field(sa_column=Column(String, index=True, nullable=False))
    llm_model: str | None = Field(
        default=None, sa_column=Column(String, nullable=True)
    )
    files_changed: str = Field(
        default="[]",
        sa_column=Column(Text, nullable=False),
        description="JSON array of file paths",
    )


class SessionSummaryRead(SQLModel):
    """Session summary with its JSON columns decoded."""

    id: int
    title: str
    description: str
    tags: list[str]
    timestamp: str
    project: str
    llm_model: str | None = None
    files_changed: list[str]

    @classmethod
    def from_summary(cls, summary: SessionSummary) -> "SessionSummaryRead":
        return cls(
            id=summary.id,
            title=summary.title,
            description=summary.description,
            tags=json.loads(summary.tags or "[]"),
            timestamp=summary.timestamp,
            project=summary.project,
            llm_model=summary.llm_model,
            files_changed=json.loads(summary.files_changed or "[]"),
        )
