"""Process model for wrapped command executions."""

from enum import Enum

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

from console_logs.core.timestamps import utc_now


class ProcessStatus(str, Enum):
    """Lifecycle of a wrapped process: running, then exactly one terminal state."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ProcessStatus.RUNNING

    def can_transition_to(self, other: "ProcessStatus") -> bool:
        # Terminal states are final; running may only move to a terminal state.
        return self is ProcessStatus.RUNNING and other.is_terminal


class Process(SQLModel, table=True):
    """One row per wrapped execution."""

    __tablename__ = "processes"

    id: int | None = Field(
        default=None,
        primary_key=True,
        description="Unique identifier for the process",
    )
    name: str = Field(
        sa_column=Column(String, index=True, nullable=False),
        description="Caller-supplied label, not unique across runs",
    )
    command: str = Field(
        sa_column=Column(Text, nullable=False),
        description="Literal command line that was executed",
    )
    start_time: str = Field(
        default_factory=utc_now,
        sa_column=Column(String, nullable=False),
        description="ISO-8601 UTC timestamp when the process started",
    )
    end_time: str | None = Field(
        default=None,
        sa_column=Column(String, nullable=True),
        description="ISO-8601 UTC timestamp of the terminal transition",
    )
    status: ProcessStatus = Field(
        default=ProcessStatus.RUNNING,
        sa_column=Column(
            SAEnum(
                ProcessStatus,
                native_enum=False,
                values_callable=lambda members: [m.value for m in members],
                length=16,
            ),
            index=True,
            nullable=False,
        ),
        description="Process status: running, completed, failed",
    )
    exit_code: int | None = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="Exit code once terminal, -1 for spawn errors and signals",
    )
    pid: int | None = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="OS process id at spawn time",
    )
