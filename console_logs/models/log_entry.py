"""Log entry model for storing classified output lines."""

from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel

from console_logs.core.timestamps import utc_now


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    DEBUG = "debug"


class LogSource(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


def _enum_column(enum_cls: type[Enum], **kwargs) -> Column:
    return Column(
        SAEnum(
            enum_cls,
            native_enum=False,
            values_callable=lambda members: [m.value for m in members],
            length=16,
        ),
        nullable=False,
        **kwargs,
    )


class LogEntry(SQLModel, table=True):
    """Log entry for one classified line of process output."""

    __tablename__ = "log_entries"

    # Primary key and timestamps
    id: int | None = Field(
        default=None,
        primary_key=True,
        description="Unique identifier for the log entry",
    )
    timestamp: str = Field(
        default_factory=utc_now,
        sa_column=Column(String, index=True, nullable=False),
        description="ISO-8601 UTC timestamp when the entry was captured",
    )

    # Foreign key to process
    process_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("processes.id"), index=True, nullable=False
        ),
        description="ID of the process this entry belongs to",
    )

    # Log fields
    level: LogLevel = Field(
        sa_column=_enum_column(LogLevel, index=True),
        description="Severity: info, warn, error, debug",
    )
    message: str = Field(
        sa_column=Column(Text, nullable=False),
        description="Single trimmed line of output",
    )
    raw_output: str = Field(
        sa_column=Column(Text, nullable=False),
        description="Untrimmed chunk the line was delivered in",
    )
    source: LogSource = Field(
        sa_column=_enum_column(LogSource),
        description="Output stream: stdout or stderr",
    )


class LogEntryRead(SQLModel):
    """Log entry joined with the name of its process."""

    id: int
    process_id: int
    process_name: str
    timestamp: str
    level: LogLevel
    message: str
    raw_output: str
    source: LogSource

    @classmethod
    def from_entry(cls, entry: LogEntry, process_name: str) -> "LogEntryRead":
        return cls(
            id=entry.id,
            process_id=entry.process_id,
            process_name=process_name,
            timestamp=entry.timestamp,
            level=entry.level,
            message=entry.message,
            raw_output=entry.raw_output,
            source=entry.source,
        )
