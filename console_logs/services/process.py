"""Process service for the wrapped-process lifecycle."""

import logging

from sqlmodel import select

from console_logs.core.database import get_session
from console_logs.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from console_logs.core.timestamps import normalize_timestamp, utc_now
from console_logs.models import Process, ProcessStatus

logger = logging.getLogger(__name__)


class ProcessService:
    """Service for process records."""

    @staticmethod
    def create_process(
        name: str,
        command: str,
        pid: int | None = None,
        start_time: str | None = None,
    ) -> Process:
        """Create a new process record in the running state."""
        if not name or not name.strip():
            raise ValidationError("Process name is required")
        start_time = normalize_timestamp(start_time) if start_time else utc_now()

        with get_session() as session:
            process = Process(
                name=name,
                command=command,
                pid=pid,
                status=ProcessStatus.RUNNING,
                start_time=start_time,
            )
            session.add(process)
            session.commit()
            session.refresh(process)
            return process

    @staticmethod
    def get_process(process_id: int) -> Process:
        """Get process by ID."""
        with get_session() as session:
            process = session.get(Process, process_id)

            if process is None:
                raise NotFoundError(f"Process with id {process_id} not found")

            return process

    @staticmethod
    def get_process_by_name(name: str) -> Process | None:
        """Get the most recently started process with this name."""
        with get_session() as session:
            statement = (
                select(Process)
                .where(Process.name == name)
                .order_by(Process.start_time.desc(), Process.id.desc())
                .limit(1)
            )
            return session.execute(statement).scalar_one_or_none()

    @staticmethod
    def list_processes(active_only: bool = False) -> list[Process]:
        """List processes, most recently started first."""
        with get_session() as session:
            statement = select(Process)
            if active_only:
                statement = statement.where(Process.status == ProcessStatus.RUNNING)
            statement = statement.order_by(Process.start_time.desc(), Process.id.desc())
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def update_process_status(
        process_id: int,
        status: ProcessStatus,
        exit_code: int | None = None,
        end_time: str | None = None,
    ) -> Process:
        """Move a running process to a terminal status.

        Raises:
            NotFoundError: If process not found
            InvalidTransitionError: If the process is already terminal or the
                target status is not terminal
            ValidationError: If no exit code is given
        """
        try:
            status = ProcessStatus(status)
        except ValueError as e:
            raise ValidationError(f"Unknown process status: {status!r}") from e

        if not status.is_terminal:
            raise InvalidTransitionError(
                f"Process {process_id} can only move to a terminal status"
            )
        if exit_code is None:
            raise ValidationError("A terminal status requires an exit code")

        with get_session() as session:
            process = session.get(Process, process_id)

            if process is None:
                raise NotFoundError(f"Process with id {process_id} not found")

            if not process.status.can_transition_to(status):
                raise InvalidTransitionError(
                    f"Process {process_id} cannot move from "
                    f"{process.status.value} to {status.value}"
                )

            process.status = status
            process.exit_code = exit_code
            process.end_time = end_time or utc_now()

            session.add(process)
            session.commit()
            session.refresh(process)

            logger.info(
                f"Process {process.name} ({process_id}) {status.value} "
                f"with exit code {exit_code}"
            )
            return process
