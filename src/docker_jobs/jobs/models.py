"""Job entity and lifecycle states.

A ``Job`` is one unit of user-submitted work, executed as exactly one
container. It is a SQLAlchemy mapped class; the ``JobStore`` owns loading
and saving it.

State machine:

    .. code-block:: text

        PENDING ──► RUNNING ──┬──► FINISHED   (exit code 0)
                              ├──► FAILED     (any other exit)
                              └──► STOPPED    (137 + prior STOPPED marker)

        STOPPED can also be written out-of-band by the stop operation while
        the job is RUNNING. States are ranked; the running-container path only
        ever moves a job forward.
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from sqlalchemy import Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from docker_jobs.core.errors import JobStateError
from docker_jobs.core.orm.base import JobsBase


class JobState(str, Enum):
    """Lifecycle state of a job."""

    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def rank(self) -> int:
        return _STATE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


_STATE_RANK: dict[JobState, int] = {
    JobState.PENDING: 0,
    JobState.RUNNING: 1,
    JobState.FINISHED: 2,
    JobState.FAILED: 2,
    JobState.STOPPED: 2,
}

TERMINAL_STATES = frozenset({JobState.FINISHED, JobState.FAILED, JobState.STOPPED})


class Job(JobsBase):
    """A queued, running or terminated container job."""

    __tablename__ = "docker_jobs_jobs"
    __table_args__ = (
        Index("ix_docker_jobs_jobs_queue_state", "queue", "state"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    queue: Mapped[str] = mapped_column(Text, default="default", nullable=False)

    # Launch configuration
    command: Mapped[str] = mapped_column(Text, nullable=False)
    docker_image: Mapped[str | None] = mapped_column(Text, default=None)
    launch_environment: Mapped[dict | None] = mapped_column(default=None)

    # Observed from the container
    environment_variables: Mapped[dict | None] = mapped_column(default=None)
    worker_name: Mapped[str | None] = mapped_column(Text, default=None)
    docker_container_id: Mapped[str | None] = mapped_column(Text, default=None, index=True)
    state: Mapped[str] = mapped_column(Text, default=JobState.PENDING.value, nullable=False)

    created_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    started_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    started_at_fallback: Mapped[datetime.datetime | None] = mapped_column(default=None)
    stopped_at: Mapped[datetime.datetime | None] = mapped_column(default=None)
    runtime: Mapped[int | None] = mapped_column(default=None)

    exit_code: Mapped[int | None] = mapped_column(default=None)
    error_message: Mapped[str | None] = mapped_column(Text, default=None)
    output: Mapped[str | None] = mapped_column(Text, default=None)
    error_output: Mapped[str | None] = mapped_column(Text, default=None)

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("queue", "default")
        kwargs.setdefault("state", JobState.PENDING)
        super().__init__(**kwargs)

    @validates("state")
    def _validate_state(self, key: str, value: str | JobState) -> str:
        return JobState(value).value

    @validates("docker_container_id")
    def _validate_container_id(self, key: str, value: str | None) -> str | None:
        current = self.docker_container_id
        if current is not None and value != current:
            raise JobStateError(
                f"Job {self.id} is already bound to container {current}"
            ).with_context(job_id=self.id, container_id=current)
        return value

    @property
    def job_state(self) -> JobState:
        return JobState(self.state)

    @property
    def is_terminal(self) -> bool:
        return self.job_state.is_terminal

    def advance_to(self, state: JobState) -> bool:
        """Move forward to *state*. Returns False (and changes nothing) when
        the job already holds a state of equal or higher rank."""
        if state.rank <= self.job_state.rank:
            return False
        self.state = state.value
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "queue": self.queue,
            "command": self.command,
            "docker_image": self.docker_image,
            "state": self.state,
            "worker_name": self.worker_name,
            "docker_container_id": self.docker_container_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
            "runtime": self.runtime,
            "exit_code": self.exit_code,
            "error_message": self.error_message,
        }

    def __repr__(self) -> str:
        return f"Job(id={self.id!r}, queue={self.queue!r}, state={self.state!r})"
