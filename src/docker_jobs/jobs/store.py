"""Job Store: persistence boundary for ``Job`` records.

The orchestration loop talks to the store through the ``JobStore``
protocol only. ``SqlJobStore`` is the SQLAlchemy implementation used in
production and in tests (against in-memory SQLite).

Unit of work:

    .. code-block:: text

        find_runnable_jobs / find_by_id   ── load (fresh from the database)
        persist(job)                      ── stage the job in the session
        flush()                           ── commit every staged change
        refresh(job)                      ── re-read the row, dropping staged
                                             changes, to see writes made by
                                             another process (stop command)

The store is the single source of truth for job state. ``refresh()`` relies
on the database returning the latest committed row, which is what lets the
exited-container path see a STOPPED marker written by ``stop_job``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docker_jobs.core.errors import StoreError
from docker_jobs.core.logging import get_logger
from docker_jobs.jobs.models import Job, JobState

logger = get_logger(__name__)


@runtime_checkable
class JobStore(Protocol):
    """Persistence operations the orchestrator needs."""

    def find_runnable_jobs(self, queue: str, limit: int) -> list[Job]:
        """Up to *limit* jobs of *queue* that have not been launched, FIFO."""
        ...

    def find_by_id(self, job_id: int) -> Job | None:
        ...

    def persist(self, job: Job) -> None:
        ...

    def flush(self) -> None:
        ...

    def refresh(self, job: Job) -> None:
        ...

    def rollback(self) -> None:
        ...


class SqlJobStore:
    """SQLAlchemy-backed ``JobStore``.

    Args:
        session: An open session. The store does not close it.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def find_runnable_jobs(self, queue: str, limit: int) -> list[Job]:
        if limit <= 0:
            return []
        stmt = (
            select(Job)
            .where(
                Job.queue == queue,
                Job.state == JobState.PENDING.value,
                Job.docker_container_id.is_(None),
            )
            .order_by(Job.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        return list(self._session.scalars(stmt))

    def find_by_id(self, job_id: int) -> Job | None:
        return self._session.get(Job, job_id, populate_existing=True)

    def persist(self, job: Job) -> None:
        self._session.add(job)

    def flush(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError("Could not flush job changes", cause=exc) from exc

    def refresh(self, job: Job) -> None:
        self._session.refresh(job)

    def rollback(self) -> None:
        self._session.rollback()

    def add(self, job: Job) -> Job:
        """Insert a new job and commit. Used by producers and tests."""
        self._session.add(job)
        self.flush()
        logger.debug("job.created", job_id=job.id, queue=job.queue)
        return job
