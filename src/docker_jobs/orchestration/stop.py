"""Stop a running job.

Out-of-band entry point, usually a separate process from the loop. It
asks the engine to stop the job's container and, on success, writes the
STOPPED marker. The loop later sees the container exit with 137, re-reads
the job and classifies it as STOPPED instead of FAILED.
"""

from __future__ import annotations

from docker_jobs.core.errors import JobNotFoundError
from docker_jobs.core.events import EventKind, EventSink
from docker_jobs.core.logging import get_logger
from docker_jobs.engine._types import EngineClient
from docker_jobs.jobs.models import JobState
from docker_jobs.jobs.store import JobStore

logger = get_logger(__name__)


def stop_job(
    job_id: int,
    store: JobStore,
    engine: EngineClient,
    events: EventSink | None = None,
) -> bool:
    """Stop job *job_id*. Returns True when the container was stopped.

    Raises:
        JobNotFoundError: no such job.
    """
    job = store.find_by_id(job_id)
    if job is None:
        raise JobNotFoundError(job_id)

    if not job.docker_container_id:
        logger.warning("job.stop_without_container", job_id=job_id, state=job.state)
        return False

    if not engine.stop_container(job.docker_container_id):
        logger.warning("job.stop_failed", job_id=job_id, container_id=job.docker_container_id)
        return False

    job.state = JobState.STOPPED
    store.persist(job)
    store.flush()
    logger.info("job.stop_requested", job_id=job_id, container_id=job.docker_container_id)

    if events is not None:
        events.publish(EventKind.CANCELED, job)
    return True
