"""Job state reconciler.

Advances a ``Job`` from one container snapshot. Two entry points match the
two registry sets:

* ``reconcile_running`` -- enrich the job (environment, logs, start time)
  and move it to RUNNING unless it already holds a later state.
* ``reconcile_exited`` -- classify the exit, record the final timestamps,
  runtime, exit code and logs, delete the container and publish exactly
  one event.

Exit classification:

    .. code-block:: text

        exit 0                         → FINISHED
        exit 137 + STOPPED in store    → STOPPED
        exit 137 otherwise             → FAILED
        any other non-zero exit        → FAILED (engine error as message)

Exit code 137 is what the engine reports for a killed container. The
stop command writes STOPPED to the store from another process, so the job
is re-read before anything is changed in memory.
"""

from __future__ import annotations

from docker_jobs.core.errors import ContainerNotFoundError
from docker_jobs.core.events import EventKind, EventSink
from docker_jobs.core.logging import LogContext, get_logger
from docker_jobs.core.timestamps import parse_engine_timestamp, seconds_between
from docker_jobs.engine._types import ContainerSnapshot, EngineClient
from docker_jobs.jobs.models import Job, JobState
from docker_jobs.jobs.store import JobStore

logger = get_logger(__name__)

KILLED_EXIT_CODE = 137


def classify_exit(exit_code: int | None, current: JobState) -> JobState:
    """Terminal state for a container that exited with *exit_code*.

    *current* must be the state freshly read from the store.
    """
    if exit_code == 0:
        return JobState.FINISHED
    if exit_code == KILLED_EXIT_CODE and current is JobState.STOPPED:
        return JobState.STOPPED
    return JobState.FAILED


def parse_environment(entries: list[str]) -> dict[str, str]:
    """``["NAME=value", ...]`` → ``{"NAME": "value"}``.

    Splits on the first ``=``; entries without one are dropped.
    """
    env: dict[str, str] = {}
    for entry in entries:
        name, sep, value = entry.partition("=")
        if not sep or not name:
            continue
        env[name] = value
    return env


class JobStateReconciler:
    """Applies container snapshots to jobs.

    Args:
        engine: Engine used to inspect, read logs and delete containers.
        store: Job store; jobs are loaded fresh and staged with ``persist``.
        events: Sink for finished/stopped/failed events.
        eager_log_update: Overwrite logs of running jobs on every cycle.
    """

    def __init__(
        self,
        engine: EngineClient,
        store: JobStore,
        events: EventSink,
        *,
        eager_log_update: bool = True,
    ) -> None:
        self.engine = engine
        self.store = store
        self.events = events
        self.eager_log_update = eager_log_update

    # ------------------------------------------------------------------
    # Running containers
    # ------------------------------------------------------------------

    def reconcile_running(self, container_id: str) -> Job | None:
        loaded = self._load(container_id)
        if loaded is None:
            return None
        snapshot, job = loaded

        with LogContext(job_id=job.id, container_id=container_id):
            if job.environment_variables is None and snapshot.env:
                job.environment_variables = parse_environment(snapshot.env)

            if self.eager_log_update:
                job.output, job.error_output = self.engine.read_logs(container_id)

            if job.job_state is not JobState.RUNNING and job.advance_to(JobState.RUNNING):
                logger.info("job.running")

            if job.started_at is None and snapshot.started_at:
                try:
                    job.started_at = parse_engine_timestamp(snapshot.started_at)
                except ValueError:
                    logger.debug("job.started_at_unparseable", value=snapshot.started_at)

            self.store.persist(job)
        return job

    # ------------------------------------------------------------------
    # Exited containers
    # ------------------------------------------------------------------

    def reconcile_exited(self, container_id: str) -> Job | None:
        loaded = self._load(container_id)
        if loaded is None:
            return None
        snapshot, job = loaded

        with LogContext(job_id=job.id, container_id=container_id):
            if job.is_terminal and job.exit_code is not None:
                logger.debug("job.already_terminal", state=job.state)
                self._delete(container_id)
                return job

            exit_code = snapshot.exit_code
            if exit_code == KILLED_EXIT_CODE:
                self.store.refresh(job)

            self._record_stop_time(job, snapshot)

            state = classify_exit(exit_code, job.job_state)
            job.exit_code = exit_code
            if exit_code != 0:
                job.error_message = snapshot.error or None

            job.output, job.error_output = self.engine.read_logs(container_id)
            job.state = state

            self._delete(container_id)

            if state is JobState.FINISHED:
                logger.info("job.finished", runtime=job.runtime)
                self.events.publish(EventKind.FINISHED, job)
            elif state is JobState.STOPPED:
                logger.warning("job.stopped", runtime=job.runtime)
                self.events.publish(EventKind.STOPPED, job)
            else:
                message = f"job exited with code: {exit_code}"
                logger.warning("job.failed", exit_code=exit_code, error=job.error_message)
                self.events.publish(EventKind.FAILED, job, message)

            self.store.persist(job)
        return job

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, container_id: str) -> tuple[ContainerSnapshot, Job] | None:
        try:
            snapshot = self.engine.inspect_container(container_id)
        except ContainerNotFoundError:
            logger.warning("container.vanished", container_id=container_id)
            return None

        job_id = snapshot.job_id
        if job_id is None:
            logger.warning("container.missing_job_label", container_id=container_id)
            return None

        job = self.store.find_by_id(job_id)
        if job is None:
            logger.warning("container.unknown_job", container_id=container_id, job_id=job_id)
            return None
        return snapshot, job

    def _record_stop_time(self, job: Job, snapshot: ContainerSnapshot) -> None:
        if not snapshot.finished_at:
            return
        try:
            stopped_at = parse_engine_timestamp(snapshot.finished_at)
        except ValueError:
            logger.debug("job.stopped_at_unparseable", value=snapshot.finished_at)
            return
        if stopped_at is None:
            return

        job.stopped_at = stopped_at
        basis = job.started_at or job.started_at_fallback
        if basis is not None:
            job.runtime = seconds_between(basis, stopped_at)

    def _delete(self, container_id: str) -> None:
        if not self.engine.delete_container(container_id):
            logger.warning("container.delete_failed", container_id=container_id)
