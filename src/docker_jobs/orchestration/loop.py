"""Orchestration loop — admission and reconciliation, one cycle at a time.

Manifesto:
    Containers are observed, never subscribed to. Each cycle takes a fresh
    snapshot of the managed containers and drives every job one step
    closer to its terminal state. Running the same cycle twice against the
    same snapshot changes nothing.

Cycle::

    ┌─ admit        (only while running_count < concurrency_limit)
    │     find_runnable_jobs(queue, available) → launch → flush
    ├─ refresh      registry ← list_containers(management label)
    ├─ reconcile    every running container, then every exited container
    ├─ flush        one commit for the whole cycle
    └─ sleep        poll_interval, or until stop() / SIGINT / SIGTERM

Usage::

    loop = OrchestrationLoop(engine, store, events, default_image="app:latest")
    check_requirements(engine, "app:latest")
    loop.run_forever()
"""

from __future__ import annotations

import platform
import signal
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from docker_jobs.core.errors import (
    ConfigError,
    ContainerLaunchError,
    DockerJobsError,
    ImageNotFoundError,
    MissingConfigError,
    is_retryable,
)
from docker_jobs.core.events import EventKind, EventSink
from docker_jobs.core.logging import get_logger
from docker_jobs.core.timestamps import utc_now
from docker_jobs.engine._types import EngineClient
from docker_jobs.jobs.models import Job, JobState
from docker_jobs.jobs.store import JobStore
from docker_jobs.orchestration.launch import build_launch_config, container_name
from docker_jobs.orchestration.reconciler import JobStateReconciler
from docker_jobs.orchestration.registry import ContainerRegistry

if TYPE_CHECKING:
    from docker_jobs.core.settings import DockerJobsSettings

logger = get_logger(__name__)


def check_requirements(engine: EngineClient, default_image: str) -> None:
    """Startup preconditions: engine reachable, default image present.

    Raises:
        EngineUnavailableError: ``engine.info()`` failed.
        MissingConfigError: no default image is configured.
        ImageNotFoundError: the default image is not on the engine host.
    """
    engine.info()
    if not default_image:
        raise MissingConfigError("default_image_id")
    if not engine.image_exists(default_image):
        raise ImageNotFoundError(default_image)


@dataclass
class CycleResult:
    """What one cycle did."""

    launched: int = 0
    running: int = 0
    exited: int = 0


class OrchestrationLoop:
    """Poll loop that launches pending jobs and reconciles their containers."""

    def __init__(
        self,
        engine: EngineClient,
        store: JobStore,
        events: EventSink,
        *,
        default_image: str,
        queue: str = "default",
        concurrency_limit: int = 4,
        management_label: str = "docker_jobs.managed",
        working_dir: str | None = None,
        eager_log_update: bool = True,
        poll_interval: float = 1.0,
        worker_name: str | None = None,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")

        self.engine = engine
        self.store = store
        self.events = events
        self.default_image = default_image
        self.queue = queue
        self.concurrency_limit = concurrency_limit
        self.management_label = management_label
        self.working_dir = working_dir
        self.poll_interval = poll_interval
        self.worker_name = worker_name or platform.node()

        self.registry = ContainerRegistry(engine, management_label)
        self.reconciler = JobStateReconciler(
            engine, store, events, eager_log_update=eager_log_update
        )

        self._shutdown = threading.Event()
        self._primed = False
        self._cycles = 0

    @classmethod
    def from_settings(
        cls,
        settings: DockerJobsSettings,
        engine: EngineClient,
        store: JobStore,
        events: EventSink,
    ) -> OrchestrationLoop:
        return cls(
            engine,
            store,
            events,
            default_image=settings.default_image_id,
            queue=settings.queue,
            concurrency_limit=settings.concurrency_limit,
            management_label=settings.management_label,
            working_dir=settings.container_working_dir,
            eager_log_update=settings.eager_log_update,
            poll_interval=settings.poll_interval,
        )

    @property
    def running_count(self) -> int:
        return self.registry.running_count

    @property
    def exited_count(self) -> int:
        return self.registry.exited_count

    @property
    def cycles(self) -> int:
        return self._cycles

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run_forever(self, *, install_signal_handlers: bool = True) -> None:
        """Run cycles until ``stop()`` is called or SIGINT/SIGTERM arrives.

        A failing cycle is logged and rolled back; the next cycle starts
        from a fresh snapshot.
        """
        logger.info(
            "orchestration.starting",
            queue=self.queue,
            concurrency_limit=self.concurrency_limit,
            worker_name=self.worker_name,
            poll_interval=self.poll_interval,
        )

        if install_signal_handlers:
            try:
                signal.signal(signal.SIGINT, self._handle_signal)
                signal.signal(signal.SIGTERM, self._handle_signal)
            except (ValueError, OSError):
                logger.debug("orchestration.signal_handlers_skipped")

        while not self._shutdown.is_set():
            try:
                self.run_once()
            except DockerJobsError as exc:
                logger.error(
                    "orchestration.cycle_failed",
                    cycle=self._cycles,
                    error=exc.to_dict(),
                )
                self.store.rollback()
            except Exception as exc:
                logger.exception(
                    "orchestration.cycle_failed",
                    cycle=self._cycles,
                    retryable=is_retryable(exc),
                )
                self.store.rollback()
            self._shutdown.wait(self.poll_interval)

        logger.info("orchestration.stopped", cycles=self._cycles)

    def stop(self) -> None:
        """Request a graceful stop after the current cycle."""
        self._shutdown.set()

    def _handle_signal(self, signum: int, frame: object) -> None:
        logger.info("orchestration.signal_received", signal=signum)
        self.stop()

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    def run_once(self) -> CycleResult:
        """Admission, refresh, reconciliation and a final flush."""
        if not self._primed:
            self.registry.refresh()
            self._primed = True

        result = CycleResult()
        result.launched = len(self.admit())

        self.registry.refresh()

        for container_id in self.registry.running:
            if self.reconciler.reconcile_running(container_id) is not None:
                result.running += 1

        for container_id in self.registry.exited:
            if self.reconciler.reconcile_exited(container_id) is not None:
                result.exited += 1
            self.registry.discard(container_id)

        self.store.flush()
        self._cycles += 1
        return result

    def admit(self) -> list[Job]:
        """Launch up to ``concurrency_limit - running_count`` runnable jobs.

        The batch is flushed before returning. A job whose launch
        configuration cannot be built is marked FAILED and skipped. When the
        engine refuses a container the jobs already handled are flushed and
        ``ContainerLaunchError`` propagates.
        """
        available = self.concurrency_limit - self.registry.running_count
        if available <= 0:
            return []

        launched: list[Job] = []
        for job in self.store.find_runnable_jobs(self.queue, available):
            try:
                if self._launch(job):
                    launched.append(job)
            except DockerJobsError:
                self.store.flush()
                raise

        self.store.flush()
        return launched

    def _launch(self, job: Job) -> bool:
        try:
            config = build_launch_config(
                job,
                default_image=self.default_image,
                management_label=self.management_label,
                working_dir=self.working_dir,
            )
        except ConfigError as exc:
            self._reject(job, exc)
            return False

        job.worker_name = self.worker_name
        job.state = JobState.PENDING
        job.started_at_fallback = utc_now()
        self.store.persist(job)

        name = container_name(config, job.id)
        container_id = self.engine.run_container(name, config)
        if not container_id:
            raise ContainerLaunchError("could not run job.").with_context(
                job_id=job.id, image=config.image, command=config.command_line
            )

        job.docker_container_id = container_id
        logger.info("job.launched", job_id=job.id, container_id=container_id, image=config.image)
        self.events.publish(EventKind.RUNNING, job)
        self.registry.track_running(container_id)
        return True

    def _reject(self, job: Job, error: ConfigError) -> None:
        """A job that can never be launched leaves the queue as FAILED."""
        job.worker_name = self.worker_name
        job.state = JobState.FAILED
        job.error_message = error.message
        self.store.persist(job)
        logger.warning("job.rejected", job_id=job.id, error=error.to_dict())
        self.events.publish(EventKind.FAILED, job, error.message)
