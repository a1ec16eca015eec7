"""Container registry: the loop's per-cycle view of managed containers.

``refresh()`` rebuilds two id-keyed sets from a label-filtered listing:
running and exited. Anything else (created, paused, restarting, dead …)
is logged and ignored. Counts are always derived from the sets.
"""

from __future__ import annotations

from docker_jobs.core.logging import get_logger
from docker_jobs.engine._types import ContainerPhase, EngineClient

logger = get_logger(__name__)


class ContainerRegistry:
    """Running/exited partition of the containers carrying *label*."""

    def __init__(self, engine: EngineClient, label: str) -> None:
        self._engine = engine
        self._label = label
        # dicts keep insertion order, so reconciliation follows listing order
        self._running: dict[str, None] = {}
        self._exited: dict[str, None] = {}

    def refresh(self) -> None:
        containers = self._engine.list_containers(self._label, include_stopped=True)

        self._running.clear()
        self._exited.clear()

        for container in containers:
            if container.phase == ContainerPhase.RUNNING.value:
                self._running[container.id] = None
            elif container.phase == ContainerPhase.EXITED.value:
                self._exited[container.id] = None
            else:
                logger.warning(
                    "container.unhandled_state",
                    container_id=container.id,
                    state=container.phase,
                )

        logger.debug("registry.refreshed", running=self.running_count, exited=self.exited_count)

    def track_running(self, container_id: str) -> None:
        """Record a container launched during this cycle."""
        self._exited.pop(container_id, None)
        self._running[container_id] = None

    def discard(self, container_id: str) -> None:
        self._running.pop(container_id, None)
        self._exited.pop(container_id, None)

    @property
    def running(self) -> list[str]:
        return list(self._running)

    @property
    def exited(self) -> list[str]:
        return list(self._exited)

    @property
    def running_count(self) -> int:
        return len(self._running)

    @property
    def exited_count(self) -> int:
        return len(self._exited)

    def __contains__(self, container_id: object) -> bool:
        return container_id in self._running or container_id in self._exited
