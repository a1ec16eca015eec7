"""In-memory engine client used as a test double.

``StubEngineClient`` implements ``EngineClient`` without a container
runtime. Containers are plain records whose phase, exit code and logs are
scripted by the caller, which makes every reconciliation path reachable
in unit tests.

Example::

    engine = StubEngineClient(images={"app:latest"})
    container_id = engine.run_container("name", launch_config)
    engine.set_logs(container_id, output="done\\n")
    engine.exit_container(container_id, exit_code=0)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from docker_jobs.core.errors import ContainerNotFoundError, EngineUnavailableError
from docker_jobs.core.timestamps import utc_now
from docker_jobs.engine._types import (
    ContainerPhase,
    ContainerSnapshot,
    ContainerSummary,
    LaunchConfig,
    LogStream,
)

STOP_EXIT_CODE = 137


def _engine_time() -> str:
    return utc_now().strftime("%Y-%m-%dT%H:%M:%S.%fZ")


@dataclass
class StubContainer:
    """A scripted container record."""

    id: str
    name: str
    image: str
    phase: str = ContainerPhase.RUNNING.value
    exit_code: int | None = None
    error: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    env: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    output: str = ""
    error_output: str = ""

    def snapshot(self) -> ContainerSnapshot:
        return ContainerSnapshot(
            id=self.id,
            phase=self.phase,
            exit_code=self.exit_code,
            error=self.error,
            started_at=self.started_at,
            finished_at=self.finished_at,
            env=list(self.env),
            labels=dict(self.labels),
        )


class StubEngineClient:
    """Scriptable ``EngineClient``.

    Args:
        images: Image references that ``image_exists`` reports as present.
        healthy: When False, ``info()`` raises ``EngineUnavailableError``.
        base_env: Environment entries every launched container reports,
            ahead of the launch configuration's own variables.
    """

    def __init__(
        self,
        *,
        images: set[str] | None = None,
        healthy: bool = True,
        base_env: list[str] | None = None,
    ) -> None:
        self.images = set(images or ())
        self.healthy = healthy
        self.base_env = list(base_env) if base_env is not None else ["PATH=/usr/local/bin:/usr/bin:/bin"]
        self.containers: dict[str, StubContainer] = {}
        self.launched: list[tuple[str, LaunchConfig]] = []
        self.deleted: list[str] = []

        self.fail_launch = False
        self.fail_delete = False
        self.fail_stop = False

    # -- EngineClient ----------------------------------------------------

    def info(self) -> dict[str, Any]:
        if not self.healthy:
            raise EngineUnavailableError("Stub engine is marked unhealthy")
        return {"ServerVersion": "stub", "Containers": len(self.containers)}

    def image_exists(self, image: str) -> bool:
        return image in self.images

    def list_containers(self, label: str, *, include_stopped: bool = True) -> list[ContainerSummary]:
        result = []
        for container in self.containers.values():
            if label not in container.labels:
                continue
            if not include_stopped and container.phase != ContainerPhase.RUNNING.value:
                continue
            result.append(ContainerSummary(id=container.id, phase=container.phase, name=container.name))
        return result

    def run_container(self, name: str, config: LaunchConfig) -> str | None:
        if self.fail_launch:
            return None
        container_id = uuid.uuid4().hex + uuid.uuid4().hex
        self.containers[container_id] = StubContainer(
            id=container_id,
            name=name,
            image=config.image,
            started_at=_engine_time(),
            env=self.base_env + [f"{k}={v}" for k, v in config.env.items()],
            labels=dict(config.labels),
        )
        self.launched.append((name, config))
        return container_id

    def inspect_container(self, container_id: str) -> ContainerSnapshot:
        return self._get(container_id).snapshot()

    def get_container_logs(self, container_id: str, stream: LogStream = LogStream.OUTPUT) -> str:
        container = self._get(container_id)
        if LogStream(stream) is LogStream.ERROR:
            return container.error_output
        return container.output

    def read_logs(self, container_id: str) -> tuple[str, str]:
        container = self._get(container_id)
        return container.output, container.error_output

    def delete_container(self, container_id: str) -> bool:
        if self.fail_delete or container_id not in self.containers:
            return False
        del self.containers[container_id]
        self.deleted.append(container_id)
        return True

    def stop_container(self, container_id: str) -> bool:
        container = self.containers.get(container_id)
        if self.fail_stop or container is None:
            return False
        if container.phase == ContainerPhase.RUNNING.value:
            self.exit_container(container_id, exit_code=STOP_EXIT_CODE)
        return True

    # -- Scripting ---------------------------------------------------------

    def add_container(self, container: StubContainer) -> StubContainer:
        """Register a pre-built container (e.g. one left over from a previous run)."""
        self.containers[container.id] = container
        return container

    def exit_container(
        self,
        container_id: str,
        exit_code: int,
        *,
        error: str | None = None,
        finished_at: str | None = None,
    ) -> None:
        container = self._get(container_id)
        container.phase = ContainerPhase.EXITED.value
        container.exit_code = exit_code
        container.error = error
        container.finished_at = finished_at or _engine_time()

    def set_phase(self, container_id: str, phase: str) -> None:
        self._get(container_id).phase = phase

    def set_logs(self, container_id: str, *, output: str = "", error_output: str = "") -> None:
        container = self._get(container_id)
        container.output = output
        container.error_output = error_output

    def _get(self, container_id: str) -> StubContainer:
        container = self.containers.get(container_id)
        if container is None:
            raise ContainerNotFoundError(container_id)
        return container
