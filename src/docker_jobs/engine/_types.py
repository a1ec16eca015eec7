"""Container engine types and protocol.

- EngineClient: Protocol for the container engine operations the
  orchestrator consumes
- LaunchConfig: Everything needed to start one job container
- ContainerSummary: One row of a label-filtered container listing
- ContainerSnapshot: The inspected state of one container
- ContainerPhase / LogStream: Engine vocabulary

Design Notes:
    Engine calls are synchronous and blocking. The orchestration loop runs
    them one at a time; a slow engine delays the cycle but never reorders
    it.

Architecture:

    .. code-block:: text

        LaunchConfig ──run_container──► container id
                                            │
        list_containers(label) ──► [ContainerSummary(id, phase)]
                                            │
        inspect_container(id) ──► ContainerSnapshot
                                   (phase, job_id, exit_code, error,
                                    started_at, finished_at, env, labels)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

JOB_ID_LABEL = "job_id"


class ContainerPhase(str, Enum):
    """Lifecycle phase string reported by the engine."""

    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    REMOVING = "removing"
    EXITED = "exited"
    DEAD = "dead"


class LogStream(str, Enum):
    """Which container output stream to read."""

    OUTPUT = "output"
    ERROR = "error"


@dataclass(frozen=True)
class LaunchConfig:
    """Full launch configuration for a job container.

    Attributes:
        image: Image reference.
        command: Argument vector (``Cmd``).
        working_dir: Working directory inside the container.
        env: Extra environment variables.
        labels: Container labels (management label and ``job_id``).
    """

    image: str
    command: list[str]
    working_dir: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)

    @property
    def command_line(self) -> str:
        return " ".join(self.command)

    def to_dict(self) -> dict[str, Any]:
        return {
            "Image": self.image,
            "Cmd": list(self.command),
            "WorkingDir": self.working_dir,
            "Env": [f"{k}={v}" for k, v in self.env.items()],
            "Labels": dict(self.labels),
        }


@dataclass(frozen=True)
class ContainerSummary:
    """One container from a listing."""

    id: str
    phase: str
    name: str | None = None


@dataclass
class ContainerSnapshot:
    """Inspected state of a container, valid for the current poll cycle."""

    id: str
    phase: str
    exit_code: int | None = None
    error: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    env: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)

    @property
    def job_id(self) -> int | None:
        """Correlated job id, read from the ``job_id`` label."""
        raw = self.labels.get(JOB_ID_LABEL)
        if raw is None or raw == "":
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    @classmethod
    def from_inspect(cls, data: dict[str, Any]) -> ContainerSnapshot:
        """Build a snapshot from the engine's inspect document."""
        state = data.get("State") or {}
        config = data.get("Config") or {}
        return cls(
            id=data.get("Id", ""),
            phase=state.get("Status", ""),
            exit_code=state.get("ExitCode"),
            error=state.get("Error") or None,
            started_at=state.get("StartedAt") or None,
            finished_at=state.get("FinishedAt") or None,
            env=list(config.get("Env") or []),
            labels=dict(config.get("Labels") or {}),
        )


@runtime_checkable
class EngineClient(Protocol):
    """Container engine operations used by the orchestrator."""

    def info(self) -> dict[str, Any]:
        """Health check; raises ``EngineUnavailableError`` when unreachable."""
        ...

    def image_exists(self, image: str) -> bool:
        ...

    def list_containers(self, label: str, *, include_stopped: bool = True) -> list[ContainerSummary]:
        ...

    def run_container(self, name: str, config: LaunchConfig) -> str | None:
        """Start a detached container; returns its id or ``None`` on failure."""
        ...

    def inspect_container(self, container_id: str) -> ContainerSnapshot:
        """Raises ``ContainerNotFoundError`` for unknown ids."""
        ...

    def get_container_logs(self, container_id: str, stream: LogStream = LogStream.OUTPUT) -> str:
        ...

    def read_logs(self, container_id: str) -> tuple[str, str]:
        """Both streams from one engine call: ``(output, error_output)``."""
        ...

    def delete_container(self, container_id: str) -> bool:
        ...

    def stop_container(self, container_id: str) -> bool:
        ...
