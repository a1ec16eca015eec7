"""Container engine clients.

Architecture:

    .. code-block:: text

        docker_jobs.engine
        ├── __init__.py  ← Public API (this file)
        ├── _types.py    ← EngineClient protocol + LaunchConfig, snapshots
        ├── docker.py    ← DockerCliClient (``docker`` CLI via subprocess)
        └── stub.py      ← StubEngineClient (in-memory, scripted)

The orchestration layer depends on ``EngineClient`` only; pick the
implementation with ``create_engine_client(settings)`` or construct one
directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from docker_jobs.engine._types import (
    JOB_ID_LABEL,
    ContainerPhase,
    ContainerSnapshot,
    ContainerSummary,
    EngineClient,
    LaunchConfig,
    LogStream,
)
from docker_jobs.engine.docker import DockerCliClient
from docker_jobs.engine.stub import StubEngineClient

if TYPE_CHECKING:
    from docker_jobs.core.settings import DockerJobsSettings


def create_engine_client(settings: DockerJobsSettings) -> DockerCliClient:
    """Build the production engine client from settings."""
    return DockerCliClient(
        docker_binary=settings.docker_binary,
        host=settings.docker_host,
        timeout=settings.command_timeout,
    )


__all__ = [
    "JOB_ID_LABEL",
    "ContainerPhase",
    "ContainerSnapshot",
    "ContainerSummary",
    "DockerCliClient",
    "EngineClient",
    "LaunchConfig",
    "LogStream",
    "StubEngineClient",
    "create_engine_client",
]
