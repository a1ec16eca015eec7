"""Docker engine client.

Drives the ``docker`` CLI through ``subprocess``. There is no docker-py
dependency, so the client works with any runtime exposing a
docker-compatible CLI (Docker Engine, Docker Desktop, Podman, Colima).

Key Concepts:
    DockerCliClient: Implements ``EngineClient``: ``info()``,
        ``image_exists()``, ``list_containers()``, ``run_container()``,
        ``inspect_container()``, ``get_container_logs()``, ``read_logs()``,
        ``delete_container()``, ``stop_container()``.

Architecture Decisions:
    - Label-based tracking: every job container carries the management
      label, so ``list_containers(label)`` only ever sees this
      orchestrator's containers.
    - Machine-readable output only: listings use ``--format '{{json .}}'``
      and state comes from ``docker inspect``'s JSON document.
    - Every CLI call has a timeout; a hung engine surfaces as an
      ``EngineUnavailableError`` instead of freezing the loop forever.

Example::

    client = DockerCliClient()
    client.info()
    container_id = client.run_container("3f2a…", launch_config)
    snapshot = client.inspect_container(container_id)
"""

from __future__ import annotations

import json
import shutil
import subprocess
from typing import Any

from docker_jobs.core.errors import (
    ContainerNotFoundError,
    EngineError,
    EngineUnavailableError,
)
from docker_jobs.core.logging import get_logger
from docker_jobs.engine._types import (
    ContainerSnapshot,
    ContainerSummary,
    LaunchConfig,
    LogStream,
)

logger = get_logger(__name__)


class DockerCliClient:
    """``EngineClient`` backed by the ``docker`` CLI.

    Parameters
    ----------
    docker_binary
        Executable name or path. Resolved through ``PATH`` when it is a bare name.
    host
        Optional engine endpoint, passed as ``--host``.
    timeout
        Seconds before any single CLI call is abandoned.
    """

    def __init__(
        self,
        docker_binary: str = "docker",
        host: str | None = None,
        timeout: int = 120,
    ) -> None:
        self._docker_cmd = shutil.which(docker_binary) or docker_binary
        self.host = host
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def info(self) -> dict[str, Any]:
        """Return ``docker info`` as a dict; raise if the daemon is unreachable."""
        result = self._run_docker(["info", "--format", "{{json .}}"], check=False)
        if result.returncode != 0:
            raise EngineUnavailableError(
                f"Docker engine is not reachable: {result.stderr.strip() or 'unknown error'}"
            )
        try:
            return json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            return {}

    def image_exists(self, image: str) -> bool:
        result = self._run_docker(["image", "inspect", "--format", "{{.Id}}", image], check=False)
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def list_containers(self, label: str, *, include_stopped: bool = True) -> list[ContainerSummary]:
        """List containers carrying *label*, including stopped ones by default."""
        cmd = ["ps", "--no-trunc", "--filter", f"label={label}", "--format", "{{json .}}"]
        if include_stopped:
            cmd.insert(1, "--all")

        result = self._run_docker(cmd)
        containers = []
        for line in result.stdout.strip().splitlines():
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("docker.ps_unparseable", line=line)
                continue
            containers.append(
                ContainerSummary(
                    id=row.get("ID", ""),
                    phase=str(row.get("State", "")).lower(),
                    name=row.get("Names"),
                )
            )
        return containers

    def run_container(self, name: str, config: LaunchConfig) -> str | None:
        """Start a detached container. Returns the container id, or ``None``
        when the engine refused to start it."""
        cmd = ["run", "--detach", "--name", name]

        for key, value in config.labels.items():
            cmd.extend(["--label", f"{key}={value}"])

        for key, value in config.env.items():
            cmd.extend(["--env", f"{key}={value}"])

        if config.working_dir:
            cmd.extend(["--workdir", config.working_dir])

        cmd.append(config.image)
        cmd.extend(config.command)

        result = self._run_docker(cmd, check=False)
        container_id = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        if result.returncode != 0 or not container_id:
            logger.error(
                "container.run_failed",
                name=name,
                image=config.image,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
            return None

        logger.debug("container.started", name=name, container_id=container_id, image=config.image)
        return container_id

    def inspect_container(self, container_id: str) -> ContainerSnapshot:
        result = self._run_docker(["container", "inspect", container_id], check=False)
        if result.returncode != 0:
            if "no such" in result.stderr.lower():
                raise ContainerNotFoundError(container_id)
            raise EngineError(
                f"docker inspect failed (exit {result.returncode}): {result.stderr.strip()}"
            ).with_context(container_id=container_id)

        try:
            documents = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise EngineError(
                f"docker inspect returned invalid JSON for {container_id}", cause=exc
            ) from exc
        if not documents:
            raise ContainerNotFoundError(container_id)
        return ContainerSnapshot.from_inspect(documents[0])

    def get_container_logs(self, container_id: str, stream: LogStream = LogStream.OUTPUT) -> str:
        """Return the full current output (stdout) or error (stderr) log."""
        output, error_output = self.read_logs(container_id)
        if LogStream(stream) is LogStream.ERROR:
            return error_output
        return output

    def read_logs(self, container_id: str) -> tuple[str, str]:
        """One ``docker logs`` call split into ``(stdout, stderr)``."""
        result = self._run_docker(["logs", container_id], check=False)
        if result.returncode != 0:
            logger.warning(
                "container.logs_failed",
                container_id=container_id,
                stderr=result.stderr.strip(),
            )
            return "", ""
        return result.stdout, result.stderr

    def delete_container(self, container_id: str) -> bool:
        result = self._run_docker(["rm", "--force", container_id], check=False)
        return result.returncode == 0

    def stop_container(self, container_id: str) -> bool:
        result = self._run_docker(["stop", container_id], check=False)
        if result.returncode != 0:
            logger.warning(
                "container.stop_failed",
                container_id=container_id,
                stderr=result.stderr.strip(),
            )
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run_docker(
        self,
        args: list[str],
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run a docker CLI command."""
        cmd = [self._docker_cmd]
        if self.host:
            cmd.extend(["--host", self.host])
        cmd.extend(args)

        logger.debug("docker.exec", cmd=" ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise EngineUnavailableError(
                f"Docker command timed out after {self.timeout}s: {' '.join(args)}",
                cause=exc,
            ) from exc
        except OSError as exc:
            raise EngineUnavailableError(
                f"Could not execute {self._docker_cmd!r}: {exc}", cause=exc
            ) from exc

        if check and result.returncode != 0:
            raise EngineError(
                f"Docker command failed (exit {result.returncode}): "
                f"{' '.join(args)}\n{result.stderr}"
            )
        return result
