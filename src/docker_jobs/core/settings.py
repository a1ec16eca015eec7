"""Settings for the docker-jobs orchestrator.

Configuration is explicit, validated at startup and environment-driven.
Every field can be set through a ``DOCKER_JOBS_``-prefixed environment
variable or a ``.env`` file; CLI options override individual values.

Fields
──────
docker_binary          : ``docker`` CLI executable (name on PATH or absolute path)
docker_host            : Engine endpoint passed as ``--host`` (e.g. ``unix:///var/run/docker.sock``)
default_image_id       : Image every job runs in unless the job names its own
container_working_dir  : Working directory inside launched containers
management_label       : Label key marking containers owned by this orchestrator
queue                  : Backlog drained by the orchestration loop
concurrency_limit      : Maximum number of running containers
poll_interval          : Seconds slept between cycles
eager_log_update       : Re-capture logs of running jobs every cycle
database_url           : SQLAlchemy URL of the job store
command_timeout        : Seconds before a single ``docker`` CLI call is abandoned
log_level / log_format : structlog configuration

Examples:
    >>> from docker_jobs.core.settings import DockerJobsSettings
    >>> settings = DockerJobsSettings(default_image_id="busybox:latest")
    >>> settings.concurrency_limit
    4
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DockerJobsSettings(BaseSettings):
    """Orchestrator settings, read from ``DOCKER_JOBS_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="DOCKER_JOBS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Engine ───────────────────────────────────────────────────
    docker_binary: str = "docker"
    docker_host: str | None = None
    default_image_id: str = ""
    container_working_dir: str = "/app"
    management_label: str = "docker_jobs.managed"

    # ── Runtime ──────────────────────────────────────────────────
    queue: str = "default"
    concurrency_limit: int = Field(default=4, ge=1)
    poll_interval: float = Field(default=1.0, gt=0)
    eager_log_update: bool = True
    command_timeout: int = Field(default=120, ge=1)

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = "sqlite:///docker_jobs.db"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["auto", "json", "console"] = "auto"

    @property
    def json_logs(self) -> bool | None:
        """Map ``log_format`` onto ``configure_logging(json_format=...)``."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"
