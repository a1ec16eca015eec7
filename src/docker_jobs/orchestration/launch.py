"""Launch configuration for job containers.

Turns a ``Job`` into the ``LaunchConfig`` handed to the engine and
derives the deterministic container name.
"""

from __future__ import annotations

import hashlib
import shlex

from docker_jobs.core.errors import ConfigError, MissingConfigError
from docker_jobs.engine._types import JOB_ID_LABEL, LaunchConfig
from docker_jobs.jobs.models import Job


def build_launch_config(
    job: Job,
    *,
    default_image: str,
    management_label: str,
    working_dir: str | None = None,
) -> LaunchConfig:
    """Build the container configuration for *job*.

    The job's own image wins over *default_image*. The command is split
    with shell quoting rules. Labels always carry the management label and
    the job id; the job's ``launch_environment`` becomes container env.
    """
    image = job.docker_image or default_image
    if not image:
        raise MissingConfigError("default_image_id").with_context(job_id=job.id)

    try:
        command = shlex.split(job.command or "")
    except ValueError as exc:
        raise ConfigError(f"Job {job.id} has an unparseable command: {exc}", cause=exc).with_context(
            job_id=job.id, command=job.command
        ) from exc
    if not command:
        raise ConfigError(f"Job {job.id} has an empty command").with_context(job_id=job.id)

    env = {str(k): str(v) for k, v in (job.launch_environment or {}).items()}

    return LaunchConfig(
        image=image,
        command=command,
        working_dir=working_dir,
        env=env,
        labels={management_label: "true", JOB_ID_LABEL: str(job.id)},
    )


def container_name(config: LaunchConfig, job_id: int) -> str:
    """``md5(<command line>-<job id>)`` as a hex string."""
    return hashlib.md5(f"{config.command_line}-{job_id}".encode()).hexdigest()
