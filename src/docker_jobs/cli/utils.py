"""
CLI helpers for consoles, settings and collaborator factories.

Commands build their collaborators through these functions so tests can
patch a single seam (``build_engine``) to run against the stub engine.
"""

from __future__ import annotations

from rich.console import Console

from docker_jobs.core.logging import configure_logging
from docker_jobs.core.orm import create_jobs_engine, init_db, jobs_session_factory
from docker_jobs.core.settings import DockerJobsSettings
from docker_jobs.engine import EngineClient, create_engine_client
from docker_jobs.jobs.store import SqlJobStore

console = Console()
err_console = Console(stderr=True)


def load_settings() -> DockerJobsSettings:
    """Read settings from ``DOCKER_JOBS_*`` variables and ``.env``; configure logging."""
    settings = DockerJobsSettings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def open_store(settings: DockerJobsSettings) -> SqlJobStore:
    """Open a store on ``settings.database_url``, creating tables if needed."""
    engine = create_jobs_engine(settings.database_url)
    init_db(engine)
    return SqlJobStore(jobs_session_factory(engine)())


def build_engine(settings: DockerJobsSettings) -> EngineClient:
    return create_engine_client(settings)
