"""docker-jobs command-line interface."""

from docker_jobs.cli.app import app

__all__ = ["app"]
