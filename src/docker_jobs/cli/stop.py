"""
CLI: ``docker-jobs stop`` — terminate a running job.
"""

from __future__ import annotations

import typer

from docker_jobs.cli import utils
from docker_jobs.core.errors import JobNotFoundError


def stop(
    job_id: int = typer.Option(..., "--job-id", "-j", help="Job ID"),
) -> None:
    """Stop the container of a running job and mark the job STOPPED."""
    from docker_jobs.core.events.memory import InMemoryEventSink
    from docker_jobs.orchestration import stop_job

    settings = utils.load_settings()
    store = utils.open_store(settings)
    engine = utils.build_engine(settings)

    try:
        stopped = stop_job(job_id, store, engine, InMemoryEventSink())
    except JobNotFoundError as exc:
        utils.err_console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1)

    if stopped:
        utils.console.print("[green]Job stopped successfully.[/green]")
        return

    utils.console.print("[yellow]Something went wrong, could not stop job.[/yellow]")
    raise typer.Exit(code=1)
