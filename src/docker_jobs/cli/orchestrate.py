"""
CLI: ``docker-jobs orchestrate`` — run the orchestration loop.
"""

from __future__ import annotations

import typer

from docker_jobs.cli import utils
from docker_jobs.core.errors import DockerJobsError


def orchestrate(
    queue: str | None = typer.Option(None, "--queue", "-q", help="Queue to process."),  # noqa: UP007
    update_logs_eager: bool | None = typer.Option(  # noqa: UP007
        None,
        "--update-logs-eager/--no-update-logs-eager",
        help="Refresh the logs of running jobs every cycle instead of only when they end.",
    ),
    concurrency: int | None = typer.Option(  # noqa: UP007
        None, "--concurrency", "-c", min=1, help="How many jobs may run at the same time."
    ),
    once: bool = typer.Option(False, "--once", help="Run a single cycle and exit."),
) -> None:
    """Launch pending jobs as containers and track them until they exit.

    Example::

        docker-jobs orchestrate --queue reports --concurrency 8
        docker-jobs orchestrate --no-update-logs-eager
    """
    from docker_jobs.core.events.memory import InMemoryEventSink
    from docker_jobs.orchestration import OrchestrationLoop, check_requirements

    settings = utils.load_settings()
    overrides = {
        "queue": queue,
        "eager_log_update": update_logs_eager,
        "concurrency_limit": concurrency,
    }
    settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    engine = utils.build_engine(settings)
    try:
        check_requirements(engine, settings.default_image_id)
    except DockerJobsError as exc:
        utils.err_console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=1)

    store = utils.open_store(settings)
    loop = OrchestrationLoop.from_settings(settings, engine, store, InMemoryEventSink())

    if once:
        result = loop.run_once()
        utils.console.print(
            f"launched={result.launched} running={result.running} exited={result.exited}"
        )
        return

    utils.console.print(
        f"[bold green]Orchestrating queue {settings.queue!r}[/bold green] "
        f"(concurrency={settings.concurrency_limit}, poll={settings.poll_interval}s)"
    )
    try:
        loop.run_forever()
    except KeyboardInterrupt:
        utils.console.print("\n[yellow]Orchestration stopped by user[/yellow]")
