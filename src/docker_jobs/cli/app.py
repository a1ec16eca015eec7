"""
Root Typer application for the docker-jobs CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from docker_jobs.cli.orchestrate import orchestrate
from docker_jobs.cli.stop import stop

app = Typer(
    name="docker-jobs",
    help="docker-jobs — run queued jobs as Docker containers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from docker_jobs import __version__

        typer.echo(f"docker-jobs {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """docker-jobs CLI — orchestrate and stop container jobs."""


app.command("orchestrate")(orchestrate)
app.command("stop")(stop)
