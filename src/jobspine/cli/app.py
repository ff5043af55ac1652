"""
Root Typer application for the jobspine CLI.

Typical crontab entry::

    * * * * * cd /srv/app && jobspine run --background
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path

import typer
from pydantic import ValidationError
from typer import Typer

from jobspine.cli import jobs
from jobspine.cli.utils import fail
from jobspine.core.logging import configure_logging
from jobspine.core.settings import JobSpineSettings

app = Typer(
    name="jobspine",
    help="jobspine: run recurring jobs from a directory of job definitions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("jobspine")
        except PackageNotFoundError:
            from jobspine import __version__ as v
        typer.echo(f"jobspine {v}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    jobs_dir: Path | None = typer.Option(
        None, "--jobs-dir", "-j", help="Directory of job definitions (default: ./jobs)."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR."),
    json_logs: bool | None = typer.Option(
        None, "--json-logs/--console-logs", help="Force JSON or console log output."
    ),
) -> None:
    """jobspine CLI: run, invoke and manage jobs."""
    overrides: dict[str, object] = {}
    if jobs_dir is not None:
        overrides["jobs_dir"] = jobs_dir
    if log_level is not None:
        overrides["log_level"] = log_level
    if json_logs is not None:
        overrides["json_logs"] = json_logs

    try:
        settings = JobSpineSettings(**overrides)
    except ValidationError as e:
        fail(f"Invalid settings: {e}")

    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    ctx.obj = settings


# ── Commands ─────────────────────────────────────────────────────────────

app.command("run")(jobs.run_jobs)
app.command("invoke")(jobs.invoke_job)
app.command("list")(jobs.list_jobs)
app.command("create")(jobs.create_job)
app.command("enable")(jobs.enable_job)
app.command("disable")(jobs.disable_job)
app.command("unlock")(jobs.unlock_job)
