"""
CLI: job commands (``run``, ``invoke``, ``list``, ``create``, ``enable``,
``disable``, ``unlock``).
"""

from __future__ import annotations

from pathlib import Path

import typer

from jobspine.cli.templates import is_valid_job_name, render_job
from jobspine.cli.utils import console, fail, fail_on_error, print_json, print_table, settings_from
from jobspine.core.errors import JobSpineError, ScheduleError
from jobspine.core.logging import get_logger
from jobspine.core.scheduling import FileLockManager, validate_schedule
from jobspine.framework.registry import (
    JobRegistry,
    file_job_identity,
    is_disabled_file,
    job_name_from_file,
)
from jobspine.framework.runner import JobRunner

logger = get_logger(__name__)


def _registry_for(jobs_dir: Path) -> JobRegistry:
    registry = JobRegistry()
    try:
        registry.discover(jobs_dir)
    except JobSpineError as e:
        fail_on_error(e)
    return registry


def run_jobs(
    ctx: typer.Context,
    background: bool = typer.Option(
        False, "--background", "-b", help="Dispatch each job to a detached process."
    ),
    json_out: bool = typer.Option(False, "--json", help="Print the batch report as JSON."),
) -> None:
    """Run every enabled job that is due now."""
    settings = settings_from(ctx)
    runner = JobRunner(_registry_for(settings.jobs_dir), settings)
    report = runner.run(background=background)

    if json_out:
        print_json(report.to_dict())
    else:
        for result in report.results:
            line = f"{result.name}: {result.status.value}"
            if result.pid is not None:
                line += f" (pid {result.pid}, log {result.log_path})"
            if result.error is not None:
                line += f" [red]{type(result.error).__name__}: {result.error}[/red]"
            console.print(line, highlight=False)

    if not report.ok:
        raise typer.Exit(code=1)


def invoke_job(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name (definition file stem)."),
    sync: bool = typer.Option(
        False, "--sync/--background", help="Run in this process or in a detached one."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress job logs and alerts."),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the schedule."),
    jobs_dir: Path | None = typer.Option(None, "--jobs-dir", help="Override the jobs directory."),
) -> None:
    """Run one job now, or start it in the background."""
    settings = settings_from(ctx)
    if jobs_dir is not None:
        settings = settings.model_copy(update={"jobs_dir": jobs_dir})

    runner = JobRunner(_registry_for(settings.jobs_dir), settings)
    try:
        if sync:
            outcome = runner.invoke(name, quiet=quiet, force=force)
            if not quiet:
                console.print(f"{name}: {outcome.value}", highlight=False)
        else:
            detached = runner.dispatch_detached(name)
            console.print(
                f"Job {name} started in background with PID {detached.pid}. "
                f"Log file: {detached.log_path}",
                highlight=False,
            )
    except Exception as e:
        fail_on_error(e)


def list_jobs(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="Print as JSON."),
) -> None:
    """List job definition files and their status."""
    settings = settings_from(ctx)
    jobs_dir = Path(settings.jobs_dir)
    if not jobs_dir.is_dir():
        fail(f"Jobs directory not found: {jobs_dir}")

    registry = _registry_for(jobs_dir)
    rows = []
    for path in sorted(jobs_dir.glob("*.py")):
        if path.name.startswith("_"):
            continue
        name = job_name_from_file(path)
        row = {
            "name": name,
            "status": "Disabled" if is_disabled_file(path) else "Enabled",
            "schedule": "",
        }
        if name in registry and registry.get(name).job_cls is not None:
            schedule = registry.get(name).job_cls.config.schedule
            try:
                validate_schedule(schedule)
                row["schedule"] = schedule
            except ScheduleError as e:
                row["schedule"] = f"{schedule} (invalid: {e.reason})"
        elif row["status"] == "Enabled":
            row["status"] = "Invalid"
        rows.append(row)

    if json_out:
        print_json(rows)
    elif not rows:
        console.print("No jobs found")
    else:
        print_table(rows, title="Jobs")


def create_job(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job class name, e.g. PriceWatch."),
) -> None:
    """Create a new job definition from the template."""
    if not is_valid_job_name(name):
        fail("Job name must start with an uppercase letter and contain only letters and digits")

    jobs_dir = Path(settings_from(ctx).jobs_dir)
    target = jobs_dir / f"{name}.py"
    existing = [p for p in (target, jobs_dir / f"{name}.disable.py", jobs_dir / f"{name}-disable.py") if p.exists()]
    if existing:
        fail(f"Job {name} already exists: {existing[0]}")

    jobs_dir.mkdir(parents=True, exist_ok=True)
    target.write_text(render_job(name), encoding="utf-8")
    logger.info("job_created", job=name, path=str(target))
    console.print(f"Created new job: {target}", highlight=False)


def disable_job(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name."),
) -> None:
    """Disable a job by renaming NAME.py to NAME.disable.py."""
    jobs_dir = Path(settings_from(ctx).jobs_dir)
    source = jobs_dir / f"{name}.py"
    if not source.exists():
        fail(f"Job {name} not found")
    source.rename(jobs_dir / f"{name}.disable.py")
    logger.info("job_disabled", job=name)
    console.print(f"Disabled job: {name}", highlight=False)


def enable_job(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name."),
) -> None:
    """Enable a disabled job (NAME.disable.py or NAME-disable.py)."""
    jobs_dir = Path(settings_from(ctx).jobs_dir)
    for candidate in (jobs_dir / f"{name}.disable.py", jobs_dir / f"{name}-disable.py"):
        if candidate.exists():
            candidate.rename(jobs_dir / f"{name}.py")
            break
    else:
        fail(f"Disabled job {name} not found")
    logger.info("job_enabled", job=name)
    console.print(f"Enabled job: {name}", highlight=False)


def unlock_job(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Job name."),
) -> None:
    """Remove a lock file left behind by a crashed run."""
    settings = settings_from(ctx)
    identity = file_job_identity(name)
    if Path(settings.jobs_dir).is_dir():
        registry = _registry_for(settings.jobs_dir)
        if name in registry:
            identity = registry.get(name).identity

    manager = FileLockManager(settings.lock_dir)
    holder = manager.get_lock_holder(identity)
    if manager.force_release(identity):
        console.print(f"Released lock for {name} (pid {holder})", highlight=False)
    else:
        console.print(f"No lock held for {name}", highlight=False)
