"""CLI tests using typer's CliRunner."""

import json
from unittest.mock import MagicMock, patch

import pytest
from structlog.testing import capture_logs
from typer.testing import CliRunner

from jobspine.cli import app
from jobspine.core.scheduling import FileLockManager
from jobspine.core.settings import JobSpineSettings
from jobspine.framework.registry import JobRegistry


@pytest.fixture(autouse=True)
def _no_logging_setup():
    """Keep log lines out of the command output.

    configure_logging is patched so nothing binds to CliRunner's streams;
    capture_logs drops every event instead of printing it.
    """
    with patch("jobspine.cli.app.configure_logging") as configure, capture_logs():
        yield configure


@pytest.fixture
def cli(jobs_dir):
    runner = CliRunner()

    def _invoke(*args):
        return runner.invoke(app, ["--jobs-dir", str(jobs_dir), *args])

    return _invoke


class TestRoot:
    def test_version(self):
        result = CliRunner().invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("jobspine ")

    def test_no_args_shows_help(self):
        result = CliRunner().invoke(app, [])
        assert "run" in result.output
        assert "invoke" in result.output

    def test_log_level_passed_to_logging(self, cli, _no_logging_setup):
        result = cli("--log-level", "debug", "list")
        assert result.exit_code == 0
        assert _no_logging_setup.call_args.kwargs["level"] == "DEBUG"

    def test_invalid_log_level(self):
        result = CliRunner().invoke(app, ["--log-level", "chatty", "list"])
        assert result.exit_code == 1
        assert "Invalid settings" in result.output


class TestList:
    def test_enabled_disabled_invalid(self, cli, write_job):
        write_job("Alpha", config="JobConfig(schedule='*/5 * * * *')")
        write_job("Gamma", filename="Gamma.disable.py")
        write_job("Broken", source="not python at all\n")

        result = cli("list", "--json")

        assert result.exit_code == 0
        rows = {row["name"]: row for row in json.loads(result.output)}
        assert rows["Alpha"] == {"name": "Alpha", "status": "Enabled", "schedule": "*/5 * * * *"}
        assert rows["Gamma"]["status"] == "Disabled"
        assert rows["Broken"]["status"] == "Invalid"

    def test_table(self, cli, write_job):
        write_job("Alpha")
        result = cli("list")
        assert result.exit_code == 0
        assert "Alpha" in result.output
        assert "Enabled" in result.output

    def test_empty(self, cli):
        result = cli("list")
        assert result.exit_code == 0
        assert "No jobs found" in result.output

    def test_missing_directory(self, tmp_path):
        result = CliRunner().invoke(app, ["--jobs-dir", str(tmp_path / "nope"), "list"])
        assert result.exit_code == 1
        assert "Jobs directory not found" in result.output


class TestEnableDisable:
    def test_disable_renames(self, cli, write_job, jobs_dir):
        write_job("Alpha")
        result = cli("disable", "Alpha")
        assert result.exit_code == 0
        assert "Disabled job: Alpha" in result.output
        assert not (jobs_dir / "Alpha.py").exists()
        assert (jobs_dir / "Alpha.disable.py").exists()

    def test_disable_missing(self, cli):
        result = cli("disable", "Nope")
        assert result.exit_code == 1
        assert "Job Nope not found" in result.output

    @pytest.mark.parametrize("filename", ["Alpha.disable.py", "Alpha-disable.py"])
    def test_enable_renames(self, cli, write_job, jobs_dir, filename):
        write_job("Alpha", filename=filename)
        result = cli("enable", "Alpha")
        assert result.exit_code == 0
        assert "Enabled job: Alpha" in result.output
        assert (jobs_dir / "Alpha.py").exists()
        assert not (jobs_dir / filename).exists()

    def test_enable_missing(self, cli):
        result = cli("enable", "Nope")
        assert result.exit_code == 1
        assert "Disabled job Nope not found" in result.output

    def test_disable_then_run_skips_job(self, cli, write_job):
        write_job("Alpha")
        cli("disable", "Alpha")
        result = cli("run", "--json")
        assert json.loads(result.output)["total"] == 0


class TestCreate:
    def test_creates_discoverable_job(self, cli, jobs_dir):
        result = cli("create", "PriceWatch")

        assert result.exit_code == 0
        assert "Created new job" in result.output
        path = jobs_dir / "PriceWatch.py"
        assert "class PriceWatch(BaseJob):" in path.read_text()

        registry = JobRegistry()
        registry.discover(jobs_dir)
        descriptor = registry.get("PriceWatch")
        assert descriptor.job_cls.config.schedule == "* * * * *"
        assert descriptor.job_cls.config.retry_attempts == 3

    @pytest.mark.parametrize("name", ["priceWatch", "Price_Watch", "P", "9Lives"])
    def test_invalid_name(self, cli, jobs_dir, name):
        result = cli("create", name)
        assert result.exit_code == 1
        assert list(jobs_dir.iterdir()) == []

    @pytest.mark.parametrize("existing", ["Alpha.py", "Alpha.disable.py", "Alpha-disable.py"])
    def test_existing_job(self, cli, write_job, existing):
        write_job("Alpha", filename=existing)
        result = cli("create", "Alpha")
        assert result.exit_code == 1
        assert "already exists" in result.output


class TestInvoke:
    def test_sync_force(self, cli, write_job, jobs_dir):
        write_job("Alpha", config="JobConfig(schedule='0 0 1 1 *')")
        result = cli("invoke", "Alpha", "--sync", "--force")
        assert result.exit_code == 0
        assert "Alpha: succeeded" in result.output

    def test_sync_not_due(self, cli, write_job):
        write_job("Alpha", config="JobConfig(schedule='0 0 1 1 *')")
        result = cli("invoke", "Alpha", "--sync")
        assert result.exit_code == 0
        assert "Alpha: skipped_not_due" in result.output

    def test_sync_quiet_prints_nothing_on_success(self, cli, write_job):
        write_job("Alpha")
        result = cli("invoke", "Alpha", "--sync", "--quiet")
        assert result.exit_code == 0
        assert "Alpha: succeeded" not in result.output

    def test_sync_failure_exits_nonzero(self, cli, write_job):
        write_job("Broken", body="raise RuntimeError('boom')")
        result = cli("invoke", "Broken", "--sync", "--quiet")
        assert result.exit_code == 1
        assert "RuntimeError: boom" in result.output

    def test_unknown_job(self, cli, write_job):
        write_job("Alpha")
        result = cli("invoke", "Nope", "--sync")
        assert result.exit_code == 1
        assert "Nope" in result.output

    def test_jobs_dir_option_on_invoke(self, write_job, jobs_dir):
        """The form used by detached children: --jobs-dir after the name."""
        write_job("Alpha")
        result = CliRunner().invoke(app, ["invoke", "Alpha", "--sync", "--jobs-dir", str(jobs_dir)])
        assert result.exit_code == 0

    @patch("jobspine.framework.runner.SubprocessLauncher")
    def test_background_by_default(self, mock_launcher_cls, cli, write_job, jobs_dir):
        mock_launcher_cls.return_value = MagicMock(**{"spawn_detached.return_value": 4242})
        write_job("Alpha")

        result = cli("invoke", "Alpha")

        assert result.exit_code == 0
        assert "started in background with PID 4242" in result.output
        command, log_path = mock_launcher_cls.return_value.spawn_detached.call_args.args
        assert command[-5:] == ["Alpha", "--sync", "--quiet", "--jobs-dir", str(jobs_dir)]
        assert log_path.name.startswith("job-Alpha-")


class TestRun:
    def test_all_succeed(self, cli, write_job):
        write_job("Alpha")
        write_job("Beta")
        result = cli("run")
        assert result.exit_code == 0
        assert "Alpha: succeeded" in result.output
        assert "Beta: succeeded" in result.output

    def test_failure_exits_nonzero_after_running_others(self, cli, write_job):
        write_job("Alpha", body="raise RuntimeError('boom')")
        write_job("Beta")
        result = cli("run", "--json")
        assert result.exit_code == 1
        report = json.loads(result.output)
        assert report["failed"] == 1
        assert report["succeeded"] == 1

    def test_empty_directory(self, cli):
        result = cli("run")
        assert result.exit_code == 0

    @patch("jobspine.framework.runner.SubprocessLauncher")
    def test_background(self, mock_launcher_cls, cli, write_job):
        mock_launcher_cls.return_value = MagicMock(**{"spawn_detached.return_value": 7})
        write_job("Alpha")
        result = cli("run", "--background", "--json")
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["dispatched"] == 1
        assert report["results"][0]["pid"] == 7


class TestUnlock:
    def test_releases_stale_lock(self, cli, write_job, jobs_dir):
        write_job("Alpha")
        manager = FileLockManager(JobSpineSettings(jobs_dir=jobs_dir).lock_dir)
        manager.try_acquire("jobs.Alpha.Alpha")

        result = cli("unlock", "Alpha")

        assert result.exit_code == 0
        assert "Released lock for Alpha" in result.output
        assert not manager.is_locked("jobs.Alpha.Alpha")

    def test_releases_lock_of_disabled_job(self, cli, write_job, jobs_dir):
        """Disabling a job after a crash must not hide its stale lock."""
        path = write_job("Stuck")
        manager = FileLockManager(JobSpineSettings(jobs_dir=jobs_dir).lock_dir)
        manager.try_acquire("jobs.Stuck.Stuck")
        path.rename(jobs_dir / "Stuck.disable.py")

        result = cli("unlock", "Stuck")

        assert result.exit_code == 0
        assert "Released lock for Stuck" in result.output
        assert not manager.is_locked("jobs.Stuck.Stuck")

    def test_releases_lock_of_unknown_job(self, cli, jobs_dir):
        manager = FileLockManager(JobSpineSettings(jobs_dir=jobs_dir).lock_dir)
        manager.try_acquire("jobs.Gone.Gone")

        result = cli("unlock", "Gone")

        assert "Released lock for Gone" in result.output
        assert not manager.is_locked("jobs.Gone.Gone")

    def test_no_lock(self, cli):
        result = cli("unlock", "Alpha")
        assert result.exit_code == 0
        assert "No lock held for Alpha" in result.output
