"""
Shared pytest fixtures for jobspine tests.

This module provides:
- Environment isolation (no JOBSPINE_* leakage, fresh settings cache)
- Settings rooted in a temporary directory
- A jobs directory plus a helper to write job definition files
- Registry and structlog cleanup between tests
"""

import os
import sys
import textwrap
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog

# Ensure jobspine is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from jobspine.core.settings import JobSpineSettings, reset_settings
from jobspine.framework.alerts import AlertDispatcher
from jobspine.framework.registry import clear_registry


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Keep every test away from the real environment and home directory."""
    for key in list(os.environ):
        if key.startswith("JOBSPINE_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("JOBSPINE_DATA_DIR", str(tmp_path / "env-data"))
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()
    clear_registry()
    structlog.reset_defaults()
    for name in [m for m in sys.modules if m.startswith("jobs.")]:
        del sys.modules[name]


# =============================================================================
# Settings & directories
# =============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> JobSpineSettings:
    """Settings with every directory under tmp_path."""
    return JobSpineSettings(jobs_dir=tmp_path / "jobs", data_dir=tmp_path / "data")


@pytest.fixture
def jobs_dir(settings: JobSpineSettings) -> Path:
    path = Path(settings.jobs_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def write_job(jobs_dir: Path) -> Callable[..., Path]:
    """Write a job definition file.

    Usage:
        write_job("Heartbeat", body="self.logger.info('beat')")
        write_job("Broken", filename="Broken.disable.py")
    """

    def _write(
        name: str,
        body: str = "pass",
        *,
        config: str = "JobConfig(retry_attempts=1, retry_delay_seconds=0)",
        filename: str | None = None,
        source: str | None = None,
    ) -> Path:
        path = jobs_dir / (filename or f"{name}.py")
        if source is None:
            source = textwrap.dedent(
                f"""
                from jobspine import BaseJob, JobConfig


                class {name}(BaseJob):
                    config = {config}

                    def execute(self) -> None:
                        {body}
                """
            )
        path.write_text(source, encoding="utf-8")
        return path

    return _write


# =============================================================================
# Collaborators
# =============================================================================


class RecordingChannel:
    """Alert channel that keeps every alert it receives."""

    name = "recording"
    channel_type = "custom"

    def __init__(self) -> None:
        self.alerts: list = []

    def should_send(self, alert) -> bool:
        return True

    def send(self, alert):
        from jobspine.framework.alerts import DeliveryResult

        self.alerts.append(alert)
        return DeliveryResult.ok(self.name)


@pytest.fixture
def recording_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def alerts(recording_channel: RecordingChannel) -> AlertDispatcher:
    return AlertDispatcher([recording_channel])


@pytest.fixture
def sleeps() -> list[float]:
    """Delays passed to the injected sleep function."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], None]:
    return sleeps.append
