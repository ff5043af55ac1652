"""Settings for jobspine.

Manifesto:
    Where jobs live, where locks/state/log artifacts go and how alerts are
    delivered are deployment decisions. They come from the environment
    (``JOBSPINE_*``) or a ``.env`` file, validated once at startup.

    - **Pydantic validation:** Type-checked at startup, not mid-run
    - **Environment-driven:** Reads from env vars and .env files
    - **Derived paths:** lock/state/log dirs default to subdirectories of
      ``data_dir`` so that one variable relocates everything

Examples:
    >>> from jobspine.core.settings import JobSpineSettings
    >>> s = JobSpineSettings(data_dir="/var/lib/jobspine")
    >>> s.lock_dir
    PosixPath('/var/lib/jobspine/locks')

Tags:
    settings, configuration, pydantic, environment, jobspine
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class JobSpineSettings(BaseSettings):
    """Runtime settings shared by the runner, the CLI and the jobs.

    Fields
    ──────
    jobs_dir          : Directory holding job-definition files
    data_dir          : Root for locks, state and log artifacts
    lock_dir          : Lock files (default: data_dir/locks)
    state_dir         : State documents (default: data_dir/state)
    log_dir           : Detached run log artifacts (default: data_dir/logs)
    log_level         : Structlog log level
    json_logs         : Force JSON (True) / console (False) output; None = auto
    alert_console     : Print alerts to the console
    alert_webhook_url : POST alerts as JSON to this URL
    """

    model_config = SettingsConfigDict(
        env_prefix="JOBSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Discovery ────────────────────────────────────────────────
    jobs_dir: Path = Field(
        default_factory=lambda: Path.cwd() / "jobs",
        description="Directory holding job-definition files",
    )

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".jobspine",
        description="Root directory for locks, state and logs",
    )
    lock_dir: Path | None = None
    state_dir: Path | None = None
    log_dir: Path | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Alerts ───────────────────────────────────────────────────
    alert_console: bool = False
    alert_webhook_url: str | None = None

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return upper

    @model_validator(mode="after")
    def _derive_dirs(self) -> JobSpineSettings:
        if self.lock_dir is None:
            self.lock_dir = self.data_dir / "locks"
        if self.state_dir is None:
            self.state_dir = self.data_dir / "state"
        if self.log_dir is None:
            self.log_dir = self.data_dir / "logs"
        return self


@lru_cache(maxsize=1)
def get_settings() -> JobSpineSettings:
    """Return the process-wide settings (read once)."""
    return JobSpineSettings()


def reset_settings() -> None:
    """Forget cached settings (for testing)."""
    get_settings.cache_clear()


__all__ = ["JobSpineSettings", "get_settings", "reset_settings"]
