"""Source template for ``jobspine create``."""

from __future__ import annotations

import re

JOB_NAME_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9]+$")

JOB_TEMPLATE = '''"""{{JobName}} job."""

from jobspine import BaseJob, JobConfig


class {{JobName}}(BaseJob):
    config = JobConfig(
        schedule="* * * * *",  # Run every minute
        timeout_seconds=300,  # 5 minutes
        allow_overlapping=False,  # Don't allow multiple instances
        retry_attempts=3,  # Try 3 times in total
        retry_delay_seconds=60,  # Wait 60 seconds between tries
        notify_on_error=True,
        notify_on_success=False,
    )

    def execute(self) -> None:
        # Implement your job logic here
        self.logger.info("{{JobName}} is running")
'''


def is_valid_job_name(name: str) -> bool:
    """Upper-case first letter, then letters and digits only."""
    return JOB_NAME_PATTERN.match(name) is not None


def render_job(name: str) -> str:
    return JOB_TEMPLATE.replace("{{JobName}}", name)
