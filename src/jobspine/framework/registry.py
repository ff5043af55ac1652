"""Job registry: explicit descriptors for every known job.

Manifesto:
    The runner should not care how a job became known. Jobs are registered
    either with the ``@register_job`` decorator or by scanning a
    job-definitions directory; both produce the same ``JobDescriptor``.

Directory convention::

    jobs/
      Heartbeat.py             class Heartbeat(BaseJob)  -> runnable
      PriceWatch.py            class PriceWatch(BaseJob) -> runnable
      Cleanup.disable.py       present, disabled, never imported
      Backup-disable.py        present, disabled, never imported
      _helpers.py              ignored

    Each runnable file is imported as ``jobs.<stem>`` and must define a
    ``BaseJob`` subclass named ``<stem>``. A bad file is logged and skipped;
    it never stops discovery.

    A job's identity (lock and state file names) is ``jobs.<stem>.<stem>``
    whether or not its file is disabled, unless the class sets ``job_id``.
    When both ``X.py`` and a disabled copy of it exist, ``X.py`` wins and
    the disabled copy is ignored.

Tags:
    jobspine, framework, registry, discovery

Doc-Types:
    api-reference
"""

from __future__ import annotations

import importlib.util
import inspect
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jobspine.core.errors import (
    DiscoveryValidationError,
    JobNotFoundError,
    JobRegistrationError,
    JobsDirectoryNotFoundError,
)
from jobspine.core.logging import get_logger
from jobspine.framework.job import BaseJob

DISABLED_SUFFIX = re.compile(r"[-.]disable\.py$")
JOB_MODULE_PACKAGE = "jobs"


def is_disabled_file(path: str | Path) -> bool:
    """True for ``X.disable.py`` and ``X-disable.py``."""
    return DISABLED_SUFFIX.search(Path(path).name) is not None


def job_name_from_file(path: str | Path) -> str:
    """Registry name for a definition file (stem without the disabled suffix)."""
    return DISABLED_SUFFIX.sub("", Path(path).name).removesuffix(".py")


def file_job_identity(name: str) -> str:
    """Identity of the class a definition file named ``name`` defines."""
    return f"{JOB_MODULE_PACKAGE}.{name}.{name}"


@dataclass(frozen=True)
class JobDescriptor:
    """One registry entry.

    ``job_cls`` is None for disabled definition files, which are never
    imported.
    """

    name: str
    job_cls: type[BaseJob] | None
    identity: str
    source: Path | None = None
    enabled: bool = True


class JobRegistry:
    """Ordered name -> descriptor map.

    Order is registration order, which for discovery is sorted file order;
    the runner processes jobs in this order.
    """

    def __init__(self, *, logger: Any = None) -> None:
        self._jobs: dict[str, JobDescriptor] = {}
        self.logger = logger or get_logger(__name__)

    def register(
        self,
        job_cls: type[BaseJob],
        name: str | None = None,
        *,
        source: Path | None = None,
        enabled: bool = True,
    ) -> JobDescriptor:
        """Register a job class.

        Raises:
            JobRegistrationError: If the name is taken or ``job_cls`` is not
                a concrete ``BaseJob`` subclass
        """
        if not (inspect.isclass(job_cls) and issubclass(job_cls, BaseJob)):
            raise JobRegistrationError(f"{job_cls!r} is not a BaseJob subclass")
        if inspect.isabstract(job_cls):
            raise JobRegistrationError(f"{job_cls.__name__} does not implement execute()")

        name = name or job_cls.__name__
        self._check_free(name)
        descriptor = JobDescriptor(
            name=name,
            job_cls=job_cls,
            identity=job_cls.identity(),
            source=source,
            enabled=enabled,
        )
        self._jobs[name] = descriptor
        self.logger.debug("job_registered", name=name, identity=descriptor.identity)
        return descriptor

    def _check_free(self, name: str) -> None:
        if name in self._jobs:
            raise JobRegistrationError(
                f"Job '{name}' is already registered", context={"job": name}
            )

    def discover(self, jobs_dir: str | Path) -> list[JobDescriptor]:
        """Register every job definition file in ``jobs_dir``.

        Returns:
            Descriptors added by this call (runnable and disabled)

        Raises:
            JobsDirectoryNotFoundError: If ``jobs_dir`` is not a directory
        """
        jobs_dir = Path(jobs_dir)
        if not jobs_dir.is_dir():
            raise JobsDirectoryNotFoundError(jobs_dir)

        added = []
        for path in sorted(jobs_dir.glob("*.py")):
            if path.name.startswith("_"):
                continue
            if is_disabled_file(path) and path.with_name(f"{job_name_from_file(path)}.py").exists():
                self.logger.warning(
                    "job_disabled_copy_ignored",
                    source=str(path),
                    job=job_name_from_file(path),
                )
                continue
            try:
                if is_disabled_file(path):
                    descriptor = self._register_disabled(path)
                else:
                    descriptor = self.register(
                        load_job_class(path), job_name_from_file(path), source=path
                    )
            except (DiscoveryValidationError, JobRegistrationError) as exc:
                self.logger.warning(
                    "job_discovery_skipped",
                    source=str(path),
                    error=exc.message,
                    error_type=type(exc).__name__,
                )
                continue
            added.append(descriptor)

        self.logger.info(
            "jobs_discovered",
            jobs_dir=str(jobs_dir),
            runnable=sum(1 for d in added if d.enabled),
            disabled=sum(1 for d in added if not d.enabled),
        )
        return added

    def _register_disabled(self, path: Path) -> JobDescriptor:
        name = job_name_from_file(path)
        self._check_free(name)
        descriptor = JobDescriptor(
            name=name,
            job_cls=None,
            identity=file_job_identity(name),
            source=path,
            enabled=False,
        )
        self._jobs[name] = descriptor
        return descriptor

    def get(self, name: str) -> JobDescriptor:
        """Get a descriptor by name.

        Raises:
            JobNotFoundError: If no job is registered under ``name``
        """
        if name not in self._jobs:
            raise JobNotFoundError(name, available=list(self._jobs))
        return self._jobs[name]

    def runnable(self) -> list[JobDescriptor]:
        """Enabled descriptors in registration order."""
        return [d for d in self._jobs.values() if d.enabled]

    def all(self) -> list[JobDescriptor]:
        return list(self._jobs.values())

    def names(self) -> list[str]:
        return list(self._jobs)

    def clear(self) -> None:
        """Forget every descriptor (for testing)."""
        self._jobs.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)


def load_job_class(path: str | Path) -> type[BaseJob]:
    """Import a definition file as ``jobs.<stem>`` and return class ``<stem>``.

    The file is executed afresh on every call.

    Raises:
        DiscoveryValidationError: If the file cannot be imported or does not
            define a concrete ``BaseJob`` subclass named after the file
    """
    path = Path(path)
    stem = path.stem
    module_name = f"{JOB_MODULE_PACKAGE}.{stem}"

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise DiscoveryValidationError(path, f"Cannot load {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        sys.modules.pop(module_name, None)
        raise DiscoveryValidationError(
            path, f"Failed to import {path.name}: {exc}", cause=exc
        ) from exc

    job_cls = getattr(module, stem, None)
    if job_cls is None or not inspect.isclass(job_cls):
        raise DiscoveryValidationError(path, f"Class {module_name}.{stem} not found in {path.name}")
    if not issubclass(job_cls, BaseJob):
        raise DiscoveryValidationError(path, f"Class {module_name}.{stem} must extend BaseJob")
    if inspect.isabstract(job_cls):
        raise DiscoveryValidationError(path, f"Class {module_name}.{stem} does not implement execute()")
    return job_cls


# Default registry used by @register_job and the CLI
job_registry = JobRegistry()


def register_job(
    name: str | None = None, *, registry: JobRegistry | None = None
) -> Callable[[type[BaseJob]], type[BaseJob]]:
    """Decorator to register a job class.

    Usage:
        @register_job("heartbeat")
        class Heartbeat(BaseJob):
            def execute(self) -> None:
                ...
    """

    def decorator(cls: type[BaseJob]) -> type[BaseJob]:
        (registry or job_registry).register(cls, name)
        return cls

    return decorator


def clear_registry() -> None:
    """Clear the default registry (for testing)."""
    job_registry.clear()


__all__ = [
    "JobDescriptor",
    "JobRegistry",
    "job_registry",
    "register_job",
    "clear_registry",
    "load_job_class",
    "is_disabled_file",
    "job_name_from_file",
    "file_job_identity",
]
