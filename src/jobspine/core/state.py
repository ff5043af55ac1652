"""Per-job persistent key/value state.

Manifesto:
    Recurring jobs need memory between runs: the last cursor processed, the
    last value seen, whether an alert was already sent. Each job identity
    gets one JSON document; every write rewrites the whole document.

    - **Change detection:** ``set`` reports whether the value changed
      (deep equality on the JSON form) and fires a callback only then
    - **Explicit callback shapes:** callbacks declare how many arguments
      they take by wrapping them (``no_args``, ``one_arg``, ``two_args``);
      there is no signature introspection
    - **Atomic replace:** documents are written to a temp file and renamed,
      so a crash never leaves half a document behind

Guardrails:
    There is no lock between reading and writing the document. Runs of a
    non-overlapping job are already serialised by its lock file; jobs with
    ``allow_overlapping=True`` that write state can lose updates, and
    making that safe is the job author's responsibility.

Examples:
    >>> store = JobStateStore("jobs.PriceWatch", "/tmp/jobspine/state")
    >>> store.set("price", 42, one_arg(lambda new: print("now", new)))
    now 42
    True
    >>> store.set("price", 42)
    False
    >>> store.check_and_update("price", 40, two_args(lambda new, old: new < old))
    True

Tags:
    jobspine, state, json, persistence
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from jobspine.core.errors import StateError
from jobspine.core.logging import get_logger
from jobspine.core.scheduling.lock_manager import safe_file_stem


class CallbackShape(str, Enum):
    """How many arguments a state callback takes."""

    NO_ARGS = "no_args"
    ONE_ARG = "one_arg"
    TWO_ARGS = "two_args"


@dataclass(frozen=True)
class StateCallback:
    """A callable tagged with its argument shape.

    ``ONE_ARG`` receives the new value for change callbacks and the old
    value for update predicates. ``TWO_ARGS`` always receives
    ``(new, old)``.
    """

    fn: Callable[..., Any]
    shape: CallbackShape = CallbackShape.TWO_ARGS

    def invoke(self, new: Any, old: Any, *, single: Any) -> Any:
        if self.shape is CallbackShape.NO_ARGS:
            return self.fn()
        if self.shape is CallbackShape.ONE_ARG:
            return self.fn(single)
        return self.fn(new, old)


def no_args(fn: Callable[[], Any]) -> StateCallback:
    """Wrap a callback that takes no arguments."""
    return StateCallback(fn, CallbackShape.NO_ARGS)


def one_arg(fn: Callable[[Any], Any]) -> StateCallback:
    """Wrap a callback that takes one value (new on change, old in predicates)."""
    return StateCallback(fn, CallbackShape.ONE_ARG)


def two_args(fn: Callable[[Any, Any], Any]) -> StateCallback:
    """Wrap a callback that takes ``(new, old)``."""
    return StateCallback(fn, CallbackShape.TWO_ARGS)


Callback = StateCallback | Callable[..., Any]


def _as_callback(callback: Callback) -> StateCallback:
    if isinstance(callback, StateCallback):
        return callback
    return StateCallback(callback, CallbackShape.TWO_ARGS)


def _normalize(value: Any) -> Any:
    """Return ``value`` as it will read back from JSON (tuples become lists)."""
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as exc:
        raise StateError(f"State value is not JSON-serialisable: {value!r}", cause=exc) from exc


class JobStateStore:
    """JSON document of key/value state for one job identity.

    The document is created lazily on the first write and is never deleted
    by the framework.
    """

    def __init__(self, job_id: str, state_dir: str | Path, *, logger: Any = None) -> None:
        self.job_id = job_id
        self.state_dir = Path(state_dir)
        self.logger = logger or get_logger(__name__)

    @property
    def path(self) -> Path:
        return self.state_dir / f"job_state_{safe_file_stem(self.job_id)}.json"

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            self.logger.warning("state_document_corrupt", job_id=self.job_id, path=str(self.path))
            return {}
        if not isinstance(data, dict):
            self.logger.warning("state_document_not_object", job_id=self.job_id, path=str(self.path))
            return {}
        return data

    def _save(self, state: dict[str, Any]) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, prefix=".tmp_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(state, handle)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default``."""
        return self._load().get(key, default)

    def all(self) -> dict[str, Any]:
        """Return a copy of the whole state document."""
        return dict(self._load())

    def set(self, key: str, value: Any, on_changed: Callback | None = None) -> bool:
        """Store ``value`` under ``key`` if it differs from the current value.

        A missing key counts as ``None``, so setting ``None`` on a missing
        key is a no-op.

        Returns:
            True if the value changed (and ``on_changed`` was invoked once),
            False if it was already equal (nothing written, no callback)
        """
        state = self._load()
        old_value = state.get(key)
        new_value = _normalize(value)

        if new_value == old_value:
            return False

        state[key] = new_value
        self._save(state)
        self.logger.debug("state_changed", job_id=self.job_id, key=key)

        if on_changed is not None:
            _as_callback(on_changed).invoke(new_value, old_value, single=new_value)
        return True

    def check_and_update(self, key: str, candidate: Any, predicate: Callback) -> bool:
        """Commit ``candidate`` under ``key`` if ``predicate`` approves.

        The predicate receives ``()``, ``(old)`` or ``(candidate, old)``
        depending on its shape.

        Returns:
            Whether the predicate approved the update
        """
        old_value = self.get(key)
        approved = bool(_as_callback(predicate).invoke(candidate, old_value, single=old_value))
        if approved:
            self.set(key, candidate)
        return approved


__all__ = [
    "CallbackShape",
    "StateCallback",
    "JobStateStore",
    "no_args",
    "one_arg",
    "two_args",
]
