"""Five-field cron matching.

Manifesto:
    Whether a job is due is a pure function of its schedule and the current
    time. Nothing is persisted between checks, so there is no "next run"
    to drift out of sync: the runner simply asks ``is_due(schedule, now)``
    every time it is triggered. The cost is that a due minute is skipped if
    the trigger itself does not fire during that minute.

Pattern grammar (per field)::

    *        always matches
    */n      value % n == 0  (same rule for every field, whatever its base)
    a,b,c    str(value) equals one of the listed strings (no zero padding)
    a-b      a <= value <= b
    literal  str(value) == literal

    Precedence: step, then list, then range, then literal.

    Values are rendered with ``str()``, never zero-padded: ``0`` matches
    minute 0 and ``5,30`` matches minute 5, but ``05`` never matches
    anything. Write fields without leading zeros.

Fields: minute, hour, day-of-month, month, day-of-week (0 = Sunday).

Tags:
    jobspine, scheduling, cron, pure-function
"""

from __future__ import annotations

from datetime import datetime

from jobspine.core.errors import ScheduleError
from jobspine.core.logging import get_logger

logger = get_logger(__name__)

FIELD_NAMES = ("minute", "hour", "day_of_month", "month", "day_of_week")


def field_values(now: datetime) -> tuple[int, int, int, int, int]:
    """Return the five cron field values for ``now``.

    Python's ``weekday()`` counts from Monday; cron counts from Sunday.
    """
    return (
        now.minute,
        now.hour,
        now.day,
        now.month,
        (now.weekday() + 1) % 7,
    )


def split_schedule(schedule: str) -> list[str]:
    """Split a schedule into its fields, raising if there are not five."""
    parts = schedule.split()
    if len(parts) != len(FIELD_NAMES):
        raise ScheduleError(
            schedule, f"expected {len(FIELD_NAMES)} fields, got {len(parts)}"
        )
    return parts


def matches_field(pattern: str, value: int) -> bool:
    """Check a single field pattern against a numeric value.

    Malformed patterns (zero or non-numeric step, non-numeric range bounds)
    never match.
    """
    if pattern == "*":
        return True

    if "/" in pattern:
        _, _, step = pattern.partition("/")
        try:
            divisor = int(step)
        except ValueError:
            return False
        if divisor <= 0:
            return False
        return value % divisor == 0

    current = str(value)

    if "," in pattern:
        return current in pattern.split(",")

    if "-" in pattern:
        start, _, end = pattern.partition("-")
        try:
            return int(start) <= value <= int(end)
        except ValueError:
            return False

    return pattern == current


def is_due(schedule: str, now: datetime) -> bool:
    """Return True if ``schedule`` matches ``now``.

    A schedule that does not have exactly five fields is a configuration
    error; it fails closed (never due) and a warning is logged.

    Examples:
        >>> from datetime import datetime
        >>> is_due("*/15 * * * *", datetime(2024, 1, 1, 10, 30))
        True
        >>> is_due("0-5 * * * *", datetime(2024, 1, 1, 10, 6))
        False
    """
    try:
        parts = split_schedule(schedule)
    except ScheduleError as exc:
        logger.warning("invalid_schedule", schedule=schedule, reason=exc.reason)
        return False

    return all(
        matches_field(pattern, value)
        for pattern, value in zip(parts, field_values(now), strict=True)
    )


def validate_schedule(schedule: str) -> None:
    """Raise ``ScheduleError`` if ``schedule`` is malformed.

    Checks the field count and that every step/range/list/literal token is
    numeric. ``is_due`` does not call this; it only needs the field count.
    """
    for name, pattern in zip(FIELD_NAMES, split_schedule(schedule), strict=True):
        if pattern == "*":
            continue
        if "/" in pattern:
            _, _, step = pattern.partition("/")
            if not step.isdigit() or int(step) == 0:
                raise ScheduleError(schedule, f"{name}: bad step in {pattern!r}")
            continue
        tokens = pattern.split(",") if "," in pattern else pattern.split("-")
        if "-" in pattern and "," not in pattern and len(tokens) != 2:
            raise ScheduleError(schedule, f"{name}: bad range {pattern!r}")
        if not all(token.isdigit() for token in tokens):
            raise ScheduleError(schedule, f"{name}: non-numeric value in {pattern!r}")


__all__ = [
    "FIELD_NAMES",
    "field_values",
    "split_schedule",
    "matches_field",
    "is_due",
    "validate_schedule",
]
