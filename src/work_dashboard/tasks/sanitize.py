"""Input sanitization for task records.

Required identifiers (project, title, date) raise ``TaskValidationError``.
Every other field is coerced to a safe default instead of failing.
"""

import math
import re
from collections.abc import Mapping
from typing import Any

from work_dashboard.tasks.models import (
    TaskActual,
    TaskActualInput,
    TaskActualLog,
    TaskCreateInput,
    TaskEstimate,
    TaskEstimateInput,
    TaskPriority,
    TaskStatus,
)
from work_dashboard.timecalc.duration import TIME_PATTERN, format_iso, parse_iso

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class TaskValidationError(ValueError):
    """A required task field is missing or malformed."""


def normalize_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_date(value: Any) -> str:
    """Validate a ``yyyy-mm-dd`` date key.

    Raises:
        TaskValidationError: If the value does not match the pattern
    """
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        raise TaskValidationError(f"Invalid task date: {value!r} (expected yyyy-mm-dd)")
    return value


def is_date_key(value: Any) -> bool:
    return isinstance(value, str) and DATE_PATTERN.fullmatch(value) is not None


def normalize_time_value(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed if TIME_PATTERN.fullmatch(trimmed) else None


def normalize_minutes(value: Any) -> int:
    """Floor to a non-negative int; non-numbers, non-finite and <= 0 become 0."""
    # bool is an int subclass but never a minute count
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    if not math.isfinite(value) or value <= 0:
        return 0
    return math.floor(value)


def normalize_iso_value(value: Any) -> str | None:
    parsed = parse_iso(value)
    return format_iso(parsed) if parsed is not None else None


def normalize_actual_logs(logs: Any) -> list[TaskActualLog]:
    """Keep only log entries with a parseable start and a null or parseable end."""
    if not isinstance(logs, list):
        return []

    result: list[TaskActualLog] = []
    for log in logs:
        if isinstance(log, TaskActualLog):
            log = log.model_dump()
        if not isinstance(log, Mapping) or "end" not in log:
            continue
        start = log.get("start")
        end = log.get("end")
        if not isinstance(start, str) or parse_iso(start) is None:
            continue
        if end is not None and (not isinstance(end, str) or parse_iso(end) is None):
            continue
        result.append(TaskActualLog(start=start, end=end))
    return result


def normalize_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        return TaskStatus.TODO


def normalize_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        return TaskPriority.MEDIUM


def sanitize_estimate(estimated: TaskEstimateInput | None) -> TaskEstimate:
    if estimated is None:
        return TaskEstimate()
    return TaskEstimate(
        start=normalize_time_value(estimated.start),
        end=normalize_time_value(estimated.end),
        minutes=normalize_minutes(estimated.minutes),
    )


def sanitize_actual(actual: TaskActualInput | None) -> TaskActual:
    """Coerce the tracked-time sub-record; also used for read-time normalization."""
    if actual is None:
        return TaskActual()
    return TaskActual(
        minutes=normalize_minutes(actual.minutes),
        suspend_minutes=normalize_minutes(actual.suspend_minutes),
        suspend_started_at=normalize_iso_value(actual.suspend_started_at),
        logs=normalize_actual_logs(actual.logs),
    )


def sanitize_task_fields(source: TaskCreateInput) -> dict[str, Any]:
    """Sanitize user-editable task fields.

    Args:
        source: Create or update input

    Returns:
        Field values ready to be placed on a ``Task`` (snake_case keys)

    Raises:
        TaskValidationError: If project or title is empty, or date is malformed
    """
    project = normalize_text(source.project)
    title = normalize_text(source.title)
    if not project:
        raise TaskValidationError("project is required")
    if not title:
        raise TaskValidationError("title is required")

    return {
        "date": normalize_date(source.date),
        "project": project,
        "category": normalize_text(source.category),
        "title": title,
        "status": normalize_status(source.status),
        "priority": normalize_priority(source.priority),
        "memo": normalize_text(source.memo),
        "estimated": sanitize_estimate(source.estimated),
        "actual": sanitize_actual(source.actual),
    }
