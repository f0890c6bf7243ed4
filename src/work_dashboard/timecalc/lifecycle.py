"""Task lifecycle transitions with wall-clock time accounting.

All functions are pure: they take a task and the current instant (ISO string)
and return a new task. Persisting the result is the caller's job.

    todo -> doing -> suspend -> doing ... -> done | carryover | finished
"""

from datetime import tzinfo

from work_dashboard.tasks.models import Task, TaskActual, TaskActualLog, TaskStatus
from work_dashboard.timecalc.duration import calculate_elapsed_minutes

TERMINAL_STATUSES = frozenset({TaskStatus.DONE, TaskStatus.CARRYOVER, TaskStatus.FINISHED})


class LifecycleError(ValueError):
    """Transition not allowed from the task's current status."""


def _latest_open_log_index(logs: list[TaskActualLog]) -> int | None:
    for index in range(len(logs) - 1, -1, -1):
        if logs[index].end is None:
            return index
    return None


def _close_latest_open_log(
    logs: list[TaskActualLog], now: str, tz: tzinfo | None
) -> tuple[list[TaskActualLog], int]:
    """Close the most recent open log.

    Returns:
        (new log list, elapsed work minutes of the closed log)
    """
    index = _latest_open_log_index(logs)
    if index is None:
        return list(logs), 0

    open_log = logs[index]
    closed = [*logs[:index], open_log.model_copy(update={"end": now}), *logs[index + 1 :]]
    return closed, calculate_elapsed_minutes(open_log.start, now, tz)


def _pending_suspend_minutes(actual: TaskActual, now: str, tz: tzinfo | None) -> int:
    if not actual.suspend_started_at:
        return 0
    return calculate_elapsed_minutes(actual.suspend_started_at, now, tz)


def has_open_log(task: Task) -> bool:
    return _latest_open_log_index(task.actual.logs) is not None


def _ensure_not_terminal(task: Task, action: str) -> None:
    if task.status in TERMINAL_STATUSES:
        raise LifecycleError(f"Cannot {action} task {task.id}: status is {task.status}")


def start(task: Task, now: str, tz: tzinfo | None = None) -> Task:
    """Begin (or resume) tracking.

    Folds any open suspend interval into ``suspendMinutes`` and opens a log
    unless one is already open.

    Raises:
        LifecycleError: If the task is already done, carried over or finished
    """
    _ensure_not_terminal(task, "start")
    actual = task.actual
    logs = list(actual.logs)
    if _latest_open_log_index(logs) is None:
        logs.append(TaskActualLog(start=now, end=None))

    next_actual = actual.model_copy(
        update={
            "suspend_minutes": actual.suspend_minutes + _pending_suspend_minutes(actual, now, tz),
            "suspend_started_at": None,
            "logs": logs,
        }
    )
    return task.model_copy(update={"status": TaskStatus.DOING, "actual": next_actual})


def resume(task: Task, now: str, tz: tzinfo | None = None) -> Task:
    return start(task, now, tz)


def suspend(task: Task, now: str, tz: tzinfo | None = None) -> Task:
    """Pause tracking: close the open log and open a suspend interval.

    Raises:
        LifecycleError: If the task is already done, carried over or finished
    """
    _ensure_not_terminal(task, "suspend")
    actual = task.actual
    logs, added_minutes = _close_latest_open_log(actual.logs, now, tz)

    next_actual = actual.model_copy(
        update={
            "minutes": actual.minutes + added_minutes,
            "suspend_started_at": actual.suspend_started_at or now,
            "logs": logs,
        }
    )
    return task.model_copy(update={"status": TaskStatus.SUSPEND, "actual": next_actual})


def stop(task: Task, now: str, next_status: TaskStatus, tz: tzinfo | None = None) -> Task:
    """Finish tracking and move the task to a terminal status.

    Args:
        task: Task to stop
        now: Current instant (ISO)
        next_status: One of done, carryover, finished
        tz: Zone defining the daily break window

    Raises:
        LifecycleError: If next_status is not terminal
    """
    if next_status not in TERMINAL_STATUSES:
        raise LifecycleError(f"Cannot stop task {task.id} into status {next_status}")
    next_status = TaskStatus(next_status)

    actual = task.actual
    logs, added_minutes = _close_latest_open_log(actual.logs, now, tz)

    next_actual = TaskActual(
        minutes=actual.minutes + added_minutes,
        suspend_minutes=actual.suspend_minutes + _pending_suspend_minutes(actual, now, tz),
        suspend_started_at=None,
        logs=logs,
    )
    return task.model_copy(update={"status": next_status, "actual": next_actual})


def live_actual_minutes(task: Task, now: str, tz: tzinfo | None = None) -> int:
    """Closed minutes plus whatever the open log has accumulated so far."""
    index = _latest_open_log_index(task.actual.logs)
    if index is None:
        return task.actual.minutes
    return task.actual.minutes + calculate_elapsed_minutes(task.actual.logs[index].start, now, tz)
