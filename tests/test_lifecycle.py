"""Tests for task lifecycle transitions."""

from datetime import timezone
from typing import Any

import pytest

from work_dashboard.tasks.models import Task, TaskActual, TaskActualLog, TaskStatus
from work_dashboard.timecalc import lifecycle

UTC = timezone.utc


def make_task(status: TaskStatus = TaskStatus.TODO, **actual: Any) -> Task:
    return Task(
        id="task-1",
        user_id="user@example.com",
        date="2026-02-18",
        project="Project A",
        title="Write report",
        status=status,
        actual=TaskActual(**actual),
        created_at="2026-02-18T00:00:00.000Z",
        updated_at="2026-02-18T00:00:00.000Z",
    )


def test_full_lifecycle() -> None:
    """start -> suspend -> resume -> stop accumulates work and suspend minutes."""
    task = lifecycle.start(make_task(), "2026-02-18T09:00:00.000Z", UTC)
    assert task.status == TaskStatus.DOING
    assert task.actual.logs == [TaskActualLog(start="2026-02-18T09:00:00.000Z", end=None)]

    task = lifecycle.suspend(task, "2026-02-18T09:45:00.000Z", UTC)
    assert task.status == TaskStatus.SUSPEND
    assert task.actual.minutes == 45
    assert task.actual.suspend_started_at == "2026-02-18T09:45:00.000Z"
    assert not lifecycle.has_open_log(task)

    task = lifecycle.resume(task, "2026-02-18T10:15:00.000Z", UTC)
    assert task.status == TaskStatus.DOING
    assert task.actual.suspend_minutes == 30
    assert task.actual.suspend_started_at is None
    assert len(task.actual.logs) == 2
    assert lifecycle.has_open_log(task)

    task = lifecycle.stop(task, "2026-02-18T11:00:00.000Z", TaskStatus.DONE, UTC)
    assert task.status == TaskStatus.DONE
    assert task.actual.minutes == 90
    assert task.actual.suspend_minutes == 30
    assert task.actual.suspend_started_at is None
    assert not lifecycle.has_open_log(task)


def test_stop_excludes_break() -> None:
    task = lifecycle.start(make_task(), "2026-02-18T11:30:00.000Z", UTC)
    task = lifecycle.stop(task, "2026-02-18T13:30:00.000Z", TaskStatus.FINISHED, UTC)
    assert task.actual.minutes == 60


def test_stop_while_suspended_folds_suspend_interval() -> None:
    task = lifecycle.start(make_task(), "2026-02-18T09:00:00.000Z", UTC)
    task = lifecycle.suspend(task, "2026-02-18T10:00:00.000Z", UTC)
    task = lifecycle.stop(task, "2026-02-18T10:20:00.000Z", TaskStatus.CARRYOVER, UTC)

    assert task.status == TaskStatus.CARRYOVER
    assert task.actual.minutes == 60
    assert task.actual.suspend_minutes == 20
    assert task.actual.suspend_started_at is None


def test_start_does_not_open_second_log() -> None:
    task = make_task(
        TaskStatus.DOING,
        logs=[TaskActualLog(start="2026-02-18T09:00:00.000Z")],
    )
    restarted = lifecycle.start(task, "2026-02-18T09:30:00.000Z", UTC)
    assert len(restarted.actual.logs) == 1


def test_start_folds_stray_suspend_interval() -> None:
    task = make_task(TaskStatus.SUSPEND, suspend_started_at="2026-02-18T09:00:00.000Z")
    started = lifecycle.start(task, "2026-02-18T09:10:00.000Z", UTC)
    assert started.actual.suspend_minutes == 10
    assert started.actual.suspend_started_at is None


def test_suspend_without_open_log() -> None:
    task = lifecycle.suspend(make_task(), "2026-02-18T09:00:00.000Z", UTC)
    assert task.status == TaskStatus.SUSPEND
    assert task.actual.minutes == 0
    assert task.actual.suspend_started_at == "2026-02-18T09:00:00.000Z"


def test_suspend_keeps_earliest_suspend_start() -> None:
    task = make_task(TaskStatus.SUSPEND, suspend_started_at="2026-02-18T09:00:00.000Z")
    again = lifecycle.suspend(task, "2026-02-18T09:30:00.000Z", UTC)
    assert again.actual.suspend_started_at == "2026-02-18T09:00:00.000Z"


def test_transitions_do_not_mutate_input() -> None:
    original = make_task()
    lifecycle.start(original, "2026-02-18T09:00:00.000Z", UTC)
    assert original.status == TaskStatus.TODO
    assert original.actual.logs == []


@pytest.mark.parametrize("status", [TaskStatus.DONE, TaskStatus.CARRYOVER, TaskStatus.FINISHED])
def test_terminal_tasks_cannot_restart(status: TaskStatus) -> None:
    task = make_task(status)
    with pytest.raises(lifecycle.LifecycleError):
        lifecycle.start(task, "2026-02-18T09:00:00.000Z", UTC)
    with pytest.raises(lifecycle.LifecycleError):
        lifecycle.resume(task, "2026-02-18T09:00:00.000Z", UTC)
    with pytest.raises(lifecycle.LifecycleError):
        lifecycle.suspend(task, "2026-02-18T09:00:00.000Z", UTC)


@pytest.mark.parametrize("next_status", [TaskStatus.TODO, TaskStatus.DOING, "paused"])
def test_stop_requires_terminal_status(next_status: Any) -> None:
    task = lifecycle.start(make_task(), "2026-02-18T09:00:00.000Z", UTC)
    with pytest.raises(lifecycle.LifecycleError):
        lifecycle.stop(task, "2026-02-18T10:00:00.000Z", next_status, UTC)


def test_live_actual_minutes() -> None:
    task = make_task(
        TaskStatus.DOING,
        minutes=10,
        logs=[TaskActualLog(start="2026-02-18T09:00:00.000Z")],
    )
    assert lifecycle.live_actual_minutes(task, "2026-02-18T09:30:00.000Z", UTC) == 40
    assert lifecycle.live_actual_minutes(make_task(minutes=10), "2026-02-18T09:30:00.000Z") == 10
