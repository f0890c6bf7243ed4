"""Tests for task input sanitization."""

import pytest

from work_dashboard.tasks.models import TaskActualInput, TaskEstimateInput, TaskPriority, TaskStatus
from work_dashboard.tasks.sanitize import (
    TaskValidationError,
    normalize_actual_logs,
    normalize_minutes,
    sanitize_actual,
    sanitize_estimate,
    sanitize_task_fields,
)

from conftest import make_task_input


def test_sanitize_task_fields_trims_text() -> None:
    fields = sanitize_task_fields(
        make_task_input(project="  Project A ", title=" Title ", category=" Design ", memo=" memo ")
    )
    assert fields["project"] == "Project A"
    assert fields["title"] == "Title"
    assert fields["category"] == "Design"
    assert fields["memo"] == "memo"


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"project": "   "}, "project is required"),
        ({"title": ""}, "title is required"),
        ({"date": "2026/02/18"}, "Invalid task date"),
        ({"date": "18-02-2026"}, "Invalid task date"),
    ],
)
def test_required_fields_raise(overrides: dict[str, str], message: str) -> None:
    with pytest.raises(TaskValidationError, match=message):
        sanitize_task_fields(make_task_input(**overrides))


def test_unknown_status_and_priority_fall_back() -> None:
    fields = sanitize_task_fields(make_task_input(status="paused", priority="critical"))
    assert fields["status"] == TaskStatus.TODO
    assert fields["priority"] == TaskPriority.MEDIUM


def test_known_status_and_priority_kept() -> None:
    fields = sanitize_task_fields(make_task_input(status="doing", priority="urgent"))
    assert fields["status"] == TaskStatus.DOING
    assert fields["priority"] == TaskPriority.URGENT


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (30, 30),
        (12.9, 12),
        (0, 0),
        (-5, 0),
        (float("inf"), 0),
        (float("nan"), 0),
        ("30", 0),
        (True, 0),
        (None, 0),
    ],
)
def test_normalize_minutes(value: object, expected: int) -> None:
    assert normalize_minutes(value) == expected


def test_sanitize_estimate() -> None:
    estimate = sanitize_estimate(TaskEstimateInput(start="9:00", end=" 10:00 ", minutes=45.5))
    assert estimate.start is None
    assert estimate.end == "10:00"
    assert estimate.minutes == 45


def test_sanitize_actual() -> None:
    actual = sanitize_actual(
        TaskActualInput(
            minutes=-1,
            suspend_minutes=15,
            suspend_started_at="2026-02-18T09:00:00+09:00",
        )
    )
    assert actual.minutes == 0
    assert actual.suspend_minutes == 15
    assert actual.suspend_started_at == "2026-02-18T00:00:00.000Z"
    assert actual.logs == []

    assert sanitize_actual(TaskActualInput(suspend_started_at="yesterday")).suspend_started_at is None
    assert sanitize_actual(None).minutes == 0


def test_normalize_actual_logs_filters_invalid_entries() -> None:
    logs = normalize_actual_logs(
        [
            {"start": "2026-02-18T09:00:00.000Z", "end": None},
            {"start": "2026-02-18T09:00:00.000Z", "end": "2026-02-18T10:00:00.000Z"},
            {"start": "bad", "end": None},
            {"start": "2026-02-18T09:00:00.000Z", "end": "bad"},
            {"start": "2026-02-18T09:00:00.000Z"},
            "junk",
        ]
    )
    assert len(logs) == 2
    assert logs[0].end is None
    assert logs[1].end == "2026-02-18T10:00:00.000Z"
    assert normalize_actual_logs("not a list") == []
