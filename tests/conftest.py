"""Test fixtures for WorkDashboard."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from work_dashboard.config import Config
from work_dashboard.identity import UserProfile
from work_dashboard.tasks.models import TaskCreateInput

_FACTORY_SINGLETONS = [
    "_current_user",
    "_connection_manager",
    "_calendar_fetcher",
    "_task_store",
    "_settings_service",
    "_publisher",
    "_scheduler",
    "_run_state",
]


class FixedClock:
    """Manually advanced clock."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, **kwargs: float) -> None:
        self.moment += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    """Clock starting at 2026-02-18T00:00:00Z."""
    return FixedClock(datetime(2026, 2, 18, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def user() -> UserProfile:
    return UserProfile(name="Test User", email="user@example.com")


@pytest.fixture
def test_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Config:
    """Isolated config installed into the factory, with fresh singletons."""
    config = Config(
        data_dir=tmp_path / "data",
        guest_dir_name=f"work-dashboard-test-{tmp_path.name}",
        poll_interval_seconds=3600,
        host="127.0.0.1",
        port=8000,
    )
    monkeypatch.setattr("work_dashboard.factory._config", config)
    for name in _FACTORY_SINGLETONS:
        monkeypatch.setattr(f"work_dashboard.factory.{name}", None)
    return config


def make_task_input(**overrides: Any) -> TaskCreateInput:
    """Build a valid create input, overriding any field."""
    data: dict[str, Any] = {
        "date": "2026-02-18",
        "project": "Project A",
        "category": "Design",
        "title": "Revise detailed design",
        "priority": "medium",
        "memo": "needs review",
        "estimated": {"start": "09:00", "end": "10:00", "minutes": 60},
    }
    data.update(overrides)
    return TaskCreateInput.model_validate(data)
