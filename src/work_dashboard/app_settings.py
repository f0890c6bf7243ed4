"""Per-identity application settings (auto-fetch schedule, time display)."""

import asyncio
import json
import logging
import math
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from work_dashboard.identity import (
    GUEST_USER_ID,
    IdentityResolver,
    resolve_identity_key,
    user_data_dir,
)
from work_dashboard.timecalc.duration import TIME_PATTERN

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "settings.json"
GUEST_SETTINGS_FILE_NAME = "settings.guest.json"


class TaskTimeDisplayMode(StrEnum):
    HOUR_MINUTE = "hourMinute"
    DECIMAL = "decimal"


class AppSettings(BaseModel):
    """User settings; ``None`` disables the corresponding auto-fetch trigger."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    auto_fetch_time: str | None = None  # HH:mm
    auto_fetch_interval_minutes: int | None = None
    task_time_display_mode: TaskTimeDisplayMode = TaskTimeDisplayMode.HOUR_MINUTE


class AppSettingsInput(BaseModel):
    """Loose settings payload, normalized by ``normalize_settings``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    auto_fetch_time: Any = None
    auto_fetch_interval_minutes: Any = None
    task_time_display_mode: Any = None


def normalize_auto_fetch_time(value: Any) -> str | None:
    """Accept only ``HH:mm``; anything else disables the daily trigger."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed if TIME_PATTERN.fullmatch(trimmed) else None


def normalize_auto_fetch_interval_minutes(value: Any) -> int | None:
    """Accept whole minutes >= 1; anything else disables the interval trigger."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value):
        return None
    normalized = math.floor(value)
    return normalized if normalized >= 1 else None


def normalize_task_time_display_mode(value: Any) -> TaskTimeDisplayMode:
    try:
        return TaskTimeDisplayMode(value)
    except ValueError:
        return TaskTimeDisplayMode.HOUR_MINUTE


def normalize_settings(raw: AppSettingsInput | AppSettings) -> AppSettings:
    return AppSettings(
        auto_fetch_time=normalize_auto_fetch_time(raw.auto_fetch_time),
        auto_fetch_interval_minutes=normalize_auto_fetch_interval_minutes(
            raw.auto_fetch_interval_minutes
        ),
        task_time_display_mode=normalize_task_time_display_mode(raw.task_time_display_mode),
    )


class SettingsService:
    """Loads, caches and saves the current identity's settings."""

    def __init__(self, data_dir: Path, get_current_user: IdentityResolver) -> None:
        self._data_dir = Path(data_dir)
        self._get_current_user = get_current_user
        self._current = AppSettings()

    def settings_path(self) -> Path:
        identity = resolve_identity_key(self._get_current_user())
        if identity == GUEST_USER_ID:
            return self._data_dir / GUEST_SETTINGS_FILE_NAME
        return user_data_dir(self._data_dir / "users", identity) / SETTINGS_FILE_NAME

    def get(self) -> AppSettings:
        """Return cached settings of the current identity."""
        return self._current

    @staticmethod
    def _read(path: Path) -> AppSettings:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return normalize_settings(AppSettingsInput.model_validate(raw))
        except FileNotFoundError:
            return AppSettings()
        except (OSError, ValueError) as e:
            logger.warning(f"[Settings] Unreadable settings file {path}, using defaults: {e}")
            return AppSettings()

    @staticmethod
    def _write(path: Path, settings: AppSettings) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(settings.model_dump(by_alias=True, mode="json"), indent=2),
            encoding="utf-8",
        )

    async def reload(self) -> AppSettings:
        """Reload settings for the current identity (after login/logout)."""
        path = self.settings_path()
        self._current = await asyncio.to_thread(self._read, path)
        logger.info(f"[Settings] Loaded settings from {path}")
        return self._current

    async def save(self, settings: AppSettingsInput | AppSettings) -> AppSettings:
        """Normalize and persist settings for the current identity."""
        normalized = normalize_settings(settings)
        path = self.settings_path()
        await asyncio.to_thread(self._write, path, normalized)
        self._current = normalized
        logger.info(f"[Settings] Saved settings to {path}")
        return normalized
