"""Settings API endpoints."""

import logging

from fastapi import APIRouter

from work_dashboard.app_settings import AppSettings, AppSettingsInput
from work_dashboard.factory import get_settings_service, restart_scheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", response_model=AppSettings)
async def get_settings() -> AppSettings:
    """Return the current identity's settings."""
    return get_settings_service().get()


@router.put("/settings", response_model=AppSettings)
async def save_settings(request: AppSettingsInput) -> AppSettings:
    """Save settings and restart auto-fetch so the new schedule applies immediately.

    Invalid values are normalized (bad time or interval disables that trigger).
    """
    saved = await get_settings_service().save(request)
    restart_scheduler()
    return saved
