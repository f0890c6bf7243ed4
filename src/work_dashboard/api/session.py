"""Session API endpoints.

The outer shell performs the provider login and reports the resulting
profile here; this process only switches its current identity.
"""

import logging

from fastapi import APIRouter, HTTPException

from work_dashboard.api.models import SessionResponse
from work_dashboard.factory import (
    get_current_user,
    get_publisher,
    get_settings_service,
    restart_scheduler,
    set_current_user,
    today_key,
)
from work_dashboard.identity import UserProfile

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/session", response_model=SessionResponse)
async def get_session() -> SessionResponse:
    """Return the signed-in user, or null for guest."""
    return SessionResponse(user=get_current_user())


@router.post("/session", response_model=SessionResponse)
async def login(profile: UserProfile) -> SessionResponse:
    """Switch to an authenticated identity.

    Loads that identity's settings, restarts auto-fetch and publishes
    today's calendar.
    """
    email = profile.email.strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="email is required")
    profile.email = email
    set_current_user(profile)
    await get_settings_service().reload()
    restart_scheduler()
    await get_publisher().fetch_and_publish_by_date(today_key(), "manual")
    return SessionResponse(user=get_current_user())


@router.delete("/session", response_model=SessionResponse)
async def logout() -> SessionResponse:
    """Return to guest mode and clear the UI's calendar."""
    set_current_user(None)
    await get_settings_service().reload()
    restart_scheduler()
    await get_publisher().publish_empty_manual_update()
    return SessionResponse(user=None)
