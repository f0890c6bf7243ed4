"""Dependency injection factory."""

import logging
import os
import tempfile
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo

from fastapi import FastAPI

from work_dashboard.app_settings import AppSettings, SettingsService
from work_dashboard.calendar.fetch_scheduler import FetchRunState, FetchScheduler, build_date_key
from work_dashboard.calendar.fetcher import CalendarFetcher, EmptyCalendarFetcher
from work_dashboard.calendar.models import CalendarRow, FetchSource
from work_dashboard.calendar.publisher import CalendarPublisher
from work_dashboard.config import Config
from work_dashboard.identity import UserProfile
from work_dashboard.tasks.task_store import TaskStore
from work_dashboard.websocket.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Global config instance for dependency injection
_config: Config | None = None

# Signed-in user for this process (None = guest)
_current_user: UserProfile | None = None

# Global services
_connection_manager: ConnectionManager | None = None
_calendar_fetcher: CalendarFetcher | None = None
_task_store: TaskStore | None = None
_settings_service: SettingsService | None = None
_publisher: CalendarPublisher | None = None
_scheduler: FetchScheduler | None = None
_run_state: FetchRunState | None = None


def get_config() -> Config:
    """Get or create Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_timezone() -> tzinfo | None:
    """Zone defining calendar days and the break window (None = host local)."""
    config = get_config()
    return ZoneInfo(config.timezone) if config.timezone else None


def now() -> datetime:
    """Current aware local time."""
    tz = get_timezone()
    return datetime.now(tz) if tz else datetime.now().astimezone()


def today_key() -> str:
    return build_date_key(now())


def get_current_user() -> UserProfile | None:
    return _current_user


def set_current_user(user: UserProfile | None) -> None:
    """Switch the process to another identity (None = guest)."""
    global _current_user
    _current_user = user
    logger.info(f"[Factory] Current user: {user.email if user else 'guest'}")


def get_connection_manager() -> ConnectionManager:
    """Get or create ConnectionManager singleton."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def get_calendar_fetcher() -> CalendarFetcher:
    """Get the calendar provider (no provider connected by default)."""
    global _calendar_fetcher
    if _calendar_fetcher is None:
        _calendar_fetcher = EmptyCalendarFetcher()
    return _calendar_fetcher


def set_calendar_fetcher(fetcher: CalendarFetcher) -> None:
    """Plug in a calendar provider."""
    global _calendar_fetcher, _publisher
    _calendar_fetcher = fetcher
    _publisher = None


def get_task_store() -> TaskStore:
    """Get or create TaskStore singleton."""
    global _task_store
    if _task_store is None:
        config = get_config()
        guest_dir = Path(tempfile.gettempdir()) / config.guest_dir_name / f"guest-{os.getpid()}"
        _task_store = TaskStore(
            config.users_dir, get_current_user, guest_dir=guest_dir, get_now=now
        )
    return _task_store


def get_settings_service() -> SettingsService:
    """Get or create SettingsService singleton."""
    global _settings_service
    if _settings_service is None:
        _settings_service = SettingsService(get_config().data_dir, get_current_user)
    return _settings_service


def get_settings() -> AppSettings:
    return get_settings_service().get()


def get_run_state() -> FetchRunState:
    """Get the scheduler's dedup markers."""
    global _run_state
    if _run_state is None:
        _run_state = FetchRunState()
    return _run_state


def get_publisher() -> CalendarPublisher:
    """Get or create CalendarPublisher singleton."""
    global _publisher
    if _publisher is None:
        _publisher = CalendarPublisher(
            get_current_user, get_calendar_fetcher(), get_connection_manager(), get_now=now
        )
    return _publisher


async def fetch_and_publish_by_date(date_key: str, source: FetchSource) -> list[CalendarRow]:
    return await get_publisher().fetch_and_publish_by_date(date_key, source)


def get_scheduler() -> FetchScheduler:
    """Get or create FetchScheduler singleton."""
    global _scheduler
    if _scheduler is None:
        _scheduler = FetchScheduler(
            get_current_user,
            get_settings,
            get_run_state(),
            fetch_and_publish_by_date,
            get_now=now,
            poll_interval_seconds=get_config().poll_interval_seconds,
        )
    return _scheduler


def restart_scheduler() -> None:
    """Forget dedup markers and restart polling (after settings or identity change)."""
    scheduler = get_scheduler()
    scheduler.reset_run_state()
    scheduler.start()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    logger.info("[Lifespan] Loading settings...")
    await get_settings_service().reload()

    logger.info("[Lifespan] Starting auto-fetch scheduler...")
    get_scheduler().start()
    try:
        yield
    finally:
        logger.info("[Lifespan] Stopping auto-fetch scheduler...")
        get_scheduler().stop()
        await get_task_store().clear_guest_data()


def create_app() -> FastAPI:
    """Create FastAPI application (composition root)."""
    from work_dashboard.api.calendar import router as calendar_router
    from work_dashboard.api.session import router as session_router
    from work_dashboard.api.settings import router as settings_router
    from work_dashboard.api.tasks import router as tasks_router
    from work_dashboard.api.websocket import router as ws_router

    app = FastAPI(
        title="WorkDashboard",
        description="Task time tracking and calendar auto-fetch for a personal dashboard",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(tasks_router, prefix="/api")
    app.include_router(calendar_router, prefix="/api")
    app.include_router(settings_router, prefix="/api")
    app.include_router(session_router, prefix="/api")
    app.include_router(ws_router)  # WebSocket at /ws

    return app
