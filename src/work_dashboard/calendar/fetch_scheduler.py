"""Periodic calendar auto-fetch with daily-time and interval triggers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from work_dashboard.app_settings import AppSettings
from work_dashboard.calendar.models import FetchSource
from work_dashboard.identity import IdentityResolver

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30.0


@dataclass
class FetchRunState:
    """Dedup markers, owned by whoever wires the scheduler."""

    last_auto_fetch_date_key: str | None = None
    last_interval_fetch_at_ms: int | None = None


def build_date_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def build_time_key(moment: datetime) -> str:
    return moment.strftime("%H:%M")


class FetchScheduler:
    """Triggers fetch-and-publish at a daily time and/or every N minutes.

    Each tick checks the daily time first (at most once per calendar day),
    then the interval. Any fetch restarts the interval clock. A tick that
    arrives while the previous fetch is still running is skipped.
    """

    def __init__(
        self,
        get_current_user: IdentityResolver,
        get_settings: Callable[[], AppSettings],
        run_state: FetchRunState,
        fetch_by_date: Callable[[str, FetchSource], Awaitable[object]],
        *,
        get_now: Callable[[], datetime] | None = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        """Initialize scheduler.

        Args:
            get_current_user: Resolver for the signed-in identity
            get_settings: Accessor for the current auto-fetch settings
            run_state: Shared dedup markers
            fetch_by_date: Fetch-and-publish callback (date key, source)
            get_now: Local clock
            poll_interval_seconds: Delay between ticks
        """
        self._get_current_user = get_current_user
        self._get_settings = get_settings
        self._run_state = run_state
        self._fetch_by_date = fetch_by_date
        self._get_now = get_now or datetime.now
        self._poll_interval = poll_interval_seconds
        self._loop_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[None]] = set()
        self._in_flight = False

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def run_if_needed(self) -> bool:
        """Evaluate both triggers once and fetch if either is due.

        Returns:
            True if a fetch was performed
        """
        if self._in_flight:
            logger.debug("[FetchScheduler] Previous fetch still running, skipping tick")
            return False
        if self._get_current_user() is None:
            return False

        settings = self._get_settings()
        daily_time = settings.auto_fetch_time
        interval_minutes = settings.auto_fetch_interval_minutes
        if not daily_time and not interval_minutes:
            return False

        now = self._get_now()
        now_ms = int(now.timestamp() * 1000)
        today_key = build_date_key(now)
        should_fetch = False

        if daily_time:
            is_target_time = build_time_key(now) == daily_time
            if is_target_time and self._run_state.last_auto_fetch_date_key != today_key:
                should_fetch = True
                self._run_state.last_auto_fetch_date_key = today_key

        if not should_fetch and interval_minutes:
            last_ms = self._run_state.last_interval_fetch_at_ms
            if last_ms is None or now_ms - last_ms >= interval_minutes * 60 * 1000:
                should_fetch = True

        if not should_fetch:
            return False

        logger.info(f"[FetchScheduler] Auto-fetching calendar for {today_key}")
        self._in_flight = True
        try:
            await self._fetch_by_date(today_key, "auto")
        finally:
            self._in_flight = False
        self._run_state.last_interval_fetch_at_ms = now_ms
        return True

    async def _tick(self) -> None:
        try:
            await self.run_if_needed()
        except Exception as e:
            logger.error(f"[FetchScheduler] Auto-fetch tick failed: {e}", exc_info=True)

    def _spawn_tick(self) -> None:
        # Ticks run detached so stop() never cancels an in-flight fetch
        tick = asyncio.create_task(self._tick())
        self._ticks.add(tick)
        tick.add_done_callback(self._ticks.discard)

    async def _run_loop(self) -> None:
        while True:
            self._spawn_tick()
            await asyncio.sleep(self._poll_interval)

    def start(self) -> None:
        """Run one tick now, then one every poll interval (restarts if running)."""
        self.stop()
        self._loop_task = asyncio.get_running_loop().create_task(self._run_loop())
        logger.info(f"[FetchScheduler] Started (poll every {self._poll_interval}s)")

    def stop(self) -> None:
        """Stop future ticks; a fetch already running is left to finish."""
        if self._loop_task is None:
            return
        self._loop_task.cancel()
        self._loop_task = None
        logger.info("[FetchScheduler] Stopped")

    def reset_run_state(self) -> None:
        """Forget both dedup markers so the next tick re-evaluates from scratch."""
        self._run_state.last_auto_fetch_date_key = None
        self._run_state.last_interval_fetch_at_ms = None
