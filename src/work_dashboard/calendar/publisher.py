"""Fetch calendar events and push them to connected UI clients."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from work_dashboard.calendar.fetcher import CalendarFetcher
from work_dashboard.calendar.models import CalendarRow, CalendarUpdatePayload, FetchSource
from work_dashboard.identity import IdentityResolver
from work_dashboard.timecalc.duration import format_iso

logger = logging.getLogger(__name__)

CALENDAR_UPDATED = "calendar-updated"


class Notifier(Protocol):
    """Anything that can broadcast a JSON message to the UI."""

    async def broadcast(self, message: dict[str, Any]) -> None: ...


class CalendarPublisher:
    """Fetch-and-publish boundary used by manual requests and the scheduler."""

    def __init__(
        self,
        get_current_user: IdentityResolver,
        fetcher: CalendarFetcher,
        notifier: Notifier,
        get_now: Callable[[], datetime] | None = None,
    ) -> None:
        self._get_current_user = get_current_user
        self._fetcher = fetcher
        self._notifier = notifier
        self._get_now = get_now or (lambda: datetime.now(timezone.utc))

    async def _publish(self, events: list[CalendarRow], source: FetchSource) -> None:
        payload = CalendarUpdatePayload(
            events=events, updated_at=format_iso(self._get_now()), source=source
        )
        await self._notifier.broadcast(
            {"type": CALENDAR_UPDATED, **payload.model_dump(by_alias=True, mode="json")}
        )

    async def fetch_and_publish_by_date(
        self, date_key: str, source: FetchSource
    ) -> list[CalendarRow]:
        """Fetch events for a date and broadcast them.

        Never raises: provider errors are logged and reported as no events.

        Args:
            date_key: Date as ``yyyy-mm-dd``
            source: "manual" for user requests, "auto" for scheduled fetches

        Returns:
            Fetched rows ([] when signed out or on failure)
        """
        if self._get_current_user() is None:
            return []

        try:
            events = await self._fetcher.get_events_by_date(date_key)
        except Exception as e:
            logger.error(f"[CalendarPublisher] Fetch failed for {date_key}: {e}", exc_info=True)
            return []

        await self._publish(events, source)
        logger.info(f"[CalendarPublisher] Published {len(events)} events for {date_key} ({source})")
        return events

    async def publish_empty_manual_update(self) -> None:
        """Clear the UI's schedule (used after logout)."""
        await self._publish([], "manual")
