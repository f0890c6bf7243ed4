"""Calendar provider boundary."""

import logging
from typing import Protocol

from work_dashboard.calendar.models import CalendarRow

logger = logging.getLogger(__name__)


class CalendarFetcher(Protocol):
    """Protocol for reading provider events of one date."""

    async def get_events_by_date(self, date_key: str) -> list[CalendarRow]:
        """Return events for ``yyyy-mm-dd``."""
        ...


class EmptyCalendarFetcher:
    """Fetcher used when no provider is connected; always returns no events."""

    async def get_events_by_date(self, date_key: str) -> list[CalendarRow]:
        logger.debug(f"[CalendarFetcher] No provider configured, no events for {date_key}")
        return []
