"""Calendar API endpoints."""

from fastapi import APIRouter

from work_dashboard.calendar.models import CalendarRow
from work_dashboard.factory import get_publisher, today_key
from work_dashboard.tasks.sanitize import is_date_key

router = APIRouter()


@router.get("/calendar", response_model=list[CalendarRow])
async def get_calendar(date: str | None = None) -> list[CalendarRow]:
    """Fetch events for a date and push them to UI clients.

    Args:
        date: Date as yyyy-mm-dd; missing or malformed means today

    Returns:
        Fetched events ([] when signed out or when the provider fails)
    """
    requested_date = date if is_date_key(date) else today_key()
    return await get_publisher().fetch_and_publish_by_date(requested_date, "manual")
