"""Calendar rows exchanged with the provider and the UI."""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

FetchSource = Literal["manual", "auto"]


class CalendarRow(BaseModel):
    """One provider event, already formatted for the schedule table."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    calendar_name: str
    subject: str
    date_time: str


class CalendarUpdatePayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    events: list[CalendarRow]
    updated_at: str
    source: FetchSource
