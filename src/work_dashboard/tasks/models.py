"""Task data models.

Stored and served with camelCase keys (``userId``, ``suspendMinutes``...).
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    TODO = "todo"
    DOING = "doing"
    SUSPEND = "suspend"
    DONE = "done"
    CARRYOVER = "carryover"
    FINISHED = "finished"


class TaskPriority(StrEnum):
    """Priority labels, highest first."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskActualLog(CamelModel):
    """One tracked interval; ``end`` is None while tracking is running."""

    start: str
    end: str | None = None


class TaskEstimate(CamelModel):
    start: str | None = None  # HH:mm
    end: str | None = None  # HH:mm
    minutes: int = 0


class TaskActual(CamelModel):
    minutes: int = 0
    suspend_minutes: int = 0
    suspend_started_at: str | None = None
    logs: list[TaskActualLog] = Field(default_factory=list)


class Task(CamelModel):
    """One trackable work item."""

    id: str
    user_id: str
    date: str  # yyyy-mm-dd
    project: str
    category: str = ""
    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    memo: str = ""
    estimated: TaskEstimate = Field(default_factory=TaskEstimate)
    actual: TaskActual = Field(default_factory=TaskActual)
    created_at: str
    updated_at: str


class TaskCollection(CamelModel):
    """Persisted document for one identity."""

    tasks: list[Task] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class TaskListResponse(CamelModel):
    """Tasks of one date plus master lists and per-project autocomplete maps."""

    tasks: list[Task]
    projects: list[str]
    categories: list[str]
    project_categories: dict[str, list[str]]
    project_titles: dict[str, list[str]]


# Input models are loose on purpose: soft-invalid values are coerced by the
# sanitizer rather than rejected during request parsing.


class TaskEstimateInput(CamelModel):
    start: str | None = None
    end: str | None = None
    minutes: Any = None


class TaskActualInput(CamelModel):
    minutes: Any = None
    suspend_minutes: Any = None
    suspend_started_at: Any = None
    logs: Any = None


class TaskCreateInput(CamelModel):
    """Fields accepted when creating a task."""

    date: str
    project: str = ""
    category: str = ""
    title: str = ""
    status: str | None = None
    priority: str | None = None
    memo: str = ""
    estimated: TaskEstimateInput = Field(default_factory=TaskEstimateInput)
    actual: TaskActualInput | None = None


class TaskUpdateInput(TaskCreateInput):
    """Task edit sent by a client; only the fields it sets are applied.

    The id comes from the request path when omitted; timestamps are store-controlled.
    """

    id: str | None = None
    user_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
