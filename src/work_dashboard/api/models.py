"""API request/response models for WorkDashboard."""

from typing import Literal

from pydantic import BaseModel

from work_dashboard.identity import UserProfile


class StopTaskRequest(BaseModel):
    """Request model for stopping time tracking."""

    status: Literal["done", "carryover", "finished"]


class DeleteTaskResponse(BaseModel):
    """API response model for task deletion."""

    task_id: str
    deleted: bool


class SessionResponse(BaseModel):
    """API response model for the current identity."""

    user: UserProfile | None
