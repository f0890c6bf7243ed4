"""Task API endpoints."""

import logging
from collections.abc import Callable

from fastapi import APIRouter, HTTPException

from work_dashboard.api.models import DeleteTaskResponse, StopTaskRequest
from work_dashboard.factory import get_task_store, get_timezone, now, today_key
from work_dashboard.tasks.models import (
    Task,
    TaskCreateInput,
    TaskListResponse,
    TaskStatus,
    TaskUpdateInput,
)
from work_dashboard.tasks.sanitize import TaskValidationError, is_date_key
from work_dashboard.timecalc import lifecycle
from work_dashboard.timecalc.duration import format_iso

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(date: str | None = None) -> TaskListResponse:
    """List tasks of one date with master lists and autocomplete maps.

    Args:
        date: Date as yyyy-mm-dd; missing or malformed means today

    Returns:
        Task list projection for the current identity
    """
    requested_date = date if is_date_key(date) else today_key()
    return await get_task_store().get_all(requested_date)


@router.post("/tasks", response_model=Task)
async def create_task(request: TaskCreateInput) -> Task:
    """Create a task for the current identity.

    Raises:
        HTTPException: 400 if project/title is empty or date is malformed
    """
    try:
        return await get_task_store().add(request)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.put("/tasks/{task_id}", response_model=Task)
async def update_task(task_id: str, request: TaskUpdateInput) -> Task:
    """Replace a task's editable fields.

    Raises:
        HTTPException: 404 if the task does not exist, 400 on validation failure
    """
    request.id = task_id
    try:
        updated = await get_task_store().update(request)
    except TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return updated


@router.delete("/tasks/{task_id}", response_model=DeleteTaskResponse)
async def delete_task(task_id: str) -> DeleteTaskResponse:
    """Delete a task; ``deleted`` is false if nothing matched."""
    deleted = await get_task_store().remove(task_id)
    return DeleteTaskResponse(task_id=task_id, deleted=deleted)


async def _transition(task_id: str, apply: Callable[[Task, str], Task]) -> Task:
    """Apply a lifecycle transition at the current instant and save it atomically."""
    try:
        updated = await get_task_store().transform(
            task_id, lambda task: apply(task, format_iso(now()))
        )
    except lifecycle.LifecycleError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    if updated is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    logger.info(f"[Tasks] Task {task_id} -> {updated.status}")
    return updated


@router.post("/tasks/{task_id}/start", response_model=Task)
async def start_task(task_id: str) -> Task:
    """Start time tracking for a task."""
    tz = get_timezone()
    return await _transition(task_id, lambda task, at: lifecycle.start(task, at, tz))


@router.post("/tasks/{task_id}/suspend", response_model=Task)
async def suspend_task(task_id: str) -> Task:
    """Pause time tracking; suspended time is counted separately."""
    tz = get_timezone()
    return await _transition(task_id, lambda task, at: lifecycle.suspend(task, at, tz))


@router.post("/tasks/{task_id}/resume", response_model=Task)
async def resume_task(task_id: str) -> Task:
    """Resume a suspended task."""
    tz = get_timezone()
    return await _transition(task_id, lambda task, at: lifecycle.resume(task, at, tz))


@router.post("/tasks/{task_id}/stop", response_model=Task)
async def stop_task(task_id: str, request: StopTaskRequest) -> Task:
    """Stop time tracking and move the task to done, carryover or finished."""
    tz = get_timezone()
    next_status = TaskStatus(request.status)
    return await _transition(
        task_id, lambda task, at: lifecycle.stop(task, at, next_status, tz)
    )
