"""Per-identity task persistence."""

import asyncio
import json
import logging
import os
import shutil
import tempfile
import unicodedata
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from work_dashboard.identity import (
    GUEST_USER_ID,
    IdentityResolver,
    resolve_identity_key,
    user_data_dir,
)
from work_dashboard.tasks.models import (
    Task,
    TaskActualInput,
    TaskCollection,
    TaskCreateInput,
    TaskListResponse,
    TaskUpdateInput,
)
from work_dashboard.tasks.sanitize import (
    normalize_date,
    normalize_text,
    sanitize_actual,
    sanitize_task_fields,
)
from work_dashboard.timecalc.duration import format_iso

logger = logging.getLogger(__name__)

TASK_FILE_NAME = "tasks.json"


def _sort_key(value: str) -> tuple[str, str]:
    # Locale-style ordering: compatibility-normalized, case-insensitive first,
    # then raw code points so distinct spellings stay distinct and stable
    return (unicodedata.normalize("NFKC", value).casefold(), value)


def sort_unique(items: Iterable[str]) -> list[str]:
    """Unique, case-sensitive values in locale-style order."""
    return sorted(set(items), key=_sort_key)


def upsert_master(items: list[str], value: str) -> list[str]:
    """Insert a trimmed, non-empty value into a sorted-unique master list."""
    normalized = normalize_text(value)
    if not normalized:
        return items
    return sort_unique([*items, normalized])


def build_project_scoped_masters(
    tasks: Iterable[Task],
) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Group non-empty categories and titles by project across all tasks."""
    categories: dict[str, set[str]] = {}
    titles: dict[str, set[str]] = {}

    for task in tasks:
        project = normalize_text(task.project)
        if not project:
            continue
        categories.setdefault(project, set())
        titles.setdefault(project, set())
        if category := task.category.strip():
            categories[project].add(category)
        if title := task.title.strip():
            titles[project].add(title)

    return (
        {project: sort_unique(values) for project, values in categories.items()},
        {project: sort_unique(values) for project, values in titles.items()},
    )


def build_task_list_response(collection: TaskCollection, date: str) -> TaskListResponse:
    project_categories, project_titles = build_project_scoped_masters(collection.tasks)
    tasks = sorted(
        (task for task in collection.tasks if task.date == date),
        key=lambda task: task.created_at,
    )
    return TaskListResponse(
        tasks=tasks,
        projects=sort_unique(collection.projects),
        categories=sort_unique(collection.categories),
        project_categories=project_categories,
        project_titles=project_titles,
    )


def normalize_task_record(raw: Mapping[str, Any]) -> Task:
    """Load a stored record, re-sanitizing its tracked-time fields.

    Older records missing newer fields (``suspendMinutes``...) get defaults.

    Raises:
        ValidationError: If the record lacks required task fields
    """
    actual_raw = raw.get("actual")
    actual_input = TaskActualInput.model_validate(
        actual_raw if isinstance(actual_raw, Mapping) else {}
    )
    return Task.model_validate({**raw, "actual": sanitize_actual(actual_input)})


def _list_field(raw: Mapping[str, Any], key: str) -> list[Any]:
    value = raw.get(key)
    return value if isinstance(value, list) else []


class _CollectionHandle:
    """Storage location and write lock for one identity's collection."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.lock = asyncio.Lock()


class TaskStore:
    """Task persistence scoped to the current identity.

    Authenticated identities own a durable ``tasks.json`` under their user
    directory. The guest identity owns a single collection in a process-scoped
    temporary directory that ``clear_guest_data`` erases.

    Each operation re-reads and fully re-writes the identity's document while
    holding that identity's lock, so interleaved calls cannot lose updates.
    """

    def __init__(
        self,
        users_dir: Path,
        get_current_user: IdentityResolver,
        *,
        guest_dir: Path | None = None,
        create_id: Callable[[], str] | None = None,
        get_now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize store.

        Args:
            users_dir: Root directory of the per-identity directories
            get_current_user: Resolver for the current identity (None = guest)
            guest_dir: Guest data directory (default: a pid-scoped temp dir)
            create_id: Unique id source for new tasks
            get_now: Clock used for createdAt/updatedAt
        """
        self._users_dir = Path(users_dir)
        self._get_current_user = get_current_user
        self._guest_dir = guest_dir or (
            Path(tempfile.gettempdir()) / "work-dashboard" / f"guest-{os.getpid()}"
        )
        self._create_id = create_id or (lambda: str(uuid.uuid4()))
        self._get_now = get_now or (lambda: datetime.now(timezone.utc))
        self._handles: dict[str, _CollectionHandle] = {}

    @property
    def guest_dir(self) -> Path:
        return self._guest_dir

    # ---- identity / storage helpers ----

    def _resolve_identity(self) -> str:
        return resolve_identity_key(self._get_current_user())

    def _get_handle(self, identity: str) -> _CollectionHandle:
        handle = self._handles.get(identity)
        if handle is None:
            if identity == GUEST_USER_ID:
                path = self._guest_dir / TASK_FILE_NAME
            else:
                path = user_data_dir(self._users_dir, identity) / TASK_FILE_NAME
            handle = _CollectionHandle(path)
            self._handles[identity] = handle
            logger.debug(f"[TaskStore] Opened collection for {identity}: {path}")
        return handle

    def _now_iso(self) -> str:
        return format_iso(self._get_now())

    @staticmethod
    def _read_collection(path: Path) -> TaskCollection:
        """Read a collection; a missing or unreadable file yields an empty one."""
        if not path.exists():
            return TaskCollection()

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"[TaskStore] Unreadable task file {path}, starting empty: {e}")
            return TaskCollection()

        if not isinstance(raw, dict):
            logger.warning(f"[TaskStore] Unexpected task file layout in {path}, starting empty")
            return TaskCollection()

        tasks: list[Task] = []
        for item in _list_field(raw, "tasks"):
            if not isinstance(item, Mapping):
                continue
            try:
                tasks.append(normalize_task_record(item))
            except ValidationError as e:
                logger.warning(f"[TaskStore] Skipping invalid task record in {path}: {e}")

        return TaskCollection(
            tasks=tasks,
            projects=sort_unique(p for p in _list_field(raw, "projects") if isinstance(p, str)),
            categories=sort_unique(c for c in _list_field(raw, "categories") if isinstance(c, str)),
        )

    @staticmethod
    def _write_collection(path: Path, collection: TaskCollection) -> None:
        """Replace the whole document (write temp file, then rename)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = collection.model_dump(by_alias=True, mode="json")
        tmp_path = path.with_name(f"{path.name}.tmp")
        tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    async def _load(self, handle: _CollectionHandle) -> TaskCollection:
        return await asyncio.to_thread(self._read_collection, handle.path)

    async def _save(self, handle: _CollectionHandle, collection: TaskCollection) -> None:
        await asyncio.to_thread(self._write_collection, handle.path, collection)

    # ---- public API ----

    async def get_all(self, date: str) -> TaskListResponse:
        """List the current identity's tasks for one date.

        Raises:
            TaskValidationError: If date is not ``yyyy-mm-dd``
        """
        date = normalize_date(date)
        handle = self._get_handle(self._resolve_identity())
        async with handle.lock:
            collection = await self._load(handle)
        return build_task_list_response(collection, date)

    async def get(self, task_id: str) -> Task | None:
        """Fetch a single task of the current identity by id."""
        identity = self._resolve_identity()
        handle = self._get_handle(identity)
        async with handle.lock:
            collection = await self._load(handle)
        for task in collection.tasks:
            if task.id == task_id and task.user_id == identity:
                return task
        return None

    async def add(self, task_input: TaskCreateInput) -> Task:
        """Create a task for the current identity.

        Raises:
            TaskValidationError: If project/title is empty or date is malformed
        """
        identity = self._resolve_identity()
        fields = sanitize_task_fields(task_input)
        handle = self._get_handle(identity)

        async with handle.lock:
            collection = await self._load(handle)
            now_iso = self._now_iso()
            task = Task(
                id=self._create_id(),
                user_id=identity,
                created_at=now_iso,
                updated_at=now_iso,
                **fields,
            )
            collection.tasks.append(task)
            collection.projects = upsert_master(collection.projects, task.project)
            collection.categories = upsert_master(collection.categories, task.category)
            await self._save(handle, collection)

        logger.info(f"[TaskStore] Added task {task.id} ({task.project} / {task.title}) for {identity}")
        return task

    @staticmethod
    def _find_index(collection: TaskCollection, task_id: str, identity: str) -> int | None:
        return next(
            (
                i
                for i, item in enumerate(collection.tasks)
                if item.id == task_id and item.user_id == identity
            ),
            None,
        )

    def _apply_update(
        self, collection: TaskCollection, index: int, identity: str, source: TaskUpdateInput
    ) -> Task:
        """Merge the fields the caller sent onto the stored record, in place."""
        existing = collection.tasks[index]
        merged = TaskUpdateInput.model_validate(
            {
                **existing.model_dump(mode="json"),
                **source.model_dump(include=source.model_fields_set, mode="json"),
            }
        )
        fields = sanitize_task_fields(merged)
        next_task = existing.model_copy(
            update={
                **fields,
                "user_id": identity,
                "created_at": existing.created_at,
                "updated_at": self._now_iso(),
            }
        )
        collection.tasks[index] = next_task
        collection.projects = upsert_master(collection.projects, next_task.project)
        collection.categories = upsert_master(collection.categories, next_task.category)
        return next_task

    async def update(self, task: Task | TaskUpdateInput) -> Task | None:
        """Merge edited fields onto an existing task.

        Fields absent from a ``TaskUpdateInput`` keep their stored values.
        ``createdAt`` is always kept from the stored record and ``updatedAt``
        is refreshed.

        Returns:
            The stored task, or None if no task with that id belongs to the
            current identity

        Raises:
            TaskValidationError: If project/title is empty or date is malformed
        """
        source = task if isinstance(task, TaskUpdateInput) else TaskUpdateInput.model_validate(
            task.model_dump(mode="json")
        )
        identity = self._resolve_identity()
        handle = self._get_handle(identity)

        async with handle.lock:
            collection = await self._load(handle)
            index = self._find_index(collection, source.id or "", identity)
            if index is None:
                logger.debug(f"[TaskStore] Update skipped, task {source.id} not found for {identity}")
                return None

            next_task = self._apply_update(collection, index, identity, source)
            await self._save(handle, collection)

        logger.debug(f"[TaskStore] Updated task {next_task.id} status={next_task.status}")
        return next_task

    async def transform(self, task_id: str, apply: Callable[[Task], Task]) -> Task | None:
        """Read, change and write one task while holding the identity's lock.

        Args:
            task_id: Task to change
            apply: Pure function producing the next version of the task

        Returns:
            The stored task, or None if no task with that id belongs to the
            current identity

        Raises:
            LifecycleError: Propagated from ``apply``; nothing is written
            TaskValidationError: If the changed task fails sanitization
        """
        identity = self._resolve_identity()
        handle = self._get_handle(identity)

        async with handle.lock:
            collection = await self._load(handle)
            index = self._find_index(collection, task_id, identity)
            if index is None:
                return None

            changed = apply(collection.tasks[index])
            source = TaskUpdateInput.model_validate(changed.model_dump(mode="json"))
            next_task = self._apply_update(collection, index, identity, source)
            await self._save(handle, collection)

        logger.debug(f"[TaskStore] Transformed task {task_id} status={next_task.status}")
        return next_task

    async def remove(self, task_id: str) -> bool:
        """Delete a task of the current identity.

        Returns:
            True if a task was removed
        """
        identity = self._resolve_identity()
        handle = self._get_handle(identity)

        async with handle.lock:
            collection = await self._load(handle)
            before = len(collection.tasks)
            collection.tasks = [
                task
                for task in collection.tasks
                if not (task.id == task_id and task.user_id == identity)
            ]
            if len(collection.tasks) == before:
                return False
            await self._save(handle, collection)

        logger.info(f"[TaskStore] Removed task {task_id} for {identity}")
        return True

    async def clear_guest_data(self) -> None:
        """Erase the guest collection (called on shutdown)."""
        self._handles.pop(GUEST_USER_ID, None)
        await asyncio.to_thread(shutil.rmtree, self._guest_dir, ignore_errors=True)
        logger.info(f"[TaskStore] Cleared guest data at {self._guest_dir}")
