from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import NotFoundError, StorageError, ValidationError
from ..models.task import Task, TITLE_MAX_LENGTH

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Title and date are required"

TaskId = Union[str, uuid.UUID]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _parse_task_id(task_id: TaskId) -> Optional[uuid.UUID]:
    if isinstance(task_id, uuid.UUID):
        return task_id
    try:
        return uuid.UUID(str(task_id))
    except ValueError:
        return None


def _require_fields(title: Optional[str], task_date: Optional[date]) -> str:
    """Validate required fields and return the title as sent."""
    if title is None or not str(title).strip() or task_date is None:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    if not isinstance(task_date, date) or isinstance(task_date, datetime):
        raise ValidationError("Date must be a calendar date (YYYY-MM-DD)")
    title = str(title)
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


class TaskRepository:
    """
    Typed CRUD over the ``tasks`` table.

    Each call runs in its own short-lived session taken from the shared
    session factory, so the repository itself holds no state beyond it and
    can be used from any number of concurrent requests.

    Unexpected driver failures are logged here with full detail and
    re-raised as ``StorageError`` carrying a client-safe message.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_all(self) -> List[Task]:
        """All tasks, newest date first, then newest created first."""
        stmt = select(Task).order_by(Task.date.desc(), Task.created_at.desc())
        return await self._fetch(stmt, "Failed to fetch tasks")

    async def list_by_date(self, task_date: date) -> List[Task]:
        """Tasks scheduled on exactly ``task_date``, newest created first."""
        stmt = (
            select(Task)
            .where(Task.date == task_date)
            .order_by(Task.created_at.desc())
        )
        return await self._fetch(stmt, "Failed to fetch tasks")

    async def get(self, task_id: TaskId) -> Task:
        uid = _parse_task_id(task_id)
        if uid is None:
            raise NotFoundError()
        try:
            async with self._session_factory() as session:
                task = await session.get(Task, uid)
        except SQLAlchemyError as exc:
            logger.exception("Error fetching task %s: %s", task_id, exc)
            raise StorageError("Failed to fetch task") from exc
        if task is None:
            raise NotFoundError()
        return task

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(
        self,
        title: Optional[str],
        description: Optional[str] = None,
        task_date: Optional[date] = None,
    ) -> Task:
        title = _require_fields(title, task_date)
        now = self._clock()
        task = Task(
            id=uuid.uuid4(),
            title=title,
            description=description or "",
            date=task_date,
            completed=False,
            created_at=now,
            updated_at=now,
        )
        logger.debug("Creating task with: title=%r date=%s", title, task_date)
        try:
            async with self._session_factory() as session:
                session.add(task)
                await session.commit()
                await session.refresh(task)
        except SQLAlchemyError as exc:
            logger.exception("Error creating task: %s", exc)
            raise StorageError("Failed to create task") from exc

        logger.info("Task %s created for %s", task.id, task.date)
        return task

    async def update(
        self,
        task_id: TaskId,
        title: Optional[str],
        description: Optional[str],
        task_date: Optional[date],
        completed: bool,
    ) -> Task:
        """Replace every mutable field of the task; there is no partial update."""
        uid = _parse_task_id(task_id)
        if uid is None:
            raise NotFoundError()
        title = _require_fields(title, task_date)

        try:
            async with self._session_factory() as session:
                task = await session.get(Task, uid)
                if task is None:
                    raise NotFoundError()
                task.title = title
                task.description = description or ""
                task.date = task_date
                task.completed = bool(completed)
                task.updated_at = max(self._clock(), task.created_at)
                await session.commit()
                await session.refresh(task)
        except SQLAlchemyError as exc:
            logger.exception("Error updating task %s: %s", task_id, exc)
            raise StorageError("Failed to update task") from exc

        logger.info("Task %s updated (completed=%s)", task.id, task.completed)
        return task

    async def delete(self, task_id: TaskId) -> Task:
        """Remove the task and return the row as it was before deletion."""
        uid = _parse_task_id(task_id)
        if uid is None:
            raise NotFoundError()

        try:
            async with self._session_factory() as session:
                task = await session.get(Task, uid)
                if task is None:
                    raise NotFoundError()
                await session.delete(task)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Error deleting task %s: %s", task_id, exc)
            raise StorageError("Failed to delete task") from exc

        logger.info("Task %s deleted", uid)
        return task

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch(self, stmt, error_message: str) -> List[Task]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows: Sequence[Task] = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Error fetching tasks: %s", exc)
            raise StorageError(error_message) from exc
        return list(rows)
