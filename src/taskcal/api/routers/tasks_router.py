from __future__ import annotations
import logging
from contextlib import contextmanager
from datetime import date
from time import perf_counter
from typing import Iterator, List

from fastapi import APIRouter, Depends, Request
from prometheus_client import Counter, Histogram

from ...exceptions import StoreNotReadyError, TaskCalError
from ...models import TaskCreate, TaskDeleted, TaskRead, TaskUpdate
from ...repositories import TaskRepository

router = APIRouter()
logger = logging.getLogger(__name__)

# --- Observability ---
TASK_OPERATIONS = Counter(
    "taskcal_task_operations_total",
    "Task API operations by outcome",
    ["operation", "outcome"],
)
TASK_OPERATION_LATENCY = Histogram(
    "taskcal_task_operation_latency_seconds",
    "Task API operation latency in seconds",
    ["operation"],
)


@contextmanager
def _observe(operation: str) -> Iterator[None]:
    started = perf_counter()
    outcome = "success"
    try:
        yield
    except TaskCalError as exc:
        outcome = type(exc).__name__
        raise
    except Exception:
        outcome = "error"
        raise
    finally:
        TASK_OPERATIONS.labels(operation, outcome).inc()
        TASK_OPERATION_LATENCY.labels(operation).observe(perf_counter() - started)


# --- Dependencies ---
def get_task_repository(request: Request) -> TaskRepository:
    """Hand out the repository only once the store bootstrap has finished."""
    state = request.app.state
    if not getattr(state, "store_ready", False):
        raise StoreNotReadyError()
    return state.repository


def _to_read(tasks) -> List[TaskRead]:
    return [TaskRead.model_validate(t) for t in tasks]


# --- Endpoints ---

@router.get("/tasks", response_model=List[TaskRead])
async def list_tasks(
    repo: TaskRepository = Depends(get_task_repository),
) -> List[TaskRead]:
    with _observe("list_all"):
        tasks = await repo.list_all()
    logger.debug("Fetched %d tasks", len(tasks))
    return _to_read(tasks)


@router.get("/tasks/{task_date}", response_model=List[TaskRead])
async def list_tasks_for_date(
    task_date: str,
    repo: TaskRepository = Depends(get_task_repository),
) -> List[TaskRead]:
    # Unparsable dates match nothing; they are not a client error.
    try:
        day = date.fromisoformat(task_date)
    except ValueError:
        logger.debug("Ignoring malformed date %r", task_date)
        return []
    with _observe("list_by_date"):
        tasks = await repo.list_by_date(day)
    return _to_read(tasks)


@router.post("/tasks", response_model=TaskRead, status_code=201)
async def create_task(
    payload: TaskCreate,
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskRead:
    with _observe("create"):
        task = await repo.create(payload.title, payload.description, payload.date)
    return TaskRead.model_validate(task)


@router.put("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    payload: TaskUpdate,
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskRead:
    with _observe("update"):
        task = await repo.update(
            task_id,
            payload.title,
            payload.description,
            payload.date,
            payload.completed,
        )
    return TaskRead.model_validate(task)


@router.delete("/tasks/{task_id}", response_model=TaskDeleted)
async def delete_task(
    task_id: str,
    repo: TaskRepository = Depends(get_task_repository),
) -> TaskDeleted:
    with _observe("delete"):
        task = await repo.delete(task_id)
    return TaskDeleted(task=TaskRead.model_validate(task))
