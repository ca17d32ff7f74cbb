"""
Database and API models for the task calendar.

This module provides the SQLAlchemy task model and its pydantic API shapes.
All imports are safe and don't trigger runtime dependencies.
"""

from .task import Task as DatabaseTask, TITLE_MAX_LENGTH
from .task_api import TaskCreate, TaskUpdate, TaskRead, TaskDeleted, HealthStatus

__all__ = [
    "DatabaseTask",
    "TITLE_MAX_LENGTH",
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "TaskDeleted",
    "HealthStatus",
]
