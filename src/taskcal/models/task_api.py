"""
Pydantic Task models for API operations.

This module defines the request and response shapes of the task API,
separate from the SQLAlchemy database model. Calendar dates arrive as
``YYYY-MM-DD`` strings and are parsed into ``datetime.date`` here, once.
"""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TaskCreate(BaseModel):
    """Body of ``POST /api/tasks``. Presence of title/date is checked downstream."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None

    @field_validator("date", mode="before")
    @classmethod
    def blank_date_is_missing(cls, v):
        return _blank_to_none(v)


class TaskUpdate(BaseModel):
    """Body of ``PUT /api/tasks/{id}``: the complete desired state of the task."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    completed: bool = False

    @field_validator("date", mode="before")
    @classmethod
    def blank_date_is_missing(cls, v):
        return _blank_to_none(v)


class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str = ""
    date: dt.date
    completed: bool
    created_at: dt.datetime = Field(
        validation_alias=AliasChoices("created_at", "createdAt"),
        serialization_alias="createdAt",
    )
    updated_at: dt.datetime = Field(
        validation_alias=AliasChoices("updated_at", "updatedAt"),
        serialization_alias="updatedAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class TaskDeleted(BaseModel):
    message: str = "Task deleted successfully"
    task: TaskRead


class HealthStatus(BaseModel):
    status: str
    store: str
