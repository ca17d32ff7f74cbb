from __future__ import annotations

import uuid
import datetime as dt

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    String,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TITLE_MAX_LENGTH = 255


class Base(DeclarativeBase):
    """Declarative base for ORM models."""

    pass


class Task(Base):
    """A to-do item scoped to one calendar date."""

    __tablename__ = "tasks"

    # --- Identifiers ---
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Task UUID (v4), generated server-side",
    )

    # --- Human context ---
    title: Mapped[str] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    # --- Scheduling ---
    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        comment="Calendar date, no time component",
    )
    completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    # --- Timestamps (naive UTC) ---
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_tasks_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} date={self.date} completed={self.completed}>"
