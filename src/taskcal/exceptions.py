"""
Error taxonomy for the task calendar backend.

Each error carries the HTTP status it maps to, so the API layer can render
any of them without knowing where it was raised. Messages are client-safe;
storage detail is logged where the error is raised and never copied here.
"""

from __future__ import annotations


class TaskCalError(Exception):
    """Base class for all task calendar errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(TaskCalError):
    """Required input missing or malformed; correctable by the caller."""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(TaskCalError):
    status_code = 404
    default_message = "Task not found"


class StorageError(TaskCalError):
    """Unexpected failure talking to the store."""

    status_code = 500
    default_message = "Storage failure"


class StoreUnavailableError(StorageError):
    """The store did not answer the liveness probe within the allowed attempts."""

    default_message = "Store unavailable"


class SchemaError(StorageError):
    default_message = "Failed to initialize schema"


class StoreNotReadyError(TaskCalError):
    """The API was called before the store finished its startup bootstrap."""

    status_code = 503
    default_message = "Service is starting"
