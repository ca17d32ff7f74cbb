from .task_repository import REQUIRED_FIELDS_MESSAGE, TaskRepository, utcnow

__all__ = ["TaskRepository", "REQUIRED_FIELDS_MESSAGE", "utcnow"]
