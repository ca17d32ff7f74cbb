"""
TaskCal: a personal task-calendar backend.

Tasks scoped to calendar dates, persisted in a relational store and served
through a small JSON API.
"""

__version__ = "1.0.0"
