"""
Core module - data models, error taxonomy and shared utilities.

This module contains:
- models: stored documents (User, Task) and wire models
- errors: AppError and its subclasses
- utils: ids and time helpers
"""

from tasktracker.core.errors import AppError
from tasktracker.core.models import (
    Pagination,
    Role,
    Task,
    TaskPriority,
    TaskResponse,
    TaskStats,
    TaskStatus,
    User,
    UserResponse,
)

__all__ = [
    "AppError",
    "Pagination",
    "Role",
    "Task",
    "TaskPriority",
    "TaskResponse",
    "TaskStats",
    "TaskStatus",
    "User",
    "UserResponse",
]
