"""
Core data models for the task tracker.

Stored models (User, Task) are what the document store holds, in
snake_case. Response models (UserResponse, TaskResponse) are what
leaves the API, in camelCase, and never carry the password hash.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tasktracker.core.utils import generate_id, utc_now


# =============================================================================
# Enums
# =============================================================================


class Role(str, Enum):
    """Platform-wide role of an account."""

    USER = "user"
    ADMIN = "admin"


class TaskStatus(str, Enum):
    """Where a task is in its lifecycle."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Stored documents
# =============================================================================


class User(BaseModel):
    """
    An account (principal).

    `password_hash` is written on creation and on password change only;
    it is never part of a response.
    """

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_id)
    name: str
    email: str
    password_hash: str
    role: Role = Role.USER
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


class Task(BaseModel):
    """A task. `user_id` is the owner and never changes after creation."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_id)
    title: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


# =============================================================================
# Responses (camelCase on the wire)
# =============================================================================


class WireModel(BaseModel):
    """Base for everything serialized to or parsed from JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UserResponse(WireModel):
    """User data returned to clients (no sensitive fields)."""

    id: str
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class OwnerSummary(WireModel):
    """The slice of the owning user embedded in task responses."""

    id: str
    name: str
    email: str


class TaskResponse(WireModel):
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    user_id: str
    owner: OwnerSummary | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def compose(cls, task: Task, owner: User | None) -> TaskResponse:
        """Join a task with its owner (looked up separately)."""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            user_id=task.user_id,
            owner=OwnerSummary(id=owner.id, name=owner.name, email=owner.email) if owner else None,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class Pagination(WireModel):
    page: int
    limit: int
    total: int
    pages: int


class TaskStats(WireModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    high_priority: int = 0
    overdue: int = 0
    completion_rate: int = 0
