"""Resource services - ownership rules over the document store."""

from tasktracker.services.base import ResourceService
from tasktracker.services.tasks import TaskService
from tasktracker.services.users import UserService

__all__ = [
    "ResourceService",
    "TaskService",
    "UserService",
]
