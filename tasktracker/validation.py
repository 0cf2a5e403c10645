"""
Validation layer.

Request models for every inbound payload and query string. Validation
never stops at the first problem: a payload breaking N field rules
produces N field errors, so the caller can fix everything in one go.

Routes get bodies through FastAPI (RequestValidationError is reshaped
by the API error handler) and query strings through `validate()`.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, Iterable, Type, TypeVar

from pydantic import AfterValidator, BaseModel, EmailStr, Field, StringConstraints, ValidationError
from pydantic_core import PydanticCustomError

from tasktracker.core.errors import InvalidIdError, ValidationFailedError
from tasktracker.core.models import Role, TaskPriority, TaskStatus, WireModel
from tasktracker.core.utils import as_utc, is_valid_id, utc_now


M = TypeVar("M", bound=BaseModel)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


# =============================================================================
# Field rules
# =============================================================================


_NAME_PATTERN = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑ\s]+$")
_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _rules_broken(messages: list[str]) -> PydanticCustomError:
    # Every broken rule travels in ctx; field_errors() emits one entry each
    return PydanticCustomError("field_rules", messages[0], {"messages": messages})


def _check_name(value: str) -> str:
    broken = []
    if not 2 <= len(value) <= 50:
        broken.append("Name must be between 2 and 50 characters")
    if not _NAME_PATTERN.match(value):
        broken.append("Name may only contain letters and spaces")
    if broken:
        raise _rules_broken(broken)
    return value


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if len(value) > 100:
        raise ValueError("Email cannot exceed 100 characters")
    return value


def _check_password(value: str) -> str:
    broken = []
    if not 6 <= len(value) <= 128:
        broken.append("Password must be between 6 and 128 characters")
    if not _PASSWORD_PATTERN.match(value):
        broken.append(
            "Password must contain at least one lowercase letter, one uppercase letter and one number"
        )
    if broken:
        raise _rules_broken(broken)
    return value


def _check_future(value: datetime) -> datetime:
    # Evaluated per request, against the current time
    value = as_utc(value)
    if value <= utc_now():
        raise ValueError("Due date must be in the future")
    return value


def _check_id(value: str) -> str:
    if not is_valid_id(value):
        raise ValueError("Invalid ID")
    return value


Name = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_name)]
Email = Annotated[EmailStr, AfterValidator(_normalize_email)]
Password = Annotated[str, AfterValidator(_check_password)]
NonEmpty = Annotated[str, StringConstraints(min_length=1)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
FutureDate = Annotated[datetime, AfterValidator(_check_future)]
ObjectId = Annotated[str, AfterValidator(_check_id)]
Page = Annotated[int, Field(ge=1)]
PageSize = Annotated[int, Field(ge=1, le=MAX_PAGE_SIZE)]


# =============================================================================
# Auth / users
# =============================================================================


class RegisterRequest(WireModel):
    name: Name | None = None
    email: Email
    password: Password

    @property
    def display_name(self) -> str:
        """Given name, or the e-mail local part when none was sent."""
        return self.name or self.email.split("@", 1)[0]


class LoginRequest(WireModel):
    email: Email
    password: NonEmpty


class ProfileUpdateRequest(WireModel):
    name: Name | None = None
    email: Email | None = None


class PasswordChangeRequest(WireModel):
    current_password: NonEmpty
    new_password: Password


class AdminUserUpdateRequest(WireModel):
    name: Name | None = None
    email: Email | None = None
    role: Role | None = None
    is_active: bool | None = None


class UserQuery(WireModel):
    page: Page = 1
    limit: PageSize = DEFAULT_PAGE_SIZE
    role: Role | None = None
    is_active: bool | None = None


# =============================================================================
# Tasks
# =============================================================================


class TaskCreateRequest(WireModel):
    title: Title
    description: Description
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: FutureDate | None = None


class TaskUpdateRequest(WireModel):
    title: Title | None = None
    description: Description | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: FutureDate | None = None


class TaskQuery(WireModel):
    page: Page = 1
    limit: PageSize = DEFAULT_PAGE_SIZE
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    search: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)] | None = None
    due_date: datetime | None = None  # tasks due on or before this
    user_id: ObjectId | None = None  # honoured for admins only


class StatsQuery(WireModel):
    user_id: ObjectId | None = None


# =============================================================================
# Error shaping
# =============================================================================


_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}
_VALUE_ERROR_PREFIX = "Value error, "


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def field_errors(errors: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Turn pydantic error dicts into `{field, message, value?}` entries.

    One entry per broken rule, so a field failing two rules appears
    twice. Submitted passwords are never echoed.
    """
    result: list[dict[str, Any]] = []
    for error in errors:
        if error.get("type") == "json_invalid":
            field = "body"
        else:
            field = _field_name(error.get("loc", ()))

        messages = (error.get("ctx") or {}).get("messages")
        if not messages:
            message = str(error.get("msg", "Invalid value"))
            if message.startswith(_VALUE_ERROR_PREFIX):
                message = message[len(_VALUE_ERROR_PREFIX):]
            messages = [message]

        value = error.get("input")
        echo = (
            error.get("type") != "missing"
            and "password" not in field.lower()
            and isinstance(value, (str, int, float, bool))
        )
        for message in messages:
            entry: dict[str, Any] = {"field": field, "message": message}
            if echo:
                entry["value"] = value
            result.append(entry)
    return result


def validate(model: Type[M], data: Any) -> M:
    """
    Validate raw input against `model`.

    Returns the normalised model or raises ValidationFailedError listing
    every violation.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailedError(errors=field_errors(e.errors()))


def ensure_valid_id(value: str) -> str:
    """Reject malformed path IDs before they reach the store."""
    if not is_valid_id(value):
        raise InvalidIdError()
    return value
