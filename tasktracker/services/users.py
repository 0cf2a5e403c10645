"""
User service - accounts, credentials and admin user management.
"""

from __future__ import annotations

import logging
from typing import Any

from tasktracker.auth.context import RequestContext
from tasktracker.auth.passwords import PasswordHasher
from tasktracker.core.errors import (
    CannotDeleteSelfError,
    DuplicateError,
    EmailInUseError,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    PrincipalUnavailableError,
    UserExistsError,
    UserNotFoundError,
)
from tasktracker.core.models import Pagination, Role, User
from tasktracker.core.utils import page_count, utc_now
from tasktracker.services.base import ResourceService
from tasktracker.storage import DESCENDING, Collections, DocumentStore, DuplicateKeyError
from tasktracker.validation import (
    AdminUserUpdateRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserQuery,
)

logger = logging.getLogger(__name__)


class UserService(ResourceService):
    collection = Collections.USERS

    def __init__(self, store: DocumentStore, hasher: PasswordHasher):
        super().__init__(store)
        self.hasher = hasher

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_by_id(self, user_id: str) -> User | None:
        doc = await self.store.get(self.collection, user_id)
        return User.model_validate(doc) if doc else None

    async def get_by_email(self, email: str) -> User | None:
        doc = await self.store.find_one(self.collection, {"email": email.strip().lower()})
        return User.model_validate(doc) if doc else None

    async def _email_taken(self, email: str, exclude_id: str) -> bool:
        other = await self.store.find_one(
            self.collection, {"email": email, "id": {"$ne": exclude_id}}
        )
        return other is not None

    async def _save_changes(self, user_id: str, changes: dict[str, Any]) -> User:
        changes["updated_at"] = utc_now()
        try:
            doc = await self.store.update(self.collection, user_id, changes)
        except DuplicateKeyError as e:
            if e.field == "email":
                raise EmailInUseError()
            raise DuplicateError(field=e.field)
        if doc is None:
            raise UserNotFoundError()
        return User.model_validate(doc)

    # =========================================================================
    # Registration / credentials
    # =========================================================================

    async def create_user(
        self, name: str, email: str, password: str, role: Role = Role.USER
    ) -> User:
        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=await self.hasher.hash(password),
            role=role,
        )
        try:
            await self.store.insert(self.collection, user.to_document())
        except DuplicateKeyError as e:
            if e.field == "email":
                raise UserExistsError()
            raise DuplicateError(field=e.field)
        return user

    async def register(self, data: RegisterRequest) -> User:
        """Create a regular account. Registration never grants admin."""
        if await self.get_by_email(data.email):
            raise UserExistsError()
        user = await self.create_user(data.display_name, data.email, data.password)
        logger.info(f"Registered user {user.id}")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Unknown e-mail and wrong password give the same error. The
        inactive check comes after the password so it reveals nothing
        to someone who does not know it.
        """
        user = await self.get_by_email(email)
        valid = await self.hasher.verify(password, user.password_hash if user else None)
        if user is None or not valid:
            raise InvalidCredentialsError()
        if not user.is_active:
            raise PrincipalUnavailableError.inactive()
        return user

    async def ensure_admin(self, name: str, email: str, password: str) -> User:
        """Create the bootstrap admin if that e-mail is not registered yet."""
        existing = await self.get_by_email(email)
        if existing:
            return existing
        user = await self.create_user(name, email, password, role=Role.ADMIN)
        logger.info(f"Bootstrapped admin account {user.email}")
        return user

    # =========================================================================
    # Self-service (always the caller's own account)
    # =========================================================================

    async def update_profile(self, ctx: RequestContext, data: ProfileUpdateRequest) -> User:
        user_id = self._principal_id(ctx)
        changes = data.model_dump(exclude_none=True)
        if "email" in changes and await self._email_taken(changes["email"], user_id):
            raise EmailInUseError()
        return await self._save_changes(user_id, changes)

    async def change_password(self, ctx: RequestContext, data: PasswordChangeRequest) -> None:
        user = await self.get_by_id(self._principal_id(ctx))
        if user is None:
            raise UserNotFoundError()
        if not await self.hasher.verify(data.current_password, user.password_hash):
            raise InvalidCurrentPasswordError()
        await self._save_changes(
            user.id,
            {"password_hash": await self.hasher.hash(data.new_password)},
        )
        logger.info(f"Password changed for user {user.id}")

    async def deactivate(self, ctx: RequestContext) -> None:
        user_id = self._principal_id(ctx)
        await self._save_changes(user_id, {"is_active": False})
        logger.info(f"User {user_id} deactivated their account")

    # =========================================================================
    # Admin (role is checked by the route policy)
    # =========================================================================

    async def list_users(self, query: UserQuery) -> tuple[list[User], Pagination]:
        filters: dict[str, Any] = {}
        if query.role is not None:
            filters["role"] = query.role.value
        if query.is_active is not None:
            filters["is_active"] = query.is_active

        docs = await self.store.find(
            self.collection,
            filters,
            sort=[("created_at", DESCENDING)],
            skip=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        total = await self.store.count(self.collection, filters)
        pagination = Pagination(
            page=query.page,
            limit=query.limit,
            total=total,
            pages=page_count(total, query.limit),
        )
        return [User.model_validate(d) for d in docs], pagination

    async def get_user(self, user_id: str) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def update_user(self, user_id: str, data: AdminUserUpdateRequest) -> User:
        await self.get_user(user_id)
        changes = data.model_dump(exclude_none=True, mode="json")
        if "email" in changes and await self._email_taken(changes["email"], user_id):
            raise EmailInUseError()
        return await self._save_changes(user_id, changes)

    async def delete_user(self, ctx: RequestContext, user_id: str) -> None:
        """
        Delete an account and the tasks it owns.

        An admin can never delete themselves through this path.
        """
        if user_id == self._principal_id(ctx):
            raise CannotDeleteSelfError()
        if not await self.store.delete(self.collection, user_id):
            raise UserNotFoundError()
        removed = await self.store.delete_many(Collections.TASKS, {"user_id": user_id})
        logger.info(f"Admin {ctx.principal_id} deleted user {user_id} and {removed} task(s)")
