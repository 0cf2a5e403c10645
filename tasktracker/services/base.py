"""
Base class for resource services.

Resource services sit between routes and the document store. They are
where ownership is decided: the auth pipeline only says *who* is
calling; a service says whether that caller may touch a given record.
"""

from __future__ import annotations

from typing import Any

from tasktracker.auth.context import RequestContext
from tasktracker.core.errors import AuthError, InsufficientPermissionsError
from tasktracker.storage import DocumentStore


class ResourceService:
    """
    Common ownership rules.

    - Admins may act on any record.
    - Everyone else may act only on records they own.
    - Non-admin listings are always pinned to the caller, whatever
      owner filter the client sent.
    """

    collection: str = ""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _principal_id(ctx: RequestContext) -> str:
        if ctx.principal_id is None:
            raise AuthError()
        return ctx.principal_id

    def check_owner(self, ctx: RequestContext, owner_id: str, action: str = "access") -> None:
        """Raise unless the caller is an admin or owns the record."""
        principal_id = self._principal_id(ctx)
        if ctx.is_admin or owner_id == principal_id:
            return
        raise InsufficientPermissionsError(
            f"You do not have permission to {action} this {self.collection.rstrip('s')}"
        )

    def owner_scope(
        self,
        ctx: RequestContext,
        requested_owner: str | None = None,
        field: str = "user_id",
    ) -> dict[str, Any]:
        """Owner filter to AND into a listing query."""
        principal_id = self._principal_id(ctx)
        if not ctx.is_admin:
            return {field: principal_id}
        if requested_owner:
            return {field: requested_owner}
        return {}
