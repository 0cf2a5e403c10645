"""
Task service - task CRUD and statistics under ownership rules.

Every task read is joined with its owner's summary after the primary
fetch, so responses carry `owner: {id, name, email}`.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from tasktracker.auth.context import RequestContext
from tasktracker.core.errors import TaskNotFoundError
from tasktracker.core.models import (
    Pagination,
    Task,
    TaskPriority,
    TaskResponse,
    TaskStats,
    TaskStatus,
    User,
)
from tasktracker.core.utils import as_utc, page_count, utc_now
from tasktracker.services.base import ResourceService
from tasktracker.storage import DESCENDING, Collections
from tasktracker.validation import TaskCreateRequest, TaskQuery, TaskUpdateRequest

logger = logging.getLogger(__name__)


class TaskService(ResourceService):
    collection = Collections.TASKS

    # =========================================================================
    # Owner join
    # =========================================================================

    async def _owners(self, owner_ids: set[str]) -> dict[str, User]:
        if not owner_ids:
            return {}
        docs = await self.store.find(Collections.USERS, {"id": {"$in": sorted(owner_ids)}})
        return {d["id"]: User.model_validate(d) for d in docs}

    async def _compose(self, tasks: list[Task]) -> list[TaskResponse]:
        owners = await self._owners({t.user_id for t in tasks})
        return [TaskResponse.compose(t, owners.get(t.user_id)) for t in tasks]

    async def _load(self, ctx: RequestContext, task_id: str, action: str) -> Task:
        doc = await self.store.get(self.collection, task_id)
        if doc is None:
            raise TaskNotFoundError()
        task = Task.model_validate(doc)
        self.check_owner(ctx, task.user_id, action)
        return task

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(self, ctx: RequestContext, data: TaskCreateRequest) -> TaskResponse:
        fields = data.model_dump(exclude_none=True)
        task = Task(user_id=self._principal_id(ctx), **fields)
        await self.store.insert(self.collection, task.to_document())
        logger.info(f"User {task.user_id} created task {task.id}")
        return TaskResponse.compose(task, ctx.principal)

    async def list_tasks(
        self, ctx: RequestContext, query: TaskQuery
    ) -> tuple[list[TaskResponse], Pagination]:
        filters = self.build_filters(ctx, query)
        docs = await self.store.find(
            self.collection,
            filters,
            sort=[("created_at", DESCENDING)],
            skip=(query.page - 1) * query.limit,
            limit=query.limit,
        )
        total = await self.store.count(self.collection, filters)
        tasks = await self._compose([Task.model_validate(d) for d in docs])
        pagination = Pagination(
            page=query.page,
            limit=query.limit,
            total=total,
            pages=page_count(total, query.limit),
        )
        return tasks, pagination

    def build_filters(self, ctx: RequestContext, query: TaskQuery) -> dict[str, Any]:
        """Ownership scope AND-ed with the optional secondary filters."""
        filters = self.owner_scope(ctx, query.user_id)
        if query.status is not None:
            filters["status"] = query.status.value
        if query.priority is not None:
            filters["priority"] = query.priority.value
        if query.due_date is not None:
            filters["due_date"] = {"$lte": as_utc(query.due_date)}
        if query.search:
            pattern = re.escape(query.search)
            filters["$or"] = [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        return filters

    async def get_task(self, ctx: RequestContext, task_id: str) -> TaskResponse:
        task = await self._load(ctx, task_id, "view")
        return (await self._compose([task]))[0]

    async def update_task(
        self, ctx: RequestContext, task_id: str, data: TaskUpdateRequest
    ) -> TaskResponse:
        await self._load(ctx, task_id, "update")
        changes = data.model_dump(exclude_none=True, mode="json")
        if data.due_date is not None:
            changes["due_date"] = data.due_date
        changes["updated_at"] = utc_now()

        # No version check: concurrent edits are last-writer-wins
        doc = await self.store.update(self.collection, task_id, changes)
        if doc is None:
            raise TaskNotFoundError()
        return (await self._compose([Task.model_validate(doc)]))[0]

    async def delete_task(self, ctx: RequestContext, task_id: str) -> None:
        await self._load(ctx, task_id, "delete")
        if not await self.store.delete(self.collection, task_id):
            raise TaskNotFoundError()
        logger.info(f"User {ctx.principal_id} deleted task {task_id}")

    # =========================================================================
    # Stats
    # =========================================================================

    async def stats(self, ctx: RequestContext, owner_id: str | None = None) -> TaskStats:
        scope = self.owner_scope(ctx, owner_id)
        count = self.store.count

        total = await count(self.collection, scope)
        completed = await count(self.collection, {**scope, "status": TaskStatus.COMPLETED.value})
        stats = TaskStats(
            total=total,
            pending=await count(self.collection, {**scope, "status": TaskStatus.PENDING.value}),
            in_progress=await count(
                self.collection, {**scope, "status": TaskStatus.IN_PROGRESS.value}
            ),
            completed=completed,
            high_priority=await count(
                self.collection, {**scope, "priority": TaskPriority.HIGH.value}
            ),
            overdue=await count(
                self.collection,
                {
                    **scope,
                    "due_date": {"$lt": utc_now()},
                    "status": {"$ne": TaskStatus.COMPLETED.value},
                },
            ),
            completion_rate=int(completed * 100 / total + 0.5) if total else 0,
        )
        return stats
