"""
Task routes. All require authentication; ownership is enforced by TaskService.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from tasktracker.api.deps import get_tasks
from tasktracker.api.responses import envelope
from tasktracker.auth.context import RequestContext
from tasktracker.auth.policies import require_auth
from tasktracker.services import TaskService
from tasktracker.validation import (
    StatsQuery,
    TaskCreateRequest,
    TaskQuery,
    TaskUpdateRequest,
    ensure_valid_id,
    validate,
)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.post("", status_code=201)
async def create_task(
    data: TaskCreateRequest,
    ctx: RequestContext = Depends(require_auth()),
    tasks: TaskService = Depends(get_tasks),
):
    task = await tasks.create(ctx, data)
    return envelope(
        {"task": task.to_wire()},
        message="Task created successfully",
        status_code=201,
    )


@router.get("")
async def list_tasks(
    request: Request,
    ctx: RequestContext = Depends(require_auth()),
    tasks: TaskService = Depends(get_tasks),
):
    """Own tasks for users; everything (optionally one user's) for admins."""
    query = validate(TaskQuery, dict(request.query_params))
    found, pagination = await tasks.list_tasks(ctx, query)
    return envelope({
        "tasks": [t.to_wire() for t in found],
        "pagination": pagination.to_wire(),
    })


# Declared before /{task_id} so "stats" is not taken for an id
@router.get("/stats")
async def task_stats(
    request: Request,
    ctx: RequestContext = Depends(require_auth()),
    tasks: TaskService = Depends(get_tasks),
):
    query = validate(StatsQuery, dict(request.query_params))
    stats = await tasks.stats(ctx, query.user_id)
    return envelope({"stats": stats.to_wire()})


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    ctx: RequestContext = Depends(require_auth()),
    tasks: TaskService = Depends(get_tasks),
):
    task = await tasks.get_task(ctx, ensure_valid_id(task_id))
    return envelope({"task": task.to_wire()})


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    data: TaskUpdateRequest,
    ctx: RequestContext = Depends(require_auth()),
    tasks: TaskService = Depends(get_tasks),
):
    task = await tasks.update_task(ctx, ensure_valid_id(task_id), data)
    return envelope({"task": task.to_wire()}, message="Task updated successfully")


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    ctx: RequestContext = Depends(require_auth()),
    tasks: TaskService = Depends(get_tasks),
):
    await tasks.delete_task(ctx, ensure_valid_id(task_id))
    return envelope(message="Task deleted successfully")
