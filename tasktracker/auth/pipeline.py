"""
Request pipeline.

A stage is an async callable taking a RequestContext and returning the
next one. A stage fails by raising an AppError; the runner stops there.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable

from tasktracker.auth.context import RequestContext


Stage = Callable[[RequestContext], Awaitable[RequestContext]]


async def run_pipeline(ctx: RequestContext, stages: Iterable[Stage]) -> RequestContext:
    """Run stages in order, threading the context through."""
    for stage in stages:
        ctx = await stage(ctx)
    return ctx
