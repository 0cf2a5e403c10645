"""
FastAPI dependencies.

Everything lives on `app.state`, put there once by `create_app()`.
"""

from __future__ import annotations

from fastapi import Request

from tasktracker.auth.tokens import TokenService
from tasktracker.config import Settings
from tasktracker.services import TaskService, UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_users(request: Request) -> UserService:
    return request.app.state.users


def get_tasks(request: Request) -> TaskService:
    return request.app.state.tasks
