# =============================================================================
# Task Tracker API Client
# =============================================================================
#
# Usage:
#   async with TaskTrackerClient("http://localhost:5000") as api:
#       await api.login("ana@example.com", "Secret123")
#       task = await api.create_task("Write report", "Quarterly numbers")
#
# The access token lives in memory only; the refresh token lives in the
# http-only cookie the server sets, kept by the httpx cookie jar. A 401 on
# any call other than login/register/refresh triggers one refresh and a
# replay of the original request.
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


_NO_AUTO_REFRESH = {"/api/auth/login", "/api/auth/register", "/api/auth/refresh"}


class ApiError(Exception):
    """Error envelope returned by the API."""

    def __init__(
        self,
        status: int,
        code: str | None,
        message: str,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.status = status
        self.code = code
        self.message = message
        self.errors = errors or []
        super().__init__(f"{status} {code}: {message}")


def _wire(fields: dict[str, Any]) -> dict[str, Any]:
    """camelCase keys, ISO dates, unset fields dropped."""
    result = {}
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        result[to_camel(key)] = value
    return result


class TaskTrackerClient:
    """Async client for the task tracker API."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.access_token: str | None = None
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> TaskTrackerClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    # =========================================================================
    # Transport
    # =========================================================================

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return await self._http.request(method, path, headers=headers, **kwargs)

    @staticmethod
    def _unwrap(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text or response.reason_phrase}

        if response.is_error:
            raise ApiError(
                response.status_code,
                body.get("code"),
                body.get("message", response.reason_phrase),
                body.get("errors"),
            )
        return body

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        response = await self._send(method, path, **kwargs)

        if response.status_code == 401 and path not in _NO_AUTO_REFRESH:
            logger.debug(f"{method} {path} got 401, refreshing access token")
            await self.refresh()
            response = await self._send(method, path, **kwargs)

        body = self._unwrap(response)
        return body.get("data") or {}

    # =========================================================================
    # Auth
    # =========================================================================

    async def register(self, email: str, password: str, name: str | None = None) -> dict[str, Any]:
        data = await self._request(
            "POST", "/api/auth/register", json=_wire({"name": name, "email": email, "password": password})
        )
        self.access_token = data["accessToken"]
        return data["user"]

    async def login(self, email: str, password: str) -> dict[str, Any]:
        data = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        self.access_token = data["accessToken"]
        return data["user"]

    async def logout(self) -> None:
        try:
            await self._request("POST", "/api/auth/logout")
        finally:
            self.access_token = None

    async def refresh(self) -> str:
        """Get a new access token using the refresh cookie."""
        try:
            data = await self._request("POST", "/api/auth/refresh")
        except ApiError:
            self.access_token = None
            raise
        self.access_token = data["accessToken"]
        return self.access_token

    async def profile(self) -> dict[str, Any]:
        return (await self._request("GET", "/api/auth/profile"))["user"]

    # =========================================================================
    # Self-service
    # =========================================================================

    async def update_profile(self, name: str | None = None, email: str | None = None) -> dict[str, Any]:
        data = await self._request(
            "PUT", "/api/users/profile", json=_wire({"name": name, "email": email})
        )
        return data["user"]

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._request(
            "PUT",
            "/api/users/change-password",
            json=_wire({"current_password": current_password, "new_password": new_password}),
        )

    async def deactivate(self) -> None:
        await self._request("PUT", "/api/users/deactivate")
        self.access_token = None

    # =========================================================================
    # Users (admin)
    # =========================================================================

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> dict[str, Any]:
        params = _wire({"page": page, "limit": limit, "role": role, "is_active": is_active})
        return await self._request("GET", "/api/users", params=params)

    async def get_user(self, user_id: str) -> dict[str, Any]:
        return (await self._request("GET", f"/api/users/{user_id}"))["user"]

    async def update_user(self, user_id: str, **fields) -> dict[str, Any]:
        data = await self._request("PUT", f"/api/users/{user_id}", json=_wire(fields))
        return data["user"]

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/api/users/{user_id}")

    # =========================================================================
    # Tasks
    # =========================================================================

    async def create_task(
        self,
        title: str,
        description: str,
        status: str | None = None,
        priority: str | None = None,
        due_date: datetime | None = None,
    ) -> dict[str, Any]:
        payload = _wire({
            "title": title,
            "description": description,
            "status": status,
            "priority": priority,
            "due_date": due_date,
        })
        return (await self._request("POST", "/api/tasks", json=payload))["task"]

    async def list_tasks(self, **filters) -> dict[str, Any]:
        """Filters: page, limit, status, priority, search, due_date, user_id."""
        return await self._request("GET", "/api/tasks", params=_wire(filters))

    async def get_task(self, task_id: str) -> dict[str, Any]:
        return (await self._request("GET", f"/api/tasks/{task_id}"))["task"]

    async def update_task(self, task_id: str, **fields) -> dict[str, Any]:
        data = await self._request("PUT", f"/api/tasks/{task_id}", json=_wire(fields))
        return data["task"]

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}")

    async def stats(self, user_id: str | None = None) -> dict[str, Any]:
        data = await self._request("GET", "/api/tasks/stats", params=_wire({"user_id": user_id}))
        return data["stats"]

    async def health(self) -> dict[str, Any]:
        response = await self._http.get("/health")
        return self._unwrap(response)
