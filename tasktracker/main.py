"""
Task tracker - main entry point.

Runs the API under uvicorn using the host and port from settings:

    tasktracker
    API_PORT=8000 DATABASE_URL=mongodb://localhost:27017 tasktracker
"""

from __future__ import annotations

import uvicorn

from tasktracker.api.app import create_app
from tasktracker.config import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
