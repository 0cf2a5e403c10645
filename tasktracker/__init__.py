"""
Task tracker - task management API with JWT authentication.

Entry points:
- tasktracker.api.app.create_app: the FastAPI application
- tasktracker.client.TaskTrackerClient: async API client
- tasktracker.main.main: run the server
"""

__version__ = "1.0.0"
