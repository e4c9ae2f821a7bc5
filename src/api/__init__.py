"""API layer for Conversation Host.

Contains:
- controllers/: FastAPI route handlers (gpt, mcp, files)
- services/: API services (auth)
- dependencies.py: FastAPI dependencies
"""

from api.dependencies import get_current_user
from api.services.auth_service import AuthService

__all__ = [
    "AuthService",
    "get_current_user",
]
