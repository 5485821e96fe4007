"""Convenience imports for Alembic metadata discovery."""

from todo_api.models.user import User
from todo_api.models.todo import Todo
from todo_api.models.refresh_session import RefreshSession

__all__ = ["RefreshSession", "Todo", "User"]
