"""FastAPI routers acting as controllers in the MVC architecture."""

from . import ai, conversations

__all__ = ["ai", "conversations"]
