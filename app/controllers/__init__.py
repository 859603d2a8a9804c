"""FastAPI routers acting as controllers in the MVC architecture."""

from . import challenge

__all__ = ["challenge"]
