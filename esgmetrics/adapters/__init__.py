"""Adapters for integrating esgmetrics with storage backends."""

from .memory import InMemoryRowSource
from .sqlalchemy_repo import SQLAlchemyRowSource

__all__ = ["InMemoryRowSource", "SQLAlchemyRowSource"]
