"""SQLAlchemy adapter package for nutrikb."""

from __future__ import annotations

from .engine import StartupError, configured_engine, is_started, shutdown, startup
from .store import SqlAlchemyKnowledgeStore
from .tables import metadata

__all__ = [
    "SqlAlchemyKnowledgeStore",
    "StartupError",
    "configured_engine",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
