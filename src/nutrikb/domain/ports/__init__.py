"""Ports implemented by adapters."""

from __future__ import annotations

from .store import KnowledgeStore

__all__ = ["KnowledgeStore"]
