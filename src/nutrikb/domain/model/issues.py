"""Import issue records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .enums import IssueSeverity, IssueType
    from .rows import IngredientId


@dataclass(frozen=True, slots=True, kw_only=True)
class IssueDraft:
    """Issue detected before a run exists; severity is decided when it is reported."""

    issue_type: IssueType
    message: str
    canonical_key: str | None = None
    payload: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportIssue:
    severity: IssueSeverity
    issue_type: IssueType
    message: str
    canonical_key: str | None = None
    ingredient_id: IngredientId | None = None
    payload: dict[str, Any] = field(default_factory=dict[str, Any])
