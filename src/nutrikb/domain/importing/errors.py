"""Exceptions raised by the dataset import."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nutrikb.domain.model import ImportIssue


class DatasetImportError(RuntimeError):
    """Base class for import failures."""


class DatasetFormatError(DatasetImportError):
    """Raised when a package cannot be read or its top-level structure is malformed."""


class ImportAbortedError(DatasetImportError):
    """Raised when strict mode escalates an issue to a fatal error."""

    def __init__(self, issue: ImportIssue) -> None:
        super().__init__(issue.message)
        self.issue = issue


class DuplicateKeyError(DatasetImportError):
    """Raised by a store when a plain insert collides with an existing unique key."""


class StoreError(DatasetImportError):
    """Raised when the store answers a call with inconsistent state (e.g. no id)."""
