"""Persistence contract for the knowledge store.

Every method is one store interaction. Implementations make each call atomic on
its own and retry transient faults internally; nothing here spans more than one
call, so a failed run keeps whatever earlier calls committed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence
    from uuid import UUID

    from nutrikb.domain.model import (
        AuditStatus,
        BusinessKey,
        FactKind,
        FactRow,
        ImportIssue,
        IngredientId,
        IngredientValues,
        StoredIngredient,
    )


@runtime_checkable
class KnowledgeStore(Protocol):
    """Store handle injected into every import component."""

    # Ingredients -----------------------------------------------------------------

    def find_ingredient_by_key(self, canonical_key: str) -> StoredIngredient | None: ...

    def find_ingredient_by_name(self, name: str) -> StoredIngredient | None:
        """Case-insensitive exact match on the ingredient name."""
        ...

    def insert_ingredient(self, values: IngredientValues) -> UUID: ...

    def update_ingredient(self, ingredient_id: UUID, values: IngredientValues) -> None: ...

    def find_ingredient_ids(self, canonical_keys: Collection[str]) -> dict[str, UUID]: ...

    def fetch_synonyms(self, ingredient_id: IngredientId) -> list[str]: ...

    def insert_synonyms(self, ingredient_id: IngredientId, synonyms: Sequence[str]) -> None:
        """Insert synonyms; raises ``DuplicateKeyError`` if one already exists."""
        ...

    # Facts -----------------------------------------------------------------------

    def fetch_citation_statuses(self, citation_ids: Collection[str]) -> dict[str, AuditStatus]: ...

    def fetch_audit_statuses(
        self, kind: FactKind, keys: Sequence[BusinessKey]
    ) -> dict[BusinessKey, AuditStatus]: ...

    def upsert_facts(self, kind: FactKind, rows: Sequence[FactRow]) -> None: ...

    def fetch_fact_ids(
        self, kind: FactKind, keys: Sequence[BusinessKey]
    ) -> dict[BusinessKey, UUID]:
        """Re-read generated ids by business key after an upsert."""
        ...

    def upsert_citation_links(self, kind: FactKind, links: Sequence[tuple[UUID, str]]) -> None: ...

    def set_dataset_version(self, key: str, version: str) -> None: ...

    # Run ledger ------------------------------------------------------------------

    def open_run(self, dataset_version: str | None, mode: Mapping[str, bool]) -> UUID: ...

    def insert_issues(self, run_id: UUID, issues: Sequence[ImportIssue]) -> None: ...

    def close_run(self, run_id: UUID, stats: Mapping[str, object]) -> None: ...
