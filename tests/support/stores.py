"""In-memory store double for import tests."""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nutrikb.domain.importing.errors import DuplicateKeyError, StoreError
from nutrikb.domain.model import (
    AuditStatus,
    CitationRow,
    FactKind,
    StoredIngredient,
    business_key,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence

    from nutrikb.domain.model import (
        BusinessKey,
        FactRow,
        ImportIssue,
        IngredientId,
        IngredientValues,
    )


@dataclass(slots=True)
class RecordedRun:
    dataset_version: str | None
    mode: dict[str, bool]
    stats: dict[str, object] | None = None
    issues: list[ImportIssue] = field(default_factory=list["ImportIssue"])

    @property
    def closed(self) -> bool:
        return self.stats is not None


class InMemoryKnowledgeStore:
    """Dictionary-backed ``KnowledgeStore`` that records every call.

    ``fail_on`` names a method that raises ``StoreError`` once it has been
    called ``fail_after`` times successfully.
    """

    def __init__(self, *, fail_on: str | None = None, fail_after: int = 0) -> None:
        self.ingredients: dict[uuid.UUID, StoredIngredient] = {}
        self.ingredient_values: dict[uuid.UUID, IngredientValues] = {}
        self.synonyms: dict[uuid.UUID, list[str]] = defaultdict(list)
        self.facts: dict[FactKind, dict[BusinessKey, FactRow]] = defaultdict(dict)
        self.fact_ids: dict[FactKind, dict[BusinessKey, uuid.UUID]] = defaultdict(dict)
        self.statuses: dict[FactKind, dict[BusinessKey, AuditStatus]] = defaultdict(dict)
        self.links: dict[FactKind, set[tuple[uuid.UUID, str]]] = defaultdict(set)
        self.dataset_state: dict[str, str] = {}
        self.runs: dict[uuid.UUID, RecordedRun] = {}
        self.calls: list[str] = []
        self.fail_on = fail_on
        self.fail_after = fail_after
        self.reject_synonyms = False

    # Seeding -----------------------------------------------------------------------

    def add_ingredient(
        self, canonical_key: str | None, name: str, unit: str | None = None
    ) -> uuid.UUID:
        ingredient_id = uuid.uuid4()
        self.ingredients[ingredient_id] = StoredIngredient(
            id=ingredient_id, canonical_key=canonical_key, name=name, unit=unit
        )
        return ingredient_id

    def add_citation_status(self, citation_id: str, status: AuditStatus) -> None:
        row = CitationRow(
            id=citation_id,
            type=None,
            identifier=None,
            source=None,
            title=None,
            year=None,
            url=None,
            audit_status=status,
            accessed_at=None,
        )
        self._store_row(FactKind.CITATION, row)

    # Inspection --------------------------------------------------------------------

    @property
    def mutations(self) -> list[str]:
        readers = {
            "find_ingredient_by_key",
            "find_ingredient_by_name",
            "find_ingredient_ids",
            "fetch_synonyms",
            "fetch_citation_statuses",
            "fetch_audit_statuses",
            "fetch_fact_ids",
        }
        return [call for call in self.calls if call not in readers]

    def rows(self, kind: FactKind) -> list[FactRow]:
        return list(self.facts[kind].values())

    def only_run(self) -> RecordedRun:
        assert len(self.runs) == 1
        return next(iter(self.runs.values()))

    def _store_row(self, kind: FactKind, row: FactRow) -> None:
        key = business_key(kind, row)
        self.facts[kind][key] = row
        self.fact_ids[kind].setdefault(key, uuid.uuid4())
        status = getattr(row, "audit_status", None)
        if status is not None:
            self.statuses[kind][key] = status

    def _record(self, name: str) -> None:
        if name == self.fail_on:
            if self.fail_after <= 0:
                raise StoreError(f"injected failure in {name}")
            self.fail_after -= 1
        self.calls.append(name)

    # Ingredients -------------------------------------------------------------------

    def find_ingredient_by_key(self, canonical_key: str) -> StoredIngredient | None:
        self._record("find_ingredient_by_key")
        for ingredient in self.ingredients.values():
            if ingredient.canonical_key == canonical_key:
                return ingredient
        return None

    def find_ingredient_by_name(self, name: str) -> StoredIngredient | None:
        self._record("find_ingredient_by_name")
        for ingredient in self.ingredients.values():
            if ingredient.name.lower() == name.lower():
                return ingredient
        return None

    def insert_ingredient(self, values: IngredientValues) -> uuid.UUID:
        self._record("insert_ingredient")
        ingredient_id = self.add_ingredient(values.canonical_key, values.name, values.unit)
        self.ingredient_values[ingredient_id] = values
        return ingredient_id

    def update_ingredient(self, ingredient_id: uuid.UUID, values: IngredientValues) -> None:
        self._record("update_ingredient")
        self.ingredients[ingredient_id] = StoredIngredient(
            id=ingredient_id,
            canonical_key=values.canonical_key,
            name=values.name,
            unit=values.unit,
        )
        self.ingredient_values[ingredient_id] = values

    def find_ingredient_ids(self, canonical_keys: Collection[str]) -> dict[str, uuid.UUID]:
        self._record("find_ingredient_ids")
        wanted = set(canonical_keys)
        return {
            ingredient.canonical_key: ingredient.id
            for ingredient in self.ingredients.values()
            if ingredient.canonical_key in wanted
        }

    def fetch_synonyms(self, ingredient_id: IngredientId) -> list[str]:
        self._record("fetch_synonyms")
        return list(self.synonyms.get(uuid.UUID(str(ingredient_id)), []))

    def insert_synonyms(self, ingredient_id: IngredientId, synonyms: Sequence[str]) -> None:
        self._record("insert_synonyms")
        if self.reject_synonyms:
            raise DuplicateKeyError(f"duplicate synonym for {ingredient_id}")
        self.synonyms[uuid.UUID(str(ingredient_id))].extend(synonyms)

    # Facts -------------------------------------------------------------------------

    def fetch_citation_statuses(self, citation_ids: Collection[str]) -> dict[str, AuditStatus]:
        self._record("fetch_citation_statuses")
        stored = self.statuses[FactKind.CITATION]
        return {
            citation_id: stored[(citation_id,)]
            for citation_id in citation_ids
            if (citation_id,) in stored
        }

    def fetch_audit_statuses(
        self, kind: FactKind, keys: Sequence[BusinessKey]
    ) -> dict[BusinessKey, AuditStatus]:
        self._record("fetch_audit_statuses")
        stored = self.statuses[kind]
        return {key: stored[key] for key in keys if key in stored}

    def upsert_facts(self, kind: FactKind, rows: Sequence[FactRow]) -> None:
        self._record("upsert_facts")
        for row in rows:
            self._store_row(kind, row)

    def fetch_fact_ids(
        self, kind: FactKind, keys: Sequence[BusinessKey]
    ) -> dict[BusinessKey, uuid.UUID]:
        self._record("fetch_fact_ids")
        ids = self.fact_ids[kind]
        return {key: ids[key] for key in keys if key in ids}

    def upsert_citation_links(self, kind: FactKind, links: Sequence[tuple[uuid.UUID, str]]) -> None:
        self._record("upsert_citation_links")
        self.links[kind].update(links)

    def set_dataset_version(self, key: str, version: str) -> None:
        self._record("set_dataset_version")
        self.dataset_state[key] = version

    # Run ledger --------------------------------------------------------------------

    def open_run(self, dataset_version: str | None, mode: Mapping[str, bool]) -> uuid.UUID:
        self._record("open_run")
        run_id = uuid.uuid4()
        self.runs[run_id] = RecordedRun(dataset_version=dataset_version, mode=dict(mode))
        return run_id

    def insert_issues(self, run_id: uuid.UUID, issues: Sequence[ImportIssue]) -> None:
        self._record("insert_issues")
        self.runs[run_id].issues.extend(issues)

    def close_run(self, run_id: uuid.UUID, stats: Mapping[str, object]) -> None:
        self._record("close_run")
        self.runs[run_id].stats = dict(stats)
