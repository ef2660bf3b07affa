"""Identity resolution for ingredients.

An ingredient is matched by canonical key first, then by case-insensitive exact
name, and inserted when neither matches. A stored row that already carries a
different canonical key is never rebound.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from nutrikb.domain.importing.errors import DuplicateKeyError
from nutrikb.domain.model import IngredientValues, IssueType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from nutrikb.domain.importing.issues import IssueJournal
    from nutrikb.domain.importing.mode import ImportMode
    from nutrikb.domain.model import IngredientId, IngredientRecord, StoredIngredient
    from nutrikb.domain.ports import KnowledgeStore

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UnitMerge:
    unit: str | None
    mismatch: bool = False


@dataclass(frozen=True, slots=True)
class SynonymCounts:
    candidates: int = 0
    inserted: int = 0


def merge_base_unit(existing: str | None, incoming: str | None) -> UnitMerge:
    """Decide the unit to store for an ingredient that already exists.

    The stored unit wins on a mismatch (reported by the caller). An incoming
    ``None`` keeps the stored unit; a stored ``None`` takes the incoming one.
    Comparison ignores case.
    """

    current = _unit(existing)
    candidate = _unit(incoming)
    if current is None:
        return UnitMerge(candidate)
    if candidate is None or candidate == current:
        return UnitMerge(current)
    return UnitMerge(current, mismatch=True)


def _unit(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower() or None


class IdentityMap:
    """Canonical key to store id for one run.

    Keys resolved from the package are held in memory. Keys referenced by
    dependent facts but missing from the package are looked up in the store
    once; in a dry run they are assumed to exist and map to themselves.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        *,
        dry_run: bool,
        resolved: Mapping[str, IngredientId] | None = None,
    ) -> None:
        self._store = store
        self._dry_run = dry_run
        self._resolved: dict[str, IngredientId] = dict(resolved or {})
        self._missing: set[str] = set()

    def __contains__(self, key: object) -> bool:
        return key in self._resolved

    def __len__(self) -> int:
        return len(self._resolved)

    def bind(self, canonical_key: str, ingredient_id: IngredientId) -> None:
        self._resolved[canonical_key] = ingredient_id
        self._missing.discard(canonical_key)

    def get(self, canonical_key: str) -> IngredientId | None:
        return self._resolved.get(canonical_key)

    def lookup_many(self, canonical_keys: Iterable[str]) -> dict[str, IngredientId]:
        """Resolve ``canonical_keys``, consulting the store for unknown ones.

        Keys that are known neither to this run nor to the store are absent from
        the result.
        """

        wanted = {key for key in canonical_keys if key}
        unknown = wanted - self._resolved.keys() - self._missing
        if unknown:
            if self._dry_run:
                self._resolved.update({key: key for key in unknown})
            else:
                found = self._store.find_ingredient_ids(sorted(unknown))
                self._resolved.update(found)
                self._missing.update(unknown - found.keys())
        return {key: self._resolved[key] for key in wanted if key in self._resolved}


class IdentityResolver:
    def __init__(self, store: KnowledgeStore, journal: IssueJournal, mode: ImportMode) -> None:
        self._store = store
        self._journal = journal
        self._mode = mode

    def resolve(self, records: Iterable[IngredientRecord]) -> IdentityMap:
        identities = IdentityMap(self._store, dry_run=self._mode.dry_run)
        for record in records:
            ingredient_id = self._resolve_one(record)
            if ingredient_id is not None:
                identities.bind(record.canonical_key, ingredient_id)
        log.info("Resolved %d ingredient identities", len(identities))
        return identities

    def _resolve_one(self, record: IngredientRecord) -> IngredientId | None:
        if self._mode.dry_run:
            return record.canonical_key

        existing = self._store.find_ingredient_by_key(record.canonical_key)
        if existing is None:
            existing = self._store.find_ingredient_by_name(record.name)
        if existing is None:
            return self._insert(record)

        if existing.canonical_key and existing.canonical_key != record.canonical_key:
            self._journal.report(
                IssueType.CANONICAL_KEY_CONFLICT,
                f"canonical_key conflict for {record.canonical_key} "
                f"-> existing {existing.canonical_key}",
                canonical_key=record.canonical_key,
                ingredient_id=existing.id,
                payload={"existing_canonical_key": existing.canonical_key},
            )
            return None
        return self._update(existing, record)

    def _insert(self, record: IngredientRecord) -> IngredientId:
        values = IngredientValues(
            canonical_key=record.canonical_key,
            name=record.name,
            unit=_unit(record.base_unit),
            category=record.category,
            goals=record.goals,
        )
        ingredient_id = self._store.insert_ingredient(values)
        log.debug("Inserted ingredient %s as %s", record.canonical_key, ingredient_id)
        return ingredient_id

    def _update(self, existing: StoredIngredient, record: IngredientRecord) -> IngredientId:
        merged = merge_base_unit(existing.unit, record.base_unit)
        if merged.mismatch:
            self._journal.report(
                IssueType.BASE_UNIT_MISMATCH,
                f"base_unit mismatch for {record.canonical_key}: "
                f"{_unit(existing.unit)} vs {_unit(record.base_unit)}",
                canonical_key=record.canonical_key,
                ingredient_id=existing.id,
                payload={
                    "existing_unit": _unit(existing.unit),
                    "incoming_unit": _unit(record.base_unit),
                },
            )
        values = IngredientValues(
            canonical_key=record.canonical_key,
            name=existing.name or record.name,
            unit=merged.unit,
            category=record.category,
            goals=record.goals,
        )
        self._store.update_ingredient(existing.id, values)
        return existing.id


def candidate_synonyms(synonyms: Iterable[str], known: Iterable[str] = ()) -> list[str]:
    """Trimmed synonyms not already in ``known``, de-duplicated case-insensitively."""

    seen = {value.strip().lower() for value in known}
    fresh: list[str] = []
    for synonym in synonyms:
        text = synonym.strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        fresh.append(text)
    return fresh


def reconcile_synonyms(
    store: KnowledgeStore,
    journal: IssueJournal,
    mode: ImportMode,
    records: Sequence[IngredientRecord],
    identities: IdentityMap,
) -> SynonymCounts:
    """Insert new synonyms for every resolved ingredient.

    ``candidates`` counts the distinct synonyms in the package and is the same
    for dry and live runs; ``inserted`` counts the ones actually written, so a
    repeated run reports zero. A store duplicate-key fault is recorded as a
    warning and does not abort the run.
    """

    candidates = 0
    inserted = 0
    for record in records:
        ingredient_id = identities.get(record.canonical_key)
        if ingredient_id is None:
            continue
        distinct = candidate_synonyms(record.synonyms)
        candidates += len(distinct)
        if mode.dry_run or not distinct:
            continue
        fresh = candidate_synonyms(distinct, store.fetch_synonyms(ingredient_id))
        if not fresh:
            continue
        try:
            store.insert_synonyms(ingredient_id, fresh)
            inserted += len(fresh)
        except DuplicateKeyError as exc:
            journal.report(
                IssueType.DUPLICATE_SYNONYM,
                f"synonym already present for {record.canonical_key}: {exc}",
                canonical_key=record.canonical_key,
                ingredient_id=ingredient_id,
                payload={"synonyms": fresh},
                benign=True,
            )
    return SynonymCounts(candidates=candidates, inserted=inserted)
