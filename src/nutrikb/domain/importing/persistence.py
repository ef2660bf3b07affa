"""Chunked, idempotent upserts of fact rows."""

from __future__ import annotations

from dataclasses import replace
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, cast

from nutrikb.domain.importing.audit import merge_audit_status
from nutrikb.domain.importing.errors import StoreError
from nutrikb.domain.model import AUDITED_KINDS, CITATION_JOIN_KINDS, business_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from nutrikb.domain.importing.mode import ImportMode
    from nutrikb.domain.model import AuditedRow, BusinessKey, CitedRow, FactKind, FactRow
    from nutrikb.domain.ports import KnowledgeStore

log = getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500


class PersistenceEngine:
    """Writes fact rows through the store in fixed-size chunks.

    For audited kinds the stored statuses of each chunk are read first and
    merged so trust never decreases. For kinds with a citation join table the
    fact ids are re-read by business key and ``(fact_id, citation_id)`` links
    upserted. Store errors propagate; retrying is the store's concern.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        mode: ImportMode,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._store = store
        self._mode = mode
        self.chunk_size = chunk_size

    def upsert_facts(self, kind: FactKind, rows: Iterable[FactRow]) -> int:
        """Upsert ``rows`` and return how many distinct rows were written.

        Rows sharing a business key collapse to the last one. A dry run returns
        the same count without touching the store.
        """

        unique = _dedupe(kind, rows)
        if self._mode.dry_run or not unique:
            return len(unique)
        for chunk in batched(unique, self.chunk_size):
            self._write_chunk(kind, chunk)
        log.info("Upserted %d %s rows", len(unique), kind)
        return len(unique)

    def _write_chunk(self, kind: FactKind, chunk: Sequence[FactRow]) -> None:
        if kind in AUDITED_KINDS:
            chunk = self._merge_statuses(kind, cast("Sequence[AuditedRow]", chunk))
        self._store.upsert_facts(kind, chunk)
        if kind in CITATION_JOIN_KINDS:
            self._link_citations(kind, cast("Sequence[CitedRow]", chunk))

    def _merge_statuses(self, kind: FactKind, chunk: Sequence[AuditedRow]) -> list[AuditedRow]:
        stored = self._store.fetch_audit_statuses(kind, [business_key(kind, row) for row in chunk])
        merged: list[AuditedRow] = []
        for row in chunk:
            existing = stored.get(business_key(kind, row))
            if existing is None:
                merged.append(row)
                continue
            merged.append(replace(row, audit_status=merge_audit_status(existing, row.audit_status)))
        return merged

    def _link_citations(self, kind: FactKind, chunk: Sequence[CitedRow]) -> None:
        cited = [row for row in chunk if row.reference_ids]
        if not cited:
            return
        keys = [business_key(kind, row) for row in cited]
        fact_ids = self._store.fetch_fact_ids(kind, keys)
        links: list[tuple[UUID, str]] = []
        for key, row in zip(keys, cited, strict=True):
            fact_id = _require_id(fact_ids, key, kind)
            links.extend((fact_id, citation_id) for citation_id in dict.fromkeys(row.reference_ids))
        self._store.upsert_citation_links(kind, links)


def _dedupe(kind: FactKind, rows: Iterable[FactRow]) -> list[FactRow]:
    unique: dict[BusinessKey, FactRow] = {}
    for row in rows:
        unique[business_key(kind, row)] = row
    return list(unique.values())


def _require_id(fact_ids: dict[BusinessKey, UUID], key: BusinessKey, kind: FactKind) -> UUID:
    fact_id = fact_ids.get(key)
    if fact_id is None:
        raise StoreError(f"No {kind} row found for key {key!r} after upsert")
    return fact_id
