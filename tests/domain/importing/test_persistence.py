from __future__ import annotations

import uuid

import pytest

from nutrikb.domain.importing import ImportMode, PersistenceEngine
from nutrikb.domain.importing.errors import StoreError
from nutrikb.domain.model import (
    AuditStatus,
    FactKind,
    FormRow,
    GenericFormTokenRow,
)
from tests.support.stores import InMemoryKnowledgeStore


def _form(
    ingredient_id: uuid.UUID,
    form_key: str,
    *,
    status: AuditStatus = AuditStatus.NEEDS_REVIEW,
    reference_ids: tuple[str, ...] = (),
    label: str | None = None,
) -> FormRow:
    return FormRow(
        ingredient_id=ingredient_id,
        form_key=form_key,
        form_label=label or form_key,
        relative_factor=1.0,
        confidence=0.5,
        evidence_grade=None,
        audit_status=status,
        reference_ids=reference_ids,
    )


def _token(token: str) -> GenericFormTokenRow:
    return GenericFormTokenRow(
        token_raw=token, token_normalized=token, alias_confidence=None, notes=None
    )


def test_rows_are_written_in_chunks(memory_store: InMemoryKnowledgeStore) -> None:
    engine = PersistenceEngine(memory_store, ImportMode(), chunk_size=2)

    count = engine.upsert_facts(FactKind.GENERIC_FORM_TOKEN, [_token(f"t{i}") for i in range(5)])

    assert count == 5
    assert memory_store.calls.count("upsert_facts") == 3
    assert len(memory_store.rows(FactKind.GENERIC_FORM_TOKEN)) == 5


def test_duplicate_business_keys_collapse_to_last(memory_store: InMemoryKnowledgeStore) -> None:
    engine = PersistenceEngine(memory_store, ImportMode())
    owner = uuid.uuid4()

    count = engine.upsert_facts(
        FactKind.INGREDIENT_FORM,
        [_form(owner, "citrate", label="first"), _form(owner, "citrate", label="second")],
    )

    assert count == 1
    (row,) = memory_store.rows(FactKind.INGREDIENT_FORM)
    assert isinstance(row, FormRow)
    assert row.form_label == "second"


def test_stored_status_is_never_lowered(memory_store: InMemoryKnowledgeStore) -> None:
    engine = PersistenceEngine(memory_store, ImportMode())
    owner = uuid.uuid4()
    engine.upsert_facts(
        FactKind.INGREDIENT_FORM, [_form(owner, "oxide", status=AuditStatus.VERIFIED)]
    )

    engine.upsert_facts(
        FactKind.INGREDIENT_FORM,
        [
            _form(owner, "oxide", status=AuditStatus.NEEDS_RESOLUTION),
            _form(owner, "citrate", status=AuditStatus.NEEDS_RESOLUTION),
        ],
    )

    statuses = {
        row.form_key: row.audit_status  # type: ignore[union-attr]
        for row in memory_store.rows(FactKind.INGREDIENT_FORM)
    }
    assert statuses == {
        "oxide": AuditStatus.VERIFIED,
        "citrate": AuditStatus.NEEDS_RESOLUTION,
    }


def test_citation_links_are_upserted_by_fact_id(memory_store: InMemoryKnowledgeStore) -> None:
    engine = PersistenceEngine(memory_store, ImportMode())
    owner = uuid.uuid4()

    engine.upsert_facts(
        FactKind.INGREDIENT_FORM,
        [_form(owner, "oxide", reference_ids=("c1", "c2", "c1")), _form(owner, "citrate")],
    )

    fact_id = memory_store.fact_ids[FactKind.INGREDIENT_FORM][(owner, "oxide")]
    assert memory_store.links[FactKind.INGREDIENT_FORM] == {(fact_id, "c1"), (fact_id, "c2")}


def test_missing_fact_id_after_upsert_is_a_store_error(
    memory_store: InMemoryKnowledgeStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    engine = PersistenceEngine(memory_store, ImportMode())
    monkeypatch.setattr(memory_store, "fetch_fact_ids", lambda kind, keys: {})

    with pytest.raises(StoreError):
        engine.upsert_facts(
            FactKind.INGREDIENT_FORM, [_form(uuid.uuid4(), "oxide", reference_ids=("c1",))]
        )


def test_dry_run_counts_without_writing(memory_store: InMemoryKnowledgeStore) -> None:
    engine = PersistenceEngine(memory_store, ImportMode(dry_run=True))

    tokens = [_token("a"), _token("a"), _token("b")]
    count = engine.upsert_facts(FactKind.GENERIC_FORM_TOKEN, tokens)

    assert count == 2
    assert memory_store.calls == []


def test_chunk_size_must_be_positive(memory_store: InMemoryKnowledgeStore) -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        PersistenceEngine(memory_store, ImportMode(), chunk_size=0)
