from __future__ import annotations

import pytest

from nutrikb.domain.importing import (
    AuditStatusEngine,
    IdentityMap,
    ImportAbortedError,
    IssueJournal,
)
from nutrikb.domain.importing.facts import (
    DEFAULT_FORM_CONFIDENCE,
    DEFAULT_RELATIVE_FACTOR,
    CitationCatalog,
    FactBuilder,
    build_citation_rows,
)
from nutrikb.domain.model import (
    AuditStatus,
    FormAliasRecord,
    InteractionRecord,
    IssueType,
    NutrientTargetRecord,
    TokenAliasRecord,
    UlToxicityRecord,
)
from tests.support.packages import make_alias, make_citation, make_evidence, make_form
from tests.support.stores import InMemoryKnowledgeStore


def _builder(
    store: InMemoryKnowledgeStore,
    *,
    strict: bool = False,
    citations: dict[str, AuditStatus] | None = None,
    resolved: dict[str, str] | None = None,
) -> tuple[FactBuilder, IssueJournal]:
    journal = IssueJournal(strict=strict)
    statuses = citations or {}
    builder = FactBuilder(
        audit=AuditStatusEngine(statuses),
        journal=journal,
        identities=IdentityMap(store, dry_run=False, resolved=resolved or {"magnesium": "mg-id"}),
        citations=CitationCatalog(statuses),
    )
    return builder, journal


def test_citation_rows_use_effective_status() -> None:
    rows = build_citation_rows(
        [make_citation("c1", audit_status="Verified"), make_citation("c2")],
        AuditStatusEngine(),
    )

    assert [row.audit_status for row in rows] == [AuditStatus.VERIFIED, AuditStatus.NEEDS_REVIEW]


def test_forms_apply_defaults_and_derive_status(memory_store: InMemoryKnowledgeStore) -> None:
    builder, journal = _builder(
        memory_store,
        citations={"c1": AuditStatus.VERIFIED, "c2": AuditStatus.NEEDS_RESOLUTION},
    )

    (row,) = builder.forms([make_form("magnesium", "glycinate", reference_ids=("c1", "c2"))])

    assert row.ingredient_id == "mg-id"
    assert row.relative_factor == DEFAULT_RELATIVE_FACTOR
    assert row.confidence == DEFAULT_FORM_CONFIDENCE
    assert row.audit_status is AuditStatus.VERIFIED
    assert len(journal) == 0


def test_form_for_unknown_ingredient_is_skipped(memory_store: InMemoryKnowledgeStore) -> None:
    builder, journal = _builder(memory_store)

    rows = builder.forms([make_form("ghost", "oxide"), make_form("magnesium", "oxide")])

    assert [row.form_key for row in rows] == ["oxide"]
    (issue,) = journal.issues
    assert issue.issue_type is IssueType.MISSING_INGREDIENT
    assert issue.canonical_key == "ghost"


def test_unknown_ingredient_aborts_in_strict_mode(memory_store: InMemoryKnowledgeStore) -> None:
    builder, _ = _builder(memory_store, strict=True)

    with pytest.raises(ImportAbortedError):
        builder.evidence([make_evidence("ghost")])


def test_evidence_with_missing_citation_is_skipped(memory_store: InMemoryKnowledgeStore) -> None:
    builder, journal = _builder(memory_store, citations={"c1": AuditStatus.VERIFIED})

    rows = builder.evidence([make_evidence(reference_ids=("c1", "c404"))])

    assert rows == []
    (issue,) = journal.issues
    assert issue.issue_type is IssueType.MISSING_CITATION
    assert issue.payload["missing_citations"] == ["c404"]


def test_evidence_carries_dose_range(memory_store: InMemoryKnowledgeStore) -> None:
    builder, _ = _builder(memory_store)

    (row,) = builder.evidence([make_evidence()])

    assert (row.optimal_dose_min, row.optimal_dose_max) == (200.0, 400.0)


def test_dry_run_catalog_assumes_external_citations() -> None:
    catalog = CitationCatalog(["c1"], assume_present=True)

    assert catalog.missing(["c1", "elsewhere"]) == []
    assert "c1" in catalog


def test_form_alias_scope(memory_store: InMemoryKnowledgeStore) -> None:
    builder, _ = _builder(memory_store)

    scoped, unscoped = builder.form_aliases(
        [make_alias("Mg Glycinate!"), make_alias("Glycinate", ingredient_key=None)]
    )

    assert scoped.alias_norm == "mg glycinate"
    assert scoped.ingredient_scope == "mg-id"
    assert unscoped.ingredient_id is None
    assert unscoped.ingredient_scope == ""


def test_form_alias_with_empty_normalized_text_is_invalid(
    memory_store: InMemoryKnowledgeStore,
) -> None:
    builder, journal = _builder(memory_store)

    rows = builder.form_aliases([FormAliasRecord(alias_text="***", form_key="oxide")])

    assert rows == []
    assert journal.issues[0].issue_type is IssueType.INVALID_RECORD


def test_interaction_resolves_both_sides(memory_store: InMemoryKnowledgeStore) -> None:
    builder, journal = _builder(memory_store, resolved={"magnesium": "mg-id", "zinc": "zn-id"})

    rows = builder.interactions(
        [
            InteractionRecord(
                interaction_id="int-1",
                ingredient_a_key="magnesium",
                ingredient_b_key="zinc",
                condition={"min_dose": 50},
            ),
            InteractionRecord(interaction_id="int-2", ingredient_a_key="ghost"),
            InteractionRecord(interaction_id="int-3"),
        ]
    )

    assert [row.interaction_id for row in rows] == ["int-1", "int-3"]
    assert (rows[0].ingredient_a_id, rows[0].ingredient_b_id) == ("mg-id", "zn-id")
    assert rows[0].condition_json == {"min_dose": 50}
    assert [issue.issue_type for issue in journal.issues] == [IssueType.MISSING_INGREDIENT]


def test_nutrient_target_key_parts_default_to_empty(
    memory_store: InMemoryKnowledgeStore,
) -> None:
    builder, _ = _builder(memory_store)

    (row,) = builder.nutrient_targets(
        [NutrientTargetRecord(ingredient_key="magnesium", target_type="rda", target_value=400)]
    )

    assert (row.target_type, row.jurisdiction, row.authority) == ("rda", "", "")
    assert row.audit_status is AuditStatus.NEEDS_REVIEW


def test_optional_ingredient_scopes(memory_store: InMemoryKnowledgeStore) -> None:
    builder, journal = _builder(memory_store)

    tokens = builder.token_aliases(
        [
            TokenAliasRecord(token_raw="Mg", token_normalized="mg", ingredient_key="magnesium"),
            TokenAliasRecord(token_raw="chelate", token_normalized="chelate"),
        ]
    )
    limits = builder.ul_toxicity(
        [UlToxicityRecord(ul_id="ul-1", ingredient_key="ghost", ul_value=10)]
    )

    assert [token.ingredient_scope for token in tokens] == ["mg-id", ""]
    assert limits == []
    assert journal.issues[0].issue_type is IssueType.MISSING_INGREDIENT
