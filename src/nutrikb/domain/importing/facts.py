"""Build store rows from package records.

Builders resolve ingredient keys through the run's :class:`IdentityMap`, check
citation references, and compute each row's incoming audit status. A record
whose ingredient or citation cannot be found is reported and skipped.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from nutrikb.domain.importing.normalize import normalize_alias_text
from nutrikb.domain.model import (
    CitationRow,
    DoseResponseCurveRow,
    EvidenceRow,
    FormAliasRow,
    FormRow,
    GenericFormTokenRow,
    InteractionRow,
    IssueType,
    NormalizationRuleRow,
    NutrientTargetRow,
    TargetProfileRow,
    TokenAliasRow,
    UlToxicityRow,
    ingredient_scope,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Sequence

    from nutrikb.domain.importing.audit import AuditStatusEngine
    from nutrikb.domain.importing.identity import IdentityMap
    from nutrikb.domain.importing.issues import IssueJournal
    from nutrikb.domain.model import (
        CitationRecord,
        DoseResponseCurveRecord,
        EvidenceRecord,
        FormAliasRecord,
        FormRecord,
        GenericFormTokenRecord,
        IngredientId,
        InteractionRecord,
        NormalizationRuleRecord,
        NutrientTargetRecord,
        TargetProfileRecord,
        TokenAliasRecord,
        UlToxicityRecord,
    )

log = getLogger(__name__)

DEFAULT_RELATIVE_FACTOR = 1.0
DEFAULT_FORM_CONFIDENCE = 0.5


class CitationCatalog:
    """Citation ids a fact may reference in this run.

    ``assume_present`` is set for dry runs, where citations outside the package
    cannot be checked against the store.
    """

    def __init__(self, known: Iterable[str] = (), *, assume_present: bool = False) -> None:
        self._known = set(known)
        self.assume_present = assume_present

    def __contains__(self, citation_id: object) -> bool:
        return citation_id in self._known

    def missing(self, reference_ids: Iterable[str]) -> list[str]:
        if self.assume_present:
            return []
        return [reference_id for reference_id in reference_ids if reference_id not in self._known]


def build_citation_rows(
    records: Iterable[CitationRecord], audit: AuditStatusEngine
) -> list[CitationRow]:
    return [
        CitationRow(
            id=record.id,
            type=record.type,
            identifier=record.identifier,
            source=record.source,
            title=record.title,
            year=record.year,
            url=record.url,
            audit_status=audit.effective(record.audit_status),
            accessed_at=record.accessed_at,
        )
        for record in records
    ]


class FactBuilder:
    def __init__(
        self,
        *,
        audit: AuditStatusEngine,
        journal: IssueJournal,
        identities: IdentityMap,
        citations: CitationCatalog,
    ) -> None:
        self._audit = audit
        self._journal = journal
        self._identities = identities
        self._citations = citations

    # Knowledge tables ------------------------------------------------------------

    def forms(self, records: Sequence[FormRecord]) -> list[FormRow]:
        ids = self._identities.lookup_many(record.ingredient_key for record in records)
        rows: list[FormRow] = []
        for record in records:
            label = f"form {record.ingredient_key}/{record.form_key}"
            ingredient_id = self._required_ingredient(ids, record.ingredient_key, label)
            if ingredient_id is None or not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                FormRow(
                    ingredient_id=ingredient_id,
                    form_key=record.form_key,
                    form_label=record.label,
                    relative_factor=_default(record.relative_factor, DEFAULT_RELATIVE_FACTOR),
                    confidence=_default(record.confidence, DEFAULT_FORM_CONFIDENCE),
                    evidence_grade=record.evidence_grade,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def evidence(self, records: Sequence[EvidenceRecord]) -> list[EvidenceRow]:
        ids = self._identities.lookup_many(record.ingredient_key for record in records)
        rows: list[EvidenceRow] = []
        for record in records:
            label = f"evidence {record.ingredient_key}/{record.goal}"
            ingredient_id = self._required_ingredient(ids, record.ingredient_key, label)
            if ingredient_id is None or not self._references_known(label, record.reference_ids):
                continue
            dose_range = record.optimal_range
            rows.append(
                EvidenceRow(
                    ingredient_id=ingredient_id,
                    goal=record.goal,
                    min_effective_dose=record.min_effective_dose,
                    optimal_dose_min=dose_range.minimum if dose_range else None,
                    optimal_dose_max=dose_range.maximum if dose_range else None,
                    evidence_grade=record.evidence_grade,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def interactions(self, records: Sequence[InteractionRecord]) -> list[InteractionRow]:
        ids = self._identities.lookup_many(
            key
            for record in records
            for key in (record.ingredient_a_key, record.ingredient_b_key)
            if key
        )
        rows: list[InteractionRow] = []
        for record in records:
            label = f"interaction {record.interaction_id}"
            found_a, resolved_a = self._optional_ingredient(ids, record.ingredient_a_key, label)
            found_b, resolved_b = self._optional_ingredient(ids, record.ingredient_b_key, label)
            if not (found_a and found_b):
                continue
            if not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                InteractionRow(
                    interaction_id=record.interaction_id,
                    interaction_type=record.interaction_type,
                    ingredient_a_id=resolved_a,
                    ingredient_b_id=resolved_b,
                    ingredient_a_key=record.ingredient_a_key,
                    ingredient_b_key=record.ingredient_b_key,
                    ingredient_a_name=record.ingredient_a_name,
                    ingredient_b_name=record.ingredient_b_name,
                    direction=record.direction,
                    condition_logic=record.condition_logic,
                    condition_json=record.condition,
                    effect_type=record.effect_type,
                    effect_value=record.effect_value,
                    affected_pillar=record.affected_pillar,
                    rationale=record.rationale,
                    evidence_grade=record.evidence_grade,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    rule_confidence=record.rule_confidence,
                    notes=record.notes,
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def nutrient_targets(self, records: Sequence[NutrientTargetRecord]) -> list[NutrientTargetRow]:
        ids = self._identities.lookup_many(record.ingredient_key for record in records)
        rows: list[NutrientTargetRow] = []
        for record in records:
            label = f"nutrient target {record.ingredient_key}/{record.target_type}"
            ingredient_id = self._required_ingredient(ids, record.ingredient_key, label)
            if ingredient_id is None or not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                NutrientTargetRow(
                    ingredient_id=ingredient_id,
                    ingredient_key=record.ingredient_key,
                    target_type=record.target_type or "",
                    jurisdiction=record.jurisdiction or "",
                    authority=record.authority or "",
                    target_value=record.target_value,
                    unit=record.unit,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    notes=record.notes,
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def target_profiles(self, records: Sequence[TargetProfileRecord]) -> list[TargetProfileRow]:
        rows: list[TargetProfileRow] = []
        for record in records:
            label = f"target profile {record.profile_id}"
            if not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                TargetProfileRow(
                    profile_id=record.profile_id,
                    profile_name=record.profile_name,
                    description=record.description,
                    default_for=record.default_for,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    notes=record.notes,
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def ul_toxicity(self, records: Sequence[UlToxicityRecord]) -> list[UlToxicityRow]:
        ids = self._identities.lookup_many(
            record.ingredient_key for record in records if record.ingredient_key
        )
        rows: list[UlToxicityRow] = []
        for record in records:
            label = f"ul_toxicity {record.ul_id}"
            found, ingredient_id = self._optional_ingredient(ids, record.ingredient_key, label)
            if not found or not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                UlToxicityRow(
                    ul_id=record.ul_id,
                    ingredient_id=ingredient_id,
                    ingredient_key=record.ingredient_key,
                    population=record.population,
                    age_range=record.age_range,
                    authority=record.authority,
                    ul_value=record.ul_value,
                    unit=record.unit,
                    scope=record.scope,
                    confidence=record.confidence,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    notes=record.notes,
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def dose_response_curves(
        self, records: Sequence[DoseResponseCurveRecord]
    ) -> list[DoseResponseCurveRow]:
        ids = self._identities.lookup_many(
            record.ingredient_key for record in records if record.ingredient_key
        )
        rows: list[DoseResponseCurveRow] = []
        for record in records:
            label = f"dose response curve {record.curve_id}"
            found, ingredient_id = self._optional_ingredient(ids, record.ingredient_key, label)
            if not found or not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                DoseResponseCurveRow(
                    curve_id=record.curve_id,
                    ingredient_id=ingredient_id,
                    ingredient_key=record.ingredient_key,
                    curve_type=record.curve_type,
                    beneficial_min=record.beneficial_min,
                    target_value=record.target_value,
                    target_unit=record.target_unit,
                    plateau_start=record.plateau_start,
                    plateau_end=record.plateau_end,
                    ul_value=record.ul_value,
                    ul_unit=record.ul_unit,
                    ul_scope=record.ul_scope,
                    penalty_start=record.penalty_start,
                    penalty_slope=record.penalty_slope,
                    score_midpoint=record.score_midpoint,
                    score_cap=record.score_cap,
                    notes=record.notes,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    # Parsing tables --------------------------------------------------------------

    def form_aliases(self, records: Sequence[FormAliasRecord]) -> list[FormAliasRow]:
        ids = self._identities.lookup_many(
            record.ingredient_key for record in records if record.ingredient_key
        )
        rows: list[FormAliasRow] = []
        for record in records:
            label = f"alias {record.alias_text!r}"
            alias_norm = normalize_alias_text(record.alias_text)
            if not alias_norm:
                self._journal.report(
                    IssueType.INVALID_RECORD,
                    f"{label} normalizes to an empty string",
                    canonical_key=record.ingredient_key,
                    payload={"alias_text": record.alias_text, "form_key": record.form_key},
                )
                continue
            found, ingredient_id = self._optional_ingredient(ids, record.ingredient_key, label)
            if not found or not self._references_known(label, record.reference_ids):
                continue
            rows.append(
                FormAliasRow(
                    alias_text=record.alias_text,
                    alias_norm=alias_norm,
                    form_key=record.form_key,
                    ingredient_id=ingredient_id,
                    ingredient_scope=ingredient_scope(ingredient_id),
                    confidence=record.confidence,
                    audit_status=self._audit.effective(record.audit_status, record.reference_ids),
                    source=record.source,
                    reference_ids=record.reference_ids,
                )
            )
        return rows

    def normalization_rules(
        self, records: Iterable[NormalizationRuleRecord]
    ) -> list[NormalizationRuleRow]:
        return [
            NormalizationRuleRow(
                rule_id=record.rule_id,
                pattern=record.pattern,
                replacement=record.replacement,
                description=record.description,
            )
            for record in records
        ]

    def token_aliases(self, records: Sequence[TokenAliasRecord]) -> list[TokenAliasRow]:
        ids = self._identities.lookup_many(
            record.ingredient_key for record in records if record.ingredient_key
        )
        rows: list[TokenAliasRow] = []
        for record in records:
            label = f"token alias {record.token_normalized!r}"
            found, ingredient_id = self._optional_ingredient(ids, record.ingredient_key, label)
            if not found:
                continue
            rows.append(
                TokenAliasRow(
                    token_raw=record.token_raw,
                    token_normalized=record.token_normalized,
                    ingredient_id=ingredient_id,
                    ingredient_scope=ingredient_scope(ingredient_id),
                    alias_confidence=record.alias_confidence,
                    notes=record.notes,
                )
            )
        return rows

    def generic_form_tokens(
        self, records: Iterable[GenericFormTokenRecord]
    ) -> list[GenericFormTokenRow]:
        return [
            GenericFormTokenRow(
                token_raw=record.token_raw,
                token_normalized=record.token_normalized,
                alias_confidence=record.alias_confidence,
                notes=record.notes,
            )
            for record in records
        ]

    # Referential checks ----------------------------------------------------------

    def _required_ingredient(
        self, ids: dict[str, IngredientId], canonical_key: str, label: str
    ) -> IngredientId | None:
        ingredient_id = ids.get(canonical_key)
        if ingredient_id is None:
            self._report_missing_ingredient(canonical_key, label)
        return ingredient_id

    def _optional_ingredient(
        self, ids: dict[str, IngredientId], canonical_key: str | None, label: str
    ) -> tuple[bool, IngredientId | None]:
        """Resolve an optional ingredient scope.

        Returns ``(True, None)`` for an unscoped record and ``(False, None)`` when
        the key names an ingredient that cannot be found.
        """

        if not canonical_key:
            return True, None
        ingredient_id = ids.get(canonical_key)
        if ingredient_id is None:
            self._report_missing_ingredient(canonical_key, label)
            return False, None
        return True, ingredient_id

    def _report_missing_ingredient(self, canonical_key: str, label: str) -> None:
        self._journal.report(
            IssueType.MISSING_INGREDIENT,
            f"ingredient {canonical_key} not found for {label}",
            canonical_key=canonical_key,
            payload={"record": label},
        )

    def _references_known(self, label: str, reference_ids: Collection[str]) -> bool:
        missing = self._citations.missing(reference_ids)
        if not missing:
            return True
        self._journal.report(
            IssueType.MISSING_CITATION,
            f"citations {', '.join(missing)} not found for {label}",
            payload={"record": label, "missing_citations": missing},
        )
        return False


def _default(value: float | None, fallback: float) -> float:
    return fallback if value is None else value
