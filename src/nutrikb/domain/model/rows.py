"""Store-shaped rows built from records.

Field names match the store column names. ``reference_ids`` is carried on every
citable row: the adapter writes it to a citation join table for kinds listed in
``CITATION_JOIN_KINDS`` and to a JSON column for the others.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final
from uuid import UUID

from .enums import AuditStatus, FactKind

if TYPE_CHECKING:
    from collections.abc import Hashable

# Store ids are UUIDs; dry runs substitute the canonical key.
type IngredientId = UUID | str
type BusinessKey = tuple[Hashable, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class IngredientValues:
    canonical_key: str
    name: str
    unit: str | None
    category: str | None
    goals: tuple[str, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class StoredIngredient:
    id: UUID
    canonical_key: str | None
    name: str
    unit: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class CitationRow:
    id: str
    type: str | None
    identifier: str | None
    source: str | None
    title: str | None
    year: int | None
    url: str | None
    audit_status: AuditStatus
    accessed_at: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class FormRow:
    ingredient_id: IngredientId
    form_key: str
    form_label: str
    relative_factor: float
    confidence: float
    evidence_grade: str | None
    audit_status: AuditStatus
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class EvidenceRow:
    ingredient_id: IngredientId
    goal: str
    min_effective_dose: float | None
    optimal_dose_min: float | None
    optimal_dose_max: float | None
    evidence_grade: str | None
    audit_status: AuditStatus
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class FormAliasRow:
    alias_text: str
    alias_norm: str
    form_key: str
    ingredient_id: IngredientId | None
    ingredient_scope: str
    confidence: float | None
    audit_status: AuditStatus
    source: str | None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizationRuleRow:
    rule_id: str
    pattern: str
    replacement: str
    description: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenAliasRow:
    token_raw: str
    token_normalized: str
    ingredient_id: IngredientId | None
    ingredient_scope: str
    alias_confidence: float | None
    notes: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class GenericFormTokenRow:
    token_raw: str
    token_normalized: str
    alias_confidence: float | None
    notes: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class InteractionRow:
    interaction_id: str
    interaction_type: str | None
    ingredient_a_id: IngredientId | None
    ingredient_b_id: IngredientId | None
    ingredient_a_key: str | None
    ingredient_b_key: str | None
    ingredient_a_name: str | None
    ingredient_b_name: str | None
    direction: str | None
    condition_logic: str | None
    condition_json: dict[str, Any] | None
    effect_type: str | None
    effect_value: float | None
    affected_pillar: str | None
    rationale: str | None
    evidence_grade: str | None
    audit_status: AuditStatus
    rule_confidence: float | None
    notes: str | None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class NutrientTargetRow:
    ingredient_id: IngredientId
    ingredient_key: str
    target_type: str
    jurisdiction: str
    authority: str
    target_value: float | None
    unit: str | None
    audit_status: AuditStatus
    notes: str | None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class TargetProfileRow:
    profile_id: str
    profile_name: str | None
    description: str | None
    default_for: str | None
    audit_status: AuditStatus
    notes: str | None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class UlToxicityRow:
    ul_id: str
    ingredient_id: IngredientId | None
    ingredient_key: str | None
    population: str | None
    age_range: str | None
    authority: str | None
    ul_value: float | None
    unit: str | None
    scope: str | None
    confidence: float | None
    audit_status: AuditStatus
    notes: str | None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class DoseResponseCurveRow:
    curve_id: str
    ingredient_id: IngredientId | None
    ingredient_key: str | None
    curve_type: str | None
    beneficial_min: float | None
    target_value: float | None
    target_unit: str | None
    plateau_start: float | None
    plateau_end: float | None
    ul_value: float | None
    ul_unit: str | None
    ul_scope: str | None
    penalty_start: float | None
    penalty_slope: float | None
    score_midpoint: float | None
    score_cap: float | None
    notes: str | None
    audit_status: AuditStatus
    reference_ids: tuple[str, ...] = ()


type FactRow = (
    CitationRow
    | FormRow
    | EvidenceRow
    | FormAliasRow
    | NormalizationRuleRow
    | TokenAliasRow
    | GenericFormTokenRow
    | InteractionRow
    | NutrientTargetRow
    | TargetProfileRow
    | UlToxicityRow
    | DoseResponseCurveRow
)

type AuditedRow = (
    CitationRow
    | FormRow
    | EvidenceRow
    | FormAliasRow
    | InteractionRow
    | NutrientTargetRow
    | TargetProfileRow
    | UlToxicityRow
    | DoseResponseCurveRow
)
type CitedRow = FormRow | EvidenceRow

FACT_KEY_COLUMNS: Final[dict[FactKind, tuple[str, ...]]] = {
    FactKind.CITATION: ("id",),
    FactKind.INGREDIENT_FORM: ("ingredient_id", "form_key"),
    FactKind.INGREDIENT_EVIDENCE: ("ingredient_id", "goal"),
    FactKind.FORM_ALIAS: ("alias_norm", "form_key", "ingredient_scope"),
    FactKind.NORMALIZATION_RULE: ("rule_id",),
    FactKind.TOKEN_ALIAS: ("token_normalized", "ingredient_scope"),
    FactKind.GENERIC_FORM_TOKEN: ("token_normalized",),
    FactKind.INTERACTION: ("interaction_id",),
    FactKind.NUTRIENT_TARGET: ("ingredient_id", "target_type", "jurisdiction", "authority"),
    FactKind.TARGET_PROFILE: ("profile_id",),
    FactKind.UL_TOXICITY: ("ul_id",),
    FactKind.DOSE_RESPONSE_CURVE: ("curve_id",),
}

AUDITED_KINDS: Final[frozenset[FactKind]] = frozenset(
    {
        FactKind.CITATION,
        FactKind.INGREDIENT_FORM,
        FactKind.INGREDIENT_EVIDENCE,
        FactKind.FORM_ALIAS,
        FactKind.INTERACTION,
        FactKind.NUTRIENT_TARGET,
        FactKind.TARGET_PROFILE,
        FactKind.UL_TOXICITY,
        FactKind.DOSE_RESPONSE_CURVE,
    }
)

CITATION_JOIN_KINDS: Final[frozenset[FactKind]] = frozenset(
    {FactKind.INGREDIENT_FORM, FactKind.INGREDIENT_EVIDENCE}
)


def business_key(kind: FactKind, row: FactRow) -> BusinessKey:
    """Return the natural key ``row`` is upserted on."""

    return tuple(getattr(row, column) for column in FACT_KEY_COLUMNS[kind])


def ingredient_scope(ingredient_id: IngredientId | None) -> str:
    """Text form of an optional ingredient scope; the empty string means global."""

    return "" if ingredient_id is None else str(ingredient_id)
