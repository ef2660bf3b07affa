"""Typed records produced by the dataset loader.

Every package shape is translated into these records once, at load time. Text
values are already cleaned, numbers coerced, and delimited lists split; audit
statuses stay as declared (raw) because their interpretation belongs to the
audit-status engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .enums import PackageShape

if TYPE_CHECKING:
    from .issues import IssueDraft


@dataclass(frozen=True, slots=True)
class DoseRange:
    """Closed numeric interval ``[minimum, maximum]``."""

    minimum: float
    maximum: float

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(f"Dose range minimum {self.minimum} exceeds maximum {self.maximum}")


@dataclass(frozen=True, slots=True, kw_only=True)
class IngredientRecord:
    canonical_key: str
    name: str
    category: str | None = None
    base_unit: str | None = None
    synonyms: tuple[str, ...] = ()
    goals: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class FormRecord:
    ingredient_key: str
    form_key: str
    label: str
    relative_factor: float | None = None
    confidence: float | None = None
    evidence_grade: str | None = None
    audit_status: str | None = None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class EvidenceRecord:
    ingredient_key: str
    goal: str
    min_effective_dose: float | None = None
    optimal_range: DoseRange | None = None
    evidence_grade: str | None = None
    audit_status: str | None = None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class CitationRecord:
    id: str
    type: str | None = None
    identifier: str | None = None
    source: str | None = None
    title: str | None = None
    year: int | None = None
    url: str | None = None
    audit_status: str | None = None
    accessed_at: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class FormAliasRecord:
    alias_text: str
    form_key: str
    ingredient_key: str | None = None
    confidence: float | None = None
    audit_status: str | None = None
    source: str | None = None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizationRuleRecord:
    rule_id: str
    pattern: str
    replacement: str
    description: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenAliasRecord:
    token_raw: str
    token_normalized: str
    ingredient_key: str | None = None
    alias_confidence: float | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class GenericFormTokenRecord:
    token_raw: str
    token_normalized: str
    alias_confidence: float | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class InteractionRecord:
    interaction_id: str
    interaction_type: str | None = None
    ingredient_a_key: str | None = None
    ingredient_b_key: str | None = None
    ingredient_a_name: str | None = None
    ingredient_b_name: str | None = None
    direction: str | None = None
    condition_logic: str | None = None
    condition: dict[str, Any] | None = None
    effect_type: str | None = None
    effect_value: float | None = None
    affected_pillar: str | None = None
    rationale: str | None = None
    evidence_grade: str | None = None
    audit_status: str | None = None
    rule_confidence: float | None = None
    reference_ids: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class NutrientTargetRecord:
    ingredient_key: str
    target_type: str | None = None
    target_value: float | None = None
    unit: str | None = None
    jurisdiction: str | None = None
    authority: str | None = None
    audit_status: str | None = None
    reference_ids: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TargetProfileRecord:
    profile_id: str
    profile_name: str | None = None
    description: str | None = None
    default_for: str | None = None
    audit_status: str | None = None
    reference_ids: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class UlToxicityRecord:
    ul_id: str
    ingredient_key: str | None = None
    population: str | None = None
    age_range: str | None = None
    authority: str | None = None
    ul_value: float | None = None
    unit: str | None = None
    scope: str | None = None
    confidence: float | None = None
    audit_status: str | None = None
    reference_ids: tuple[str, ...] = ()
    notes: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DoseResponseCurveRecord:
    curve_id: str
    ingredient_key: str | None = None
    curve_type: str | None = None
    beneficial_min: float | None = None
    target_value: float | None = None
    target_unit: str | None = None
    plateau_start: float | None = None
    plateau_end: float | None = None
    ul_value: float | None = None
    ul_unit: str | None = None
    ul_scope: str | None = None
    penalty_start: float | None = None
    penalty_slope: float | None = None
    score_midpoint: float | None = None
    score_cap: float | None = None
    notes: str | None = None
    audit_status: str | None = None
    reference_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class DatasetPackage:
    """Canonical in-memory representation of one dataset package."""

    shape: PackageShape
    version: str | None = None
    ingredients: tuple[IngredientRecord, ...] = ()
    forms: tuple[FormRecord, ...] = ()
    evidence: tuple[EvidenceRecord, ...] = ()
    citations: tuple[CitationRecord, ...] = ()
    form_aliases: tuple[FormAliasRecord, ...] = ()
    normalization_rules: tuple[NormalizationRuleRecord, ...] = ()
    token_aliases: tuple[TokenAliasRecord, ...] = ()
    generic_form_tokens: tuple[GenericFormTokenRecord, ...] = ()
    interactions: tuple[InteractionRecord, ...] = ()
    nutrient_targets: tuple[NutrientTargetRecord, ...] = ()
    target_profiles: tuple[TargetProfileRecord, ...] = ()
    ul_toxicity: tuple[UlToxicityRecord, ...] = ()
    dose_response_curves: tuple[DoseResponseCurveRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class LoadedDataset:
    """A package plus the record-level problems found while loading it."""

    package: DatasetPackage
    issues: tuple[IssueDraft, ...] = field(default_factory=tuple)
