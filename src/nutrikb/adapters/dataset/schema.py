"""Pydantic models describing dataset package documents.

The top-level structure is validated strictly: tables must be arrays and
``sheets`` must be an object. Rows are kept as raw values here and validated
one at a time by the translator, so a bad row becomes a recorded issue rather
than a failed load.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

TABLE_FIELDS: Final[tuple[str, ...]] = (
    "ingredients",
    "forms",
    "evidence",
    "citations",
    "form_aliases",
    "normalization_rules",
    "token_aliases",
    "generic_form_tokens",
    "interactions",
    "nutrient_targets",
    "target_profiles",
    "ul_toxicity",
    "dose_response_curves",
)


def _null_to_list(value: object) -> object:
    return [] if value is None else value


def _null_to_empty(value: object) -> object:
    return () if value is None else value


def _version_text(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


class DatasetBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


# Rows ---------------------------------------------------------------------------


def _key_field(*names: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(*names))


class FormPayload(DatasetBaseModel):
    ingredient_key: Any = _key_field("ingredient_key", "ingredient_id", "canonical_key")
    form_key: Any = None
    form_display: Any = None
    form_label: Any = None
    relative_factor: Any = None
    confidence: Any = None
    evidence_grade: Any = None
    audit_status: Any = None
    reference_ids: Any = None


class EvidencePayload(DatasetBaseModel):
    ingredient_key: Any = _key_field("ingredient_key", "ingredient_id", "canonical_key")
    goal: Any = None
    min_effective_dose: Any = None
    optimal_range: Any = None
    optimal_min: Any = _key_field("optimal_min", "optimal_range_min", "optimal_dose_min")
    optimal_max: Any = _key_field("optimal_max", "optimal_range_max", "optimal_dose_max")
    evidence_grade: Any = None
    audit_status: Any = None
    reference_ids: Any = None


class IngredientPayload(DatasetBaseModel):
    canonical_key: Any = _key_field("ingredient_id", "canonical_key", "ingredient_key")
    name: Any = _key_field("ingredient", "name")
    category: Any = None
    base_unit: Any = _key_field("base_unit", "unit")
    synonyms: Any = None
    goals: Any = None
    forms: tuple[Mapping[str, Any], ...] = ()
    evidence_by_goal: tuple[Mapping[str, Any], ...] = ()

    _normalize_nested = field_validator("forms", "evidence_by_goal", mode="before")(
        _null_to_empty
    )


class CitationPayload(DatasetBaseModel):
    id: Any = _key_field("id", "citation_id", "reference_id")
    type: Any = None
    identifier: Any = None
    source: Any = None
    title: Any = None
    year: Any = None
    url: Any = None
    audit_status: Any = None
    accessed_at: Any = None


class FormAliasPayload(DatasetBaseModel):
    alias_text: Any = None
    form_key: Any = None
    ingredient_key: Any = _key_field("ingredient_id", "ingredient_key", "canonical_key")
    confidence: Any = None
    audit_status: Any = None
    source: Any = None
    reference_ids: Any = None


class NormalizationRulePayload(DatasetBaseModel):
    rule_id: Any = None
    pattern: Any = None
    replacement: Any = None
    description: Any = None


class TokenAliasPayload(DatasetBaseModel):
    token_raw: Any = None
    token_normalized: Any = None
    ingredient_key: Any = _key_field("ingredient_id", "ingredient_key", "canonical_key")
    alias_confidence: Any = None
    notes: Any = None


class GenericFormTokenPayload(DatasetBaseModel):
    token_raw: Any = None
    token_normalized: Any = None
    alias_confidence: Any = None
    notes: Any = None


class InteractionPayload(DatasetBaseModel):
    interaction_id: Any = None
    interaction_type: Any = None
    ingredient_a_key: Any = _key_field("ingredient_a_id", "ingredient_a_key")
    ingredient_b_key: Any = _key_field("ingredient_b_id", "ingredient_b_key")
    ingredient_a_name: Any = None
    ingredient_b_name: Any = None
    direction: Any = None
    condition_logic: Any = None
    condition: Any = _key_field("condition_json", "condition")
    effect_type: Any = None
    effect_value: Any = None
    affected_pillar: Any = None
    rationale: Any = None
    evidence_grade: Any = None
    audit_status: Any = None
    rule_confidence: Any = None
    reference_ids: Any = None
    notes: Any = None


class NutrientTargetPayload(DatasetBaseModel):
    ingredient_key: Any = _key_field("ingredient_id", "ingredient_key", "canonical_key")
    target_type: Any = None
    target_value: Any = None
    unit: Any = None
    jurisdiction: Any = None
    authority: Any = None
    audit_status: Any = None
    reference_ids: Any = None
    notes: Any = None


class TargetProfilePayload(DatasetBaseModel):
    profile_id: Any = None
    profile_name: Any = None
    description: Any = None
    default_for: Any = None
    audit_status: Any = None
    reference_ids: Any = None
    notes: Any = None


class UlToxicityPayload(DatasetBaseModel):
    ul_id: Any = None
    ingredient_key: Any = _key_field("ingredient_id", "ingredient_key", "canonical_key")
    population: Any = None
    age_range: Any = None
    authority: Any = None
    ul_value: Any = None
    unit: Any = None
    scope: Any = None
    confidence: Any = None
    audit_status: Any = None
    reference_ids: Any = None
    notes: Any = None


class DoseResponseCurvePayload(DatasetBaseModel):
    curve_id: Any = None
    ingredient_key: Any = _key_field("ingredient_id", "ingredient_key", "canonical_key")
    curve_type: Any = None
    beneficial_min: Any = None
    target_value: Any = None
    target_unit: Any = None
    plateau_start: Any = None
    plateau_end: Any = None
    ul_value: Any = None
    ul_unit: Any = None
    ul_scope: Any = None
    penalty_start: Any = None
    penalty_slope: Any = None
    score_midpoint: Any = None
    score_cap: Any = None
    notes: Any = None
    audit_status: Any = None
    reference_ids: Any = None


# Packages -----------------------------------------------------------------------


class TablesPayload(DatasetBaseModel):
    ingredients: list[Any] = Field(default_factory=list[Any])
    forms: list[Any] = Field(default_factory=list[Any])
    evidence: list[Any] = Field(default_factory=list[Any])
    citations: list[Any] = Field(default_factory=list[Any])
    form_aliases: list[Any] = Field(default_factory=list[Any])
    normalization_rules: list[Any] = Field(default_factory=list[Any])
    token_aliases: list[Any] = Field(default_factory=list[Any])
    generic_form_tokens: list[Any] = Field(default_factory=list[Any])
    interactions: list[Any] = Field(default_factory=list[Any])
    nutrient_targets: list[Any] = Field(default_factory=list[Any])
    target_profiles: list[Any] = Field(default_factory=list[Any])
    ul_toxicity: list[Any] = Field(
        default_factory=list[Any], validation_alias=AliasChoices("ul__toxicity", "ul_toxicity")
    )
    dose_response_curves: list[Any] = Field(default_factory=list[Any])

    _normalize_tables = field_validator(*TABLE_FIELDS, mode="before")(_null_to_list)

    def has_rows(self) -> bool:
        return any(getattr(self, name) for name in TABLE_FIELDS)


class SheetPackagePayload(TablesPayload):
    """``sheets``: one named row table per entity type."""


class FlatPackagePayload(TablesPayload):
    """Top-level arrays; ingredients may nest ``forms`` and ``evidence_by_goal``."""


class MetaPayload(DatasetBaseModel):
    version: str | None = None

    _normalize_version = field_validator("version", mode="before")(_version_text)


class DatasetDocument(FlatPackagePayload):
    version: str | None = None
    meta: MetaPayload | None = None
    sheets: SheetPackagePayload | None = None

    _normalize_version = field_validator("version", mode="before")(_version_text)

    @property
    def dataset_version(self) -> str | None:
        if self.version:
            return self.version
        return self.meta.version if self.meta is not None else None
