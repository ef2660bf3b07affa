"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AuditStatus(StrEnum):
    """Trust state of a stored fact, declared least trusted first."""

    NEEDS_RESOLUTION = "needs_resolution"
    DERIVED = "derived"
    NEEDS_REVIEW = "needs_review"
    VERIFIED = "verified"


class IssueSeverity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


class IssueType(StrEnum):
    CANONICAL_KEY_CONFLICT = "canonical_key_conflict"
    BASE_UNIT_MISMATCH = "base_unit_mismatch"
    MISSING_INGREDIENT = "missing_ingredient"
    MISSING_CITATION = "missing_citation"
    INVALID_CONDITION = "invalid_condition"
    INVALID_RECORD = "invalid_record"
    INVALID_DOSE_RANGE = "invalid_dose_range"
    DUPLICATE_SYNONYM = "duplicate_synonym"


class FactKind(StrEnum):
    """Entity types written through the chunked upsert path."""

    CITATION = "citation"
    INGREDIENT_FORM = "ingredient_form"
    INGREDIENT_EVIDENCE = "ingredient_evidence"
    FORM_ALIAS = "form_alias"
    NORMALIZATION_RULE = "normalization_rule"
    TOKEN_ALIAS = "token_alias"
    GENERIC_FORM_TOKEN = "generic_form_token"
    INTERACTION = "interaction"
    NUTRIENT_TARGET = "nutrient_target"
    TARGET_PROFILE = "target_profile"
    UL_TOXICITY = "ul_toxicity"
    DOSE_RESPONSE_CURVE = "dose_response_curve"


class PackageShape(StrEnum):
    FLAT = "flat"
    SHEETS = "sheets"
