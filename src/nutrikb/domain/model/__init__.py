"""Domain model for the ingredient knowledge import."""

from __future__ import annotations

from .enums import AuditStatus, FactKind, IssueSeverity, IssueType, PackageShape
from .issues import ImportIssue, IssueDraft
from .records import (
    CitationRecord,
    DatasetPackage,
    DoseRange,
    DoseResponseCurveRecord,
    EvidenceRecord,
    FormAliasRecord,
    FormRecord,
    GenericFormTokenRecord,
    IngredientRecord,
    InteractionRecord,
    LoadedDataset,
    NormalizationRuleRecord,
    NutrientTargetRecord,
    TargetProfileRecord,
    TokenAliasRecord,
    UlToxicityRecord,
)
from .rows import (
    AUDITED_KINDS,
    CITATION_JOIN_KINDS,
    FACT_KEY_COLUMNS,
    AuditedRow,
    BusinessKey,
    CitationRow,
    CitedRow,
    DoseResponseCurveRow,
    EvidenceRow,
    FactRow,
    FormAliasRow,
    FormRow,
    GenericFormTokenRow,
    IngredientId,
    IngredientValues,
    InteractionRow,
    NormalizationRuleRow,
    NutrientTargetRow,
    StoredIngredient,
    TargetProfileRow,
    TokenAliasRow,
    UlToxicityRow,
    business_key,
    ingredient_scope,
)

__all__ = [
    "AUDITED_KINDS",
    "CITATION_JOIN_KINDS",
    "FACT_KEY_COLUMNS",
    "AuditStatus",
    "AuditedRow",
    "BusinessKey",
    "CitationRecord",
    "CitationRow",
    "CitedRow",
    "DatasetPackage",
    "DoseRange",
    "DoseResponseCurveRecord",
    "DoseResponseCurveRow",
    "EvidenceRecord",
    "EvidenceRow",
    "FactKind",
    "FactRow",
    "FormAliasRecord",
    "FormAliasRow",
    "FormRecord",
    "FormRow",
    "GenericFormTokenRecord",
    "GenericFormTokenRow",
    "ImportIssue",
    "IngredientId",
    "IngredientRecord",
    "IngredientValues",
    "InteractionRecord",
    "InteractionRow",
    "IssueDraft",
    "IssueSeverity",
    "IssueType",
    "LoadedDataset",
    "NormalizationRuleRecord",
    "NormalizationRuleRow",
    "NutrientTargetRecord",
    "NutrientTargetRow",
    "PackageShape",
    "StoredIngredient",
    "TargetProfileRecord",
    "TargetProfileRow",
    "TokenAliasRecord",
    "TokenAliasRow",
    "UlToxicityRecord",
    "UlToxicityRow",
    "business_key",
    "ingredient_scope",
]
