"""SQLAlchemy Core tables for the ingredient knowledge store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    func,
)

from nutrikb.domain.model import FACT_KEY_COLUMNS, FactKind

if TYPE_CHECKING:
    from sqlalchemy import Dialect

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def _id_column() -> Column[uuid.UUID]:
    return Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4)


def _ingredient_fk(*, nullable: bool, name: str = "ingredient_id") -> Column[uuid.UUID]:
    return Column(
        name,
        UUIDColumnType,
        ForeignKey("ingredients.id", ondelete="CASCADE"),
        nullable=nullable,
        index=True,
    )


def _audit_status_column() -> Column[str]:
    return Column("audit_status", String(32), nullable=False, default="needs_review")


def _updated_at_column() -> Column[datetime]:
    return Column("updated_at", UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow)


# Ingredients -------------------------------------------------------------------

ingredients_table = Table(
    "ingredients",
    metadata,
    _id_column(),
    Column("canonical_key", String(255), nullable=True, unique=True),
    Column("name", String(512), nullable=False),
    Column("unit", String(32), nullable=True),
    Column("category", String(255), nullable=True),
    Column("goals", JSON, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
    _updated_at_column(),
)
Index("ix_ingredients_name_lower", func.lower(ingredients_table.c.name))

ingredient_synonyms_table = Table(
    "ingredient_synonyms",
    metadata,
    _id_column(),
    _ingredient_fk(nullable=False),
    Column("synonym", String(512), nullable=False),
    Column("source", String(64), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
    UniqueConstraint("ingredient_id", "synonym"),
)

# Citations and facts -----------------------------------------------------------

citations_table = Table(
    "citations",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("type", String(64), nullable=True),
    Column("identifier", String(512), nullable=True),
    Column("source", String(512), nullable=True),
    Column("title", Text, nullable=True),
    Column("year", Integer, nullable=True),
    Column("url", Text, nullable=True),
    _audit_status_column(),
    Column("accessed_at", String(64), nullable=True),
    _updated_at_column(),
)

ingredient_forms_table = Table(
    "ingredient_forms",
    metadata,
    _id_column(),
    _ingredient_fk(nullable=False),
    Column("form_key", String(255), nullable=False),
    Column("form_label", String(512), nullable=False),
    Column("relative_factor", Float, nullable=False, default=1.0),
    Column("confidence", Float, nullable=False, default=0.5),
    Column("evidence_grade", String(32), nullable=True),
    _audit_status_column(),
    _updated_at_column(),
    UniqueConstraint("ingredient_id", "form_key"),
)

ingredient_form_citations_table = Table(
    "ingredient_form_citations",
    metadata,
    Column(
        "form_id",
        UUIDColumnType,
        ForeignKey("ingredient_forms.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "citation_id",
        String(255),
        ForeignKey("citations.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

ingredient_evidence_table = Table(
    "ingredient_evidence",
    metadata,
    _id_column(),
    _ingredient_fk(nullable=False),
    Column("goal", String(255), nullable=False),
    Column("min_effective_dose", Float, nullable=True),
    Column("optimal_dose_min", Float, nullable=True),
    Column("optimal_dose_max", Float, nullable=True),
    Column("evidence_grade", String(32), nullable=True),
    _audit_status_column(),
    _updated_at_column(),
    UniqueConstraint("ingredient_id", "goal"),
)

ingredient_evidence_citations_table = Table(
    "ingredient_evidence_citations",
    metadata,
    Column(
        "evidence_id",
        UUIDColumnType,
        ForeignKey("ingredient_evidence.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "citation_id",
        String(255),
        ForeignKey("citations.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)

# Parsing tables ----------------------------------------------------------------

ingredient_form_aliases_table = Table(
    "ingredient_form_aliases",
    metadata,
    _id_column(),
    Column("alias_text", String(512), nullable=False),
    Column("alias_norm", String(512), nullable=False),
    Column("form_key", String(255), nullable=False),
    _ingredient_fk(nullable=True),
    # Text form of ingredient_id; "" marks a global alias so the unique key has no NULLs.
    Column("ingredient_scope", String(64), nullable=False, default=""),
    Column("confidence", Float, nullable=True),
    _audit_status_column(),
    Column("source", String(255), nullable=True),
    Column("reference_ids", JSON, nullable=True),
    _updated_at_column(),
    UniqueConstraint("alias_norm", "form_key", "ingredient_scope"),
)

normalization_rules_table = Table(
    "normalization_rules",
    metadata,
    Column("rule_id", String(255), primary_key=True),
    Column("pattern", Text, nullable=False),
    Column("replacement", Text, nullable=False, default=""),
    Column("description", Text, nullable=True),
    _updated_at_column(),
)

token_aliases_table = Table(
    "token_aliases",
    metadata,
    _id_column(),
    Column("token_raw", String(255), nullable=False),
    Column("token_normalized", String(255), nullable=False),
    _ingredient_fk(nullable=True),
    Column("ingredient_scope", String(64), nullable=False, default=""),
    Column("alias_confidence", Float, nullable=True),
    Column("notes", Text, nullable=True),
    _updated_at_column(),
    UniqueConstraint("token_normalized", "ingredient_scope"),
)

generic_form_tokens_table = Table(
    "generic_form_tokens",
    metadata,
    _id_column(),
    Column("token_raw", String(255), nullable=False),
    Column("token_normalized", String(255), nullable=False, unique=True),
    Column("alias_confidence", Float, nullable=True),
    Column("notes", Text, nullable=True),
    _updated_at_column(),
)

# Knowledge tables --------------------------------------------------------------

interactions_table = Table(
    "interactions",
    metadata,
    Column("interaction_id", String(255), primary_key=True),
    Column("interaction_type", String(64), nullable=True),
    _ingredient_fk(nullable=True, name="ingredient_a_id"),
    _ingredient_fk(nullable=True, name="ingredient_b_id"),
    Column("ingredient_a_key", String(255), nullable=True),
    Column("ingredient_b_key", String(255), nullable=True),
    Column("ingredient_a_name", String(512), nullable=True),
    Column("ingredient_b_name", String(512), nullable=True),
    Column("direction", String(64), nullable=True),
    Column("condition_logic", String(64), nullable=True),
    Column("condition_json", JSON, nullable=True),
    Column("effect_type", String(64), nullable=True),
    Column("effect_value", Float, nullable=True),
    Column("affected_pillar", String(64), nullable=True),
    Column("rationale", Text, nullable=True),
    Column("evidence_grade", String(32), nullable=True),
    _audit_status_column(),
    Column("rule_confidence", Float, nullable=True),
    Column("reference_ids", JSON, nullable=True),
    Column("notes", Text, nullable=True),
    _updated_at_column(),
)

nutrient_targets_table = Table(
    "nutrient_targets",
    metadata,
    _id_column(),
    _ingredient_fk(nullable=False),
    Column("ingredient_key", String(255), nullable=False),
    Column("target_type", String(64), nullable=False, default=""),
    Column("jurisdiction", String(64), nullable=False, default=""),
    Column("authority", String(128), nullable=False, default=""),
    Column("target_value", Float, nullable=True),
    Column("unit", String(32), nullable=True),
    _audit_status_column(),
    Column("reference_ids", JSON, nullable=True),
    Column("notes", Text, nullable=True),
    _updated_at_column(),
    UniqueConstraint("ingredient_id", "target_type", "jurisdiction", "authority"),
)

target_profiles_table = Table(
    "target_profiles",
    metadata,
    Column("profile_id", String(255), primary_key=True),
    Column("profile_name", String(255), nullable=True),
    Column("description", Text, nullable=True),
    Column("default_for", String(255), nullable=True),
    _audit_status_column(),
    Column("reference_ids", JSON, nullable=True),
    Column("notes", Text, nullable=True),
    _updated_at_column(),
)

ul_toxicity_table = Table(
    "ul_toxicity",
    metadata,
    Column("ul_id", String(255), primary_key=True),
    _ingredient_fk(nullable=True),
    Column("ingredient_key", String(255), nullable=True),
    Column("population", String(128), nullable=True),
    Column("age_range", String(64), nullable=True),
    Column("authority", String(128), nullable=True),
    Column("ul_value", Float, nullable=True),
    Column("unit", String(32), nullable=True),
    Column("scope", String(128), nullable=True),
    Column("confidence", Float, nullable=True),
    _audit_status_column(),
    Column("reference_ids", JSON, nullable=True),
    Column("notes", Text, nullable=True),
    _updated_at_column(),
)

dose_response_curves_table = Table(
    "dose_response_curves",
    metadata,
    Column("curve_id", String(255), primary_key=True),
    _ingredient_fk(nullable=True),
    Column("ingredient_key", String(255), nullable=True),
    Column("curve_type", String(64), nullable=True),
    Column("beneficial_min", Float, nullable=True),
    Column("target_value", Float, nullable=True),
    Column("target_unit", String(32), nullable=True),
    Column("plateau_start", Float, nullable=True),
    Column("plateau_end", Float, nullable=True),
    Column("ul_value", Float, nullable=True),
    Column("ul_unit", String(32), nullable=True),
    Column("ul_scope", String(128), nullable=True),
    Column("penalty_start", Float, nullable=True),
    Column("penalty_slope", Float, nullable=True),
    Column("score_midpoint", Float, nullable=True),
    Column("score_cap", Float, nullable=True),
    Column("notes", Text, nullable=True),
    _audit_status_column(),
    Column("reference_ids", JSON, nullable=True),
    _updated_at_column(),
)

# Run bookkeeping ---------------------------------------------------------------

dataset_state_table = Table(
    "dataset_state",
    metadata,
    Column("key", String(64), primary_key=True),
    Column("version", String(64), nullable=False),
    _updated_at_column(),
)

import_runs_table = Table(
    "import_runs",
    metadata,
    _id_column(),
    Column("dataset_version", String(64), nullable=True),
    Column("strict", Boolean, nullable=False, default=False),
    Column("dry_run", Boolean, nullable=False, default=False),
    Column("mode_json", JSON, nullable=True),
    Column("started_at", UTCDateTime(), nullable=False, default=utcnow),
    Column("finished_at", UTCDateTime(), nullable=True),
    Column("stats_json", JSON, nullable=True),
)

import_issues_table = Table(
    "import_issues",
    metadata,
    _id_column(),
    Column(
        "run_id",
        UUIDColumnType,
        ForeignKey("import_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("severity", String(16), nullable=False),
    Column("issue_type", String(64), nullable=False),
    Column("canonical_key", String(255), nullable=True),
    Column("ingredient_id", String(64), nullable=True),
    Column("message", Text, nullable=False),
    Column("payload_json", JSON, nullable=True),
    Column("status", String(16), nullable=False, default="open"),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
)

FACT_TABLES: Final[dict[FactKind, Table]] = {
    FactKind.CITATION: citations_table,
    FactKind.INGREDIENT_FORM: ingredient_forms_table,
    FactKind.INGREDIENT_EVIDENCE: ingredient_evidence_table,
    FactKind.FORM_ALIAS: ingredient_form_aliases_table,
    FactKind.NORMALIZATION_RULE: normalization_rules_table,
    FactKind.TOKEN_ALIAS: token_aliases_table,
    FactKind.GENERIC_FORM_TOKEN: generic_form_tokens_table,
    FactKind.INTERACTION: interactions_table,
    FactKind.NUTRIENT_TARGET: nutrient_targets_table,
    FactKind.TARGET_PROFILE: target_profiles_table,
    FactKind.UL_TOXICITY: ul_toxicity_table,
    FactKind.DOSE_RESPONSE_CURVE: dose_response_curves_table,
}

# kind -> (join table, fact id column)
CITATION_LINK_TABLES: Final[dict[FactKind, tuple[Table, str]]] = {
    FactKind.INGREDIENT_FORM: (ingredient_form_citations_table, "form_id"),
    FactKind.INGREDIENT_EVIDENCE: (ingredient_evidence_citations_table, "evidence_id"),
}


def key_columns(kind: FactKind) -> tuple[Column[Any], ...]:
    table = FACT_TABLES[kind]
    return tuple(table.c[name] for name in FACT_KEY_COLUMNS[kind])
