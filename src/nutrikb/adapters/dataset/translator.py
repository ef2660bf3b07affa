"""Translate validated package documents into domain records."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from nutrikb.domain.importing.normalize import (
    MalformedValueError,
    build_dose_range,
    clean_text,
    parse_condition,
    split_list,
    to_int,
    to_number,
)
from nutrikb.domain.model import (
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
    IssueDraft,
    IssueType,
    LoadedDataset,
    NormalizationRuleRecord,
    NutrientTargetRecord,
    PackageShape,
    TargetProfileRecord,
    TokenAliasRecord,
    UlToxicityRecord,
)

from .schema import (
    CitationPayload,
    DoseResponseCurvePayload,
    EvidencePayload,
    FormAliasPayload,
    FormPayload,
    GenericFormTokenPayload,
    IngredientPayload,
    InteractionPayload,
    NormalizationRulePayload,
    NutrientTargetPayload,
    TargetProfilePayload,
    TokenAliasPayload,
    UlToxicityPayload,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .schema import DatasetDocument, TablesPayload


log = getLogger(__name__)


def translate_document(document: DatasetDocument) -> LoadedDataset:
    """Build the canonical package for ``document``.

    The shape is chosen here, once: a non-empty ``sheets`` object wins over the
    flat top-level arrays.
    """

    translator = _Translator()
    version = document.dataset_version
    sheets = document.sheets
    if sheets is not None and sheets.has_rows():
        package = translator.package(sheets, PackageShape.SHEETS, version)
    else:
        package = translator.package(document, PackageShape.FLAT, version)
    if not package.ingredients:
        log.warning("No ingredients found in dataset package")
    return LoadedDataset(package=package, issues=tuple(translator.issues))


class _Translator:
    def __init__(self) -> None:
        self.issues: list[IssueDraft] = []

    def package(
        self, tables: TablesPayload, shape: PackageShape, version: str | None
    ) -> DatasetPackage:
        ingredient_payloads = self._rows("ingredients", tables.ingredients, IngredientPayload)
        ingredients: list[IngredientRecord] = []
        forms: list[FormRecord] = []
        evidence: list[EvidenceRecord] = []
        for payload in ingredient_payloads:
            record = self._ingredient(payload)
            if record is None:
                continue
            ingredients.append(record)
            # Only the flat shape nests forms and evidence under the ingredient.
            for nested in self._rows("forms", payload.forms, FormPayload):
                forms.extend(self._optional(self._form(nested, record.canonical_key)))
            nested_evidence = self._rows(
                "evidence_by_goal", payload.evidence_by_goal, EvidencePayload
            )
            for nested in nested_evidence:
                evidence.extend(self._optional(self._evidence(nested, record.canonical_key)))

        forms.extend(self._records("forms", tables.forms, FormPayload, self._form))
        evidence.extend(self._records("evidence", tables.evidence, EvidencePayload, self._evidence))

        package = DatasetPackage(
            shape=shape,
            version=version,
            ingredients=tuple(ingredients),
            forms=tuple(forms),
            evidence=tuple(evidence),
            citations=self._records("citations", tables.citations, CitationPayload, self._citation),
            form_aliases=self._records(
                "form_aliases", tables.form_aliases, FormAliasPayload, self._form_alias
            ),
            normalization_rules=self._records(
                "normalization_rules",
                tables.normalization_rules,
                NormalizationRulePayload,
                self._normalization_rule,
            ),
            token_aliases=self._records(
                "token_aliases", tables.token_aliases, TokenAliasPayload, self._token_alias
            ),
            generic_form_tokens=self._records(
                "generic_form_tokens",
                tables.generic_form_tokens,
                GenericFormTokenPayload,
                self._generic_form_token,
            ),
            interactions=self._records(
                "interactions", tables.interactions, InteractionPayload, self._interaction
            ),
            nutrient_targets=self._records(
                "nutrient_targets",
                tables.nutrient_targets,
                NutrientTargetPayload,
                self._nutrient_target,
            ),
            target_profiles=self._records(
                "target_profiles",
                tables.target_profiles,
                TargetProfilePayload,
                self._target_profile,
            ),
            ul_toxicity=self._records(
                "ul_toxicity", tables.ul_toxicity, UlToxicityPayload, self._ul_toxicity
            ),
            dose_response_curves=self._records(
                "dose_response_curves",
                tables.dose_response_curves,
                DoseResponseCurvePayload,
                self._dose_response_curve,
            ),
        )
        log.debug(
            "Loaded %s package: %d ingredients, %d forms, %d evidence, %d citations",
            shape,
            len(package.ingredients),
            len(package.forms),
            len(package.evidence),
            len(package.citations),
        )
        return package

    # Row plumbing ----------------------------------------------------------------

    def _rows[TPayload: BaseModel](
        self, table: str, rows: Iterable[Any], model: type[TPayload]
    ) -> list[TPayload]:
        payloads: list[TPayload] = []
        for index, row in enumerate(rows):
            if not isinstance(row, Mapping):
                self._invalid(table, index, f"row is {type(row).__name__}, not an object")
                continue
            try:
                payloads.append(model.model_validate(row))
            except ValidationError as exc:
                self._invalid(table, index, str(exc))
        return payloads

    def _records[TPayload: BaseModel, TRecord](
        self,
        table: str,
        rows: Iterable[Any],
        model: type[TPayload],
        build: Callable[[TPayload], TRecord | None],
    ) -> tuple[TRecord, ...]:
        records: list[TRecord] = []
        for payload in self._rows(table, rows, model):
            records.extend(self._optional(build(payload)))
        return tuple(records)

    @staticmethod
    def _optional[TRecord](record: TRecord | None) -> tuple[TRecord, ...]:
        return () if record is None else (record,)

    def _invalid(self, table: str, index: int, reason: str) -> None:
        self.issues.append(
            IssueDraft(
                issue_type=IssueType.INVALID_RECORD,
                message=f"{table}[{index}] skipped: {reason}",
                payload={"table": table, "index": index},
            )
        )

    def _missing(self, table: str, fields: str, row: BaseModel) -> None:
        self.issues.append(
            IssueDraft(
                issue_type=IssueType.INVALID_RECORD,
                message=f"{table} row without {fields} skipped",
                canonical_key=clean_text(getattr(row, "ingredient_key", None)),
                payload={"table": table, "row": row.model_dump(mode="json", exclude_none=True)},
            )
        )

    # Entity builders -------------------------------------------------------------

    def _ingredient(self, payload: IngredientPayload) -> IngredientRecord | None:
        canonical_key = clean_text(payload.canonical_key)
        name = clean_text(payload.name)
        if canonical_key is None or name is None:
            self._missing("ingredients", "ingredient_id and ingredient", payload)
            return None
        return IngredientRecord(
            canonical_key=canonical_key,
            name=name,
            category=clean_text(payload.category),
            base_unit=clean_text(payload.base_unit),
            synonyms=split_list(payload.synonyms),
            goals=split_list(payload.goals),
        )

    def _form(self, payload: FormPayload, ingredient_key: str | None = None) -> FormRecord | None:
        owner = ingredient_key or clean_text(payload.ingredient_key)
        form_key = clean_text(payload.form_key)
        label = clean_text(payload.form_display) or clean_text(payload.form_label)
        if owner is None or form_key is None or label is None:
            self._missing("forms", "ingredient, form_key and label", payload)
            return None
        return FormRecord(
            ingredient_key=owner,
            form_key=form_key,
            label=label,
            relative_factor=to_number(payload.relative_factor),
            confidence=to_number(payload.confidence),
            evidence_grade=clean_text(payload.evidence_grade),
            audit_status=clean_text(payload.audit_status),
            reference_ids=split_list(payload.reference_ids),
        )

    def _evidence(
        self, payload: EvidencePayload, ingredient_key: str | None = None
    ) -> EvidenceRecord | None:
        owner = ingredient_key or clean_text(payload.ingredient_key)
        goal = clean_text(payload.goal)
        if owner is None or goal is None:
            self._missing("evidence", "ingredient and goal", payload)
            return None
        return EvidenceRecord(
            ingredient_key=owner,
            goal=goal,
            min_effective_dose=to_number(payload.min_effective_dose),
            optimal_range=self._dose_range(payload, owner, goal),
            evidence_grade=clean_text(payload.evidence_grade),
            audit_status=clean_text(payload.audit_status),
            reference_ids=split_list(payload.reference_ids),
        )

    def _dose_range(self, payload: EvidencePayload, owner: str, goal: str) -> DoseRange | None:
        bounds = payload.optimal_range
        if isinstance(bounds, Mapping):
            low, high = bounds.get("min"), bounds.get("max")
        else:
            low, high = payload.optimal_min, payload.optimal_max
        try:
            return build_dose_range(low, high)
        except MalformedValueError as exc:
            self.issues.append(
                IssueDraft(
                    issue_type=IssueType.INVALID_DOSE_RANGE,
                    message=f"optimal range for {owner}/{goal} dropped: {exc}",
                    canonical_key=owner,
                    payload={"goal": goal, "min": low, "max": high},
                )
            )
            return None

    def _citation(self, payload: CitationPayload) -> CitationRecord | None:
        citation_id = clean_text(payload.id)
        if citation_id is None:
            self._missing("citations", "id", payload)
            return None
        return CitationRecord(
            id=citation_id,
            type=clean_text(payload.type),
            identifier=clean_text(payload.identifier),
            source=clean_text(payload.source),
            title=clean_text(payload.title),
            year=to_int(payload.year),
            url=clean_text(payload.url),
            audit_status=clean_text(payload.audit_status),
            accessed_at=clean_text(payload.accessed_at),
        )

    def _form_alias(self, payload: FormAliasPayload) -> FormAliasRecord | None:
        alias_text = clean_text(payload.alias_text)
        form_key = clean_text(payload.form_key)
        if alias_text is None or form_key is None:
            self._missing("form_aliases", "alias_text and form_key", payload)
            return None
        return FormAliasRecord(
            alias_text=alias_text,
            form_key=form_key,
            ingredient_key=clean_text(payload.ingredient_key),
            confidence=to_number(payload.confidence),
            audit_status=clean_text(payload.audit_status),
            source=clean_text(payload.source),
            reference_ids=split_list(payload.reference_ids),
        )

    def _normalization_rule(
        self, payload: NormalizationRulePayload
    ) -> NormalizationRuleRecord | None:
        rule_id = clean_text(payload.rule_id)
        pattern = clean_text(payload.pattern)
        # An empty replacement is meaningful: it deletes the match.
        replacement = "" if payload.replacement is None else str(payload.replacement)
        if rule_id is None or pattern is None:
            self._missing("normalization_rules", "rule_id and pattern", payload)
            return None
        return NormalizationRuleRecord(
            rule_id=rule_id,
            pattern=pattern,
            replacement=replacement,
            description=clean_text(payload.description),
        )

    def _token_alias(self, payload: TokenAliasPayload) -> TokenAliasRecord | None:
        token_raw = clean_text(payload.token_raw)
        token_normalized = clean_text(payload.token_normalized)
        if token_raw is None or token_normalized is None:
            self._missing("token_aliases", "token_raw and token_normalized", payload)
            return None
        return TokenAliasRecord(
            token_raw=token_raw,
            token_normalized=token_normalized,
            ingredient_key=clean_text(payload.ingredient_key),
            alias_confidence=to_number(payload.alias_confidence),
            notes=clean_text(payload.notes),
        )

    def _generic_form_token(
        self, payload: GenericFormTokenPayload
    ) -> GenericFormTokenRecord | None:
        token_raw = clean_text(payload.token_raw)
        token_normalized = clean_text(payload.token_normalized)
        if token_raw is None or token_normalized is None:
            self._missing("generic_form_tokens", "token_raw and token_normalized", payload)
            return None
        return GenericFormTokenRecord(
            token_raw=token_raw,
            token_normalized=token_normalized,
            alias_confidence=to_number(payload.alias_confidence),
            notes=clean_text(payload.notes),
        )

    def _interaction(self, payload: InteractionPayload) -> InteractionRecord | None:
        interaction_id = clean_text(payload.interaction_id)
        if interaction_id is None:
            self._missing("interactions", "interaction_id", payload)
            return None
        try:
            condition = parse_condition(payload.condition)
        except MalformedValueError as exc:
            condition = None
            self.issues.append(
                IssueDraft(
                    issue_type=IssueType.INVALID_CONDITION,
                    message=f"interaction {interaction_id} condition dropped: {exc}",
                    payload={"interaction_id": interaction_id, "condition": str(payload.condition)},
                )
            )
        return InteractionRecord(
            interaction_id=interaction_id,
            interaction_type=clean_text(payload.interaction_type),
            ingredient_a_key=clean_text(payload.ingredient_a_key),
            ingredient_b_key=clean_text(payload.ingredient_b_key),
            ingredient_a_name=clean_text(payload.ingredient_a_name),
            ingredient_b_name=clean_text(payload.ingredient_b_name),
            direction=clean_text(payload.direction),
            condition_logic=clean_text(payload.condition_logic),
            condition=condition,
            effect_type=clean_text(payload.effect_type),
            effect_value=to_number(payload.effect_value),
            affected_pillar=clean_text(payload.affected_pillar),
            rationale=clean_text(payload.rationale),
            evidence_grade=clean_text(payload.evidence_grade),
            audit_status=clean_text(payload.audit_status),
            rule_confidence=to_number(payload.rule_confidence),
            reference_ids=split_list(payload.reference_ids),
            notes=clean_text(payload.notes),
        )

    def _nutrient_target(self, payload: NutrientTargetPayload) -> NutrientTargetRecord | None:
        ingredient_key = clean_text(payload.ingredient_key)
        if ingredient_key is None:
            self._missing("nutrient_targets", "ingredient_id", payload)
            return None
        return NutrientTargetRecord(
            ingredient_key=ingredient_key,
            target_type=clean_text(payload.target_type),
            target_value=to_number(payload.target_value),
            unit=clean_text(payload.unit),
            jurisdiction=clean_text(payload.jurisdiction),
            authority=clean_text(payload.authority),
            audit_status=clean_text(payload.audit_status),
            reference_ids=split_list(payload.reference_ids),
            notes=clean_text(payload.notes),
        )

    def _target_profile(self, payload: TargetProfilePayload) -> TargetProfileRecord | None:
        profile_id = clean_text(payload.profile_id)
        if profile_id is None:
            self._missing("target_profiles", "profile_id", payload)
            return None
        return TargetProfileRecord(
            profile_id=profile_id,
            profile_name=clean_text(payload.profile_name),
            description=clean_text(payload.description),
            default_for=clean_text(payload.default_for),
            audit_status=clean_text(payload.audit_status),
            reference_ids=split_list(payload.reference_ids),
            notes=clean_text(payload.notes),
        )

    def _ul_toxicity(self, payload: UlToxicityPayload) -> UlToxicityRecord | None:
        ul_id = clean_text(payload.ul_id)
        if ul_id is None:
            self._missing("ul_toxicity", "ul_id", payload)
            return None
        return UlToxicityRecord(
            ul_id=ul_id,
            ingredient_key=clean_text(payload.ingredient_key),
            population=clean_text(payload.population),
            age_range=clean_text(payload.age_range),
            authority=clean_text(payload.authority),
            ul_value=to_number(payload.ul_value),
            unit=clean_text(payload.unit),
            scope=clean_text(payload.scope),
            confidence=to_number(payload.confidence),
            audit_status=clean_text(payload.audit_status),
            reference_ids=split_list(payload.reference_ids),
            notes=clean_text(payload.notes),
        )

    def _dose_response_curve(
        self, payload: DoseResponseCurvePayload
    ) -> DoseResponseCurveRecord | None:
        curve_id = clean_text(payload.curve_id)
        if curve_id is None:
            self._missing("dose_response_curves", "curve_id", payload)
            return None
        return DoseResponseCurveRecord(
            curve_id=curve_id,
            ingredient_key=clean_text(payload.ingredient_key),
            curve_type=clean_text(payload.curve_type),
            beneficial_min=to_number(payload.beneficial_min),
            target_value=to_number(payload.target_value),
            target_unit=clean_text(payload.target_unit),
            plateau_start=to_number(payload.plateau_start),
            plateau_end=to_number(payload.plateau_end),
            ul_value=to_number(payload.ul_value),
            ul_unit=clean_text(payload.ul_unit),
            ul_scope=clean_text(payload.ul_scope),
            penalty_start=to_number(payload.penalty_start),
            penalty_slope=to_number(payload.penalty_slope),
            score_midpoint=to_number(payload.score_midpoint),
            score_cap=to_number(payload.score_cap),
            notes=clean_text(payload.notes),
            audit_status=clean_text(payload.audit_status),
            reference_ids=split_list(payload.reference_ids),
        )
