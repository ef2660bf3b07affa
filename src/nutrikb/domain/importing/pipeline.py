"""Dataset import orchestration."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from nutrikb.domain.importing.audit import AuditStatusEngine
from nutrikb.domain.importing.facts import CitationCatalog, FactBuilder, build_citation_rows
from nutrikb.domain.importing.identity import IdentityResolver, reconcile_synonyms
from nutrikb.domain.importing.ledger import RunLedger
from nutrikb.domain.importing.mode import ImportStats
from nutrikb.domain.importing.persistence import DEFAULT_CHUNK_SIZE, PersistenceEngine
from nutrikb.domain.model import FactKind

if TYPE_CHECKING:
    from nutrikb.domain.importing.mode import ImportMode
    from nutrikb.domain.model import CitationRow, DatasetPackage, LoadedDataset
    from nutrikb.domain.ports import KnowledgeStore

log = getLogger(__name__)

DATASET_STATE_KEY = "ingredient_dataset"


class DatasetImportPipeline:
    """Run one dataset package through resolution, audit and persistence.

    The sequence is: open run, replay loader issues, citations, ingredient
    identities, synonyms, parsing tables, knowledge tables, dataset version,
    close run. Any exception closes the run as failed and is re-raised.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        mode: ImportMode,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        dataset_state_key: str = DATASET_STATE_KEY,
    ) -> None:
        self._store = store
        self._mode = mode
        self._persistence = PersistenceEngine(store, mode, chunk_size=chunk_size)
        self._dataset_state_key = dataset_state_key

    @property
    def mode(self) -> ImportMode:
        return self._mode

    def run(self, loaded: LoadedDataset) -> ImportStats:
        package = loaded.package
        stats = ImportStats()
        ledger = RunLedger(self._store, self._mode, package.version)
        try:
            ledger.open()
            ledger.journal.replay(loaded.issues)
            self._import(package, ledger, stats)
            ledger.complete(stats)
        except BaseException as exc:
            ledger.fail(stats, exc)
            raise
        log.info(stats.summary_line(self._mode))
        return stats

    def _import(self, package: DatasetPackage, ledger: RunLedger, stats: ImportStats) -> None:
        journal = ledger.journal
        audit = AuditStatusEngine(force_pending=self._mode.force_pending)

        citation_rows = build_citation_rows(package.citations, audit)
        stats.citations = self._persistence.upsert_facts(FactKind.CITATION, citation_rows)
        citations = self._register_citations(package, audit, citation_rows)

        identities = IdentityResolver(self._store, journal, self._mode).resolve(package.ingredients)
        stats.ingredients = len(identities)
        synonyms = reconcile_synonyms(
            self._store, journal, self._mode, package.ingredients, identities
        )
        stats.synonyms = synonyms.candidates
        if not self._mode.dry_run:
            stats.extra["synonyms_inserted"] = synonyms.inserted

        builder = FactBuilder(
            audit=audit, journal=journal, identities=identities, citations=citations
        )
        if self._mode.import_parsing:
            self._import_parsing(package, builder, stats)
        if self._mode.import_knowledge:
            self._import_knowledge(package, builder, stats)

        self._record_dataset_version(package.version)

    def _register_citations(
        self,
        package: DatasetPackage,
        audit: AuditStatusEngine,
        citation_rows: list[CitationRow],
    ) -> CitationCatalog:
        """Make package and previously stored citations known to derivation."""

        in_package = {row.id: row.audit_status for row in citation_rows}
        referenced = _referenced_citations(package) | in_package.keys()
        if self._mode.dry_run:
            audit.register_citations(in_package)
            return CitationCatalog(in_package, assume_present=True)
        stored = self._store.fetch_citation_statuses(sorted(referenced))
        audit.register_citations(in_package)
        audit.register_citations(stored)
        return CitationCatalog(in_package.keys() | stored.keys())

    def _import_parsing(
        self, package: DatasetPackage, builder: FactBuilder, stats: ImportStats
    ) -> None:
        persist = self._persistence.upsert_facts
        stats.aliases = persist(FactKind.FORM_ALIAS, builder.form_aliases(package.form_aliases))
        stats.normalization_rules = persist(
            FactKind.NORMALIZATION_RULE, builder.normalization_rules(package.normalization_rules)
        )
        stats.token_aliases = persist(
            FactKind.TOKEN_ALIAS, builder.token_aliases(package.token_aliases)
        )
        stats.generic_form_tokens = persist(
            FactKind.GENERIC_FORM_TOKEN, builder.generic_form_tokens(package.generic_form_tokens)
        )

    def _import_knowledge(
        self, package: DatasetPackage, builder: FactBuilder, stats: ImportStats
    ) -> None:
        persist = self._persistence.upsert_facts
        stats.forms = persist(FactKind.INGREDIENT_FORM, builder.forms(package.forms))
        stats.evidence = persist(FactKind.INGREDIENT_EVIDENCE, builder.evidence(package.evidence))
        stats.interactions = persist(
            FactKind.INTERACTION, builder.interactions(package.interactions)
        )
        stats.nutrient_targets = persist(
            FactKind.NUTRIENT_TARGET, builder.nutrient_targets(package.nutrient_targets)
        )
        stats.target_profiles = persist(
            FactKind.TARGET_PROFILE, builder.target_profiles(package.target_profiles)
        )
        stats.ul_toxicity = persist(FactKind.UL_TOXICITY, builder.ul_toxicity(package.ul_toxicity))
        stats.dose_response_curves = persist(
            FactKind.DOSE_RESPONSE_CURVE,
            builder.dose_response_curves(package.dose_response_curves),
        )

    def _record_dataset_version(self, version: str | None) -> None:
        if self._mode.dry_run or self._mode.skip_dataset_version:
            return
        if not version:
            log.info("Package has no version; dataset state left unchanged")
            return
        self._store.set_dataset_version(self._dataset_state_key, version)
        log.info("Dataset %s set to version %s", self._dataset_state_key, version)


def _referenced_citations(package: DatasetPackage) -> set[str]:
    groups = (
        package.forms,
        package.evidence,
        package.form_aliases,
        package.interactions,
        package.nutrient_targets,
        package.target_profiles,
        package.ul_toxicity,
        package.dose_response_curves,
    )
    return {
        reference_id
        for group in groups
        for record in group
        for reference_id in record.reference_ids
    }
