"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from nutrikb.adapters.dataset import read_dataset_file
from nutrikb.adapters.sqlalchemy import (
    SqlAlchemyKnowledgeStore,
    configured_engine,
    is_started,
    startup,
)
from nutrikb.config import get_database_uri, get_importer_config, get_retry_policy
from nutrikb.domain.importing import DatasetImportPipeline

if TYPE_CHECKING:
    from pathlib import Path

    from nutrikb.domain.importing import ImportMode, ImportStats
    from nutrikb.domain.ports import KnowledgeStore


log = getLogger(__name__)


def import_dataset(
    path: Path,
    *,
    mode: ImportMode,
    store: KnowledgeStore | None = None,
) -> ImportStats:
    """Import one dataset package file into the knowledge store."""

    settings = get_importer_config()
    log.info(
        "Starting dataset import: file=%s, dry_run=%s, strict=%s, parsing=%s, knowledge=%s",
        path,
        mode.dry_run,
        mode.strict,
        mode.import_parsing,
        mode.import_knowledge,
    )

    loaded = read_dataset_file(path)
    effective_store = store or _default_store(dry_run=mode.dry_run)
    pipeline = DatasetImportPipeline(
        effective_store,
        mode,
        chunk_size=settings.chunk_size,
        dataset_state_key=settings.dataset_state_key,
    )
    stats = pipeline.run(loaded)

    log.info(
        f"Finished dataset import: version={loaded.package.version}, "
        f"ingredients={stats.ingredients}, issues={stats.issues}, warnings={stats.warnings}"
    )
    return stats


def _default_store(*, dry_run: bool) -> KnowledgeStore:
    retry = get_retry_policy()
    if dry_run:
        # Never connected: a dry run issues no statements.
        uri = get_database_uri(create_dir=False)
        return SqlAlchemyKnowledgeStore(create_engine(uri), retry=retry)
    engine = configured_engine() if is_started() else startup()
    return SqlAlchemyKnowledgeStore(engine, retry=retry)
