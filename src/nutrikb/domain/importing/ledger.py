"""Run ledger: the durable record of one import run."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from nutrikb.domain.importing.issues import IssueJournal

if TYPE_CHECKING:
    from uuid import UUID

    from nutrikb.domain.importing.mode import ImportMode, ImportStats
    from nutrikb.domain.ports import KnowledgeStore

log = getLogger(__name__)


class RunLedger:
    """Opens, closes and journals a run.

    The ledger owns the :class:`IssueJournal`. Issues are flushed to the store
    exactly once, by whichever closing path runs first. Dry runs never touch the
    store: the journal still collects issues so they reach the console.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        mode: ImportMode,
        dataset_version: str | None,
    ) -> None:
        self._store = store
        self._mode = mode
        self._dataset_version = dataset_version
        self.journal = IssueJournal(strict=mode.strict)
        self.run_id: UUID | None = None
        self._flushed = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self.run_id is not None and not self._closed

    def open(self) -> UUID | None:
        if self._mode.dry_run:
            log.info("Dry run: no run record is written")
            return None
        self.run_id = self._store.open_run(self._dataset_version, self._mode.as_flags())
        log.info("Opened import run %s (dataset version %s)", self.run_id, self._dataset_version)
        return self.run_id

    def complete(self, stats: ImportStats) -> None:
        self._sync_counts(stats)
        if self.run_id is None or self._closed:
            return
        self._flush(self.run_id)
        self._finish(self.run_id, stats.as_json())

    def fail(self, stats: ImportStats, error: BaseException) -> None:
        """Close the run with the terminal error.

        The run is closed even when its issues cannot be written; the flush
        failure is then kept in the stats. Failures while writing the closing
        record are logged, not raised; the caller re-raises ``error`` itself.
        """

        self._sync_counts(stats)
        if self.run_id is None or self._closed:
            return
        payload = stats.as_json(error=error)
        try:
            self._flush(self.run_id)
        except Exception as exc:
            log.exception("Could not write issues of import run %s", self.run_id)
            payload["issue_flush_error"] = str(exc) or type(exc).__name__
        try:
            self._finish(self.run_id, payload)
        except Exception:
            log.exception("Could not record failure of import run %s", self.run_id)

    def _sync_counts(self, stats: ImportStats) -> None:
        stats.issues = len(self.journal)
        stats.warnings = self.journal.warning_count

    def _flush(self, run_id: UUID) -> None:
        if self._flushed:
            return
        if self.journal.issues:
            self._store.insert_issues(run_id, self.journal.issues)
        self._flushed = True

    def _finish(self, run_id: UUID, payload: dict[str, object]) -> None:
        self._store.close_run(run_id, payload)
        self._closed = True
        log.info("Closed import run %s", run_id)
