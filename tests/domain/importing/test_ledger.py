from __future__ import annotations

import pytest

from nutrikb.domain.importing import (
    ImportAbortedError,
    ImportMode,
    ImportStats,
    IssueJournal,
    RunLedger,
)
from nutrikb.domain.importing.errors import StoreError
from nutrikb.domain.model import IssueDraft, IssueSeverity, IssueType
from tests.support.stores import InMemoryKnowledgeStore


def test_journal_records_warnings_when_lenient() -> None:
    journal = IssueJournal(strict=False)

    issue = journal.report(IssueType.MISSING_INGREDIENT, "missing", canonical_key="zinc")

    assert issue.severity is IssueSeverity.WARNING
    assert journal.warning_count == 1
    assert len(journal) == 1


def test_journal_raises_in_strict_mode_after_recording() -> None:
    journal = IssueJournal(strict=True)

    with pytest.raises(ImportAbortedError):
        journal.report(IssueType.MISSING_CITATION, "missing citation")

    (issue,) = journal.issues
    assert issue.severity is IssueSeverity.ERROR
    assert journal.warning_count == 0


def test_journal_replays_loader_drafts() -> None:
    journal = IssueJournal(strict=False)

    journal.replay(
        [
            IssueDraft(issue_type=IssueType.INVALID_RECORD, message="bad row"),
            IssueDraft(
                issue_type=IssueType.INVALID_CONDITION,
                message="bad condition",
                payload={"interaction_id": "int-1"},
            ),
        ]
    )

    assert [issue.issue_type for issue in journal.issues] == [
        IssueType.INVALID_RECORD,
        IssueType.INVALID_CONDITION,
    ]


def test_ledger_writes_run_issues_and_stats(memory_store: InMemoryKnowledgeStore) -> None:
    ledger = RunLedger(memory_store, ImportMode(), "2024.1")
    stats = ImportStats(ingredients=3)

    run_id = ledger.open()
    ledger.journal.report(IssueType.BASE_UNIT_MISMATCH, "unit")
    ledger.complete(stats)

    run = memory_store.runs[run_id]  # type: ignore[index]
    assert run.dataset_version == "2024.1"
    assert run.mode["strict"] is False
    assert run.stats is not None
    assert run.stats["ingredients"] == 3
    assert run.stats["warnings"] == 1
    assert "error" not in run.stats
    assert len(run.issues) == 1
    assert not ledger.is_open


def test_ledger_fail_records_error(memory_store: InMemoryKnowledgeStore) -> None:
    ledger = RunLedger(memory_store, ImportMode(), None)
    ledger.open()

    ledger.fail(ImportStats(), RuntimeError("boom"))

    run = memory_store.only_run()
    assert run.stats is not None
    assert run.stats["error"] == "boom"


def test_ledger_flushes_issues_once_when_complete_fails() -> None:
    store = InMemoryKnowledgeStore(fail_on="close_run")
    ledger = RunLedger(store, ImportMode(), "v1")
    ledger.open()
    ledger.journal.report(IssueType.INVALID_RECORD, "bad row")
    stats = ImportStats()

    with pytest.raises(StoreError):
        ledger.complete(stats)
    ledger.fail(stats, StoreError("close failed"))

    assert store.calls.count("insert_issues") == 1
    assert len(store.only_run().issues) == 1


def test_dry_run_ledger_never_touches_store(memory_store: InMemoryKnowledgeStore) -> None:
    ledger = RunLedger(memory_store, ImportMode(dry_run=True), "v1")
    stats = ImportStats()

    assert ledger.open() is None
    ledger.journal.report(IssueType.INVALID_RECORD, "bad row")
    ledger.complete(stats)

    assert memory_store.calls == []
    assert stats.issues == 1
    assert stats.warnings == 1


def test_mode_from_flags() -> None:
    mode = ImportMode.from_flags(only_parsing=True, strict=True)

    assert mode.import_parsing
    assert not mode.import_knowledge
    assert mode.as_flags()["strict"] is True

    with pytest.raises(ValueError, match="mutually exclusive"):
        ImportMode.from_flags(only_parsing=True, only_knowledge=True)


def test_stats_summary_line() -> None:
    stats = ImportStats(ingredients=2, forms=5)

    line = stats.summary_line(ImportMode(dry_run=True))

    assert line.startswith("done ingredients=2 synonyms=0")
    assert "forms=5" in line
    assert line.endswith("dry_run=True strict=False")


def test_failed_issue_flush_is_retried_when_run_fails() -> None:
    store = InMemoryKnowledgeStore(fail_on="insert_issues")
    ledger = RunLedger(store, ImportMode(), "v1")
    ledger.open()
    ledger.journal.report(IssueType.INVALID_RECORD, "bad row")
    stats = ImportStats()

    with pytest.raises(StoreError):
        ledger.complete(stats)
    store.fail_on = None
    ledger.fail(stats, StoreError("issues not written"))

    run = store.only_run()
    assert run.closed
    assert len(run.issues) == 1
    assert run.stats is not None
    assert run.stats["issues"] == 1


def test_run_is_closed_when_issues_cannot_be_written() -> None:
    store = InMemoryKnowledgeStore(fail_on="insert_issues")
    ledger = RunLedger(store, ImportMode(strict=True), "v1")
    ledger.open()
    stats = ImportStats()

    with pytest.raises(ImportAbortedError) as excinfo:
        ledger.journal.report(IssueType.CANONICAL_KEY_CONFLICT, "key taken")
    ledger.fail(stats, excinfo.value)

    run = store.only_run()
    assert run.closed
    assert run.stats is not None
    assert run.stats["error"]
    assert run.stats["issue_flush_error"] == "injected failure in insert_issues"
    assert store.calls[-1] == "close_run"
    assert not ledger.is_open


def test_interrupted_run_is_recorded(memory_store: InMemoryKnowledgeStore) -> None:
    ledger = RunLedger(memory_store, ImportMode(), "v1")
    ledger.open()

    ledger.fail(ImportStats(), SystemExit(130))

    run = memory_store.only_run()
    assert run.stats is not None
    assert run.stats["error"] == "interrupted"
