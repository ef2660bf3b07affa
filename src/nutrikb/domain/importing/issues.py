"""Issue journal: the run's append-only list of structured problems."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from nutrikb.domain.importing.errors import ImportAbortedError
from nutrikb.domain.model import ImportIssue, IssueSeverity

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from nutrikb.domain.model import IngredientId, IssueDraft, IssueType

log = getLogger(__name__)


class IssueJournal:
    """Collects issues for one run.

    In strict mode every non-benign issue is recorded with severity ``error`` and
    then raised as :class:`ImportAbortedError`. Otherwise it is recorded as a
    warning and the caller skips the affected record.
    """

    def __init__(self, *, strict: bool) -> None:
        self.strict = strict
        self._issues: list[ImportIssue] = []

    @property
    def issues(self) -> tuple[ImportIssue, ...]:
        return tuple(self._issues)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self._issues if issue.severity is IssueSeverity.WARNING)

    def __len__(self) -> int:
        return len(self._issues)

    def report(
        self,
        issue_type: IssueType,
        message: str,
        *,
        canonical_key: str | None = None,
        ingredient_id: IngredientId | None = None,
        payload: Mapping[str, Any] | None = None,
        benign: bool = False,
    ) -> ImportIssue:
        fatal = self.strict and not benign
        issue = ImportIssue(
            severity=IssueSeverity.ERROR if fatal else IssueSeverity.WARNING,
            issue_type=issue_type,
            message=message,
            canonical_key=canonical_key,
            ingredient_id=ingredient_id,
            payload=dict(payload or {}),
        )
        self._issues.append(issue)
        if fatal:
            log.error("%s: %s", issue_type, message)
            raise ImportAbortedError(issue)
        log.warning("%s: %s", issue_type, message)
        return issue

    def replay(self, drafts: Iterable[IssueDraft]) -> None:
        """Report issues the loader found before the run existed."""

        for draft in drafts:
            self.report(
                draft.issue_type,
                draft.message,
                canonical_key=draft.canonical_key,
                payload=draft.payload,
            )
