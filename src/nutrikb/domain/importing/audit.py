"""Audit-status engine.

Every audited fact carries one of four trust states. A status declared in the
package is taken as-is when it is recognized; otherwise it is derived from the
statuses of the citations the fact references. A stored status is never
lowered by a later import.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from nutrikb.domain.model import AuditStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

TRUST_ORDER: Final[tuple[AuditStatus, ...]] = (
    AuditStatus.NEEDS_RESOLUTION,
    AuditStatus.DERIVED,
    AuditStatus.NEEDS_REVIEW,
    AuditStatus.VERIFIED,
)

_RANKS: Final[dict[AuditStatus, int]] = {status: rank for rank, status in enumerate(TRUST_ORDER)}


def trust_rank(status: AuditStatus) -> int:
    return _RANKS[status]


def parse_audit_status(value: object) -> AuditStatus | None:
    """Return the recognized status for ``value`` or ``None``.

    Matching ignores case, surrounding whitespace, and treats ``-`` and spaces
    as ``_`` (``"Needs Review"`` and ``"needs-review"`` both match).
    """

    if not isinstance(value, str):
        return None
    token = "_".join(value.strip().lower().replace("-", " ").split())
    try:
        return AuditStatus(token)
    except ValueError:
        return None


def normalize_audit_status(value: object) -> AuditStatus:
    """Map any value onto the enum; absent or unknown values become ``needs_review``."""

    return parse_audit_status(value) or AuditStatus.NEEDS_REVIEW


def derive_audit_status(
    reference_ids: Iterable[str],
    citation_statuses: Mapping[str, AuditStatus],
) -> AuditStatus:
    """Derive a fact's status from the citations it references.

    Any verified citation wins. Otherwise a citation that is derived or pending
    review makes the fact ``needs_review``; failing that, a citation that needs
    resolution propagates. Facts without known citations need review.
    """

    statuses = {
        citation_statuses[reference_id]
        for reference_id in reference_ids
        if reference_id in citation_statuses
    }
    if AuditStatus.VERIFIED in statuses:
        return AuditStatus.VERIFIED
    if statuses & {AuditStatus.NEEDS_REVIEW, AuditStatus.DERIVED}:
        return AuditStatus.NEEDS_REVIEW
    if AuditStatus.NEEDS_RESOLUTION in statuses:
        return AuditStatus.NEEDS_RESOLUTION
    return AuditStatus.NEEDS_REVIEW


def merge_audit_status(existing: AuditStatus | None, incoming: AuditStatus) -> AuditStatus:
    """Return the more trusted of the stored and the incoming status."""

    if existing is None:
        return incoming
    return existing if trust_rank(existing) >= trust_rank(incoming) else incoming


class AuditStatusEngine:
    """Computes incoming statuses for one run.

    ``citation_statuses`` maps citation ids to their effective status; it is
    filled as citations are persisted and may be extended with stored statuses
    of citations the package references but does not contain.
    """

    def __init__(
        self,
        citation_statuses: Mapping[str, AuditStatus] | None = None,
        *,
        force_pending: bool = False,
    ) -> None:
        self._citation_statuses: dict[str, AuditStatus] = dict(citation_statuses or {})
        self.force_pending = force_pending

    @property
    def citation_statuses(self) -> Mapping[str, AuditStatus]:
        return self._citation_statuses

    def register_citations(self, statuses: Mapping[str, AuditStatus]) -> None:
        self._citation_statuses.update(statuses)

    def effective(self, declared: object, reference_ids: Iterable[str] = ()) -> AuditStatus:
        if self.force_pending:
            return AuditStatus.NEEDS_REVIEW
        parsed = parse_audit_status(declared)
        if parsed is not None:
            return parsed
        return derive_audit_status(reference_ids, self._citation_statuses)
