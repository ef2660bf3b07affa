"""Dataset import: identity resolution, audit status, persistence and run ledger."""

from __future__ import annotations

from .audit import (
    TRUST_ORDER,
    AuditStatusEngine,
    derive_audit_status,
    merge_audit_status,
    normalize_audit_status,
    parse_audit_status,
    trust_rank,
)
from .errors import (
    DatasetFormatError,
    DatasetImportError,
    DuplicateKeyError,
    ImportAbortedError,
    StoreError,
)
from .identity import (
    IdentityMap,
    IdentityResolver,
    SynonymCounts,
    UnitMerge,
    merge_base_unit,
    reconcile_synonyms,
)
from .issues import IssueJournal
from .ledger import RunLedger
from .mode import ImportMode, ImportStats
from .persistence import PersistenceEngine
from .pipeline import DATASET_STATE_KEY, DatasetImportPipeline

__all__ = [
    "DATASET_STATE_KEY",
    "TRUST_ORDER",
    "AuditStatusEngine",
    "DatasetFormatError",
    "DatasetImportError",
    "DatasetImportPipeline",
    "DuplicateKeyError",
    "IdentityMap",
    "IdentityResolver",
    "ImportAbortedError",
    "ImportMode",
    "ImportStats",
    "IssueJournal",
    "PersistenceEngine",
    "RunLedger",
    "StoreError",
    "SynonymCounts",
    "UnitMerge",
    "derive_audit_status",
    "merge_audit_status",
    "merge_base_unit",
    "normalize_audit_status",
    "parse_audit_status",
    "reconcile_synonyms",
    "trust_rank",
]
