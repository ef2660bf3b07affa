"""SQLAlchemy implementation of the knowledge store."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from nutrikb.config import RetryPolicy
from nutrikb.domain.importing.audit import normalize_audit_status
from nutrikb.domain.importing.errors import DuplicateKeyError, StoreError
from nutrikb.domain.model import FACT_KEY_COLUMNS, FactKind, StoredIngredient

from .retry import call_with_retry
from .tables import (
    CITATION_LINK_TABLES,
    FACT_TABLES,
    dataset_state_table,
    import_issues_table,
    import_runs_table,
    ingredient_synonyms_table,
    ingredients_table,
    key_columns,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Mapping, Sequence

    from sqlalchemy import Column, Connection, Engine, Select, Table
    from sqlalchemy.sql.dml import Insert

    from nutrikb.domain.model import (
        AuditStatus,
        BusinessKey,
        FactRow,
        ImportIssue,
        IngredientId,
        IngredientValues,
    )

    from .retry import Sleep

log = getLogger(__name__)

# Bound on the number of values per IN clause.
LOOKUP_CHUNK_SIZE: Final[int] = 500


def _dialect_insert(connection: Connection, table: Table) -> Insert:
    dialect = connection.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise StoreError(f"Upserts are not supported on the {dialect!r} dialect")


def _as_uuid(value: IngredientId) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class SqlAlchemyKnowledgeStore:
    """Knowledge store on a SQLAlchemy engine.

    Every public method runs in its own transaction and is retried on transient
    connection faults. No transaction spans two calls.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        retry: RetryPolicy | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._engine = engine
        self._retry = retry or RetryPolicy()
        self._sleep = sleep

    @property
    def engine(self) -> Engine:
        return self._engine

    def _run[T](self, description: str, work: Callable[[Connection], T]) -> T:
        def attempt() -> T:
            with self._engine.begin() as connection:
                return work(connection)

        return call_with_retry(
            attempt, policy=self._retry, description=description, sleep=self._sleep
        )

    # Ingredients -------------------------------------------------------------------

    def find_ingredient_by_key(self, canonical_key: str) -> StoredIngredient | None:
        stmt = _ingredient_select().where(ingredients_table.c.canonical_key == canonical_key)
        return self._run("ingredient lookup", lambda conn: _stored_ingredient(conn, stmt))

    def find_ingredient_by_name(self, name: str) -> StoredIngredient | None:
        stmt = (
            _ingredient_select()
            .where(func.lower(ingredients_table.c.name) == name.lower())
            .order_by(ingredients_table.c.created_at)
            .limit(1)
        )
        return self._run("ingredient name lookup", lambda conn: _stored_ingredient(conn, stmt))

    def insert_ingredient(self, values: IngredientValues) -> uuid.UUID:
        ingredient_id = uuid.uuid4()
        stmt = ingredients_table.insert().values(id=ingredient_id, **_ingredient_values(values))

        def work(connection: Connection) -> uuid.UUID:
            result = connection.execute(stmt)
            if result.rowcount != 1:
                raise StoreError(f"Ingredient insert returned no row for {values.canonical_key}")
            return ingredient_id

        return self._run("ingredient insert", work)

    def update_ingredient(self, ingredient_id: uuid.UUID, values: IngredientValues) -> None:
        stmt = (
            update(ingredients_table)
            .where(ingredients_table.c.id == ingredient_id)
            .values(**_ingredient_values(values), updated_at=utcnow())
        )
        self._run("ingredient update", lambda conn: conn.execute(stmt))

    def find_ingredient_ids(self, canonical_keys: Collection[str]) -> dict[str, uuid.UUID]:
        def work(connection: Connection) -> dict[str, uuid.UUID]:
            found: dict[str, uuid.UUID] = {}
            for chunk in batched(sorted(set(canonical_keys)), LOOKUP_CHUNK_SIZE):
                stmt = select(ingredients_table.c.canonical_key, ingredients_table.c.id).where(
                    ingredients_table.c.canonical_key.in_(chunk)
                )
                found.update(dict(connection.execute(stmt).tuples()))
            return found

        return self._run("ingredient id lookup", work)

    def fetch_synonyms(self, ingredient_id: IngredientId) -> list[str]:
        stmt = select(ingredient_synonyms_table.c.synonym).where(
            ingredient_synonyms_table.c.ingredient_id == _as_uuid(ingredient_id)
        )
        return self._run("synonym lookup", lambda conn: list(conn.scalars(stmt)))

    def insert_synonyms(self, ingredient_id: IngredientId, synonyms: Sequence[str]) -> None:
        if not synonyms:
            return
        owner = _as_uuid(ingredient_id)
        rows = [
            {
                "id": uuid.uuid4(),
                "ingredient_id": owner,
                "synonym": synonym,
                "source": "dataset",
                "created_at": utcnow(),
            }
            for synonym in synonyms
        ]
        try:
            self._run(
                "synonym insert",
                lambda conn: conn.execute(ingredient_synonyms_table.insert(), rows),
            )
        except IntegrityError as exc:
            raise DuplicateKeyError(f"duplicate synonym for ingredient {owner}") from exc

    # Facts -------------------------------------------------------------------------

    def fetch_citation_statuses(self, citation_ids: Collection[str]) -> dict[str, AuditStatus]:
        table = FACT_TABLES[FactKind.CITATION]

        def work(connection: Connection) -> dict[str, AuditStatus]:
            found: dict[str, AuditStatus] = {}
            for chunk in batched(sorted(set(citation_ids)), LOOKUP_CHUNK_SIZE):
                stmt = select(table.c.id, table.c.audit_status).where(table.c.id.in_(chunk))
                for citation_id, status in connection.execute(stmt):
                    found[citation_id] = normalize_audit_status(status)
            return found

        return self._run("citation status lookup", work)

    def fetch_audit_statuses(
        self, kind: FactKind, keys: Sequence[BusinessKey]
    ) -> dict[BusinessKey, AuditStatus]:
        column = FACT_TABLES[kind].c.audit_status
        found = self._run(
            f"{kind} status lookup", lambda conn: _select_by_keys(conn, kind, keys, column)
        )
        return {key: normalize_audit_status(status) for key, status in found.items()}

    def upsert_facts(self, kind: FactKind, rows: Sequence[FactRow]) -> None:
        if not rows:
            return
        table = FACT_TABLES[kind]
        values = [_fact_values(kind, table, row) for row in rows]
        self._run(
            f"{kind} upsert",
            lambda conn: _upsert(conn, table, FACT_KEY_COLUMNS[kind], values),
        )

    def fetch_fact_ids(
        self, kind: FactKind, keys: Sequence[BusinessKey]
    ) -> dict[BusinessKey, uuid.UUID]:
        column = FACT_TABLES[kind].c.id
        return self._run(
            f"{kind} id lookup", lambda conn: _select_by_keys(conn, kind, keys, column)
        )

    def upsert_citation_links(self, kind: FactKind, links: Sequence[tuple[uuid.UUID, str]]) -> None:
        if not links:
            return
        table, fact_column = CITATION_LINK_TABLES[kind]
        values = [
            {fact_column: fact_id, "citation_id": citation_id}
            for fact_id, citation_id in dict.fromkeys(links)
        ]

        def work(connection: Connection) -> None:
            stmt = _dialect_insert(connection, table).on_conflict_do_nothing(
                index_elements=[fact_column, "citation_id"]
            )
            connection.execute(stmt, values)

        self._run(f"{kind} citation links", work)

    def set_dataset_version(self, key: str, version: str) -> None:
        values = [{"key": key, "version": version, "updated_at": utcnow()}]
        self._run(
            "dataset version update",
            lambda conn: _upsert(conn, dataset_state_table, ("key",), values),
        )

    def get_dataset_version(self, key: str) -> str | None:
        stmt = select(dataset_state_table.c.version).where(dataset_state_table.c.key == key)
        return self._run("dataset version lookup", lambda conn: conn.scalar(stmt))

    # Run ledger --------------------------------------------------------------------

    def open_run(self, dataset_version: str | None, mode: Mapping[str, bool]) -> uuid.UUID:
        run_id = uuid.uuid4()
        stmt = import_runs_table.insert().values(
            id=run_id,
            dataset_version=dataset_version,
            strict=bool(mode.get("strict", False)),
            dry_run=bool(mode.get("dry_run", False)),
            mode_json=dict(mode),
            started_at=utcnow(),
        )
        self._run("import run insert", lambda conn: conn.execute(stmt))
        return run_id

    def insert_issues(self, run_id: uuid.UUID, issues: Sequence[ImportIssue]) -> None:
        if not issues:
            return
        rows = [
            {
                "id": uuid.uuid4(),
                "run_id": run_id,
                "severity": str(issue.severity),
                "issue_type": str(issue.issue_type),
                "canonical_key": issue.canonical_key,
                "ingredient_id": None if issue.ingredient_id is None else str(issue.ingredient_id),
                "message": issue.message,
                "payload_json": issue.payload or None,
                "status": "open",
                "created_at": utcnow(),
            }
            for issue in issues
        ]
        self._run(
            "import issue insert", lambda conn: conn.execute(import_issues_table.insert(), rows)
        )

    def close_run(self, run_id: uuid.UUID, stats: Mapping[str, object]) -> None:
        stmt = (
            update(import_runs_table)
            .where(import_runs_table.c.id == run_id)
            .values(finished_at=utcnow(), stats_json=dict(stats))
        )
        self._run("import run close", lambda conn: conn.execute(stmt))


# Statement helpers -----------------------------------------------------------------


def _ingredient_select() -> Select[Any]:
    table = ingredients_table
    return select(table.c.id, table.c.canonical_key, table.c.name, table.c.unit)


def _stored_ingredient(connection: Connection, stmt: Select[Any]) -> StoredIngredient | None:
    row = connection.execute(stmt).first()
    if row is None:
        return None
    return StoredIngredient(
        id=row.id, canonical_key=row.canonical_key, name=row.name, unit=row.unit
    )


def _ingredient_values(values: IngredientValues) -> dict[str, Any]:
    return {
        "canonical_key": values.canonical_key,
        "name": values.name,
        "unit": values.unit,
        "category": values.category,
        "goals": list(values.goals) or None,
    }


def _fact_values(kind: FactKind, table: Table, row: FactRow) -> dict[str, Any]:
    values = asdict(row)
    references = values.pop("reference_ids", None)
    if references is not None and kind not in CITATION_LINK_TABLES:
        values["reference_ids"] = list(references)
    if "audit_status" in values:
        values["audit_status"] = str(values["audit_status"])
    if "id" in table.c and "id" not in values:
        values["id"] = uuid.uuid4()
    values["updated_at"] = utcnow()
    return values


def _upsert(
    connection: Connection,
    table: Table,
    key_names: Iterable[str],
    values: list[dict[str, Any]],
) -> None:
    keys = list(key_names)
    stmt = _dialect_insert(connection, table)
    excluded = stmt.excluded
    assignments = {
        name: excluded[name] for name in values[0] if name not in keys and name != "id"
    }
    connection.execute(
        stmt.on_conflict_do_update(index_elements=keys, set_=assignments),
        values,
    )


def _select_by_keys(
    connection: Connection,
    kind: FactKind,
    keys: Sequence[BusinessKey],
    column: Column[Any],
) -> dict[BusinessKey, Any]:
    """Return ``column`` for each stored row whose business key is in ``keys``.

    Each key column is filtered with ``IN``; rows matching the product of those
    sets but not an exact key are discarded here.
    """

    columns = key_columns(kind)
    wanted = set(keys)
    found: dict[BusinessKey, Any] = {}
    for chunk in batched(list(wanted), LOOKUP_CHUNK_SIZE):
        stmt = select(*columns, column)
        for position, key_column in enumerate(columns):
            stmt = stmt.where(key_column.in_(list({key[position] for key in chunk})))
        for row in connection.execute(stmt):
            key = tuple(row[: len(columns)])
            if key in wanted:
                found[key] = row[len(columns)]
    return found
