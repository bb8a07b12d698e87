"""
RecordStore backed by PostgreSQL.

Check-and-set is a single statement:

    UPDATE <table> SET ..., version = version + 1
    WHERE id = %s AND version = %s
    RETURNING *

Zero rows back means either the row is gone or someone else wrote first;
a follow-up existence check tells the two apart.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Sequence
from uuid import UUID

import psycopg2.errors
from psycopg2 import sql

from clients.postgres_client import PostgresClient
from clients.store import Record, RecordStore
from core.exceptions import Conflict, NotFound

logger = logging.getLogger(__name__)

# Tables the marketplace core is allowed to touch
_TABLES = {
    "tasks",
    "applications",
    "bookings",
    "service_offerings",
    "availability_slots",
    "audit_log",
}

# Constraint violations that mean another writer got there first
_RACE_ERRORS = (psycopg2.errors.UniqueViolation, psycopg2.errors.ExclusionViolation)


def _table_identifier(table: str) -> sql.Identifier:
    if table not in _TABLES:
        raise ValueError(f"Unknown table '{table}'")
    return sql.Identifier(table)


def _where_clause(filters: Dict[str, Any]) -> tuple[sql.Composable, list[Any]]:
    if not filters:
        return sql.SQL(""), []

    parts = []
    params: list[Any] = []
    for column, value in filters.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            parts.append(sql.SQL("{} = ANY(%s)").format(sql.Identifier(column)))
            params.append([getattr(v, "value", v) for v in value])
        elif value is None:
            parts.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
        else:
            parts.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
            params.append(getattr(value, "value", value))

    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(parts), params


def _order_clause(order_by: Sequence[str]) -> sql.Composable:
    if not order_by:
        return sql.SQL("")

    parts = []
    for spec in order_by:
        direction = sql.SQL("DESC") if spec.startswith("-") else sql.SQL("ASC")
        parts.append(sql.SQL("{} {}").format(sql.Identifier(spec.lstrip("-")), direction))
    return sql.SQL(" ORDER BY ") + sql.SQL(", ").join(parts)


def _plain(value: Any) -> Any:
    """Enums are stored by value."""
    return getattr(value, "value", value)


class PostgresStore(RecordStore):
    """RecordStore over PostgresClient."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self, table: str, record_id: UUID) -> Record | None:
        query = sql.SQL("SELECT * FROM {} WHERE id = %s").format(_table_identifier(table))
        return self.postgres.execute_single(query, (record_id,))

    def list(
        self,
        table: str,
        filters: Dict[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
    ) -> List[Record]:
        where, params = _where_clause(filters or {})
        query = sql.SQL("SELECT * FROM {}{}{}").format(
            _table_identifier(table), where, _order_clause(order_by)
        )
        if limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(limit)
        return self.postgres.execute(query, tuple(params))

    def create(self, table: str, record: Record) -> Record:
        row = {k: _plain(v) for k, v in record.items()}
        row["version"] = 1
        columns = list(row.keys())

        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            _table_identifier(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        try:
            return self.postgres.execute_returning(query, tuple(row[c] for c in columns))[0]
        except _RACE_ERRORS as e:
            # Lost a race on a unique or exclusion constraint; callers re-read and re-validate
            raise Conflict(table, record["id"]) from e

    def update(
        self,
        table: str,
        record_id: UUID,
        changes: Record,
        expected_version: int,
    ) -> Record:
        columns = [c for c in changes if c not in ("id", "version")]
        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
        ]
        assignments.append(sql.SQL("version = version + 1"))

        query = sql.SQL(
            "UPDATE {} SET {} WHERE id = %s AND version = %s RETURNING *"
        ).format(_table_identifier(table), sql.SQL(", ").join(assignments))
        params = [_plain(changes[c]) for c in columns] + [record_id, expected_version]

        try:
            rows = self.postgres.execute_returning(query, tuple(params))
        except _RACE_ERRORS as e:
            raise Conflict(table, record_id) from e
        if rows:
            return rows[0]

        if self.get(table, record_id) is None:
            raise NotFound(table.rstrip("s"), record_id)

        logger.warning(
            f"Version conflict on {table} {record_id}: expected {expected_version}"
        )
        raise Conflict(table, record_id)

    @contextmanager
    def atomic(self):
        with self.postgres.transaction():
            yield self
