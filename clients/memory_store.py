"""
In-process RecordStore.

Used by the test suite and for running without PostgreSQL. A single
re-entrant lock serialises every call, so check-and-set updates behave the
same as the row-version check in PostgresStore. Lock waits are bounded and
surface as StoreTimeout.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Sequence
from uuid import UUID

from clients.store import Record, RecordStore
from core.exceptions import Conflict, NotFound, StoreTimeout

logger = logging.getLogger(__name__)


def _matches(record: Record, filters: Dict[str, Any]) -> bool:
    for column, expected in filters.items():
        value = record.get(column)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _sort(records: List[Record], order_by: Sequence[str]) -> List[Record]:
    # Stable sorts applied from the least significant key; None sorts first
    for spec in reversed(order_by):
        descending = spec.startswith("-")
        column = spec.lstrip("-")
        records.sort(
            key=lambda r: (r.get(column) is not None, r.get(column)),
            reverse=descending,
        )
    return records


class InMemoryStore(RecordStore):
    """Dict-of-dicts store guarded by one lock."""

    def __init__(self, timeout_seconds: float = 5.0):
        self._tables: Dict[str, Dict[UUID, Record]] = {}
        self._lock = threading.RLock()
        self._timeout = timeout_seconds

    @contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self._timeout):
            raise StoreTimeout(f"In-memory store busy for more than {self._timeout}s")
        try:
            yield
        finally:
            self._lock.release()

    def _table(self, table: str) -> Dict[UUID, Record]:
        return self._tables.setdefault(table, {})

    def get(self, table: str, record_id: UUID) -> Record | None:
        with self._locked():
            record = self._table(table).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def list(
        self,
        table: str,
        filters: Dict[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
    ) -> List[Record]:
        with self._locked():
            rows = [
                copy.deepcopy(r)
                for r in self._table(table).values()
                if _matches(r, filters or {})
            ]
        rows = _sort(rows, order_by)
        return rows[:limit] if limit is not None else rows

    def create(self, table: str, record: Record) -> Record:
        with self._locked():
            rows = self._table(table)
            record_id = record["id"]
            if record_id in rows:
                raise Conflict(table, record_id)
            stored = copy.deepcopy(record)
            stored["version"] = 1
            rows[record_id] = stored
            return copy.deepcopy(stored)

    def update(
        self,
        table: str,
        record_id: UUID,
        changes: Record,
        expected_version: int,
    ) -> Record:
        with self._locked():
            current = self._table(table).get(record_id)
            if current is None:
                raise NotFound(table.rstrip("s"), record_id)
            if current["version"] != expected_version:
                logger.warning(
                    f"Version conflict on {table} {record_id}: "
                    f"expected {expected_version}, found {current['version']}"
                )
                raise Conflict(table, record_id)
            current.update(copy.deepcopy(changes))
            current["version"] = expected_version + 1
            return copy.deepcopy(current)

    @contextmanager
    def atomic(self):
        with self._locked():
            snapshot = copy.deepcopy(self._tables)
            try:
                yield self
            except BaseException:
                self._tables = snapshot
                raise
