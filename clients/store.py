"""
Persistence port for the marketplace core.

Services speak to storage only through RecordStore. Records are plain dicts
keyed by column name; every record carries an integer ``version`` that
update() uses for optimistic concurrency:

    row = store.get("tasks", task_id)
    ...validate...
    store.update("tasks", task_id, {"status": "assigned"}, expected_version=row["version"])

If another writer bumped the version in between, update() raises Conflict
and writes nothing.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Dict, List, Sequence
from uuid import UUID

Record = Dict[str, Any]


class RecordStore(ABC):
    """Table-oriented record store with check-and-set updates."""

    @abstractmethod
    def get(self, table: str, record_id: UUID) -> Record | None:
        """Return one record by id, or None."""

    @abstractmethod
    def list(
        self,
        table: str,
        filters: Dict[str, Any] | None = None,
        order_by: Sequence[str] = (),
        limit: int | None = None,
    ) -> List[Record]:
        """
        Return records matching every filter.

        Args:
            table: Table name
            filters: Column -> value equality. A list/tuple/set value means
                "column is any of these".
            order_by: Column names; a leading "-" sorts descending.
            limit: Maximum rows

        Returns:
            Matching records (copies; mutating them does not touch the store)
        """

    @abstractmethod
    def create(self, table: str, record: Record) -> Record:
        """Insert a record. ``version`` is set to 1. Returns the stored record."""

    @abstractmethod
    def update(
        self,
        table: str,
        record_id: UUID,
        changes: Record,
        expected_version: int,
    ) -> Record:
        """
        Apply changes if the stored version still equals expected_version.

        The version is incremented on success.

        Raises:
            NotFound: If the record does not exist
            Conflict: If the version moved since it was read
        """

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """
        All-or-nothing scope for several writes.

        Writes made inside the block are discarded if it raises.
        """
