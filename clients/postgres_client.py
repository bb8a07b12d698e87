"""
PostgreSQL client with connection pooling and bounded statements.

Uses psycopg2 with ThreadedConnectionPool. Every connection gets a
statement_timeout so no call can hang; a cancelled statement or an exhausted
pool surfaces as StoreTimeout.

Inside ``transaction()`` every execute on the same thread/task reuses one
connection and commits once at the end.
"""

import json
import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.errors
import psycopg2.extras
import psycopg2.pool

from core.exceptions import StoreTimeout

logger = logging.getLogger(__name__)

# Global JSONB registration flag
_jsonb_registered = False

# Connection held open by an enclosing transaction() block
_active_connection: ContextVar[Any | None] = ContextVar("active_connection", default=None)


class PostgresClient:
    """
    PostgreSQL client with pooled connections and per-statement timeouts.

    Usage:
        db = PostgresClient(database_url, timeout_seconds=5)

        rows = db.execute("SELECT * FROM tasks WHERE status = %s", ("open",))

        with db.transaction():
            db.execute_returning("INSERT ...", params)
            db.execute_returning("INSERT ...", params)  # both or neither
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(
        self,
        database_url: str,
        timeout_seconds: int = 5,
        min_connections: int = 2,
        max_connections: int = 20,
    ):
        self._database_url = database_url
        self._timeout_seconds = timeout_seconds
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                try:
                    pool = psycopg2.pool.ThreadedConnectionPool(
                        minconn=self._min_connections,
                        maxconn=self._max_connections,
                        dsn=self._database_url,
                        connect_timeout=self._timeout_seconds,
                        options=f"-c statement_timeout={self._timeout_seconds * 1000}",
                    )
                except psycopg2.OperationalError as e:
                    raise StoreTimeout(f"Could not connect to database: {e}") from e

                global _jsonb_registered
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    psycopg2.extras.register_uuid()
                    _jsonb_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection, or reuse the enclosing transaction's."""
        active = _active_connection.get()
        if active is not None:
            yield active
            return

        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            try:
                conn = pool.getconn()
            except psycopg2.pool.PoolError as e:
                raise StoreTimeout(f"Connection pool exhausted: {e}") from e
            if conn is None:
                raise StoreTimeout("Could not get connection from pool")

            yield conn

        finally:
            if conn:
                pool.putconn(conn)

    @contextmanager
    def transaction(self):
        """Run every statement in the block on one connection, committed once."""
        if _active_connection.get() is not None:
            # Nested blocks join the outer transaction
            yield
            return

        with self.get_connection() as conn:
            token = _active_connection.set(conn)
            try:
                yield
                conn.commit()
            except BaseException:
                conn.rollback()
                raise
            finally:
                _active_connection.reset(token)

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """Convert UUIDs to strings and dicts to JSONB."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return psycopg2.extras.Json(value, dumps=_json_dumps)
            return value

        if isinstance(params, dict):
            return {k: convert(v) for k, v in params.items()}
        return convert(params)

    def _run(self, query: Any, params: Tuple | Dict | None, fetch: bool) -> List[Dict[str, Any]]:
        params = self._convert_params(params)
        in_transaction = _active_connection.get() is not None
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(query, params)
                    rows = [dict(row) for row in cur.fetchall()] if fetch and cur.description else []
                if not in_transaction:
                    conn.commit()
                return rows
            except psycopg2.errors.QueryCanceled as e:
                if not in_transaction:
                    conn.rollback()
                raise StoreTimeout(f"Statement exceeded {self._timeout_seconds}s") from e
            except psycopg2.Error:
                if not in_transaction:
                    conn.rollback()
                raise

    def execute(self, query: Any, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        return self._run(query, params, fetch=True)

    def execute_single(self, query: Any, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_returning(self, query: Any, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        return self._run(query, params, fetch=True)

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()


def _json_dumps(value: Any) -> str:
    return json.dumps(value, default=str)
