"""SQLite database backend."""

import asyncio
import itertools
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from rolegraph.observability import get_logger
from rolegraph.protocols.database import Row

logger = get_logger(__name__)


class SQLiteDatabase:
    """SQLite database backend.

    Suitable for development, tests and single-node deployments. The
    connection runs in autocommit mode; ``transaction()`` issues
    ``BEGIN IMMEDIATE`` so the write lock is taken before the first
    validation read, and nested transactions become savepoints.

    Only one transaction is open at a time. Statements from other tasks
    wait until it finishes.
    """

    def __init__(
        self,
        path: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize SQLite database.

        Args:
            path: Path to SQLite database file. Defaults to ./data/rolegraph.db
                  Use ":memory:" for in-memory database.
            **kwargs: Ignored (for compatibility with other backends)
        """
        if path == ":memory:":
            self.path: str | Path = ":memory:"
        else:
            self.path = Path(path) if path else Path("./data/rolegraph.db")
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()
        self._tx_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None
        self._savepoints = itertools.count(1)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.path),
                check_same_thread=False,
                isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        return self._conn

    def _owns_transaction(self) -> bool:
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    @asynccontextmanager
    async def _statement(self) -> AsyncIterator[sqlite3.Connection]:
        """Serialize a single statement against any open transaction."""
        if self._owns_transaction():
            async with self._lock:
                yield self._get_connection()
        else:
            async with self._tx_lock, self._lock:
                yield self._get_connection()

    async def execute(
        self,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> list[Row]:
        """Execute a query and return results."""
        async with self._statement() as conn:
            cursor = conn.execute(query, params or {})
            rows = cursor.fetchall()
            return [Row(_data=dict(row)) for row in rows]

    async def execute_many(
        self,
        query: str,
        params_list: list[dict[str, Any]],
    ) -> None:
        """Execute a query multiple times with different parameters."""
        if not params_list:
            return
        async with self._statement() as conn:
            conn.executemany(query, params_list)

    async def execute_script(self, script: str) -> None:
        """Execute ``;``-separated statements one at a time."""
        for statement in script.split(";"):
            statement = statement.strip()
            if statement:
                await self.execute(statement)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SQLiteDatabase"]:
        """Start a transaction.

        Re-entering from the task that owns the open transaction creates a
        savepoint, which rolls back independently of the outer transaction.
        """
        if self._owns_transaction():
            name = f"sp_{next(self._savepoints)}"
            await self.execute(f"SAVEPOINT {name}")
            try:
                yield self
            except BaseException:
                await self.execute(f"ROLLBACK TO SAVEPOINT {name}")
                await self.execute(f"RELEASE SAVEPOINT {name}")
                raise
            else:
                await self.execute(f"RELEASE SAVEPOINT {name}")
            return

        async with self._tx_lock:
            conn = self._get_connection()
            self._tx_owner = asyncio.current_task()
            try:
                async with self._lock:
                    conn.execute("BEGIN IMMEDIATE")
                try:
                    yield self
                except BaseException:
                    async with self._lock:
                        if conn.in_transaction:
                            conn.execute("ROLLBACK")
                    raise
                else:
                    async with self._lock:
                        conn.execute("COMMIT")
            finally:
                self._tx_owner = None

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.debug("SQLite connection closed", context={"path": str(self.path)})
