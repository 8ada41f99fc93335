"""Database protocol for SQL backends."""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class Row:
    """Result row with attribute-style and mapping-style access."""

    _data: dict[str, Any] = field(repr=False)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"Row has no column '{name}'") from None

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Return a column value, or ``default`` if the column is absent."""
        return self._data.get(key, default)

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._data.keys())

    def to_dict(self) -> dict[str, Any]:
        """Convert row to dictionary."""
        return dict(self._data)


class Database(Protocol):
    """Transactional SQL store holding roles, admins and audit logs.

    Queries use ``:name`` placeholders. Statements issued inside
    ``transaction()`` commit together; a failing statement inside a
    transaction is rolled back on its own and leaves earlier statements
    intact until the transaction itself rolls back.
    """

    async def execute(
        self,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> list[Row]:
        """Execute a query and return results."""
        ...

    async def execute_many(
        self,
        query: str,
        params_list: list[dict[str, Any]],
    ) -> None:
        """Execute a query multiple times with different parameters."""
        ...

    async def execute_script(self, script: str) -> None:
        """Execute several ``;``-separated statements (schema DDL)."""
        ...

    def transaction(self) -> AbstractAsyncContextManager["Database"]:
        """Start a transaction. Commits on exit, rolls back on exception."""
        ...

    async def close(self) -> None:
        """Release the underlying connection."""
        ...
