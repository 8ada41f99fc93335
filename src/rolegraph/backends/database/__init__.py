"""Database backends."""

from rolegraph.backends.database.sqlite import SQLiteDatabase

__all__ = ["SQLiteDatabase"]
