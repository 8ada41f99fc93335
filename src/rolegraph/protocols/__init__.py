"""Protocol interfaces for pluggable backends."""

from rolegraph.protocols.database import Database, Row

__all__ = ["Database", "Row"]
