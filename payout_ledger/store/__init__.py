"""
Store: table persistence primitives behind a generic filterable interface.
No business logic.
"""

from __future__ import annotations

from .backend import Filter, Store, eq, gte, in_, lt
from .sqlite_backend import SQLiteStore

__all__ = ["Filter", "Store", "SQLiteStore", "eq", "gte", "in_", "lt"]
