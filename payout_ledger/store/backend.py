"""
Store interface: the minimal filterable table contract the sync pass relies on.

select (with equality / range / IN filters), count, upsert with a conflict
target, update by filter, delete by filter returning the affected count.
Engines raise StoreError; callers never see driver exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

FILTER_OPS = ("eq", "lt", "lte", "gt", "gte", "in")


@dataclass(frozen=True)
class Filter:
    """One column predicate. op is one of FILTER_OPS; value is a sequence for 'in'."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unknown filter op '{self.op}'. Available: {list(FILTER_OPS)}")


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, "lt", value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column, "gte", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", tuple(values))


class Store(ABC):
    """Generic table store. Rows are plain dicts keyed by column name."""

    @abstractmethod
    def select(
        self,
        table: str,
        *,
        columns: Optional[Sequence[str]] = None,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        ...

    @abstractmethod
    def upsert(self, table: str, rows: Sequence[Dict[str, Any]], *, on_conflict: str) -> int:
        """Insert rows, replacing non-key columns when on_conflict already exists. Returns rows written."""
        ...

    @abstractmethod
    def update(self, table: str, values: Dict[str, Any], *, filters: Sequence[Filter]) -> int:
        ...

    @abstractmethod
    def delete(self, table: str, *, filters: Sequence[Filter]) -> int:
        """Delete matching rows; returns the number deleted."""
        ...

    def close(self) -> None:
        """Release resources. Default: nothing to release."""
        return None
