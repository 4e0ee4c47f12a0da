"""
SQLite store: stdlib sqlite3 behind the Store contract.

Identifiers are validated (they are interpolated into SQL); values are always
bound parameters. Every write commits; sqlite3 errors surface as StoreError.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..core.errors import StoreError
from .backend import Filter, Store

logger = logging.getLogger(__name__)

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SQL_OPS = {"eq": "=", "lt": "<", "lte": "<=", "gt": ">", "gte": ">="}


def _ident(name: str) -> str:
    if not _IDENT.match(name):
        raise StoreError(f"Invalid identifier: {name!r}")
    return name


def _where(filters: Sequence[Filter]) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []
    for f in filters:
        col = _ident(f.column)
        if f.op == "in":
            values = list(f.value)
            if not values:
                clauses.append("0")
                continue
            clauses.append(f"{col} IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        else:
            clauses.append(f"{col} {_SQL_OPS[f.op]} ?")
            params.append(f.value)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def apply_pragmas(conn: sqlite3.Connection, busy_timeout_ms: int = 5000) -> None:
    """Set SQLite pragmas for sync connections: foreign_keys, WAL, busy_timeout."""
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")


class SQLiteStore(Store):
    """Store over a single sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row

    @classmethod
    def open(cls, db_path: Union[str, Path], *, busy_timeout_ms: int = 5000) -> "SQLiteStore":
        """Open (creating parent dirs) and apply pragmas. ':memory:' is passed through."""
        path = str(db_path)
        if path != ":memory:":
            p = Path(path).resolve()
            p.parent.mkdir(parents=True, exist_ok=True)
            path = str(p)
        conn = sqlite3.connect(path)
        apply_pragmas(conn, busy_timeout_ms)
        return cls(conn)

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as exc:
            raise StoreError(f"{type(exc).__name__}: {exc}") from exc

    def _commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"commit failed: {exc}") from exc

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
        cols = ", ".join(_ident(c) for c in columns) if columns else "*"
        where, params = _where(filters)
        sql = f"SELECT {cols} FROM {_ident(table)}{where}"
        if order_by:
            sql += f" ORDER BY {_ident(order_by)} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        return [dict(r) for r in self._execute(sql, params).fetchall()]

    def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        where, params = _where(filters)
        row = self._execute(f"SELECT COUNT(*) FROM {_ident(table)}{where}", params).fetchone()
        return int(row[0]) if row else 0

    def upsert(self, table: str, rows: Sequence[Dict[str, Any]], *, on_conflict: str) -> int:
        if not rows:
            return 0
        columns = list(rows[0].keys())
        conflict = _ident(on_conflict)
        if conflict not in columns:
            raise StoreError(f"Conflict column {on_conflict!r} missing from rows")
        col_sql = ", ".join(_ident(c) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != conflict)
        action = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
        sql = (
            f"INSERT INTO {_ident(table)} ({col_sql}) VALUES ({placeholders}) "
            f"ON CONFLICT({conflict}) {action}"
        )
        try:
            self._conn.executemany(sql, [tuple(r.get(c) for c in columns) for r in rows])
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise StoreError(f"{type(exc).__name__}: {exc}") from exc
        self._commit()
        return len(rows)

    def update(self, table: str, values: Dict[str, Any], *, filters: Sequence[Filter]) -> int:
        if not values:
            return 0
        sets = ", ".join(f"{_ident(c)} = ?" for c in values)
        where, params = _where(filters)
        cur = self._execute(f"UPDATE {_ident(table)} SET {sets}{where}", list(values.values()) + params)
        self._commit()
        return cur.rowcount

    def delete(self, table: str, *, filters: Sequence[Filter]) -> int:
        where, params = _where(filters)
        cur = self._execute(f"DELETE FROM {_ident(table)}{where}", params)
        self._commit()
        return cur.rowcount

    def close(self) -> None:
        self._conn.close()
