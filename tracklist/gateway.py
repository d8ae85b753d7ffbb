"""Persistence gateway: one call surface over SQLite and PostgreSQL.

Statements are written once with positional ``?`` placeholders. Each backend
prepares them for its driver before dispatch:

- SQLite runs them as-is.
- PostgreSQL (psycopg2) gets ``%s`` placeholders, escaped ``%`` literals and a
  ``RETURNING id`` clause on inserts so ``last_id`` is available.

Repositories accept either a ``Database`` (one connection per call) or a
``Session`` yielded by ``Database.transaction()``; both expose
``query_many`` / ``query_one`` / ``execute``.
"""
from __future__ import annotations

import logging
import os
import re
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple, Optional, Sequence, Union

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Sequence[Any]


class ExecResult(NamedTuple):
    last_id: Optional[int]
    rowcount: int


# ---------------- statement preparation ----------------

_RETURNING_RE = re.compile(r"\bRETURNING\b", re.IGNORECASE)


def _split_literals(sql: str) -> list[tuple[bool, str]]:
    """Split SQL into (is_literal, text) chunks on single/double quotes."""
    chunks: list[tuple[bool, str]] = []
    buf = []
    quote: str | None = None
    i = 0
    while i < len(sql):
        ch = sql[i]
        if quote is None:
            if ch in ("'", '"'):
                if buf:
                    chunks.append((False, "".join(buf)))
                buf = [ch]
                quote = ch
            else:
                buf.append(ch)
        else:
            buf.append(ch)
            if ch == quote:
                # doubled quote is an escaped quote inside the literal
                if i + 1 < len(sql) and sql[i + 1] == quote:
                    buf.append(quote)
                    i += 1
                else:
                    chunks.append((True, "".join(buf)))
                    buf = []
                    quote = None
        i += 1
    if buf:
        if quote is not None:
            raise ValueError("unterminated string literal in SQL")
        chunks.append((False, "".join(buf)))
    return chunks


def prepare_sqlite(sql: str) -> str:
    return sql


def prepare_postgres(sql: str) -> str:
    out = []
    for is_literal, text in _split_literals(sql):
        text = text.replace("%", "%%")
        if not is_literal:
            text = text.replace("?", "%s")
        out.append(text)
    prepared = "".join(out).strip().rstrip(";").rstrip()
    if prepared[:6].upper() == "INSERT" and not _RETURNING_RE.search(prepared):
        prepared += " RETURNING id"
    return prepared


# ---------------- sessions ----------------

class Session:
    """A single open connection. Not thread-safe; use within one request."""

    dialect = ""

    def __init__(self, conn):
        self.conn = conn

    def query_many(self, sql: str, params: Params = ()) -> list[dict]:
        raise NotImplementedError

    def query_one(self, sql: str, params: Params = ()) -> Optional[dict]:
        raise NotImplementedError

    def execute(self, sql: str, params: Params = ()) -> ExecResult:
        raise NotImplementedError

    def execute_script(self, script: str) -> None:
        raise NotImplementedError


class SqliteSession(Session):
    dialect = "sqlite"

    def query_many(self, sql: str, params: Params = ()) -> list[dict]:
        return [dict(r) for r in self.conn.execute(prepare_sqlite(sql), tuple(params)).fetchall()]

    def query_one(self, sql: str, params: Params = ()) -> Optional[dict]:
        row = self.conn.execute(prepare_sqlite(sql), tuple(params)).fetchone()
        return dict(row) if row is not None else None

    def execute(self, sql: str, params: Params = ()) -> ExecResult:
        cur = self.conn.execute(prepare_sqlite(sql), tuple(params))
        return ExecResult(cur.lastrowid, cur.rowcount)

    def execute_script(self, script: str) -> None:
        self.conn.executescript(script)


class PostgresSession(Session):
    dialect = "postgres"

    def query_many(self, sql: str, params: Params = ()) -> list[dict]:
        with self.conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(prepare_postgres(sql), tuple(params))
            return [dict(r) for r in cur.fetchall()]

    def query_one(self, sql: str, params: Params = ()) -> Optional[dict]:
        with self.conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(prepare_postgres(sql), tuple(params))
            row = cur.fetchone()
            return dict(row) if row is not None else None

    def execute(self, sql: str, params: Params = ()) -> ExecResult:
        prepared = prepare_postgres(sql)
        with self.conn.cursor() as cur:
            cur.execute(prepared, tuple(params))
            last_id = None
            if _RETURNING_RE.search(prepared) and cur.description is not None:
                row = cur.fetchone()
                last_id = int(row[0]) if row and row[0] is not None else None
            return ExecResult(last_id, cur.rowcount)

    def execute_script(self, script: str) -> None:
        with self.conn.cursor() as cur:
            cur.execute(script)


# ---------------- databases ----------------

class Database:
    """Engine handle with an explicit open/close lifecycle."""

    dialect = ""

    def open(self) -> "Database":
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def connect(self):
        """Context manager yielding a session where every statement commits on its own."""
        raise NotImplementedError

    def transaction(self):
        """Context manager yielding a session whose statements commit together or not at all."""
        raise NotImplementedError

    def query_many(self, sql: str, params: Params = ()) -> list[dict]:
        with self.connect() as s:
            return s.query_many(sql, params)

    def query_one(self, sql: str, params: Params = ()) -> Optional[dict]:
        with self.connect() as s:
            return s.query_one(sql, params)

    def execute(self, sql: str, params: Params = ()) -> ExecResult:
        with self.connect() as s:
            return s.execute(sql, params)

    def execute_script(self, script: str) -> None:
        with self.connect() as s:
            s.execute_script(script)

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()


class SqliteDatabase(Database):
    dialect = "sqlite"

    def __init__(self, path: str):
        self.path = path
        self._opened = False

    def __repr__(self) -> str:
        return f"SqliteDatabase({self.path!r})"

    def open(self) -> "SqliteDatabase":
        if self._opened:
            return self
        dirn = os.path.dirname(self.path) or "."
        os.makedirs(dirn, exist_ok=True)
        conn = sqlite3.connect(self.path)
        try:
            conn.execute("PRAGMA journal_mode=WAL;")
        finally:
            conn.close()
        self._opened = True
        logger.info("sqlite database opened at %s", self.path)
        return self

    def close(self) -> None:
        self._opened = False

    def _new_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connect(self) -> Iterator[SqliteSession]:
        conn = self._new_conn()
        try:
            yield SqliteSession(conn)
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[SqliteSession]:
        conn = self._new_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield SqliteSession(conn)
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()


class PostgresDatabase(Database):
    dialect = "postgres"

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10):
        self.dsn = dsn
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None

    def __repr__(self) -> str:
        return "PostgresDatabase(<dsn>)"

    def open(self) -> "PostgresDatabase":
        if self._pool is None:
            self._pool = psycopg2.pool.ThreadedConnectionPool(self.minconn, self.maxconn, dsn=self.dsn)
            logger.info("postgres pool opened (min=%d, max=%d)", self.minconn, self.maxconn)
        return self

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None

    def _pool_or_raise(self) -> psycopg2.pool.ThreadedConnectionPool:
        if self._pool is None:
            raise RuntimeError("database is not open")
        return self._pool

    @contextmanager
    def connect(self) -> Iterator[PostgresSession]:
        with self.transaction() as s:
            yield s

    @contextmanager
    def transaction(self) -> Iterator[PostgresSession]:
        pool = self._pool_or_raise()
        conn = pool.getconn()
        try:
            try:
                yield PostgresSession(conn)
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            pool.putconn(conn)


# Anything repositories can run statements against.
Executor = Union[Database, Session]


def lock_key(tx: Session, key: str) -> None:
    """Serialise writers on `key` until `tx` ends.

    SQLite transactions already start with BEGIN IMMEDIATE, so only
    PostgreSQL takes an advisory lock here.
    """
    if tx.dialect == "postgres":
        tx.query_one("SELECT pg_advisory_xact_lock(hashtext(?))", (key,))
