from __future__ import annotations

from typing import Iterable, Optional

from ..domain.models import Owner, name_key
from ..gateway import Executor

DDL = {
    "sqlite": """
    CREATE TABLE IF NOT EXISTS groceries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL,
        name TEXT NOT NULL,
        name_key TEXT NOT NULL,
        expanded INTEGER NOT NULL DEFAULT 0
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ux_groceries_owner_key ON groceries(username, name_key);
    CREATE TABLE IF NOT EXISTS grocery_purchases (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        grocery_id INTEGER NOT NULL,
        purchased_at TEXT NOT NULL,
        FOREIGN KEY (grocery_id) REFERENCES groceries(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS idx_purchases_grocery ON grocery_purchases(grocery_id);
    """,
    "postgres": """
    CREATE TABLE IF NOT EXISTS groceries (
        id SERIAL PRIMARY KEY,
        username TEXT NOT NULL,
        name TEXT NOT NULL,
        name_key TEXT NOT NULL,
        expanded INTEGER NOT NULL DEFAULT 0
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ux_groceries_owner_key ON groceries(username, name_key);
    CREATE TABLE IF NOT EXISTS grocery_purchases (
        id SERIAL PRIMARY KEY,
        grocery_id INTEGER NOT NULL REFERENCES groceries(id) ON DELETE CASCADE,
        purchased_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_purchases_grocery ON grocery_purchases(grocery_id);
    """,
}


def ensure_schema(db: Executor):
    db.execute_script(DDL[db.dialect])


def list_items(db: Executor, owner: Owner):
    return db.query_many(
        "SELECT id, name, expanded FROM groceries WHERE username=? ORDER BY name_key ASC, id ASC",
        (owner,),
    )


def list_purchases(db: Executor, owner: Owner):
    """All purchase rows of the owner, in insertion order."""
    return db.query_many(
        "SELECT p.grocery_id, p.purchased_at FROM grocery_purchases p "
        "JOIN groceries g ON g.id = p.grocery_id "
        "WHERE g.username=? ORDER BY p.id ASC",
        (owner,),
    )


def list_purchases_for(db: Executor, grocery_id: int) -> list[str]:
    rows = db.query_many(
        "SELECT purchased_at FROM grocery_purchases WHERE grocery_id=? ORDER BY id ASC",
        (grocery_id,),
    )
    return [r["purchased_at"] for r in rows]


def find_by_name(db: Executor, owner: Owner, name: str) -> Optional[dict]:
    # SQLite LOWER() folds ASCII only, so matching goes through the stored key
    return db.query_one(
        "SELECT id, name, expanded FROM groceries WHERE username=? AND name_key=?",
        (owner, name_key(name)),
    )


def insert_item(db: Executor, owner: Owner, name: str, expanded: bool = False) -> int:
    res = db.execute(
        "INSERT INTO groceries(username, name, name_key, expanded) VALUES(?, ?, ?, ?)",
        (owner, name, name_key(name), 1 if expanded else 0),
    )
    return int(res.last_id)


def update_item(db: Executor, owner: Owner, grocery_id: int, name: Optional[str], expanded: Optional[bool]) -> int:
    res = db.execute(
        "UPDATE groceries SET name=COALESCE(?, name), name_key=COALESCE(?, name_key), "
        "expanded=COALESCE(?, expanded) WHERE id=? AND username=?",
        (
            name,
            None if name is None else name_key(name),
            None if expanded is None else (1 if expanded else 0),
            grocery_id,
            owner,
        ),
    )
    return res.rowcount


def insert_purchase(db: Executor, grocery_id: int, purchased_at: str) -> int:
    res = db.execute(
        "INSERT INTO grocery_purchases(grocery_id, purchased_at) VALUES(?, ?)",
        (grocery_id, purchased_at),
    )
    return int(res.last_id)


def insert_purchases(db: Executor, grocery_id: int, timestamps: Iterable[str]) -> None:
    for ts in timestamps:
        insert_purchase(db, grocery_id, ts)


def delete_purchases(db: Executor, grocery_id: int) -> int:
    return db.execute("DELETE FROM grocery_purchases WHERE grocery_id=?", (grocery_id,)).rowcount


def delete_item(db: Executor, owner: Owner, grocery_id: int) -> int:
    return db.execute("DELETE FROM groceries WHERE id=? AND username=?", (grocery_id, owner)).rowcount


def delete_all(db: Executor, owner: Owner) -> int:
    return db.execute("DELETE FROM groceries WHERE username=?", (owner,)).rowcount


def count_items(db: Executor, owner: Owner) -> int:
    row = db.query_one("SELECT COUNT(1) AS c FROM groceries WHERE username=?", (owner,))
    return int(row["c"]) if row else 0
