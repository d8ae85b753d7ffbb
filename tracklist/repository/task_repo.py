from __future__ import annotations

from typing import Optional

from ..domain.models import Owner
from ..gateway import Executor

DDL = {
    "sqlite": """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER NOT NULL,
        username TEXT NOT NULL,
        name TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        due_date TEXT,
        PRIMARY KEY (username, id)
    );
    """,
    "postgres": """
    CREATE TABLE IF NOT EXISTS tasks (
        id BIGINT NOT NULL,
        username TEXT NOT NULL,
        name TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        due_date TEXT,
        PRIMARY KEY (username, id)
    );
    """,
}

_COLS = "id, name, completed, due_date"


def ensure_schema(db: Executor):
    db.execute_script(DDL[db.dialect])


def list_all(db: Executor, owner: Owner):
    return db.query_many(
        f"SELECT {_COLS} FROM tasks WHERE username=? ORDER BY LOWER(name) ASC, id ASC",
        (owner,),
    )


def get_one(db: Executor, owner: Owner, task_id: int) -> Optional[dict]:
    return db.query_one(f"SELECT {_COLS} FROM tasks WHERE id=? AND username=?", (task_id, owner))


def max_id(db: Executor, owner: Owner) -> int:
    row = db.query_one("SELECT MAX(id) AS m FROM tasks WHERE username=?", (owner,))
    return int(row["m"]) if row and row["m"] is not None else 0


def insert(db: Executor, owner: Owner, task_id: int, name: str, completed: bool, due_date: Optional[str]):
    db.execute(
        "INSERT INTO tasks(id, username, name, completed, due_date) VALUES(?, ?, ?, ?, ?)",
        (task_id, owner, name, 1 if completed else 0, due_date),
    )


def update(db: Executor, owner: Owner, task_id: int, name: str, completed: bool, due_date: Optional[str]) -> int:
    """Write the full row; callers merge partial updates first."""
    res = db.execute(
        "UPDATE tasks SET name=?, completed=?, due_date=? WHERE id=? AND username=?",
        (name, 1 if completed else 0, due_date, task_id, owner),
    )
    return res.rowcount


def set_completed(db: Executor, owner: Owner, task_id: int, completed: bool) -> int:
    res = db.execute(
        "UPDATE tasks SET completed=? WHERE id=? AND username=?",
        (1 if completed else 0, task_id, owner),
    )
    return res.rowcount


def delete(db: Executor, owner: Owner, task_id: int) -> int:
    return db.execute("DELETE FROM tasks WHERE id=? AND username=?", (task_id, owner)).rowcount


def delete_all(db: Executor, owner: Owner) -> int:
    return db.execute("DELETE FROM tasks WHERE username=?", (owner,)).rowcount
