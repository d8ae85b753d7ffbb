from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional

from ..domain.models import MAX_TASK_ID, DuplicateItemError, Owner, Task, as_flag, require_owner
from ..gateway import Database, Executor, Session, lock_key
from ..repository import task_repo

logger = logging.getLogger(__name__)

_UNSET = object()


def _to_task(row: dict) -> Task:
    return Task(
        id=int(row["id"]),
        name=row["name"],
        completed=bool(row["completed"]),
        due_date=row["due_date"],
    )


def next_task_id(db: Executor, owner: Owner) -> int:
    # wall-clock millis, bumped past the owner's newest id
    return max(int(time.time() * 1000), task_repo.max_id(db, owner) + 1)


def ensure_task_schema(db: Database):
    task_repo.ensure_schema(db)


def list_tasks(db: Database, owner: str) -> list[Task]:
    owner = require_owner(owner)
    tasks = [_to_task(r) for r in task_repo.list_all(db, owner)]
    logger.info("retrieved %d tasks for user=%s", len(tasks), owner)
    return tasks


def get_task(db: Database, owner: str, task_id: int) -> Optional[Task]:
    owner = require_owner(owner)
    row = task_repo.get_one(db, owner, int(task_id))
    return _to_task(row) if row else None


def add_task(db: Database, owner: str, name: str, due_date: Optional[str] = None) -> Task:
    owner = require_owner(owner)
    name = (name or "").strip()
    if not name:
        raise ValueError("Task name required")
    with db.transaction() as tx:
        # two inserts in the same millisecond would otherwise read the same max id
        lock_key(tx, f"tasks:{owner}")
        task_id = next_task_id(tx, owner)
        task_repo.insert(tx, owner, task_id, name, False, due_date or None)
    logger.info("added task %r for user=%s", name, owner)
    return Task(id=task_id, name=name, completed=False, due_date=due_date or None)


def update_task(db: Database, owner: str, task_id: int, updates: dict[str, Any]) -> Optional[Task]:
    """Merge `name`, `completed` and `dueDate` into a task.

    Missing keys keep the stored value. `dueDate` present with None clears it;
    `name` and `completed` ignore None.
    """
    owner = require_owner(owner)
    task_id = int(task_id)
    with db.transaction() as tx:
        row = task_repo.get_one(tx, owner, task_id)
        if not row:
            logger.info("task %s not found for user=%s", task_id, owner)
            return None
        cur = _to_task(row)
        name = updates.get("name")
        if name is not None:
            name = str(name).strip()
            if not name:
                raise ValueError("Task name required")
            cur.name = name
        if updates.get("completed") is not None:
            cur.completed = as_flag(updates["completed"], "completed")
        due = updates.get("dueDate", _UNSET)
        if due is not _UNSET:
            cur.due_date = due or None
        task_repo.update(tx, owner, task_id, cur.name, cur.completed, cur.due_date)
    logger.info("updated task %s for user=%s", task_id, owner)
    return cur


def toggle_task(db: Database, owner: str, task_id: int) -> Optional[Task]:
    owner = require_owner(owner)
    task_id = int(task_id)
    with db.transaction() as tx:
        row = task_repo.get_one(tx, owner, task_id)
        if not row:
            logger.info("task %s not found for user=%s", task_id, owner)
            return None
        cur = _to_task(row)
        cur.completed = not cur.completed
        task_repo.set_completed(tx, owner, task_id, cur.completed)
    logger.info("toggled task %s for user=%s", task_id, owner)
    return cur


def normalize_tasks(tasks: Iterable[Any]) -> list[dict]:
    out = []
    for t in tasks:
        if not isinstance(t, dict):
            raise ValueError("Each task must be an object")
        name = str(t.get("name") or "").strip()
        if not name:
            raise ValueError("Task name required")
        tid = t.get("id")
        if tid is not None:
            try:
                tid = int(tid)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid task id: {tid!r}")
            if not 0 <= tid <= MAX_TASK_ID:
                raise ValueError(f"Invalid task id: {tid}")
        out.append({
            "id": tid,
            "name": name,
            "completed": as_flag(t.get("completed") or False, "completed"),
            "dueDate": t.get("dueDate") or None,
        })
    return out


def replace_tasks_in(tx: Session, owner: str, tasks: Iterable[Any]) -> list[Task]:
    """Delete-all-then-reinsert on an already open transaction."""
    owner = require_owner(owner)
    clean = normalize_tasks(tasks)
    ids = [t["id"] for t in clean if t["id"] is not None]
    if len(ids) != len(set(ids)):
        raise DuplicateItemError("Duplicate task id")
    if any(t["id"] is None for t in clean) and max(ids, default=0) >= MAX_TASK_ID:
        raise ValueError("No task id left above the given ids")
    lock_key(tx, f"tasks:{owner}")
    task_repo.delete_all(tx, owner)
    stored = []
    next_id = max([int(time.time() * 1000)] + [i + 1 for i in ids])
    for t in clean:
        tid = t["id"]
        if tid is None:
            tid = next_id
            next_id += 1
        task_repo.insert(tx, owner, tid, t["name"], t["completed"], t["dueDate"])
        stored.append(Task(id=tid, name=t["name"], completed=t["completed"], due_date=t["dueDate"]))
    return stored


def replace_tasks(db: Database, owner: str, tasks: Iterable[Any]) -> list[Task]:
    with db.transaction() as tx:
        stored = replace_tasks_in(tx, owner, tasks)
    logger.info("replaced all tasks for user=%s with %d items", owner, len(stored))
    return stored


def reset_tasks(db: Database, owner: str) -> int:
    owner = require_owner(owner)
    with db.transaction() as tx:
        removed = task_repo.delete_all(tx, owner)
    logger.info("reset tasks for user=%s (%d removed)", owner, removed)
    return removed


def remove_task(db: Database, owner: str, task_id: int) -> bool:
    owner = require_owner(owner)
    removed = task_repo.delete(db, owner, int(task_id))
    logger.info("deleted task %s for user=%s (rows=%d)", task_id, owner, removed)
    return removed > 0
