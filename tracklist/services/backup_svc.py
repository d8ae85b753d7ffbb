from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..gateway import Database
from .grocery_svc import list_groceries, replace_groceries_in
from .task_svc import list_tasks, replace_tasks_in

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


def export_data(db: Database, owner: str) -> dict[str, Any]:
    return {
        "groceries": [g.to_dict() for g in list_groceries(db, owner)],
        "tasks": [t.to_dict() for t in list_tasks(db, owner)],
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "version": BACKUP_VERSION,
    }


def import_data(db: Database, owner: str, groceries: list, tasks: list) -> dict[str, int]:
    """Replace both lists for the owner; nothing is written unless both succeed."""
    if not isinstance(groceries, list) or not isinstance(tasks, list):
        raise ValueError("Invalid data format - groceries and tasks must be arrays")
    with db.transaction() as tx:
        g = replace_groceries_in(tx, owner, groceries)
        t = replace_tasks_in(tx, owner, tasks)
    logger.info("imported %d groceries and %d tasks for user=%s", len(g), len(t), owner)
    return {"groceries": len(g), "tasks": len(t)}
