# tracklist/services/seed_svc.py
import datetime as dt
import logging
import os
import time

import pandas as pd

from ..gateway import Database
from ..logs import LogContext
from .auth_svc import DEMO_USERNAME
from .grocery_svc import now_iso, replace_groceries_in
from .task_svc import replace_tasks_in

logger = logging.getLogger(__name__)

SEEDS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "seeds")


def _flag(v) -> bool:
    if pd.isna(v):
        return False
    return str(v).strip().lower() in ("1", "true", "yes", "y")


def load_demo_seeds(groceries_csv: str | None = None, tasks_csv: str | None = None) -> tuple[list[dict], list[dict]]:
    """Read the demo CSVs into store payloads.
       demo_groceries.csv: name, purchased(0/1)
       demo_tasks.csv: name, completed(0/1), due_in_days (blank = no due date)
    """
    g_df = pd.read_csv(groceries_csv or os.path.join(SEEDS_DIR, "demo_groceries.csv"))
    t_df = pd.read_csv(tasks_csv or os.path.join(SEEDS_DIR, "demo_tasks.csv"))

    stamp = now_iso()
    groceries = []
    for _, r in g_df.iterrows():
        groceries.append({
            "name": str(r["name"]).strip(),
            "expanded": False,
            "purchases": [stamp] if _flag(r.get("purchased")) else [],
        })

    today = dt.date.today()
    base_id = int(time.time() * 1000)
    tasks = []
    for i, (_, r) in enumerate(t_df.iterrows()):
        days = r.get("due_in_days")
        due = None if pd.isna(days) else (today + dt.timedelta(days=int(days))).isoformat()
        tasks.append({
            "id": base_id + i,
            "name": str(r["name"]).strip(),
            "completed": _flag(r.get("completed")),
            "dueDate": due,
        })
    return groceries, tasks


def seed_demo_data(db: Database, groceries_csv: str | None = None, tasks_csv: str | None = None) -> dict:
    """Wipe the demo account and load fresh sample data, in one transaction."""
    log = LogContext(db, "SEED_DEMO", user=DEMO_USERNAME)
    groceries, tasks = load_demo_seeds(groceries_csv, tasks_csv)
    with db.transaction() as tx:
        g = replace_groceries_in(tx, DEMO_USERNAME, groceries)
        t = replace_tasks_in(tx, DEMO_USERNAME, tasks)
    out = {"groceries": len(g), "tasks": len(t)}
    log.set_after(out)
    log.write("OK")
    logger.info("demo data seeded: %s", out)
    return out
