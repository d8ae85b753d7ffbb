from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Iterable, Optional

from ..domain.models import DuplicateItemError, GroceryItem, as_flag, name_key, require_owner
from ..gateway import Database, Executor, Session, lock_key
from ..repository import grocery_repo

logger = logging.getLogger(__name__)


def now_iso() -> str:
    """UTC timestamp in the browser's toISOString() shape, e.g. 2025-01-31T08:00:00.000Z."""
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _to_item(db: Executor, row: dict) -> GroceryItem:
    return GroceryItem(
        id=int(row["id"]),
        name=row["name"],
        expanded=bool(row["expanded"]),
        purchases=grocery_repo.list_purchases_for(db, int(row["id"])),
    )


def ensure_grocery_schema(db: Database):
    grocery_repo.ensure_schema(db)


def list_groceries(db: Database, owner: str) -> list[GroceryItem]:
    owner = require_owner(owner)
    with db.connect() as s:
        rows = grocery_repo.list_items(s, owner)
        history: dict[int, list[str]] = {}
        for p in grocery_repo.list_purchases(s, owner):
            history.setdefault(int(p["grocery_id"]), []).append(p["purchased_at"])
    items = [
        GroceryItem(
            id=int(r["id"]),
            name=r["name"],
            expanded=bool(r["expanded"]),
            purchases=history.get(int(r["id"]), []),
        )
        for r in rows
    ]
    logger.info("retrieved %d groceries for user=%s", len(items), owner)
    return items


def get_grocery(db: Database, owner: str, name: str) -> Optional[GroceryItem]:
    owner = require_owner(owner)
    with db.connect() as s:
        row = grocery_repo.find_by_name(s, owner, name)
        return _to_item(s, row) if row else None


def add_grocery(db: Database, owner: str, name: str) -> GroceryItem:
    owner = require_owner(owner)
    name = (name or "").strip()
    if not name:
        raise ValueError("Name is required")
    with db.transaction() as tx:
        lock_key(tx, f"groceries:{owner}")
        if grocery_repo.find_by_name(tx, owner, name):
            raise DuplicateItemError(f"Item already exists: {name}")
        gid = grocery_repo.insert_item(tx, owner, name)
    logger.info("added grocery %r for user=%s", name, owner)
    return GroceryItem(id=gid, name=name, expanded=False, purchases=[])


def record_purchase(db: Database, owner: str, name: str, when: Optional[str] = None) -> Optional[GroceryItem]:
    owner = require_owner(owner)
    with db.transaction() as tx:
        row = grocery_repo.find_by_name(tx, owner, name)
        if not row:
            logger.info("grocery %r not found for user=%s", name, owner)
            return None
        grocery_repo.insert_purchase(tx, int(row["id"]), when or now_iso())
        item = _to_item(tx, row)
    logger.info("recorded purchase for %r (user=%s)", item.name, owner)
    return item


def update_grocery(db: Database, owner: str, name: str, updates: dict[str, Any]) -> Optional[GroceryItem]:
    """Merge `name`, `expanded` and `purchases` into an existing item.

    Keys absent from `updates` (or set to None) are left as they are, except
    `purchases`: a list replaces the whole history and an explicit None clears it.
    """
    owner = require_owner(owner)
    new_name = updates.get("name")
    if new_name is not None:
        new_name = str(new_name).strip()
        if not new_name:
            raise ValueError("Name is required")
    expanded = updates.get("expanded")
    if expanded is not None:
        expanded = as_flag(expanded, "expanded")
    replace_history = "purchases" in updates
    purchases = updates.get("purchases") or []
    if not isinstance(purchases, list):
        raise ValueError("purchases must be an array")

    with db.transaction() as tx:
        row = grocery_repo.find_by_name(tx, owner, name)
        if not row:
            logger.info("grocery %r not found for user=%s", name, owner)
            return None
        gid = int(row["id"])
        if new_name is not None:
            clash = grocery_repo.find_by_name(tx, owner, new_name)
            if clash and int(clash["id"]) != gid:
                raise DuplicateItemError(f"Item already exists: {new_name}")
        if replace_history:
            grocery_repo.delete_purchases(tx, gid)
            grocery_repo.insert_purchases(tx, gid, [str(p) for p in purchases])
        grocery_repo.update_item(tx, owner, gid, new_name, expanded)
        item = _to_item(tx, grocery_repo.find_by_name(tx, owner, new_name or row["name"]))
    logger.info("updated grocery %r for user=%s", name, owner)
    return item


def _check_unique_names(items: list[dict]):
    seen: set[str] = set()
    for it in items:
        key = name_key(it["name"])
        if key in seen:
            raise DuplicateItemError(f"Item already exists: {it['name']}")
        seen.add(key)


def normalize_items(items: Iterable[Any]) -> list[dict]:
    out = []
    for it in items:
        if not isinstance(it, dict):
            raise ValueError("Each grocery must be an object")
        name = str(it.get("name") or "").strip()
        if not name:
            raise ValueError("Name is required")
        purchases = it.get("purchases") or []
        if not isinstance(purchases, list):
            raise ValueError("purchases must be an array")
        out.append({
            "name": name,
            "expanded": as_flag(it.get("expanded") or False, "expanded"),
            "purchases": [str(p) for p in purchases],
        })
    return out


def replace_groceries_in(tx: Session, owner: str, items: Iterable[Any]) -> list[GroceryItem]:
    """Delete-all-then-reinsert on an already open transaction."""
    owner = require_owner(owner)
    clean = normalize_items(items)
    _check_unique_names(clean)
    lock_key(tx, f"groceries:{owner}")
    grocery_repo.delete_all(tx, owner)
    stored = []
    for it in clean:
        gid = grocery_repo.insert_item(tx, owner, it["name"], it["expanded"])
        grocery_repo.insert_purchases(tx, gid, it["purchases"])
        stored.append(GroceryItem(id=gid, name=it["name"], expanded=it["expanded"], purchases=it["purchases"]))
    return stored


def replace_groceries(db: Database, owner: str, items: Iterable[Any]) -> list[GroceryItem]:
    with db.transaction() as tx:
        stored = replace_groceries_in(tx, owner, items)
    logger.info("replaced all groceries for user=%s with %d items", owner, len(stored))
    return stored


def reset_groceries(db: Database, owner: str) -> int:
    owner = require_owner(owner)
    with db.transaction() as tx:
        removed = grocery_repo.delete_all(tx, owner)
    logger.info("reset groceries for user=%s (%d removed)", owner, removed)
    return removed


def remove_grocery(db: Database, owner: str, name: str) -> bool:
    owner = require_owner(owner)
    with db.transaction() as tx:
        row = grocery_repo.find_by_name(tx, owner, name)
        if not row:
            logger.info("grocery %r not found for user=%s", name, owner)
            return False
        grocery_repo.delete_item(tx, owner, int(row["id"]))
    logger.info("deleted grocery %r for user=%s", name, owner)
    return True
