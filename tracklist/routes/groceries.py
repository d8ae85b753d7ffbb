from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..db import get_db
from ..dependencies import get_owner
from ..gateway import Database
from ..logs import LogContext
from ..services.grocery_svc import (
    add_grocery,
    list_groceries,
    record_purchase,
    remove_grocery,
    replace_groceries,
    reset_groceries,
    update_grocery,
)
from .errors import not_found, to_http_error

router = APIRouter()


class GroceryCreate(BaseModel):
    name: Optional[str] = None


class GroceryUpdate(BaseModel):
    name: Optional[str] = None
    expanded: Optional[bool] = None
    purchases: Optional[list[str]] = None


class GroceryBulk(BaseModel):
    groceries: Any = None


@router.get("/api/groceries")
def api_groceries_list(db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    try:
        return [g.to_dict() for g in list_groceries(db, owner)]
    except Exception as e:
        raise to_http_error(e)


@router.post("/api/groceries", status_code=201)
def api_groceries_add(body: GroceryCreate, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "GROCERY_ADD", user=owner)
    log.set_payload(body.model_dump())
    if not (body.name or "").strip():
        log.write("ERROR", "Name is required")
        raise HTTPException(status_code=400, detail="Name is required")
    try:
        item = add_grocery(db, owner, body.name)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_entity("GROCERY", item.id)
    log.set_after(item.to_dict())
    log.write("OK")
    return item.to_dict()


# names may contain "/"; this route must stay ahead of the {name:path} ones
@router.post("/api/groceries/{name:path}/purchase")
def api_groceries_purchase(name: str, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "GROCERY_PURCHASE", user=owner)
    log.set_payload({"name": name})
    try:
        item = record_purchase(db, owner, name)
    except Exception as e:
        raise to_http_error(e, log)
    if item is None:
        raise not_found("Item", log)
    log.set_entity("GROCERY", item.id)
    log.set_after(item.to_dict())
    log.write("OK")
    return item.to_dict()


@router.put("/api/groceries/{name:path}")
def api_groceries_update(name: str, body: GroceryUpdate, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "GROCERY_UPDATE", user=owner)
    updates = body.model_dump(exclude_unset=True)
    log.set_payload({"name": name, "updates": updates})
    try:
        item = update_grocery(db, owner, name, updates)
    except Exception as e:
        raise to_http_error(e, log)
    if item is None:
        raise not_found("Item", log)
    log.set_entity("GROCERY", item.id)
    log.set_after(item.to_dict())
    log.write("OK")
    return item.to_dict()


@router.put("/api/groceries")
def api_groceries_replace(body: GroceryBulk, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "GROCERY_REPLACE_ALL", user=owner)
    if not isinstance(body.groceries, list):
        log.write("ERROR", "Groceries must be an array")
        raise HTTPException(status_code=400, detail="Groceries must be an array")
    log.set_payload({"count": len(body.groceries)})
    try:
        stored = replace_groceries(db, owner, body.groceries)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_after({"count": len(stored)})
    log.write("OK")
    return [g.to_dict() for g in stored]


@router.delete("/api/groceries/{name:path}")
def api_groceries_delete(name: str, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "GROCERY_DELETE", user=owner)
    log.set_payload({"name": name})
    try:
        removed = remove_grocery(db, owner, name)
    except Exception as e:
        raise to_http_error(e, log)
    if not removed:
        raise not_found("Item", log)
    log.write("OK")
    return {"message": "ok"}


@router.delete("/api/groceries")
def api_groceries_reset(db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "GROCERY_RESET", user=owner)
    try:
        removed = reset_groceries(db, owner)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_after({"removed": removed})
    log.write("OK")
    return {"message": "Groceries reset", "removed": removed}
