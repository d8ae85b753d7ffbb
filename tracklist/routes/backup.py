from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..db import get_db
from ..dependencies import get_owner
from ..gateway import Database
from ..logs import LogContext
from ..services.backup_svc import export_data, import_data
from .errors import to_http_error

router = APIRouter()


class ImportBody(BaseModel):
    groceries: Any = None
    tasks: Any = None


@router.get("/api/export")
def api_export(db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    try:
        return export_data(db, owner)
    except Exception as e:
        raise to_http_error(e)


@router.post("/api/import")
def api_import(body: ImportBody, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "IMPORT", user=owner)
    if body.groceries is None or body.tasks is None:
        log.write("ERROR", "Invalid backup file format")
        raise HTTPException(status_code=400, detail="Invalid backup file format")
    try:
        counts = import_data(db, owner, body.groceries, body.tasks)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_after(counts)
    log.write("OK")
    return {"message": "ok", **counts}
