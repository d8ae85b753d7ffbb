from __future__ import annotations

from fastapi import APIRouter, Depends

from ..db import get_db
from ..dependencies import get_owner
from ..gateway import Database
from ..logs import search_logs

router = APIRouter()


@router.get("/api/logs/search")
def api_logs_search(
    page: int = 1,
    size: int = 20,
    action: str | None = None,
    query: str | None = None,
    ts_from: str | None = None,
    ts_to: str | None = None,
    db: Database = Depends(get_db),
    owner: str = Depends(get_owner),
):
    total, items = search_logs(db, owner, query, action, ts_from, ts_to, page, size)
    return {"total": total, "items": items}
