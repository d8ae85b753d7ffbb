from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel

from ..db import get_db
from ..domain.models import MAX_TASK_ID
from ..dependencies import get_owner
from ..gateway import Database
from ..logs import LogContext
from ..services.task_svc import (
    add_task,
    list_tasks,
    remove_task,
    replace_tasks,
    reset_tasks,
    toggle_task,
    update_task,
)
from .errors import not_found, to_http_error

router = APIRouter()


class TaskCreate(BaseModel):
    name: Optional[str] = None
    dueDate: Optional[str] = None


class TaskUpdate(BaseModel):
    name: Optional[str] = None
    completed: Optional[bool] = None
    dueDate: Optional[str] = None


class TaskBulk(BaseModel):
    tasks: Any = None


@router.get("/api/tasks")
def api_tasks_list(db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    try:
        return [t.to_dict() for t in list_tasks(db, owner)]
    except Exception as e:
        raise to_http_error(e)


@router.post("/api/tasks", status_code=201)
def api_tasks_add(body: TaskCreate, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "TASK_ADD", user=owner)
    log.set_payload(body.model_dump())
    if not (body.name or "").strip():
        log.write("ERROR", "Task name required")
        raise HTTPException(status_code=400, detail="Task name required")
    try:
        task = add_task(db, owner, body.name, body.dueDate)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_entity("TASK", task.id)
    log.set_after(task.to_dict())
    log.write("OK")
    return task.to_dict()


@router.put("/api/tasks/{task_id}")
def api_tasks_update(body: TaskUpdate, task_id: int = Path(..., ge=0, le=MAX_TASK_ID), db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "TASK_UPDATE", user=owner)
    updates = body.model_dump(exclude_unset=True)
    log.set_entity("TASK", task_id)
    log.set_payload(updates)
    try:
        task = update_task(db, owner, task_id, updates)
    except Exception as e:
        raise to_http_error(e, log)
    if task is None:
        raise not_found("Task", log)
    log.set_after(task.to_dict())
    log.write("OK")
    return task.to_dict()


@router.post("/api/tasks/{task_id}/toggle")
def api_tasks_toggle(task_id: int = Path(..., ge=0, le=MAX_TASK_ID), db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "TASK_TOGGLE", user=owner)
    log.set_entity("TASK", task_id)
    try:
        task = toggle_task(db, owner, task_id)
    except Exception as e:
        raise to_http_error(e, log)
    if task is None:
        raise not_found("Task", log)
    log.set_after(task.to_dict())
    log.write("OK")
    return task.to_dict()


@router.put("/api/tasks")
def api_tasks_replace(body: TaskBulk, db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "TASK_REPLACE_ALL", user=owner)
    if not isinstance(body.tasks, list):
        log.write("ERROR", "Tasks must be an array")
        raise HTTPException(status_code=400, detail="Tasks must be an array")
    log.set_payload({"count": len(body.tasks)})
    try:
        stored = replace_tasks(db, owner, body.tasks)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_after({"count": len(stored)})
    log.write("OK")
    return [t.to_dict() for t in stored]


@router.delete("/api/tasks/{task_id}")
def api_tasks_delete(task_id: int = Path(..., ge=0, le=MAX_TASK_ID), db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "TASK_DELETE", user=owner)
    log.set_entity("TASK", task_id)
    try:
        removed = remove_task(db, owner, task_id)
    except Exception as e:
        raise to_http_error(e, log)
    if not removed:
        raise not_found("Task", log)
    log.write("OK")
    return {"message": "ok"}


@router.delete("/api/tasks")
def api_tasks_reset(db: Database = Depends(get_db), owner: str = Depends(get_owner)):
    log = LogContext(db, "TASK_RESET", user=owner)
    try:
        removed = reset_tasks(db, owner)
    except Exception as e:
        raise to_http_error(e, log)
    log.set_after({"removed": removed})
    log.write("OK")
    return {"message": "Tasks reset", "removed": removed}
