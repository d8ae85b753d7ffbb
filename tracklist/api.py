"""
FastAPI app entry point aggregating per-domain routers under tracklist/routes.
Run with `uvicorn tracklist.api:app`.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .db import create_database
from .gateway import PostgresDatabase
from .logs import ensure_log_schema
from .services.grocery_svc import ensure_grocery_schema
from .services.seed_svc import seed_demo_data
from .services.task_svc import ensure_task_schema

logger = logging.getLogger(__name__)


def _seed_enabled() -> bool:
    return os.environ.get("SEED_DEMO_DATA", "1").strip().lower() not in ("0", "false", "no", "off")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = create_database()
    try:
        db.open()
        ensure_log_schema(db)
        ensure_grocery_schema(db)
        ensure_task_schema(db)
    except Exception as e:
        logger.exception("database startup failed for %r: %s", db, e)
        if isinstance(db, PostgresDatabase):
            raise SystemExit(1)
    app.state.db = db

    if _seed_enabled():
        try:
            seed_demo_data(db)
        except Exception as e:
            logger.error("seeding demo data failed: %s", e)

    try:
        yield
    finally:
        db.close()


app = FastAPI(title="tracklist-api", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errs = exc.errors()
    msg = errs[0].get("msg", "invalid request") if errs else "invalid request"
    return JSONResponse(status_code=400, content={"detail": msg})


# Include routers (split by business domain)
from .routes import base as base_routes
from .routes import auth as auth_routes
from .routes import groceries as groceries_routes
from .routes import tasks as tasks_routes
from .routes import backup as backup_routes
from .routes import logs as logs_routes

app.include_router(base_routes.router)
app.include_router(auth_routes.router)
app.include_router(groceries_routes.router)
app.include_router(tasks_routes.router)
app.include_router(backup_routes.router)
app.include_router(logs_routes.router)
