from __future__ import annotations

# tracklist/db.py
import logging
import os

import yaml
from fastapi import Request

from .gateway import Database, PostgresDatabase, SqliteDatabase

logger = logging.getLogger(__name__)

# Engine selection:
#   DATABASE_URL set -> PostgreSQL, otherwise SQLite.
# SQLite path resolution order:
# 1) TRACKLIST_DB_PATH
# 2) config.yaml test_db_path (test environment only)
# 3) PERSISTENT_DISK_PATH/tracklist.db (mounted persistent volume)
# 4) config.yaml db_path
# 5) <project>/data/tracklist.db
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_LOCAL_DB = os.path.join(_PROJECT_ROOT, "data", "tracklist.db")
DB_FILENAME = "tracklist.db"


def _read_config_yaml() -> dict:
    cfg_path = os.environ.get("TRACKLIST_CONFIG") or os.path.join(_PROJECT_ROOT, "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("ignoring unreadable config %s: %s", cfg_path, e)
        return {}
    out = {}
    for k in ("db_path", "test_db_path", "database_url"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = v.strip()
    return out


def _is_test_env() -> bool:
    return (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)


def get_database_url() -> str | None:
    return os.environ.get("DATABASE_URL") or _read_config_yaml().get("database_url")


def get_db_path() -> str:
    env_path = os.environ.get("TRACKLIST_DB_PATH")
    persistent_dir = os.environ.get("PERSISTENT_DISK_PATH")
    cfg = _read_config_yaml()

    if env_path:
        path = env_path
    elif _is_test_env() and cfg.get("test_db_path"):
        path = cfg["test_db_path"]
    elif persistent_dir:
        path = os.path.join(persistent_dir, DB_FILENAME)
    elif cfg.get("db_path"):
        path = cfg["db_path"]
    else:
        path = _LOCAL_DB

    dirn = os.path.dirname(path) or "."
    os.makedirs(dirn, exist_ok=True)
    return path


def create_database() -> Database:
    """Build (but do not open) the gateway selected by the environment."""
    url = get_database_url()
    if url:
        return PostgresDatabase(url)
    return SqliteDatabase(get_db_path())


def get_db(request: Request) -> Database:
    """FastAPI dependency: the gateway opened at startup."""
    return request.app.state.db
