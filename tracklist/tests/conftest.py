import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

TABLES = ["grocery_purchases", "groceries", "tasks", "operation_log"]


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    base = tmp_path_factory.mktemp("db")
    path = base / "tracklist_test.db"
    # Point the app at this temp DB and away from any local config / Postgres
    os.environ["TRACKLIST_DB_PATH"] = str(path)
    os.environ["TRACKLIST_CONFIG"] = str(base / "missing-config.yaml")
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("PERSISTENT_DISK_PATH", None)
    os.environ["SEED_DEMO_DATA"] = "0"
    return str(path)


@pytest.fixture()
def db(tmp_db_path):
    from tracklist.gateway import SqliteDatabase
    from tracklist.logs import ensure_log_schema
    from tracklist.services.grocery_svc import ensure_grocery_schema
    from tracklist.services.task_svc import ensure_task_schema

    database = SqliteDatabase(tmp_db_path).open()
    ensure_log_schema(database)
    ensure_grocery_schema(database)
    ensure_task_schema(database)
    yield database
    database.close()


@pytest.fixture()
def client(db):
    from tracklist.api import app
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def _clean_db(tmp_db_path):
    # Safety: ensure we only ever wipe the temp DB, never a real one
    assert os.environ.get("TRACKLIST_DB_PATH") == tmp_db_path, "Refusing to clean non-temp DB"
    conn = sqlite3.connect(tmp_db_path)
    try:
        for t in TABLES:
            try:
                conn.execute(f"DELETE FROM {t}")
            except sqlite3.OperationalError:
                pass  # table not created yet
        conn.commit()
    finally:
        conn.close()
    yield


def bearer(username: str) -> dict:
    from tracklist.services.auth_svc import create_access_token
    return {"Authorization": f"Bearer {create_access_token(username, False)}"}


@pytest.fixture()
def alice():
    return bearer("alice")


@pytest.fixture()
def bob():
    return bearer("bob")


@pytest.fixture()
def headers_for():
    return bearer
