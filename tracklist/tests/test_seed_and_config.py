from __future__ import annotations

import importlib
import logging
import os

from tracklist import db as db_module
from tracklist.gateway import PostgresDatabase, SqliteDatabase
from tracklist.services import grocery_svc, task_svc
from tracklist.services.seed_svc import load_demo_seeds, seed_demo_data


def test_demo_seeds_from_csv():
    groceries, tasks = load_demo_seeds()
    assert [g["name"] for g in groceries] == ["Milk", "Eggs", "Bread", "Bananas", "Chicken"]
    assert [len(g["purchases"]) for g in groceries] == [1, 1, 0, 0, 0]
    assert [t["name"] for t in tasks] == ["Buy groceries", "Clean the house", "Walk the dog"]
    assert tasks[1]["completed"] is True and tasks[1]["dueDate"] is None
    assert tasks[0]["dueDate"] is not None


def test_seed_resets_only_demo(db):
    grocery_svc.add_grocery(db, "demo", "Stale")
    grocery_svc.add_grocery(db, "alice", "Mine")

    assert seed_demo_data(db) == {"groceries": 5, "tasks": 3}
    assert seed_demo_data(db) == {"groceries": 5, "tasks": 3}

    names = [g.name for g in grocery_svc.list_groceries(db, "demo")]
    assert "Stale" not in names and len(names) == 5
    assert len(task_svc.list_tasks(db, "demo")) == 3
    assert [g.name for g in grocery_svc.list_groceries(db, "alice")] == ["Mine"]


def test_seed_on_startup(monkeypatch, db):
    monkeypatch.setenv("SEED_DEMO_DATA", "1")
    from tracklist.api import app
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        token = c.post("/api/auth/login", json={"username": "demo", "password": "demo123"}).json()["token"]
        items = c.get("/api/groceries", headers={"Authorization": f"Bearer {token}"}).json()
    assert len(items) == 5


def test_sqlite_path_resolution(monkeypatch, tmp_path):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TRACKLIST_DB_PATH", raising=False)
    monkeypatch.setenv("PERSISTENT_DISK_PATH", str(tmp_path / "disk"))
    assert db_module.get_db_path() == os.path.join(str(tmp_path / "disk"), "tracklist.db")
    assert (tmp_path / "disk").is_dir()

    monkeypatch.setenv("TRACKLIST_DB_PATH", str(tmp_path / "explicit.db"))
    created = db_module.create_database()
    assert isinstance(created, SqliteDatabase)
    assert created.path == str(tmp_path / "explicit.db")


def test_config_yaml_db_path(monkeypatch, tmp_path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(f"db_path: {tmp_path / 'from_yaml.db'}\n", encoding="utf-8")
    monkeypatch.setenv("TRACKLIST_CONFIG", str(cfg))
    monkeypatch.delenv("TRACKLIST_DB_PATH", raising=False)
    monkeypatch.delenv("PERSISTENT_DISK_PATH", raising=False)
    assert db_module.get_db_path() == str(tmp_path / "from_yaml.db")


def test_database_url_selects_postgres(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/tracklist")
    created = db_module.create_database()
    assert isinstance(created, PostgresDatabase)
    assert created.dsn == "postgresql://u:p@db:5432/tracklist"


def test_importing_app_leaves_logging_setup_to_the_server(monkeypatch):
    import tracklist.api as api_module
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda *a, **kw: calls.append(kw))
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level

    importlib.reload(api_module)

    assert calls == []
    assert root.handlers == handlers and root.level == level
