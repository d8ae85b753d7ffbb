from __future__ import annotations

import pytest

from tracklist.domain.models import DuplicateItemError
from tracklist.services import task_svc as svc


def test_add_assigns_increasing_clock_ids(db):
    a = svc.add_task(db, "alice", "Walk the dog")
    b = svc.add_task(db, "alice", "Clean", due_date="2025-06-01")
    assert b.id > a.id
    assert a.id > 1_600_000_000_000  # epoch millis
    assert a.completed is False and a.due_date is None
    assert b.to_dict() == {"id": b.id, "name": "Clean", "completed": False, "dueDate": "2025-06-01"}


def test_list_is_owner_scoped_and_name_ordered(db):
    svc.add_task(db, "alice", "zebra")
    svc.add_task(db, "alice", "Apple")
    svc.add_task(db, "bob", "bob task")
    assert [t.name for t in svc.list_tasks(db, "alice")] == ["Apple", "zebra"]
    assert [t.name for t in svc.list_tasks(db, "bob")] == ["bob task"]


def test_add_requires_name(db):
    with pytest.raises(ValueError):
        svc.add_task(db, "alice", "")


def test_toggle_twice_restores_value(db):
    t = svc.add_task(db, "alice", "Laundry")
    once = svc.toggle_task(db, "alice", t.id)
    assert once.completed is True
    twice = svc.toggle_task(db, "alice", t.id)
    assert twice.completed is False
    assert svc.get_task(db, "alice", t.id).completed is False


def test_toggle_other_owner_is_not_found(db):
    t = svc.add_task(db, "alice", "Laundry")
    assert svc.toggle_task(db, "bob", t.id) is None
    assert svc.get_task(db, "alice", t.id).completed is False


def test_update_partial_merge(db):
    t = svc.add_task(db, "alice", "Taxes", due_date="2025-04-15")

    u = svc.update_task(db, "alice", t.id, {"completed": True})
    assert (u.name, u.completed, u.due_date) == ("Taxes", True, "2025-04-15")

    u = svc.update_task(db, "alice", t.id, {"name": "File taxes", "completed": None})
    assert (u.name, u.completed, u.due_date) == ("File taxes", True, "2025-04-15")

    u = svc.update_task(db, "alice", t.id, {"dueDate": None})
    assert u.due_date is None
    assert svc.get_task(db, "alice", t.id).due_date is None


def test_update_missing_task(db):
    assert svc.update_task(db, "alice", 12345, {"name": "x"}) is None


def test_replace_all_keeps_other_owner(db):
    svc.add_task(db, "bob", "Bob's")
    svc.add_task(db, "alice", "old")
    stored = svc.replace_tasks(db, "alice", [
        {"id": 10, "name": "ten", "completed": True, "dueDate": "2025-01-01"},
        {"name": "fresh"},
    ])
    assert stored[0].id == 10 and stored[0].completed is True
    assert stored[1].id > 10
    assert sorted(t.name for t in svc.list_tasks(db, "alice")) == ["fresh", "ten"]
    assert [t.name for t in svc.list_tasks(db, "bob")] == ["Bob's"]


def test_replace_all_rejects_duplicate_ids(db):
    svc.add_task(db, "alice", "keep")
    with pytest.raises(DuplicateItemError):
        svc.replace_tasks(db, "alice", [{"id": 1, "name": "a"}, {"id": 1, "name": "b"}])
    assert [t.name for t in svc.list_tasks(db, "alice")] == ["keep"]


def test_same_id_allowed_for_different_owners(db):
    svc.replace_tasks(db, "alice", [{"id": 5, "name": "a"}])
    svc.replace_tasks(db, "bob", [{"id": 5, "name": "b"}])
    assert svc.get_task(db, "alice", 5).name == "a"
    assert svc.get_task(db, "bob", 5).name == "b"


def test_remove_and_reset(db):
    a = svc.add_task(db, "alice", "a")
    svc.add_task(db, "alice", "b")
    svc.add_task(db, "bob", "c")
    assert svc.remove_task(db, "alice", a.id) is True
    assert svc.remove_task(db, "alice", a.id) is False
    assert svc.reset_tasks(db, "alice") == 1
    assert svc.list_tasks(db, "alice") == []
    assert len(svc.list_tasks(db, "bob")) == 1


def test_replace_all_rejects_out_of_range_ids(db):
    svc.add_task(db, "alice", "keep")
    with pytest.raises(ValueError):
        svc.replace_tasks(db, "alice", [{"id": 2**63, "name": "too big"}])
    with pytest.raises(ValueError):
        svc.replace_tasks(db, "alice", [{"id": -1, "name": "negative"}])
    with pytest.raises(ValueError):
        svc.replace_tasks(db, "alice", [{"id": 2**63 - 1, "name": "max"}, {"name": "no room"}])
    assert [t.name for t in svc.list_tasks(db, "alice")] == ["keep"]

    stored = svc.replace_tasks(db, "alice", [{"id": 2**63 - 1, "name": "max"}])
    assert svc.get_task(db, "alice", stored[0].id).name == "max"


def test_replace_all_accepts_only_real_flags(db):
    with pytest.raises(ValueError):
        svc.replace_tasks(db, "alice", [{"id": 1, "name": "a", "completed": "false"}])
    stored = svc.replace_tasks(db, "alice", [{"id": 1, "name": "a", "completed": 1}])
    assert stored[0].completed is True
